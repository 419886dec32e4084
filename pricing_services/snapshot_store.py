"""
pricing_services.snapshot_store -- Durable snapshots and section totals.

Responsibility:
    ``SqlSnapshotStore`` keeps one "last known good" ``TotalsSnapshot``
    per event, used for anti-flicker continuity across sessions and as
    the authoritative record written at commit time.
    ``SqlSectionTotalStore`` keeps the committed {cost, price} of every
    (event, section).

Architecture position:
    Services -- imperative shell over ``pricing_kernel.models``.
    Both stores upsert: one row per key, overwritten, never appended.

Failure modes:
    - Every method raises SourceUnavailableError when the database fails;
      writes roll their savepoint back first.  ``read`` also raises it
      when the stored body cannot be parsed.  ``TotalsService`` treats a
      failed read the same as "no snapshot".
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pricing_engines.totals import TotalsSnapshot
from pricing_kernel.domain.sections import SectionKey, SectionTotal
from pricing_kernel.domain.values import Money
from pricing_kernel.exceptions import SourceUnavailableError
from pricing_kernel.logging_config import get_logger
from pricing_kernel.models.section_total import SectionTotalModel
from pricing_kernel.models.totals_snapshot import TotalsSnapshotModel

logger = get_logger("services.snapshot_store")


class SqlSnapshotStore:
    def __init__(self, session: Session):
        self._session = session

    def write(self, event_id: str, snapshot: TotalsSnapshot) -> None:
        savepoint = self._session.begin_nested()
        try:
            model = self._session.execute(
                select(TotalsSnapshotModel).where(TotalsSnapshotModel.event_id == event_id)
            ).scalar_one_or_none()
            if model is None:
                model = TotalsSnapshotModel(event_id=event_id)
                self._session.add(model)

            model.currency = snapshot.currency.code
            model.price_after_discounts = snapshot.price_after_discounts.amount
            model.computed_at = snapshot.computed_at
            model.body = snapshot.to_dict()
            self._session.flush()
            savepoint.commit()
        except SQLAlchemyError as exc:
            savepoint.rollback()
            raise SourceUnavailableError("totals_snapshot", str(exc)) from exc

        logger.info("totals_snapshot_persisted", extra={
            "event_id": event_id,
            "price_after_discounts": str(snapshot.price_after_discounts.amount),
            "currency": snapshot.currency.code,
        })

    def read(self, event_id: str) -> TotalsSnapshot | None:
        try:
            model = self._session.execute(
                select(TotalsSnapshotModel).where(TotalsSnapshotModel.event_id == event_id)
            ).scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise SourceUnavailableError("totals_snapshot", str(exc)) from exc
        if model is None:
            return None
        try:
            return TotalsSnapshot.from_dict(model.body)
        except (KeyError, ValueError, TypeError) as exc:
            raise SourceUnavailableError("totals_snapshot", f"malformed body: {exc}") from exc


class SqlSectionTotalStore:
    def __init__(self, session: Session):
        self._session = session

    def write(self, total: SectionTotal) -> None:
        savepoint = self._session.begin_nested()
        try:
            model = self._session.execute(
                select(SectionTotalModel)
                .where(SectionTotalModel.event_id == total.event_id)
                .where(SectionTotalModel.section == total.section.value)
            ).scalar_one_or_none()
            if model is None:
                model = SectionTotalModel(event_id=total.event_id, section=total.section.value)
                self._session.add(model)

            model.currency = total.cost.currency.code
            model.cost = total.cost.amount
            model.price = total.price.amount
            model.stale = total.stale
            model.published_at = total.published_at
            self._session.flush()
            savepoint.commit()
        except SQLAlchemyError as exc:
            savepoint.rollback()
            raise SourceUnavailableError(f"section_totals[{total.section.value}]", str(exc)) from exc

    def read_all(self, event_id: str) -> list[SectionTotal]:
        try:
            models = self._session.execute(
                select(SectionTotalModel)
                .where(SectionTotalModel.event_id == event_id)
                .order_by(SectionTotalModel.section)
            ).scalars().all()
        except SQLAlchemyError as exc:
            raise SourceUnavailableError("section_totals", str(exc)) from exc
        return [
            SectionTotal(
                event_id=model.event_id,
                section=SectionKey(model.section),
                cost=Money.of(model.cost, model.currency),
                price=Money.of(model.price, model.currency),
                published_at=model.published_at,
                stale=model.stale,
            )
            for model in models
        ]
