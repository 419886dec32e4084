"""
pricing_services.row_store -- SQLAlchemy-backed row store.

Responsibility:
    Durable storage of every section's rows in ``pricing_section_rows``.
    Row content travels as the JSON payload produced by
    ``Row.to_payload()``; the primary key is the durable row id.

Architecture position:
    Services -- imperative shell.  Implements ``RowStore`` for
    ``DraftController``.  The session is injected; committing the outer
    transaction is the caller's job (``session_scope``).

Invariants enforced:
    - Each create/update/delete runs in its own SAVEPOINT, so a failed
      operation is rolled back alone and the others of the same commit
      still apply.
    - ``list`` returns rows ordered by position, then creation time.

Failure modes:
    - RowStoreError: unknown or malformed row id, or any SQLAlchemyError
      raised by the database.  The savepoint is rolled back first.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pricing_kernel.domain.rows import Row, row_type_for
from pricing_kernel.exceptions import RowStoreError
from pricing_kernel.logging_config import get_logger
from pricing_kernel.models.section_row import SectionRowModel

logger = get_logger("services.row_store")


def _as_uuid(operation: str, row_id: str) -> UUID:
    try:
        return UUID(str(row_id))
    except ValueError as exc:
        raise RowStoreError(operation, row_id, "malformed row id") from exc


class SqlRowStore:
    """
    Row store over a SQLAlchemy session.

    Usage:
        with session_scope() as session:
            store = SqlRowStore(session)
            row_id = store.create("evt-1", "staff", row, position=0)
    """

    def __init__(self, session: Session):
        self._session = session

    def list(self, event_id: str, section: str) -> list[Row]:
        row_type = row_type_for(section)
        try:
            models = self._session.execute(
                select(SectionRowModel)
                .where(SectionRowModel.event_id == event_id)
                .where(SectionRowModel.section == section)
                .order_by(SectionRowModel.position, SectionRowModel.created_at)
            ).scalars().all()
        except SQLAlchemyError as exc:
            raise RowStoreError("list", None, str(exc)) from exc
        return [row_type.from_payload(str(model.id), model.payload) for model in models]

    def create(self, event_id: str, section: str, row: Row, position: int) -> str:
        savepoint = self._session.begin_nested()
        try:
            model = SectionRowModel(
                event_id=event_id,
                section=section,
                position=position,
                payload=row.to_payload(),
            )
            self._session.add(model)
            self._session.flush()
            savepoint.commit()
        except SQLAlchemyError as exc:
            savepoint.rollback()
            raise RowStoreError("create", row.id, str(exc)) from exc

        logger.debug("section_row_created", extra={
            "event_id": event_id,
            "section": section,
            "row_id": str(model.id),
            "position": position,
        })
        return str(model.id)

    def update(self, event_id: str, section: str, row: Row, position: int) -> None:
        model = self._get("update", event_id, section, row.id)
        savepoint = self._session.begin_nested()
        try:
            model.payload = row.to_payload()
            model.position = position
            self._session.flush()
            savepoint.commit()
        except SQLAlchemyError as exc:
            savepoint.rollback()
            raise RowStoreError("update", row.id, str(exc)) from exc

        logger.debug("section_row_updated", extra={
            "event_id": event_id,
            "section": section,
            "row_id": row.id,
        })

    def delete(self, event_id: str, section: str, row_id: str) -> None:
        model = self._get("delete", event_id, section, row_id)
        savepoint = self._session.begin_nested()
        try:
            self._session.delete(model)
            self._session.flush()
            savepoint.commit()
        except SQLAlchemyError as exc:
            savepoint.rollback()
            raise RowStoreError("delete", row_id, str(exc)) from exc

        logger.debug("section_row_deleted", extra={
            "event_id": event_id,
            "section": section,
            "row_id": row_id,
        })

    def _get(self, operation: str, event_id: str, section: str, row_id: str) -> SectionRowModel:
        model = self._session.get(SectionRowModel, _as_uuid(operation, row_id))
        if model is None or model.event_id != event_id or model.section != section:
            raise RowStoreError(operation, row_id, "row not found")
        return model
