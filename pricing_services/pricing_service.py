"""
pricing_services.pricing_service -- Event pricing facade.

Responsibility:
    Wires one event's draft controllers, section publishers, totals
    service and payment splitter together and exposes the operations
    callers use: ``get_section_totals``, ``resolve_extra_fees``,
    ``aggregate_totals``, ``compute_payment_split`` and ``commit``.

Architecture position:
    Services -- top-level orchestration.  Everything below it is either
    a pure engine or a narrow collaborator protocol.

    row edit -> DraftController -> SectionPublisher -> AggregationBus
             -> TotalsService (extra fees, discounts) -> PaymentSplitter

Invariants enforced:
    - Live totals: every draft edit republishes its section, so totals
      include unsaved edits.
    - Commit is per section and per row; sections commit independently
      and a failure in one never blocks the others.
    - The durable snapshot, section totals and payment terms are written
      only when every section loaded, committed cleanly and is not stale.
    - No operation raises on a missing event id.  Results are zeroed
      and carry a MISSING_EVENT_CONTEXT warning.

Usage:
    service = EventPricingService("evt-1", config, catalog, SqlRowStore(session),
                                  snapshot_store=SqlSnapshotStore(session))
    service.load()
    service.add_row(SectionKey.STAFF, StaffRow(id="", cost_per_hour=100000, hours=8))
    snapshot = service.aggregate_totals()
    split = service.payment.set_deposit_percent(30)
    report = service.commit()
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from pricing_config.schema import PricingConfig
from pricing_engines.extra_fees import ExtraFeeResolution
from pricing_engines.payment_split import PaymentSplit, PaymentSplitter
from pricing_engines.totals import TotalsSnapshot
from pricing_kernel.domain.catalog import CatalogLookup
from pricing_kernel.domain.clock import Clock, SystemClock
from pricing_kernel.domain.rows import DISCOUNTS, ExtraFeeRow, Row, row_type_for
from pricing_kernel.domain.sections import (
    BASE_SECTIONS,
    PricingWarning,
    SectionKey,
    SectionTotal,
)
from pricing_kernel.domain.values import Money
from pricing_kernel.exceptions import (
    MissingEventContextError,
    PartialCommitFailureError,
    PricingKernelError,
)
from pricing_kernel.logging_config import LogContext, get_logger
from pricing_services.aggregation_bus import AggregationBus
from pricing_services.commit_trigger import CommitTrigger
from pricing_services.discount_source import RowDiscountSource
from pricing_services.draft_controller import CommitResult, DraftController, RowFailure
from pricing_services.interfaces import (
    DiscountSource,
    PaymentTermsStore,
    RowStore,
    SectionTotalStore,
    SnapshotStore,
)
from pricing_services.section_publisher import SectionPublisher
from pricing_services.totals_service import TotalsService

logger = get_logger("services.pricing")

EXTRA_FEES = SectionKey.EXTRA_FEES.value
# Commit order: base sections first, then fees and discounts.
EDITABLE_SECTIONS: tuple[str, ...] = tuple(s.value for s in BASE_SECTIONS) + (EXTRA_FEES, DISCOUNTS)


@dataclass(frozen=True)
class CommitReport:
    """Outcome of one commit across every section of an event."""

    event_id: str | None
    results: tuple[CommitResult, ...] = ()
    snapshot: TotalsSnapshot | None = None
    payment: PaymentSplit | None = None
    persisted: bool = False
    warnings: tuple[PricingWarning, ...] = ()

    @property
    def ok(self) -> bool:
        return self.event_id is not None and all(result.ok for result in self.results)

    @property
    def failures(self) -> list[RowFailure]:
        return [failure for result in self.results for failure in result.failures]

    def result_for(self, section: str | SectionKey) -> CommitResult | None:
        key = getattr(section, "value", section)
        for result in self.results:
            if result.section == key:
                return result
        return None


class EventPricingService:
    """
    Pricing of one event.

    Args:
        event_id: Event identifier; falsy means no event is resolved.
        config: Active pricing configuration.
        catalog: Item lookup for bundles and equipment.
        row_store: Durable rows of every section.
        bus: Shared aggregation bus (a private one is created if omitted).
        clock: Time source (system clock if omitted).
        snapshot_store: Durable last-known-good snapshot store.
        section_total_store: Durable committed section totals.
        payment_terms_store: Durable payment split.
        discount_source: Discount collaborator; defaults to the event's
            own discount rows.
        commit_trigger: External save signal to subscribe ``commit`` to.
        people_count: Guest count for the per-person price.
        budget_total: Client budget for the variance.
    """

    def __init__(
        self,
        event_id: str | None,
        config: PricingConfig,
        catalog: CatalogLookup,
        row_store: RowStore,
        *,
        bus: AggregationBus | None = None,
        clock: Clock | None = None,
        snapshot_store: SnapshotStore | None = None,
        section_total_store: SectionTotalStore | None = None,
        payment_terms_store: PaymentTermsStore | None = None,
        discount_source: DiscountSource | None = None,
        commit_trigger: CommitTrigger | None = None,
        people_count: int | None = None,
        budget_total: Money | None = None,
    ):
        self.event_id = event_id or None
        self.config = config
        self.people_count = people_count
        self.budget_total = budget_total
        self._bus = bus or AggregationBus()
        self._clock = clock or SystemClock()
        self._row_store = row_store
        self._section_total_store = section_total_store
        self._payment_terms_store = payment_terms_store
        self._splitter: PaymentSplitter | None = None

        key = self.event_id or ""
        self.controllers: dict[str, DraftController] = {
            section: DraftController(key, section, row_store) for section in EDITABLE_SECTIONS
        }
        self.publishers: dict[SectionKey, SectionPublisher] = {}
        if self.event_id:
            self.publishers = {
                section: SectionPublisher(
                    key, section, config, catalog, self._bus, self._clock,
                    controller=self.controllers[section.value],
                )
                for section in BASE_SECTIONS
            }

        if discount_source is None:
            discount_source = RowDiscountSource(
                lambda _event_id: self.controllers[DISCOUNTS].rows, config.currency
            )
        self.totals = TotalsService(
            self._bus,
            config,
            self._clock,
            snapshot_store=snapshot_store,
            discount_source=discount_source,
        )

        self._unsubscribe = None
        if commit_trigger is not None:
            self._unsubscribe = commit_trigger.subscribe(self._on_commit_trigger)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load(self) -> bool:
        """
        Hydrate every section from the row store and publish base totals.

        Returns:
            True if every section loaded. A section that failed to load
            is published as a stale zero total carrying a warning.
        """
        if not self.event_id:
            logger.warning("pricing_load_skipped", extra={
                "error_code": MissingEventContextError.code,
            })
            return False

        ok = True
        with LogContext.bind(event_id=self.event_id):
            for section, controller in self.controllers.items():
                self.totals.set_loading(self.event_id, section, True)
                try:
                    controller.load()
                finally:
                    self.totals.set_loading(self.event_id, section, False)
                if controller.load_error is not None:
                    ok = False

            for key, publisher in self.publishers.items():
                controller = self.controllers[key.value]
                if controller.load_error is not None:
                    publisher.publish_unavailable(controller.load_error)
                elif self._bus.last_value(self.event_id, key) is None:
                    publisher.publish_rows(controller.rows)

            if self._payment_terms_store is not None:
                try:
                    stored = self._payment_terms_store.read(self.event_id)
                except PricingKernelError as exc:
                    ok = False
                    stored = None
                    logger.warning("payment_terms_load_failed", extra={
                        "error_code": exc.code,
                        "error": str(exc),
                    })
                if stored is not None:
                    self._splitter = self._new_splitter(stored.total, stored)

            logger.info("pricing_loaded", extra={
                "sections_ok": ok,
                "row_counts": {s: len(c.rows) for s, c in self.controllers.items()},
            })
        return ok

    # ------------------------------------------------------------------
    # Row edits
    # ------------------------------------------------------------------

    def rows(self, section: str | SectionKey) -> list[Row]:
        return self._controller(section).rows

    def add_row(self, section: str | SectionKey, row: Row) -> Row:
        """Add a draft row; returns it with its temporary id."""
        controller = self._controller(section)
        self._check_row_type(controller.section, row)
        return controller.add_row(row)

    def update_row(self, section: str | SectionKey, row: Row) -> None:
        controller = self._controller(section)
        self._check_row_type(controller.section, row)
        controller.update_row(row)

    def remove_row(self, section: str | SectionKey, row_id: str) -> None:
        self._controller(section).remove_row(row_id)

    def is_dirty(self) -> bool:
        return any(controller.is_dirty() for controller in self.controllers.values())

    def dirty_sections(self) -> list[str]:
        return [section for section, c in self.controllers.items() if c.is_dirty()]

    def discard(self) -> None:
        """Revert every draft to its last persisted rows."""
        for controller in self.controllers.values():
            controller.discard()

    # ------------------------------------------------------------------
    # Totals
    # ------------------------------------------------------------------

    def get_section_totals(self) -> dict[SectionKey, SectionTotal]:
        """Current value of each base section, including unsaved edits."""
        if not self.event_id:
            return {
                section: SectionTotal.zero("", section, self.config.currency)
                for section in BASE_SECTIONS
            }
        return self.totals.section_values(self.event_id, self._fallback())

    def resolve_extra_fees(self) -> ExtraFeeResolution:
        if not self.event_id:
            return ExtraFeeResolution.empty(self.config.currency)
        return self.totals.resolve_fees(self.event_id, self._fee_rows(), self._fallback())

    def aggregate_totals(self) -> TotalsSnapshot:
        return self.totals.aggregate(
            self.event_id,
            fee_rows=self._fee_rows() if self.event_id else (),
            fallback=self._fallback() if self.event_id else None,
            people_count=self.people_count,
            budget_total=self.budget_total,
        )

    # ------------------------------------------------------------------
    # Payment
    # ------------------------------------------------------------------

    @property
    def payment(self) -> PaymentSplitter:
        """Splitter synchronised to the current post-discount price."""
        return self._synced_splitter()

    def compute_payment_split(self) -> PaymentSplit:
        return self._synced_splitter().split

    def _synced_splitter(self) -> PaymentSplitter:
        total = self.aggregate_totals().price_after_discounts.round()
        if self._splitter is None:
            self._splitter = self._new_splitter(total)
        elif self._splitter.split.total != total:
            self._splitter.set_total(total)
        return self._splitter

    # ------------------------------------------------------------------
    # Commit
    # ------------------------------------------------------------------

    def commit(self) -> CommitReport:
        """
        Persist every dirty section, then the derived records.

        Sections are committed independently; already-applied row
        operations are never rolled back.
        """
        if not self.event_id:
            error = MissingEventContextError("commit")
            logger.warning("pricing_commit_skipped", extra={"error_code": error.code})
            return CommitReport(event_id=None, warnings=(PricingWarning.from_error(error),))

        with LogContext.bind(event_id=self.event_id):
            results = tuple(controller.commit() for controller in self.controllers.values())
            for key, publisher in self.publishers.items():
                controller = self.controllers[key.value]
                if controller.load_error is not None:
                    publisher.publish_unavailable(controller.load_error)
                else:
                    publisher.publish_rows(controller.rows)

            snapshot = self.aggregate_totals()
            split = self.compute_payment_split()
            clean = all(result.ok for result in results)
            unloaded = [s for s, c in self.controllers.items() if c.load_error is not None]
            warnings: list[PricingWarning] = []
            persisted = False

            for result in results:
                if not result.ok:
                    error = PartialCommitFailureError(result.section, result.failed_row_ids)
                    warnings.append(PricingWarning.from_error(error, section=result.section))
            for section in unloaded:
                warnings.append(PricingWarning.from_error(
                    self.controllers[section].load_error, section=section,
                ))

            # Derived records are written only from fully loaded, fresh inputs.
            if clean and not unloaded and not snapshot.is_stale:
                persisted = self._persist_derived(snapshot, split, warnings)
            elif clean:
                logger.warning("pricing_persist_skipped_stale", extra={
                    "unloaded_sections": unloaded,
                    "stale_sections": [s.value for s in snapshot.stale_sections],
                })

            report = CommitReport(
                event_id=self.event_id,
                results=results,
                snapshot=snapshot,
                payment=split,
                persisted=persisted,
                warnings=tuple(warnings),
            )
            logger.info("pricing_committed", extra={
                "ok": report.ok,
                "persisted": persisted,
                "failure_count": len(report.failures),
                "price_after_discounts": str(snapshot.price_after_discounts.amount),
            })
        return report

    def close(self) -> None:
        """Detach publishers and the commit trigger subscription."""
        for publisher in self.publishers.values():
            publisher.close()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _persist_derived(
        self,
        snapshot: TotalsSnapshot,
        split: PaymentSplit,
        warnings: list[PricingWarning],
    ) -> bool:
        try:
            if self._section_total_store is not None:
                for total in self.get_section_totals().values():
                    self._section_total_store.write(total)
            self.totals.persist(self.event_id, snapshot)
            if self._payment_terms_store is not None:
                self._payment_terms_store.write(self.event_id, split)
        except PricingKernelError as exc:
            warnings.append(PricingWarning.from_error(exc))
            logger.warning("pricing_persist_failed", extra={"error_code": exc.code})
            return False
        return True

    def _on_commit_trigger(self, event_id: str) -> CommitReport | None:
        if event_id != self.event_id:
            return None
        return self.commit()

    def _controller(self, section: str | SectionKey) -> DraftController:
        key = getattr(section, "value", section)
        try:
            return self.controllers[key]
        except KeyError:
            raise ValueError(f"Unknown section: {section}") from None

    @staticmethod
    def _check_row_type(section: str, row: Row) -> None:
        expected = row_type_for(section)
        if not isinstance(row, expected):
            raise ValueError(
                f"{type(row).__name__} cannot be stored in {section}; expected {expected.__name__}"
            )

    def _fee_rows(self) -> Sequence[ExtraFeeRow]:
        return self.controllers[EXTRA_FEES].rows

    def _fallback(self) -> dict[SectionKey, SectionTotal]:
        fallback: dict[SectionKey, SectionTotal] = {}
        now = self._clock.now()
        for key, publisher in self.publishers.items():
            if self._bus.last_value(self.event_id, key) is None:
                rows = self.controllers[key.value].rows
                fallback[key] = publisher.recompute(rows).to_total(self.event_id, now)
        return fallback

    def _new_splitter(self, total: Money, split: PaymentSplit | None = None) -> PaymentSplitter:
        payment = self.config.payment
        return PaymentSplitter(
            total,
            default_deposit_percent=payment.default_deposit_percent,
            percent_places=payment.percent_display_places,
            split=split,
        )
