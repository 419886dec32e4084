"""
pricing_services.totals_service -- Last-known-good totals per event.

Responsibility:
    Gathers the current value of every base section from the aggregation
    bus, resolves extra fees against them, reads the discount total and
    produces the event's ``TotalsSnapshot``.  Owns the loading state of
    each input source and the "last known good" snapshot per event.

Architecture position:
    Services -- stateful orchestration over the pure engines
    (``resolve_extra_fees``, ``aggregate_totals``).

Invariants enforced:
    - Anti-flicker: while any source of an event is loading, ``aggregate``
      returns the previous snapshot unchanged.  With no previous snapshot
      it falls back to the durable store, then to a zeroed snapshot with
      ``provisional=True``.  A snapshot is never built from a mix of
      loaded and loading inputs.
    - Idempotence: identical inputs return the identical cached snapshot
      object; a new snapshot replaces the cache only when inputs change.
    - A section with no value on the bus falls back to the caller's
      locally recomputed value, else to zero.

Failure modes:
    - A missing event id yields a zeroed snapshot carrying a
      MISSING_EVENT_CONTEXT warning; nothing raises.
    - A failing discount source contributes 0 and a warning.
    - A failing durable store read is treated as "no snapshot".
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import replace

from pricing_config.schema import PricingConfig
from pricing_engines.extra_fees import ExtraFeeResolution, FeeBases, resolve_extra_fees
from pricing_engines.totals import TotalsSnapshot, aggregate_totals
from pricing_engines.tracer import compute_input_fingerprint
from pricing_kernel.domain.clock import Clock
from pricing_kernel.domain.rows import ExtraFeeRow
from pricing_kernel.domain.sections import (
    BASE_SECTIONS,
    PricingWarning,
    SectionKey,
    SectionTotal,
)
from pricing_kernel.domain.values import Money
from pricing_kernel.exceptions import MissingEventContextError, SourceError
from pricing_kernel.logging_config import LogContext, get_logger
from pricing_services.aggregation_bus import AggregationBus
from pricing_services.interfaces import DiscountSource, SnapshotStore

logger = get_logger("services.totals")

_FINGERPRINT_FIELDS = ("sections", "fee_rows", "discounts_total", "people_count", "budget_total")


class TotalsService:
    """
    Snapshot cache and loading gate in front of the totals engines.

    Args:
        bus: Source of the live section totals.
        config: Currency and the default extra-fee markup.
        clock: Stamps ``computed_at``.
        snapshot_store: Durable last-known-good store (optional).
        discount_source: Discount collaborator (optional; no discounts
            when omitted).
    """

    def __init__(
        self,
        bus: AggregationBus,
        config: PricingConfig,
        clock: Clock,
        snapshot_store: SnapshotStore | None = None,
        discount_source: DiscountSource | None = None,
    ):
        self._bus = bus
        self._config = config
        self._clock = clock
        self._snapshot_store = snapshot_store
        self._discount_source = discount_source
        self._loading: dict[str, set[str]] = {}
        self._snapshots: dict[str, TotalsSnapshot] = {}
        self._fingerprints: dict[str, str] = {}
        self._fees: dict[str, ExtraFeeResolution] = {}

    # ------------------------------------------------------------------
    # Loading gate
    # ------------------------------------------------------------------

    def set_loading(self, event_id: str, source: str, loading: bool) -> None:
        """Mark one input source (a section, "discounts", ...) as loading or resolved."""
        sources = self._loading.setdefault(event_id, set())
        if loading:
            sources.add(source)
        else:
            sources.discard(source)

    def is_loading(self, event_id: str) -> bool:
        return bool(self._loading.get(event_id))

    def loading_sources(self, event_id: str) -> set[str]:
        return set(self._loading.get(event_id, ()))

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def last_snapshot(self, event_id: str) -> TotalsSnapshot | None:
        return self._snapshots.get(event_id)

    def last_fees(self, event_id: str) -> ExtraFeeResolution | None:
        """Fee resolution behind the cached snapshot."""
        return self._fees.get(event_id)

    def section_values(
        self,
        event_id: str,
        fallback: Mapping[SectionKey, SectionTotal] | None = None,
    ) -> dict[SectionKey, SectionTotal]:
        """Current value of each base section: bus, else fallback, else zero."""
        fallback = fallback or {}
        values: dict[SectionKey, SectionTotal] = {}
        for section in BASE_SECTIONS:
            value = self._bus.last_value(event_id, section)
            if value is None:
                value = fallback.get(section)
            if value is None:
                value = SectionTotal.zero(event_id, section, self._config.currency)
            values[section] = value
        return values

    def resolve_fees(
        self,
        event_id: str,
        fee_rows: Sequence[ExtraFeeRow],
        fallback: Mapping[SectionKey, SectionTotal] | None = None,
    ) -> ExtraFeeResolution:
        sections = self.section_values(event_id, fallback)
        return self._resolve(sections, fee_rows)

    def aggregate(
        self,
        event_id: str | None,
        fee_rows: Sequence[ExtraFeeRow] = (),
        fallback: Mapping[SectionKey, SectionTotal] | None = None,
        people_count: int | None = None,
        budget_total: Money | None = None,
    ) -> TotalsSnapshot:
        """
        Current snapshot of an event.

        Args:
            event_id: Event to aggregate.
            fee_rows: Current (draft) extra-fee rows.
            fallback: Locally recomputed section totals used when the bus
                has no value yet.
            people_count: Guest count for the per-person price.
            budget_total: Client budget for the variance.
        """
        currency = self._config.currency
        if not event_id:
            error = MissingEventContextError("aggregate_totals")
            logger.warning("totals_missing_event_context", extra={"error_code": error.code})
            snapshot = TotalsSnapshot.zero(None, currency, computed_at=self._clock.now())
            return replace(snapshot, warnings=(PricingWarning.from_error(error),))

        with LogContext.bind(event_id=event_id):
            if self.is_loading(event_id):
                return self._while_loading(event_id)

            sections = self.section_values(event_id, fallback)
            fees = self._resolve(sections, fee_rows)
            discounts_total, discount_warnings = self._discounts(event_id, sections, fees)

            fingerprint = compute_input_fingerprint(_FINGERPRINT_FIELDS, {
                "sections": {
                    key.value: (value.cost, value.price, value.stale, value.warnings)
                    for key, value in sections.items()
                },
                "fee_rows": list(fee_rows),
                "discounts_total": discounts_total,
                "people_count": people_count,
                "budget_total": budget_total,
            })
            cached = self._snapshots.get(event_id)
            if cached is not None and self._fingerprints.get(event_id) == fingerprint:
                logger.debug("totals_snapshot_reused", extra={"input_fingerprint": fingerprint})
                return cached

            snapshot = aggregate_totals(
                event_id=event_id,
                sections=sections,
                fees=fees,
                discounts_total=discounts_total,
                as_of=self._clock.now(),
                people_count=people_count,
                budget_total=budget_total,
            )
            if discount_warnings:
                snapshot = replace(snapshot, warnings=snapshot.warnings + tuple(discount_warnings))

            self._snapshots[event_id] = snapshot
            self._fingerprints[event_id] = fingerprint
            self._fees[event_id] = fees
            return snapshot

    def persist(self, event_id: str, snapshot: TotalsSnapshot | None = None) -> bool:
        """
        Write a snapshot to the durable store.

        Provisional snapshots are never written.

        Returns:
            True if a snapshot was written.
        """
        snapshot = snapshot or self._snapshots.get(event_id)
        if snapshot is None or snapshot.provisional or self._snapshot_store is None:
            return False
        self._snapshot_store.write(event_id, snapshot)
        return True

    def forget(self, event_id: str) -> None:
        self._loading.pop(event_id, None)
        self._snapshots.pop(event_id, None)
        self._fingerprints.pop(event_id, None)
        self._fees.pop(event_id, None)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _while_loading(self, event_id: str) -> TotalsSnapshot:
        cached = self._snapshots.get(event_id)
        if cached is not None:
            logger.debug("totals_held_while_loading", extra={
                "loading_sources": sorted(self.loading_sources(event_id)),
            })
            return cached

        durable = self._read_durable(event_id)
        if durable is not None:
            self._snapshots[event_id] = durable
            logger.info("totals_restored_from_store")
            return durable

        logger.info("totals_provisional_while_loading", extra={
            "loading_sources": sorted(self.loading_sources(event_id)),
        })
        return TotalsSnapshot.zero(
            event_id, self._config.currency, computed_at=self._clock.now(), provisional=True
        )

    def _read_durable(self, event_id: str) -> TotalsSnapshot | None:
        if self._snapshot_store is None:
            return None
        try:
            return self._snapshot_store.read(event_id)
        except SourceError as exc:
            logger.warning("totals_store_read_failed", extra={
                "error_code": exc.code,
                "error": str(exc),
            })
            return None

    def _resolve(
        self,
        sections: Mapping[SectionKey, SectionTotal],
        fee_rows: Sequence[ExtraFeeRow],
    ) -> ExtraFeeResolution:
        bases = FeeBases.from_prices(
            {key: value.price for key, value in sections.items()}, self._config.currency
        )
        return resolve_extra_fees(
            rows=list(fee_rows),
            bases=bases,
            default_markup_x=self._config.extra_fee_markup_x,
        )

    def _discounts(
        self,
        event_id: str,
        sections: Mapping[SectionKey, SectionTotal],
        fees: ExtraFeeResolution,
    ) -> tuple[Money, list[PricingWarning]]:
        zero = Money.zero(self._config.currency)
        if self._discount_source is None:
            return zero, []
        bases = FeeBases.from_prices(
            {key: value.price for key, value in sections.items()}, self._config.currency
        ).with_extra_fees(fees.extra_fee_price)
        try:
            return self._discount_source.total_discount(event_id, bases), []
        except SourceError as exc:
            logger.warning("discount_source_failed", extra={
                "error_code": exc.code,
                "error": str(exc),
            })
            return zero, [PricingWarning.from_error(exc, section="discounts")]
