"""
pricing_services.section_publisher -- Live section totals on the bus.

Responsibility:
    Recomputes one base section from its draft rows on every draft change
    and publishes the resulting ``SectionTotal`` to the aggregation bus,
    so totals reflect unsaved edits immediately.

Architecture position:
    Services -- glue between ``DraftController`` (rows), the pure
    ``recompute_section`` engine and ``AggregationBus``.

Invariants:
    - The publisher owns its section's total; nothing else publishes to
      its topic.
    - A failing catalog never aborts a recompute: the engine marks the
      result stale and the stale value is still published.
"""

from __future__ import annotations

from collections.abc import Sequence

from pricing_config.schema import PricingConfig
from pricing_engines.sections import SectionComputation, recompute_section
from pricing_kernel.domain.catalog import CatalogLookup
from pricing_kernel.domain.clock import Clock
from pricing_kernel.domain.rows import Row
from pricing_kernel.domain.sections import PricingWarning, SectionKey, SectionTotal
from pricing_kernel.domain.values import Money
from pricing_kernel.exceptions import PricingKernelError
from pricing_kernel.logging_config import LogContext, get_logger
from pricing_services.aggregation_bus import AggregationBus
from pricing_services.draft_controller import DraftController

logger = get_logger("services.section_publisher")


class SectionPublisher:
    """Recompute-and-publish loop for one (event, base section)."""

    def __init__(
        self,
        event_id: str,
        section: SectionKey,
        config: PricingConfig,
        catalog: CatalogLookup,
        bus: AggregationBus,
        clock: Clock,
        controller: DraftController | None = None,
    ):
        self.event_id = event_id
        self.section = section
        self._config = config
        self._catalog = catalog
        self._bus = bus
        self._clock = clock
        self._last: SectionComputation | None = None
        self._detach = None
        if controller is not None:
            self._detach = controller.on_change(self.publish_rows)

    @property
    def last_computation(self) -> SectionComputation | None:
        return self._last

    def recompute(self, rows: Sequence[Row]) -> SectionComputation:
        """Pure recompute of ``rows``; nothing is published."""
        return recompute_section(
            section=self.section,
            rows=list(rows),
            config=self._config,
            catalog=self._catalog,
        )

    def publish_rows(self, rows: Sequence[Row]) -> SectionTotal:
        """Recompute ``rows`` and publish the result."""
        with LogContext.bind(event_id=self.event_id, section=self.section.value):
            computation = self.recompute(rows)
            self._last = computation
            total = computation.to_total(self.event_id, self._clock.now())
            self._bus.publish(total)
            if computation.stale:
                logger.warning("section_published_stale", extra={
                    "warning_count": len(computation.warnings),
                })
        return total

    def publish_unavailable(self, error: PricingKernelError) -> SectionTotal:
        """Publish a stale zero total for a section whose rows could not be read."""
        total = SectionTotal(
            event_id=self.event_id,
            section=self.section,
            cost=Money.zero(self._config.currency),
            price=Money.zero(self._config.currency),
            published_at=self._clock.now(),
            stale=True,
            warnings=(PricingWarning.from_error(error, section=self.section.value),),
        )
        self._bus.publish(total)
        logger.warning("section_source_unavailable", extra={
            "event_id": self.event_id,
            "section": self.section.value,
            "error_code": error.code,
        })
        return total

    def current_total(self) -> SectionTotal | None:
        """The value this publisher last put on the bus, if any."""
        return self._bus.last_value(self.event_id, self.section)

    def close(self) -> None:
        if self._detach is not None:
            self._detach()
            self._detach = None
