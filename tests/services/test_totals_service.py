"""
Tests for TotalsService.

Covers:
- Section values from the bus, a local fallback or zero
- Snapshot reuse for identical inputs
- Anti-flicker behaviour while sources are loading
- Missing event context and failing collaborators
"""

from decimal import Decimal

from pricing_engines.totals import TotalsSnapshot
from pricing_kernel.domain import ExtraFeeRow, FeeMode, SectionKey, SectionTotal
from pricing_kernel.domain.values import Money
from pricing_kernel.exceptions import SourceUnavailableError
from pricing_services.aggregation_bus import AggregationBus
from pricing_services.discount_source import FixedDiscountSource
from pricing_services.memory import InMemorySnapshotStore
from pricing_services.totals_service import TotalsService

EVENT = "evt-1"


def vnd(amount) -> Money:
    return Money.of(str(amount), "VND")


def total(section, cost, price, event_id=EVENT):
    return SectionTotal(event_id, section, vnd(cost), vnd(price))


class BrokenDiscounts:
    def total_discount(self, event_id, bases=None):
        raise SourceUnavailableError("discounts", "pricing rules offline")


class BrokenSnapshotStore:
    def write(self, event_id, snapshot):
        raise AssertionError("not expected")

    def read(self, event_id):
        raise SourceUnavailableError("snapshots", "database offline")


class TestSectionValues:
    def test_bus_then_fallback_then_zero(self, config, clock):
        bus = AggregationBus()
        bus.publish(total(SectionKey.STAFF, 100, 130))
        service = TotalsService(bus, config, clock)

        values = service.section_values(EVENT, {
            SectionKey.STAFF: total(SectionKey.STAFF, 1, 1),
            SectionKey.ASSETS: total(SectionKey.ASSETS, 0, 500),
        })
        assert values[SectionKey.STAFF].price == vnd(130)
        assert values[SectionKey.ASSETS].price == vnd(500)
        assert values[SectionKey.BUNDLES].price.is_zero
        assert len(values) == 5

    def test_resolve_fees_against_bus(self, config, clock):
        bus = AggregationBus()
        bus.publish(total(SectionKey.ASSETS, 0, 1000000))
        service = TotalsService(bus, config, clock)
        fees = service.resolve_fees(
            EVENT, [ExtraFeeRow(id="f1", mode=FeeMode.PERCENT_INCLUSIVE, percent=50)]
        )
        assert fees.fee_total == vnd(500000)


class TestAggregate:
    def setup_method(self):
        from pricing_config import get_active_config
        from pricing_kernel.domain import DeterministicClock

        self.bus = AggregationBus()
        self.clock = DeterministicClock()
        self.store = InMemorySnapshotStore()
        self.discounts = FixedDiscountSource()
        self.service = TotalsService(
            self.bus,
            get_active_config(),
            self.clock,
            snapshot_store=self.store,
            discount_source=self.discounts,
        )

    def test_end_to_end(self):
        self.bus.publish(total(SectionKey.EQUIPMENT, 500, 750))
        self.discounts.set(EVENT, vnd(50))
        snapshot = self.service.aggregate(
            EVENT,
            fee_rows=[ExtraFeeRow(id="f1", mode=FeeMode.MANUAL, unit_price_manual="100")],
        )
        assert snapshot.grand_price == vnd(850)
        assert snapshot.price_after_discounts == vnd(800)
        assert snapshot.margin_after == vnd(300)
        assert snapshot.computed_at == self.clock.now()
        assert self.service.last_fees(EVENT).fee_total == vnd(100)

    def test_identical_inputs_return_cached_snapshot(self):
        self.bus.publish(total(SectionKey.EQUIPMENT, 500, 750))
        first = self.service.aggregate(EVENT)
        self.clock.advance(60)
        # Republishing the same values with a new timestamp is not a change.
        self.bus.publish(SectionTotal(EVENT, SectionKey.EQUIPMENT, vnd(500), vnd(750), self.clock.now()))
        assert self.service.aggregate(EVENT) is first

    def test_changed_input_replaces_snapshot(self):
        self.bus.publish(total(SectionKey.EQUIPMENT, 500, 750))
        first = self.service.aggregate(EVENT)
        self.bus.publish(total(SectionKey.EQUIPMENT, 500, 900))
        second = self.service.aggregate(EVENT)
        assert second is not first
        assert second.grand_price == vnd(900)
        assert self.service.last_snapshot(EVENT) is second

    def test_loading_holds_previous_snapshot(self):
        self.bus.publish(total(SectionKey.EQUIPMENT, 500, 750))
        first = self.service.aggregate(EVENT)

        self.service.set_loading(EVENT, "equipment", True)
        self.bus.publish(total(SectionKey.EQUIPMENT, 0, 0))
        assert self.service.aggregate(EVENT) is first
        assert self.service.loading_sources(EVENT) == {"equipment"}

        self.service.set_loading(EVENT, "equipment", False)
        assert self.service.aggregate(EVENT).grand_price.is_zero

    def test_loading_without_cache_uses_durable_snapshot(self):
        durable = TotalsSnapshot.zero(EVENT, "VND")
        self.store.write(EVENT, durable)
        self.service.set_loading(EVENT, "staff", True)
        assert self.service.aggregate(EVENT) is durable
        assert self.service.last_snapshot(EVENT) is durable

    def test_loading_without_any_snapshot_is_provisional(self):
        self.service.set_loading(EVENT, "staff", True)
        snapshot = self.service.aggregate(EVENT)
        assert snapshot.provisional is True
        assert snapshot.grand_price.is_zero
        assert self.service.persist(EVENT, snapshot) is False

    def test_missing_event(self):
        snapshot = self.service.aggregate(None)
        assert snapshot.event_id is None
        assert snapshot.grand_price.is_zero
        assert [w.code for w in snapshot.warnings] == ["MISSING_EVENT_CONTEXT"]

    def test_persist(self):
        self.bus.publish(total(SectionKey.EQUIPMENT, 500, 750))
        snapshot = self.service.aggregate(EVENT)
        assert self.service.persist(EVENT) is True
        assert self.store.read(EVENT) is snapshot

    def test_forget(self):
        self.service.aggregate(EVENT)
        self.service.set_loading(EVENT, "staff", True)
        self.service.forget(EVENT)
        assert self.service.last_snapshot(EVENT) is None
        assert self.service.is_loading(EVENT) is False


class TestFailingCollaborators:
    def test_discount_failure_contributes_zero(self, config, clock, captured_logs):
        bus = AggregationBus()
        bus.publish(total(SectionKey.STAFF, 100, 130))
        service = TotalsService(bus, config, clock, discount_source=BrokenDiscounts())

        snapshot = service.aggregate(EVENT)
        assert snapshot.discounts_total.is_zero
        assert snapshot.price_after_discounts == vnd(130)
        warning = snapshot.warnings[-1]
        assert warning.code == "SOURCE_UNAVAILABLE"
        assert warning.section == "discounts"
        assert any(r["message"] == "discount_source_failed" for r in captured_logs())

    def test_store_read_failure_means_no_snapshot(self, config, clock):
        service = TotalsService(AggregationBus(), config, clock, snapshot_store=BrokenSnapshotStore())
        service.set_loading(EVENT, "staff", True)
        assert service.aggregate(EVENT).provisional is True

    def test_fee_percent_of_zero_base(self, config, clock):
        service = TotalsService(AggregationBus(), config, clock)
        snapshot = service.aggregate(
            EVENT, fee_rows=[ExtraFeeRow(id="f1", mode=FeeMode.PERCENT_INCLUSIVE, percent=Decimal("10"))]
        )
        assert snapshot.extra_fee_price.is_zero
        assert snapshot.margin_after_pct is None
