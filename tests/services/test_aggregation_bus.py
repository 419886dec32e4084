"""Tests for the AggregationBus."""

from pricing_kernel.domain import SectionKey, SectionTotal
from pricing_kernel.domain.values import Money
from pricing_services.aggregation_bus import AggregationBus


def total(event_id, section, price, cost=0):
    return SectionTotal(event_id, section, Money.of(str(cost), "VND"), Money.of(str(price), "VND"))


class TestAggregationBus:
    def setup_method(self):
        self.bus = AggregationBus()

    def test_last_value_wins(self):
        self.bus.publish(total("evt-1", SectionKey.STAFF, 100))
        self.bus.publish(total("evt-1", SectionKey.STAFF, 250))
        assert self.bus.last_value("evt-1", SectionKey.STAFF).price == Money.of("250", "VND")

    def test_topics_are_independent(self):
        self.bus.publish(total("evt-1", SectionKey.STAFF, 100))
        self.bus.publish(total("evt-2", SectionKey.STAFF, 999))
        self.bus.publish(total("evt-1", SectionKey.ASSETS, 7))

        values = self.bus.values_for("evt-1")
        assert set(values) == {SectionKey.STAFF, SectionKey.ASSETS}
        assert values[SectionKey.STAFF].price == Money.of("100", "VND")
        assert self.bus.last_value("evt-2", SectionKey.ASSETS) is None

    def test_subscribe_replays_current_value(self):
        self.bus.publish(total("evt-1", SectionKey.STAFF, 100))
        received = []
        self.bus.subscribe("evt-1", SectionKey.STAFF, received.append)
        assert [v.price.amount for v in received] == [100]

    def test_subscribe_without_replay(self):
        self.bus.publish(total("evt-1", SectionKey.STAFF, 100))
        received = []
        self.bus.subscribe("evt-1", SectionKey.STAFF, received.append, replay=False)
        assert received == []
        self.bus.publish(total("evt-1", SectionKey.STAFF, 200))
        assert len(received) == 1

    def test_unsubscribe(self):
        received = []
        unsubscribe = self.bus.subscribe("evt-1", SectionKey.STAFF, received.append)
        unsubscribe()
        unsubscribe()
        self.bus.publish(total("evt-1", SectionKey.STAFF, 100))
        assert received == []

    def test_failing_subscriber_does_not_block_others(self, captured_logs):
        received = []

        def broken(_value):
            raise RuntimeError("boom")

        self.bus.subscribe("evt-1", SectionKey.STAFF, broken)
        self.bus.subscribe("evt-1", SectionKey.STAFF, received.append)
        self.bus.publish(total("evt-1", SectionKey.STAFF, 100))

        assert len(received) == 1
        failure = next(r for r in captured_logs() if r["message"] == "bus_subscriber_failed")
        assert failure["exc_type"] == "RuntimeError"

    def test_subscriber_may_publish(self):
        def forward(value):
            self.bus.publish(total("evt-1", SectionKey.ASSETS, value.price.amount))

        self.bus.subscribe("evt-1", SectionKey.STAFF, forward)
        self.bus.publish(total("evt-1", SectionKey.STAFF, 42))
        assert self.bus.last_value("evt-1", SectionKey.ASSETS).price == Money.of("42", "VND")

    def test_forget(self):
        self.bus.publish(total("evt-1", SectionKey.STAFF, 100))
        self.bus.publish(total("evt-2", SectionKey.STAFF, 100))
        self.bus.forget("evt-1")
        assert self.bus.values_for("evt-1") == {}
        assert self.bus.last_value("evt-2", SectionKey.STAFF) is not None
