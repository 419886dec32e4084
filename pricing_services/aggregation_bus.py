"""
AggregationBus -- Latest-value channel between section publishers and totals.

Responsibility:
    Holds the most recent ``SectionTotal`` for every (event_id, section)
    topic and notifies subscribers when it changes.  Publishing
    overwrites; the bus never accumulates history.

Architecture position:
    Services -- in-process orchestration, no persistence.
    Written by ``SectionPublisher``; read by ``TotalsService``.

Invariants:
    - One current value per topic; ``publish`` replaces it.
    - Values on different topics never interfere.
    - A subscriber registered with ``replay=True`` is called immediately
      with the current value when one exists.
    - Callbacks run outside the internal lock, so a callback may publish.

Failure modes:
    - A raising subscriber is logged (``bus_subscriber_failed``) and the
      remaining subscribers still receive the value.
"""

from __future__ import annotations

import threading
from collections.abc import Callable

from pricing_kernel.domain.sections import SectionKey, SectionTotal
from pricing_kernel.logging_config import get_logger

logger = get_logger("services.aggregation_bus")

Topic = tuple[str, SectionKey]
Subscriber = Callable[[SectionTotal], None]


class AggregationBus:
    """Thread-safe, last-value-wins publish/subscribe keyed by (event, section)."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._values: dict[Topic, SectionTotal] = {}
        self._subscribers: dict[Topic, list[Subscriber]] = {}

    def publish(self, value: SectionTotal) -> None:
        """Replace the current value of ``(value.event_id, value.section)``."""
        topic = (value.event_id, value.section)
        with self._lock:
            self._values[topic] = value
            subscribers = list(self._subscribers.get(topic, ()))

        logger.debug("section_total_published", extra={
            "event_id": value.event_id,
            "section": value.section.value,
            "cost": str(value.cost.amount),
            "price": str(value.price.amount),
            "stale": value.stale,
            "subscriber_count": len(subscribers),
        })
        for callback in subscribers:
            self._deliver(callback, value)

    def last_value(self, event_id: str, section: SectionKey) -> SectionTotal | None:
        with self._lock:
            return self._values.get((event_id, section))

    def values_for(self, event_id: str) -> dict[SectionKey, SectionTotal]:
        """Current value of every section published for ``event_id``."""
        with self._lock:
            return {
                section: value
                for (topic_event, section), value in self._values.items()
                if topic_event == event_id
            }

    def subscribe(
        self,
        event_id: str,
        section: SectionKey,
        callback: Subscriber,
        replay: bool = True,
    ) -> Callable[[], None]:
        """
        Register ``callback`` for one topic.

        Returns:
            A function that removes the subscription. Calling it twice is
            harmless.
        """
        topic = (event_id, section)
        with self._lock:
            self._subscribers.setdefault(topic, []).append(callback)
            current = self._values.get(topic)

        if replay and current is not None:
            self._deliver(callback, current)

        def unsubscribe() -> None:
            with self._lock:
                callbacks = self._subscribers.get(topic, [])
                if callback in callbacks:
                    callbacks.remove(callback)

        return unsubscribe

    def forget(self, event_id: str) -> None:
        """Drop every value and subscription of an event."""
        with self._lock:
            for topic in [t for t in self._values if t[0] == event_id]:
                del self._values[topic]
            for topic in [t for t in self._subscribers if t[0] == event_id]:
                del self._subscribers[topic]

    @staticmethod
    def _deliver(callback: Subscriber, value: SectionTotal) -> None:
        try:
            callback(value)
        except Exception:
            logger.exception("bus_subscriber_failed", extra={
                "event_id": value.event_id,
                "section": value.section.value,
            })
