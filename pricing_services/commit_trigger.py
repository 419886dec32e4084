"""
CommitTrigger -- The external "save" signal.

Draft controllers and the payment splitter of an event do not decide
when to persist; they subscribe here and persist when ``fire`` is
called.  A failing handler is logged and does not stop the others.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from pricing_kernel.logging_config import get_logger

logger = get_logger("services.commit_trigger")

CommitHandler = Callable[[str], Any]


class CommitTrigger:
    def __init__(self) -> None:
        self._handlers: list[CommitHandler] = []

    def subscribe(self, handler: CommitHandler) -> Callable[[], None]:
        self._handlers.append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return unsubscribe

    def fire(self, event_id: str) -> list[Any]:
        """Invoke every handler for ``event_id`` and return their results in order."""
        logger.info("commit_triggered", extra={
            "event_id": event_id,
            "handler_count": len(self._handlers),
        })
        results = []
        for handler in list(self._handlers):
            try:
                results.append(handler(event_id))
            except Exception:
                logger.exception("commit_handler_failed", extra={"event_id": event_id})
                results.append(None)
        return results
