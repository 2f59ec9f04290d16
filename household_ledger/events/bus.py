"""
Event sinks for ledger change notifications.

The ledger store is given an EventSink at construction time and calls
emit() once after each successful mutation. EventBus fans events out to
subscribers registered per event kind (or for every kind).
"""

from typing import Callable, Dict, List, Optional, Protocol

from household_ledger.audit.logger import get_logger
from household_ledger.models.events import LedgerEvent, LedgerEventKind

__all__ = ["EventSink", "EventBus", "NullEventSink", "EventHandler"]

EventHandler = Callable[[LedgerEvent], None]


class EventSink(Protocol):
    def emit(self, event: LedgerEvent) -> None:
        ...


class NullEventSink:
    """Discards every event."""

    def emit(self, event: LedgerEvent) -> None:
        return None


class EventBus:
    def __init__(self):
        self._subscribers: Dict[Optional[LedgerEventKind], List[EventHandler]] = {}
        self._logger = get_logger("household_ledger.events")

    def subscribe(self, kind: Optional[LedgerEventKind], handler: EventHandler) -> None:
        """Register a handler for one kind, or for all kinds when kind is None."""
        if kind not in self._subscribers:
            self._subscribers[kind] = []
        self._subscribers[kind].append(handler)

    def subscribe_all(self, handler: EventHandler) -> None:
        self.subscribe(None, handler)

    def unsubscribe(self, kind: Optional[LedgerEventKind], handler: EventHandler) -> None:
        if kind in self._subscribers:
            if handler in self._subscribers[kind]:
                self._subscribers[kind].remove(handler)

    def emit(self, event: LedgerEvent) -> None:
        """
        Deliver an event to its kind's handlers, then to catch-all handlers.

        The change being announced is already committed, so a failing
        handler is logged and the remaining handlers still run.
        """
        handlers = list(self._subscribers.get(event.kind, [])) + list(self._subscribers.get(None, []))
        for handler in handlers:
            try:
                handler(event)
            except Exception:
                self._logger.exception(
                    "event_handler_failed",
                    event_kind=event.kind.value,
                    event_id=str(event.event_id),
                    handler=getattr(handler, "__name__", repr(handler)),
                )
