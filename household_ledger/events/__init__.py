"""Change notification package."""

from household_ledger.events.bus import EventBus, EventHandler, EventSink, NullEventSink

__all__ = ["EventBus", "EventHandler", "EventSink", "NullEventSink"]
