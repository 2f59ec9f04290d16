"""Tests for the event bus."""

from household_ledger.events import EventBus, NullEventSink
from household_ledger.models import LedgerEvent, LedgerEventKind


def make_event(kind=LedgerEventKind.ACCOUNTS_CHANGED):
    return LedgerEvent(kind=kind, operation="add_account")


class TestEventBus:
    """Subscription and delivery."""

    def test_kind_subscribers_only_get_their_kind(self):
        bus = EventBus()
        seen = []
        bus.subscribe(LedgerEventKind.LOANS_CHANGED, seen.append)

        bus.emit(make_event(LedgerEventKind.ACCOUNTS_CHANGED))
        loans_event = make_event(LedgerEventKind.LOANS_CHANGED)
        bus.emit(loans_event)

        assert seen == [loans_event]

    def test_catch_all_runs_after_kind_handlers(self):
        bus = EventBus()
        order = []
        bus.subscribe_all(lambda e: order.append("all"))
        bus.subscribe(LedgerEventKind.ACCOUNTS_CHANGED, lambda e: order.append("kind"))

        bus.emit(make_event())

        assert order == ["kind", "all"]

    def test_unsubscribe(self):
        bus = EventBus()
        seen = []
        bus.subscribe_all(seen.append)
        bus.unsubscribe(None, seen.append)

        bus.emit(make_event())

        assert seen == []

    def test_unsubscribe_unknown_handler_is_ignored(self):
        bus = EventBus()
        bus.unsubscribe(LedgerEventKind.MEMBERS_CHANGED, print)

    def test_failing_handler_does_not_stop_delivery(self):
        bus = EventBus()
        seen = []

        def broken(event):
            raise RuntimeError("boom")

        bus.subscribe_all(broken)
        bus.subscribe_all(seen.append)
        event = make_event()

        bus.emit(event)

        assert seen == [event]

    def test_null_sink(self):
        assert NullEventSink().emit(make_event()) is None
