"""Shared fixtures: an in-memory ledger store wired to an event bus."""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Mapping

import pytest

from household_ledger.errors import PersistenceError
from household_ledger.events import EventBus
from household_ledger.ledger import LedgerStore
from household_ledger.models import CategoryKind, LedgerEvent, LoanType, TransactionType
from household_ledger.services.storage import InMemoryKeyValueStore, LedgerPersistence


class FlakyKeyValueStore(InMemoryKeyValueStore):
    """In-memory store whose writes can be switched to fail."""

    def __init__(self):
        super().__init__()
        self.fail_writes = False

    def set_many(self, items: Mapping[str, str]) -> None:
        if self.fail_writes:
            raise PersistenceError("simulated write failure")
        super().set_many(items)


@pytest.fixture
def backend() -> FlakyKeyValueStore:
    return FlakyKeyValueStore()


@pytest.fixture
def persistence(backend) -> LedgerPersistence:
    return LedgerPersistence(backend)


@pytest.fixture
def events() -> EventBus:
    return EventBus()


@pytest.fixture
def received(events) -> list[LedgerEvent]:
    collected: list[LedgerEvent] = []
    events.subscribe_all(collected.append)
    return collected


@pytest.fixture
def store(persistence, events) -> LedgerStore:
    return LedgerStore(persistence, event_sink=events)


@pytest.fixture
def wallet(store):
    return store.add_account("Wallet", balance=Decimal("100"))


@pytest.fixture
def bank(store):
    return store.add_account("Bank", balance=Decimal("0"))


@pytest.fixture
def salary(store):
    return store.add_category("Salary", CategoryKind.INCOME)


@pytest.fixture
def groceries(store):
    return store.add_category("Groceries", CategoryKind.EXPENSE)


@pytest.fixture
def populated_store(store, wallet, bank, salary, groceries):
    """A store holding at least one record of every kind."""
    member = store.add_member("Sam", avatar="sam.png")
    store.add_category("Fruit", CategoryKind.EXPENSE, icon="apple", parent_id=groceries.id)
    store.add_transaction(
        Decimal("1250.75"),
        TransactionType.INCOME,
        bank.id,
        category_id=salary.id,
        member_id=member.id,
        date=datetime(2024, 5, 1, 9, 30, 15, 123456, tzinfo=timezone.utc),
        note='May salary, "net"\nsecond line',
    )
    store.add_transaction(Decimal("12.40"), TransactionType.EXPENSE, wallet.id, category_id=groceries.id)
    store.add_transfer(Decimal("50"), bank.id, wallet.id, note="cash")
    store.add_loan(LoanType.BORROW_OUT, Decimal("20"), wallet.id, "Bob, the neighbour", member_id=member.id)
    settled = store.add_loan(LoanType.BORROW_IN, Decimal("300"), bank.id, "Alice", note="car repair")
    store.toggle_loan_settled(settled.id)
    store.add_allocation(bank.id, 70)
    store.add_allocation(wallet.id, 30)
    return store
