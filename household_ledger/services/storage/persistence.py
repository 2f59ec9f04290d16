"""
Ledger Persistence

Maps the six ledger collections to six named blobs in a key-value store:

    <prefix>.Accounts
    <prefix>.Transactions
    <prefix>.Categories
    <prefix>.Loans
    <prefix>.Allocations
    <prefix>.Members

Each blob is the JSON encoding of the whole collection. Saving rewrites
all six blobs in one atomic batch.
"""

from typing import Any

from pydantic import TypeAdapter, ValidationError

from household_ledger.errors import DecodeError
from household_ledger.models.ledger import (
    Account,
    Category,
    IncomeAllocation,
    Loan,
    Member,
    Transaction,
)
from household_ledger.models.snapshot import LedgerCollections
from household_ledger.services.storage.interface import KeyValueStoreInterface


# collection attribute -> (key suffix, adapter)
COLLECTION_BLOBS: dict[str, tuple[str, TypeAdapter[Any]]] = {
    "accounts": ("Accounts", TypeAdapter(list[Account])),
    "transactions": ("Transactions", TypeAdapter(list[Transaction])),
    "categories": ("Categories", TypeAdapter(list[Category])),
    "loans": ("Loans", TypeAdapter(list[Loan])),
    "allocations": ("Allocations", TypeAdapter(list[IncomeAllocation])),
    "members": ("Members", TypeAdapter(list[Member])),
}


class LedgerPersistence:
    """Reads and writes LedgerCollections as six key-value blobs."""

    def __init__(self, backend: KeyValueStoreInterface, key_prefix: str = "FinanceTracker"):
        self._backend = backend
        self._key_prefix = key_prefix

    @property
    def backend(self) -> KeyValueStoreInterface:
        return self._backend

    def key_for(self, collection: str) -> str:
        suffix, _ = COLLECTION_BLOBS[collection]
        return f"{self._key_prefix}.{suffix}"

    def load(self) -> LedgerCollections:
        """
        Load all six collections. Absent keys load as empty collections.

        Raises:
            DecodeError: If a stored blob does not match its schema
            PersistenceError: If the backend cannot be read
        """
        loaded: dict[str, list] = {}
        for collection, (_, adapter) in COLLECTION_BLOBS.items():
            key = self.key_for(collection)
            raw = self._backend.get(key)
            if raw is None:
                loaded[collection] = []
                continue
            try:
                loaded[collection] = adapter.validate_json(raw)
            except ValidationError as e:
                raise DecodeError(f"Stored blob {key} is malformed: {e}") from e
        return LedgerCollections(**loaded)

    def encode(self, collections: LedgerCollections) -> dict[str, str]:
        """Encode every collection to its blob, keyed by its stable key."""
        return {
            self.key_for(collection): adapter.dump_json(getattr(collections, collection)).decode("utf-8")
            for collection, (_, adapter) in COLLECTION_BLOBS.items()
        }

    def save(self, collections: LedgerCollections) -> None:
        """
        Replace all six blobs in one write.

        Raises:
            PersistenceError: If the write fails
        """
        self._backend.set_many(self.encode(collections))

    def clear(self) -> None:
        self._backend.remove_many(self.key_for(c) for c in COLLECTION_BLOBS)
