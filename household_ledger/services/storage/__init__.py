"""
Storage Services Package

Provides the abstract key-value interface, an in-memory and a JSON-file
implementation, and the mapping of ledger collections onto named blobs.
"""

from household_ledger.services.storage.interface import KeyValueStoreInterface
from household_ledger.services.storage.memory import InMemoryKeyValueStore
from household_ledger.services.storage.json_file import (
    JsonFileKeyValueStore,
    atomic_write_text,
)
from household_ledger.services.storage.persistence import (
    COLLECTION_BLOBS,
    LedgerPersistence,
)

__all__ = [
    # Interfaces
    "KeyValueStoreInterface",
    # Implementations
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "atomic_write_text",
    # Ledger mapping
    "COLLECTION_BLOBS",
    "LedgerPersistence",
]
