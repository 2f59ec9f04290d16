"""Services package."""

from household_ledger.services.backup import (
    CSV_OMITTED_FIELDS,
    BackupService,
    decode_csv,
    decode_snapshot,
    encode_csv,
    encode_snapshot,
)
from household_ledger.services.storage import (
    COLLECTION_BLOBS,
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    KeyValueStoreInterface,
    LedgerPersistence,
    atomic_write_text,
)

__all__ = [
    # Backup services
    "BackupService",
    "CSV_OMITTED_FIELDS",
    "decode_csv",
    "decode_snapshot",
    "encode_csv",
    "encode_snapshot",
    # Storage services
    "COLLECTION_BLOBS",
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "KeyValueStoreInterface",
    "LedgerPersistence",
    "atomic_write_text",
]
