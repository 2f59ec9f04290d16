"""
Application wiring for Household Ledger

Builds a ready-to-use set of components from settings:

    settings -> logging
             -> JSON file key-value store -> persistence -> ledger store
             -> event bus (injected into the store)
             -> backup service
             -> statistics

Callers (a UI, a CLI, a test) subscribe to the event bus to refresh
whatever they display after each mutation.
"""

from typing import NamedTuple, Optional

from household_ledger.audit import AuditLogger, configure_logging
from household_ledger.config import Settings, get_settings
from household_ledger.events import EventBus
from household_ledger.ledger import LedgerStore
from household_ledger.queries import LedgerStatistics
from household_ledger.services.backup import BackupService
from household_ledger.services.storage import (
    JsonFileKeyValueStore,
    KeyValueStoreInterface,
    LedgerPersistence,
)


class AppComponents(NamedTuple):
    store: LedgerStore
    backups: BackupService
    statistics: LedgerStatistics
    events: EventBus


def create_app_components(
    settings: Optional[Settings] = None,
    backend: Optional[KeyValueStoreInterface] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        settings: Settings to use; the cached environment settings by default
        backend: Key-value store to persist into. Defaults to the JSON file
                 at settings.storage.data_path.

    Raises:
        DecodeError: If the persisted ledger is malformed
        PersistenceError: If the persisted ledger cannot be read
    """
    settings = settings or get_settings()
    storage_settings = settings.storage
    logging_settings = settings.logging

    configure_logging(level=logging_settings.level, json_output=logging_settings.json_output)

    if backend is None:
        backend = JsonFileKeyValueStore(
            storage_settings.data_path,
            write_attempts=storage_settings.write_attempts,
        )
    persistence = LedgerPersistence(backend, key_prefix=storage_settings.key_prefix)

    audit_logger = AuditLogger()
    events = EventBus()
    store = LedgerStore.open(persistence, event_sink=events, audit_logger=audit_logger)

    return AppComponents(
        store=store,
        backups=BackupService(store, settings=settings.backup, audit_logger=audit_logger),
        statistics=LedgerStatistics(store),
        events=events,
    )
