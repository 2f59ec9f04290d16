"""
Abstract Key-Value Storage Interface

The ledger persists its six collections as named blobs in a local
key-value settings store. We define an abstract interface for it so we can:
1. Keep the ledger store decoupled from where bytes end up
2. Use in-memory storage for testing
3. Swap the single JSON file for another embedded store later

The interface is intentionally small: whole-value reads and an atomic
multi-key write. There is no incremental update.
"""

from abc import ABC, abstractmethod
from typing import Iterable, Mapping, Optional


class KeyValueStoreInterface(ABC):
    """
    Abstract interface for a string key-value store.

    Any storage implementation must implement these methods.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """
        Read the value stored under a key.

        Args:
            key: Stable string key

        Returns:
            The stored value, or None if the key is absent

        Raises:
            PersistenceError: If the backing store cannot be read
            DecodeError: If the backing store is corrupt
        """
        pass

    @abstractmethod
    def set_many(self, items: Mapping[str, str]) -> None:
        """
        Replace the values of several keys in one atomic write.

        Either every value is durably stored, or none is.

        Raises:
            PersistenceError: If the write fails
        """
        pass

    @abstractmethod
    def remove_many(self, keys: Iterable[str]) -> None:
        """
        Remove several keys in one atomic write. Missing keys are ignored.

        Raises:
            PersistenceError: If the write fails
        """
        pass

    @abstractmethod
    def keys(self) -> list[str]:
        """List the stored keys."""
        pass
