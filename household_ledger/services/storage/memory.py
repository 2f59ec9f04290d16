"""In-memory key-value store, used by tests and throwaway ledgers."""

from typing import Iterable, Mapping, Optional

from household_ledger.services.storage.interface import KeyValueStoreInterface


class InMemoryKeyValueStore(KeyValueStoreInterface):

    def __init__(self, initial: Optional[Mapping[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})
        self.write_count = 0

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_many(self, items: Mapping[str, str]) -> None:
        data = dict(self._data)
        data.update(items)
        self._data = data
        self.write_count += 1

    def remove_many(self, keys: Iterable[str]) -> None:
        data = dict(self._data)
        for key in keys:
            data.pop(key, None)
        self._data = data
        self.write_count += 1

    def keys(self) -> list[str]:
        return list(self._data)
