"""
JSON File Storage Implementation

All keys live in a single JSON object on disk. Every write rewrites the
whole file through a temporary file and os.replace, so a crash mid-write
leaves either the old file or the new one, never a mix.

TRADEOFFS:
- Every write is O(size of the ledger) (fine for a household)
- No concurrent writers from other processes
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Iterable, Mapping, Optional

from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from household_ledger.errors import DecodeError, PersistenceError
from household_ledger.services.storage.interface import KeyValueStoreInterface


def atomic_write_text(path: Path, text: str, encoding: str = "utf-8") -> None:
    """
    Write text to path atomically.

    The directory is created if needed. Raises OSError on failure and
    leaves no temporary file behind.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding=encoding, newline="") as handle:
            handle.write(text)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


class JsonFileKeyValueStore(KeyValueStoreInterface):
    """
    Key-value store backed by one JSON file.

    The file is read once and cached; the cache only changes after a
    write has reached disk.
    """

    def __init__(self, path: Path, write_attempts: int = 3):
        self._path = Path(path)
        self._write_attempts = write_attempts
        self._cache: Optional[dict[str, str]] = None

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, str]:
        if self._cache is not None:
            return self._cache

        if not self._path.exists():
            self._cache = {}
            return self._cache

        try:
            raw = self._path.read_text(encoding="utf-8")
        except OSError as e:
            raise PersistenceError(f"Failed to read {self._path}: {e}") from e

        try:
            data = json.loads(raw) if raw.strip() else {}
        except json.JSONDecodeError as e:
            raise DecodeError(f"Storage file {self._path} is not valid JSON: {e}") from e

        if not isinstance(data, dict) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in data.items()
        ):
            raise DecodeError(f"Storage file {self._path} must hold an object of string values")

        self._cache = data
        return self._cache

    def _write(self, data: dict[str, str]) -> None:
        retrying = Retrying(
            stop=stop_after_attempt(self._write_attempts),
            wait=wait_exponential(multiplier=0.1, min=0.1, max=2),
            retry=retry_if_exception_type(OSError),
            reraise=True,
        )
        text = json.dumps(data, ensure_ascii=False, indent=2, sort_keys=True)
        try:
            retrying(atomic_write_text, self._path, text)
        except OSError as e:
            raise PersistenceError(f"Failed to write {self._path}: {e}") from e
        self._cache = data

    def get(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set_many(self, items: Mapping[str, str]) -> None:
        data = dict(self._load())
        data.update(items)
        self._write(data)

    def remove_many(self, keys: Iterable[str]) -> None:
        data = dict(self._load())
        for key in keys:
            data.pop(key, None)
        self._write(data)

    def keys(self) -> list[str]:
        return list(self._load())
