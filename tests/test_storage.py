"""Tests for the key-value stores and the ledger persistence mapping."""

import json
from decimal import Decimal

import pytest

from household_ledger.errors import DecodeError, PersistenceError
from household_ledger.models import Account, LedgerCollections
from household_ledger.services.storage import (
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    LedgerPersistence,
    atomic_write_text,
)
from household_ledger.services.storage import json_file


class TestAtomicWrite:
    """atomic_write_text behaviour."""

    def test_creates_parent_and_leaves_no_temp_files(self, tmp_path):
        target = tmp_path / "nested" / "data.json"
        atomic_write_text(target, "hello")

        assert target.read_text(encoding="utf-8") == "hello"
        assert [p.name for p in target.parent.iterdir()] == ["data.json"]

    def test_replaces_existing_content(self, tmp_path):
        target = tmp_path / "data.json"
        atomic_write_text(target, "old")
        atomic_write_text(target, "new")
        assert target.read_text(encoding="utf-8") == "new"


class TestJsonFileKeyValueStore:
    """Single-file JSON key-value store."""

    def test_missing_file_is_empty(self, tmp_path):
        store = JsonFileKeyValueStore(tmp_path / "ledger.json")
        assert store.get("anything") is None
        assert store.keys() == []

    def test_values_survive_reopen(self, tmp_path):
        path = tmp_path / "ledger.json"
        JsonFileKeyValueStore(path).set_many({"a": "1", "b": "2"})

        reopened = JsonFileKeyValueStore(path)
        assert reopened.get("a") == "1"
        assert sorted(reopened.keys()) == ["a", "b"]

    def test_remove_many(self, tmp_path):
        store = JsonFileKeyValueStore(tmp_path / "ledger.json")
        store.set_many({"a": "1", "b": "2"})
        store.remove_many(["a"])
        assert store.keys() == ["b"]

    def test_invalid_json_raises_decode_error(self, tmp_path):
        path = tmp_path / "ledger.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(DecodeError):
            JsonFileKeyValueStore(path).get("a")

    def test_non_string_values_rejected(self, tmp_path):
        path = tmp_path / "ledger.json"
        path.write_text(json.dumps({"a": 1}), encoding="utf-8")
        with pytest.raises(DecodeError):
            JsonFileKeyValueStore(path).keys()

    def test_transient_write_failure_is_retried(self, tmp_path, monkeypatch):
        calls = []
        real_write = json_file.atomic_write_text

        def flaky(path, text):
            calls.append(path)
            if len(calls) == 1:
                raise OSError("temporarily unavailable")
            real_write(path, text)

        monkeypatch.setattr(json_file, "atomic_write_text", flaky)
        store = JsonFileKeyValueStore(tmp_path / "ledger.json", write_attempts=3)

        store.set_many({"a": "1"})

        assert len(calls) == 2
        assert JsonFileKeyValueStore(tmp_path / "ledger.json").get("a") == "1"

    def test_persistent_write_failure(self, tmp_path, monkeypatch):
        def always_fails(path, text):
            raise OSError("read-only file system")

        store = JsonFileKeyValueStore(tmp_path / "ledger.json", write_attempts=2)
        store.set_many({"a": "1"})
        monkeypatch.setattr(json_file, "atomic_write_text", always_fails)

        with pytest.raises(PersistenceError):
            store.set_many({"a": "2"})
        assert store.get("a") == "1"


class TestLedgerPersistence:
    """Six collections mapped onto six blobs."""

    def test_keys_use_prefix(self):
        backend = InMemoryKeyValueStore()
        LedgerPersistence(backend).save(LedgerCollections())

        assert sorted(backend.keys()) == [
            "FinanceTracker.Accounts",
            "FinanceTracker.Allocations",
            "FinanceTracker.Categories",
            "FinanceTracker.Loans",
            "FinanceTracker.Members",
            "FinanceTracker.Transactions",
        ]
        assert backend.write_count == 1

    def test_round_trip(self):
        backend = InMemoryKeyValueStore()
        collections = LedgerCollections(accounts=[Account(name="Wallet", balance=Decimal("12.50"))])

        persistence = LedgerPersistence(backend, key_prefix="Test")
        persistence.save(collections)

        assert persistence.load() == collections

    def test_absent_keys_load_empty(self):
        assert LedgerPersistence(InMemoryKeyValueStore()).load().is_empty

    def test_malformed_blob(self):
        backend = InMemoryKeyValueStore({"FinanceTracker.Accounts": '[{"name": ""}]'})
        with pytest.raises(DecodeError, match="FinanceTracker.Accounts"):
            LedgerPersistence(backend).load()

    def test_clear(self):
        backend = InMemoryKeyValueStore()
        persistence = LedgerPersistence(backend)
        persistence.save(LedgerCollections())
        persistence.clear()
        assert backend.keys() == []
