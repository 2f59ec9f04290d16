"""Tests for the JSON backup codec."""

import json

import pytest

from household_ledger.errors import DecodeError
from household_ledger.models import BACKUP_FORMAT_VERSION, BackupSnapshot
from household_ledger.services.backup import decode_snapshot, encode_snapshot


class TestJsonCodec:
    """Encoding and decoding full snapshots."""

    def test_empty_round_trip(self):
        snapshot = BackupSnapshot()
        assert decode_snapshot(encode_snapshot(snapshot)) == snapshot

    def test_populated_round_trip(self, populated_store):
        snapshot = populated_store.snapshot()

        decoded = decode_snapshot(encode_snapshot(snapshot))

        assert decoded == snapshot
        assert decoded.collections() == populated_store.state

    def test_amounts_written_exactly(self, populated_store):
        document = json.loads(encode_snapshot(populated_store.snapshot()))
        amounts = {tx["amount"] for tx in document["transactions"]}
        assert "1250.75" in amounts
        assert "12.40" in amounts

    def test_accepts_bytes(self):
        snapshot = BackupSnapshot()
        assert decode_snapshot(encode_snapshot(snapshot).encode("utf-8")) == snapshot

    @pytest.mark.parametrize("payload", [
        "",
        "not json",
        '{"accounts": [{"name": "Wallet", "balance": "abc"}]}',
        '{"transactions": [{"amount": "-1", "type": "income"}]}',
    ])
    def test_malformed_input(self, payload):
        with pytest.raises(DecodeError):
            decode_snapshot(payload)

    def test_newer_format_version_rejected(self):
        payload = json.dumps({"format_version": BACKUP_FORMAT_VERSION + 1})
        with pytest.raises(DecodeError, match="newer"):
            decode_snapshot(payload)
