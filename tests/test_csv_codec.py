"""Tests for the CSV backup codec."""

from decimal import Decimal

import pytest

from household_ledger.errors import DecodeError
from household_ledger.models import LoanType, TransactionType
from household_ledger.services.backup import CSV_OMITTED_FIELDS, decode_csv, encode_csv
from household_ledger.services.backup.csv_codec import SECTIONS


COLLECTIONS = [section.collection for section in SECTIONS]


def comparable(snapshot, collection):
    """Records of one collection without the fields CSV does not carry."""
    omitted = set(CSV_OMITTED_FIELDS.get(collection, ()))
    return [record.model_dump(exclude=omitted) for record in getattr(snapshot, collection)]


class TestCsvRoundTrip:
    """Encode then decode, with the documented losses."""

    def test_omitted_fields_are_the_creation_timestamps(self):
        assert CSV_OMITTED_FIELDS == {
            "accounts": frozenset({"created_at"}),
            "members": frozenset({"created_at"}),
        }

    def test_populated_round_trip(self, populated_store):
        snapshot = populated_store.snapshot()

        decoded = decode_csv(encode_csv(snapshot))

        for collection in COLLECTIONS:
            assert comparable(decoded, collection) == comparable(snapshot, collection), collection

    def test_omitted_fields_revert_to_defaults(self, populated_store):
        snapshot = populated_store.snapshot()

        decoded = decode_csv(encode_csv(snapshot))

        assert all(a.created_at <= snapshot.created_at for a in snapshot.accounts)
        assert all(a.created_at >= snapshot.created_at for a in decoded.accounts)
        assert all(m.created_at >= snapshot.created_at for m in decoded.members)

    def test_empty_round_trip(self, store):
        decoded = decode_csv(encode_csv(store.snapshot()))
        assert decoded.collections().is_empty

    def test_quoted_values_survive(self, populated_store):
        decoded = decode_csv(encode_csv(populated_store.snapshot()))

        notes = {tx.note for tx in decoded.transactions}
        assert 'May salary, "net"\nsecond line' in notes
        assert "Bob, the neighbour" in {loan.counterparty for loan in decoded.loans}


class TestCsvLayout:
    """The written text."""

    def test_banner_and_sections(self, populated_store):
        lines = encode_csv(populated_store.snapshot()).splitlines()

        assert lines[0] == "FinanceTracker Backup Data"
        assert lines[1].startswith("Exported on: ")
        for title, header in [
            ("Accounts", "ID,Name,Type,Balance"),
            ("Categories", "ID,Name,Type,Icon,ParentID"),
            ("Members", "ID,Name,Avatar,IsActive"),
            ("Income Allocations", "ID,AccountId,Percentage,LastModified"),
        ]:
            index = lines.index(title)
            assert lines[index + 1] == header

    def test_booleans_written_lowercase(self, populated_store):
        text = encode_csv(populated_store.snapshot())
        assert ",true," in text or text.rstrip().endswith(",true")
        assert ",false," in text


class TestCsvImport:
    """Decoding hand-written and older files."""

    ACCOUNT_ID = "7d3b8d3e-7f4c-4f55-9d1c-2f0c1f5a8e01"
    CATEGORY_ID = "0b9f6a52-3b7e-4d36-8c5e-8e2f1c7a9b02"

    def test_legacy_file_without_newer_columns(self):
        text = "\n".join([
            "FinanceTracker Backup Data",
            "Exported on: 2024-05-01 10:00:00 +0000",
            "",
            "Accounts",
            "ID,Name,Type,Balance",
            f'"{self.ACCOUNT_ID}","Wallet","cash",12.50',
            "",
            "Categories",
            "ID,Name,Type,Icon",
            f'"{self.CATEGORY_ID}","Food","expense",""',
            "",
            "Transactions",
            "ID,Date,Type,Amount,Description,AccountId,CategoryId,MemberId",
            f'"1e6f8f0a-1111-4a2b-9c3d-000000000001","2024-05-01 10:00:00","expense",3.20,"",'
            f'"{self.ACCOUNT_ID}","{self.CATEGORY_ID}",""',
            "",
            "Loans",
            "ID,Date,Type,Amount,Description,IsSettled,AccountId,MemberId",
            f'"1e6f8f0a-2222-4a2b-9c3d-000000000002","2024-05-02 08:00:00","borrow_in",100,"Alice",'
            f'true,"{self.ACCOUNT_ID}",""',
            "",
        ])

        snapshot = decode_csv(text)

        assert snapshot.accounts[0].balance == Decimal("12.50")
        assert snapshot.categories[0].parent_id is None
        assert snapshot.categories[0].icon is None
        tx = snapshot.transactions[0]
        assert tx.type == TransactionType.EXPENSE
        assert tx.note is None
        assert tx.date.tzinfo is not None
        loan = snapshot.loans[0]
        assert loan.type == LoanType.BORROW_IN
        assert loan.is_settled is True
        assert loan.counterparty == "Alice"

    def test_bad_amount(self):
        text = "\n".join([
            "Accounts",
            "ID,Name,Type,Balance",
            f"{self.ACCOUNT_ID},Wallet,cash,lots",
        ])
        with pytest.raises(DecodeError, match="Accounts"):
            decode_csv(text)

    def test_wrong_column_count(self):
        text = "\n".join([
            "Accounts",
            "ID,Name,Type,Balance",
            f"{self.ACCOUNT_ID},Wallet,cash",
        ])
        with pytest.raises(DecodeError, match="expected 4 values"):
            decode_csv(text)

    def test_unknown_column(self):
        text = "\n".join([
            "Accounts",
            "ID,Name,Type,Balance,Colour",
        ])
        with pytest.raises(DecodeError, match="Colour"):
            decode_csv(text)

    def test_data_before_any_section(self):
        with pytest.raises(DecodeError):
            decode_csv("a,b,c\n")
