"""
CSV backup codec (secondary format).

Layout: two banner lines, then one section per collection. Each section
is a title line, a header row, and one row per record, followed by a
blank line:

    FinanceTracker Backup Data
    Exported on: 2024-05-01T10:00:00+00:00

    Accounts
    ID,Name,Type,Balance
    3f2c...,Wallet,cash,120.50

Values are plain strings: UUIDs in canonical form, enums by value,
decimals as written, datetimes in ISO-8601, booleans as true/false and
absent optionals as empty cells. Quoting follows the csv module, so
commas, quotes and newlines inside a note survive.

Import reads columns by header name, so older files without a column
(e.g. Categories without ParentID) load with that field at its default.
Loans from files without a Counterparty column take it from Description.

The format is lossy: fields listed in CSV_OMITTED_FIELDS are not written
and come back as defaults. Empty strings in optional text fields come
back as None.
"""

import csv
import io
from datetime import datetime
from enum import Enum
from typing import Any, NamedTuple, Optional

from pydantic import BaseModel, ValidationError

from household_ledger.errors import DecodeError
from household_ledger.models.ledger import (
    Account,
    Category,
    IncomeAllocation,
    Loan,
    Member,
    Transaction,
)
from household_ledger.models.snapshot import BackupSnapshot


BANNER = "FinanceTracker Backup Data"
EXPORTED_ON = "Exported on: "


class CsvSection(NamedTuple):
    title: str
    collection: str
    model: type[BaseModel]
    # (header, model field) pairs, in column order
    columns: tuple[tuple[str, str], ...]
    # (field, source field) pairs: when a row has no value for field, copy
    # it from source field
    fallbacks: tuple[tuple[str, str], ...] = ()


SECTIONS: tuple[CsvSection, ...] = (
    CsvSection("Accounts", "accounts", Account, (
        ("ID", "id"),
        ("Name", "name"),
        ("Type", "kind"),
        ("Balance", "balance"),
    )),
    CsvSection("Categories", "categories", Category, (
        ("ID", "id"),
        ("Name", "name"),
        ("Type", "kind"),
        ("Icon", "icon"),
        ("ParentID", "parent_id"),
    )),
    CsvSection("Members", "members", Member, (
        ("ID", "id"),
        ("Name", "name"),
        ("Avatar", "avatar"),
        ("IsActive", "is_active"),
    )),
    CsvSection("Transactions", "transactions", Transaction, (
        ("ID", "id"),
        ("Date", "date"),
        ("Type", "type"),
        ("Amount", "amount"),
        ("Description", "note"),
        ("AccountId", "account_id"),
        ("CategoryId", "category_id"),
        ("MemberId", "member_id"),
        ("TransferDirection", "transfer_direction"),
        ("TransferId", "transfer_id"),
    )),
    CsvSection("Loans", "loans", Loan, (
        ("ID", "id"),
        ("Date", "date"),
        ("Type", "type"),
        ("Amount", "amount"),
        ("Description", "note"),
        ("IsSettled", "is_settled"),
        ("AccountId", "account_id"),
        ("MemberId", "member_id"),
        ("Counterparty", "counterparty"),
    ), fallbacks=(("counterparty", "note"),)),
    CsvSection("Income Allocations", "allocations", IncomeAllocation, (
        ("ID", "id"),
        ("AccountId", "account_id"),
        ("Percentage", "percentage"),
        ("LastModified", "last_modified"),
    )),
)

_SECTIONS_BY_TITLE = {section.title: section for section in SECTIONS}


def _omitted_fields() -> dict[str, frozenset[str]]:
    omitted = {}
    for section in SECTIONS:
        written = {field for _, field in section.columns}
        missing = set(section.model.model_fields) - written - {"record_kind"}
        if missing:
            omitted[section.collection] = frozenset(missing)
    return omitted


# collection -> model fields that a CSV round trip resets to their defaults
CSV_OMITTED_FIELDS: dict[str, frozenset[str]] = _omitted_fields()


def _format_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def encode_csv(snapshot: BackupSnapshot) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow([BANNER])
    writer.writerow([f"{EXPORTED_ON}{snapshot.created_at.isoformat()}"])
    writer.writerow([])

    for section in SECTIONS:
        writer.writerow([section.title])
        writer.writerow([header for header, _ in section.columns])
        for record in getattr(snapshot, section.collection):
            writer.writerow([_format_value(getattr(record, field)) for _, field in section.columns])
        writer.writerow([])

    return buffer.getvalue()


def _parse_row(
    section: CsvSection,
    header: list[str],
    row: list[str],
    line_number: int,
) -> BaseModel:
    if len(row) != len(header):
        raise DecodeError(
            f"Line {line_number} in section {section.title}: expected "
            f"{len(header)} values, got {len(row)}"
        )

    field_by_header = dict(section.columns)
    fields = {}
    for name, value in zip(header, row):
        field = field_by_header.get(name)
        if field is not None and value != "":
            fields[field] = value
    for field, source in section.fallbacks:
        if field not in fields and source in fields:
            fields[field] = fields[source]

    try:
        return section.model.model_validate(fields)
    except ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first.get("loc", ()))
        raise DecodeError(
            f"Line {line_number} in section {section.title}: {location}: {first['msg']}"
        ) from e


def decode_csv(text: str) -> BackupSnapshot:
    """
    Parse a CSV backup.

    Blank lines and banner lines are skipped. A single-cell line naming a
    section starts that section; its next line is the header.

    Raises:
        DecodeError: On an unknown header column, a data row outside a
            section, or a row that does not form a valid record
    """
    records: dict[str, list[BaseModel]] = {section.collection: [] for section in SECTIONS}
    section: Optional[CsvSection] = None
    header: Optional[list[str]] = None

    reader = csv.reader(io.StringIO(text))
    try:
        for row in reader:
            line_number = reader.line_num
            if not row or all(cell.strip() == "" for cell in row):
                continue

            if len(row) == 1 and row[0].strip() in _SECTIONS_BY_TITLE:
                section = _SECTIONS_BY_TITLE[row[0].strip()]
                header = None
                continue

            if section is None:
                if len(row) == 1:
                    # banner lines and any preamble before the first section
                    continue
                raise DecodeError(f"Line {line_number}: data found before any section title")

            if header is None:
                header = [cell.strip() for cell in row]
                known = {name for name, _ in section.columns}
                unknown = [name for name in header if name not in known]
                if unknown:
                    raise DecodeError(
                        f"Line {line_number}: unknown {section.title} column(s): {', '.join(unknown)}"
                    )
                continue

            records[section.collection].append(_parse_row(section, header, row, line_number))
    except csv.Error as e:
        raise DecodeError(f"Malformed CSV backup: {e}") from e

    return BackupSnapshot(**records)
