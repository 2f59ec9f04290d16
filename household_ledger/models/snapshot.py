"""
Snapshot Models

LedgerCollections is the full set of six entity collections. The ledger
store keeps one as its live state; BackupSnapshot adds the metadata
written into backup files.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from household_ledger.models.ledger import (
    Account,
    Category,
    IncomeAllocation,
    Loan,
    Member,
    Transaction,
    utc_now,
)


BACKUP_FORMAT_VERSION = 1


class LedgerCollections(BaseModel):
    """All six entity collections, in insertion order."""

    accounts: list[Account] = Field(default_factory=list)
    transactions: list[Transaction] = Field(default_factory=list)
    categories: list[Category] = Field(default_factory=list)
    loans: list[Loan] = Field(default_factory=list)
    allocations: list[IncomeAllocation] = Field(default_factory=list)
    members: list[Member] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not any((
            self.accounts,
            self.transactions,
            self.categories,
            self.loans,
            self.allocations,
            self.members,
        ))


class BackupSnapshot(LedgerCollections):
    """Point-in-time copy of the whole ledger, used for export/import only."""

    format_version: int = Field(default=BACKUP_FORMAT_VERSION, ge=1)
    created_at: datetime = Field(default_factory=utc_now)

    def collections(self) -> LedgerCollections:
        """Strip the backup metadata."""
        return LedgerCollections(
            accounts=list(self.accounts),
            transactions=list(self.transactions),
            categories=list(self.categories),
            loans=list(self.loans),
            allocations=list(self.allocations),
            members=list(self.members),
        )
