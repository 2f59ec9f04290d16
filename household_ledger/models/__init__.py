"""
Data Models Package

This package contains all Pydantic models used by the household ledger.
All data flowing through the system must conform to these schemas.
"""

from household_ledger.models.ledger import (
    Account,
    AccountKind,
    Category,
    CategoryKind,
    IncomeAllocation,
    LedgerRecord,
    Loan,
    LoanType,
    Member,
    Transaction,
    TransactionType,
    TransferDirection,
    utc_now,
)
from household_ledger.models.snapshot import (
    BACKUP_FORMAT_VERSION,
    BackupSnapshot,
    LedgerCollections,
)
from household_ledger.models.events import (
    LedgerEvent,
    LedgerEventKind,
)
from household_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "Account",
    "AccountKind",
    "Category",
    "CategoryKind",
    "IncomeAllocation",
    "LedgerRecord",
    "Loan",
    "LoanType",
    "Member",
    "Transaction",
    "TransactionType",
    "TransferDirection",
    "utc_now",
    # Snapshot models
    "BACKUP_FORMAT_VERSION",
    "BackupSnapshot",
    "LedgerCollections",
    # Event models
    "LedgerEvent",
    "LedgerEventKind",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
