"""
Audit Models for Household Ledger

Every mutation, backup and failure is recorded as an AuditEvent.
This provides:
1. Traceability of every balance change
2. Debugging information when a write is rejected or rolled back
3. Ability to reconstruct what happened to a household's data

Audit events are append-only log lines. They are never edited.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from household_ledger.models.ledger import utc_now


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Ledger mutations
    ENTITY_CREATED = "entity_created"
    ENTITY_UPDATED = "entity_updated"
    ENTITY_DELETED = "entity_deleted"
    BALANCE_ADJUSTED = "balance_adjusted"
    TRANSFER_RECORDED = "transfer_recorded"
    INCOME_ALLOCATED = "income_allocated"
    MUTATION_REJECTED = "mutation_rejected"

    # Persistence
    LEDGER_LOADED = "ledger_loaded"
    PERSISTENCE_FAILED = "persistence_failed"

    # Backup
    BACKUP_EXPORTED = "backup_exported"
    BACKUP_RESTORED = "backup_restored"
    BACKUP_FAILED = "backup_failed"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """A single audit event."""

    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC)"
    )

    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # What entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'account', 'transaction', 'backup')"
    )
    entity_id: Optional[UUID] = None

    description: str
    details: dict[str, Any] = Field(default_factory=dict)

    error_code: Optional[str] = None
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.entity_created("account", account.id, "Wallet")
        event = AuditEventBuilder.mutation_rejected("update_transaction", error)
    """

    @staticmethod
    def entity_created(
        entity_type: str,
        entity_id: UUID,
        summary: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTITY_CREATED,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"{entity_type.capitalize()} created: {summary}",
        )

    @staticmethod
    def entity_updated(
        entity_type: str,
        entity_id: UUID,
        summary: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTITY_UPDATED,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"{entity_type.capitalize()} updated: {summary}",
        )

    @staticmethod
    def entity_deleted(
        entity_type: str,
        entity_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTITY_DELETED,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"{entity_type.capitalize()} deleted",
        )

    @staticmethod
    def balance_adjusted(
        account_id: UUID,
        delta: str,
        new_balance: str,
        transaction_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BALANCE_ADJUSTED,
            entity_type="account",
            entity_id=account_id,
            description=f"Balance adjusted by {delta}",
            details={
                "delta": delta,
                "new_balance": new_balance,
                "transaction_id": str(transaction_id),
            },
        )

    @staticmethod
    def transfer_recorded(
        transfer_id: UUID,
        amount: str,
        from_account_id: UUID,
        to_account_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSFER_RECORDED,
            entity_type="transfer",
            entity_id=transfer_id,
            description=f"Transfer of {amount} recorded",
            details={
                "amount": amount,
                "from_account_id": str(from_account_id),
                "to_account_id": str(to_account_id),
            },
        )

    @staticmethod
    def income_allocated(
        amount: str,
        shares: list[dict],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INCOME_ALLOCATED,
            entity_type="allocation",
            description=f"Income of {amount} allocated across {len(shares)} accounts",
            details={
                "amount": amount,
                "shares": shares,
            },
        )

    @staticmethod
    def mutation_rejected(
        operation: str,
        error: Exception,
        entity_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MUTATION_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_id=entity_id,
            description=f"Mutation rejected: {operation}",
            error_code=type(error).__name__,
            error_message=str(error),
            details={"operation": operation},
        )

    @staticmethod
    def ledger_loaded(counts: dict[str, int]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_LOADED,
            entity_type="ledger",
            description="Ledger loaded from storage",
            details=counts,
        )

    @staticmethod
    def persistence_failed(
        operation: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PERSISTENCE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="ledger",
            description=f"Durable write failed during {operation}; change rolled back",
            error_code="PersistenceError",
            error_message=error_message,
            details={"operation": operation},
        )

    @staticmethod
    def backup_exported(
        path: str,
        backup_format: str,
        counts: dict[str, int],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BACKUP_EXPORTED,
            entity_type="backup",
            description=f"Backup written: {path}",
            details={"path": path, "format": backup_format, "counts": counts},
        )

    @staticmethod
    def backup_restored(
        path: str,
        counts: dict[str, int],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BACKUP_RESTORED,
            entity_type="backup",
            description=f"Ledger restored from {path}",
            details={"path": path, "counts": counts},
        )

    @staticmethod
    def backup_failed(
        operation: str,
        path: str,
        error: Exception,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BACKUP_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="backup",
            description=f"Backup {operation} failed: {path}",
            error_code=type(error).__name__,
            error_message=str(error),
            details={"operation": operation, "path": path},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
        )
