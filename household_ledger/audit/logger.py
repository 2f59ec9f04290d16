"""
Audit Logger

Every mutation, backup and failure in the ledger is logged.
This provides:
1. Complete traceability of balance changes
2. Debugging capability when a write is rejected or rolled back
3. A readable history of what happened to the household data

The ledger never fails silently: anything raised to a caller is also
written here first.
"""

import logging
import sys
from typing import Optional
from uuid import UUID

import structlog

from household_ledger.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


LOGGER_NAME = "household_ledger"

_handler: Optional[logging.Handler] = None


def configure_logging(level: str = "INFO", json_output: bool = True) -> None:
    """
    Configure structlog on top of the standard library logger.

    Safe to call more than once; later calls replace the level and renderer.
    """
    global _handler

    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    package_logger = logging.getLogger(LOGGER_NAME)
    if _handler is None:
        _handler = logging.StreamHandler(sys.stderr)
        _handler.setFormatter(logging.Formatter("%(message)s"))
        package_logger.addHandler(_handler)
        package_logger.propagate = False
    package_logger.setLevel(level.upper())


configure_logging()


def get_logger(name: str = LOGGER_NAME) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger under the package namespace."""
    return structlog.get_logger(name)


class AuditLogger:
    """
    Central audit logging service.

    Turns AuditEvents into structured log lines at a level matching
    the event severity.
    """

    def __init__(self, logger_name: str = f"{LOGGER_NAME}.audit"):
        self._logger = get_logger(logger_name)

    def log(self, event: AuditEvent) -> None:
        """Log an audit event."""
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

    def log_created(self, entity_type: str, entity_id: UUID, summary: str) -> None:
        self.log(AuditEventBuilder.entity_created(entity_type, entity_id, summary))

    def log_updated(self, entity_type: str, entity_id: UUID, summary: str) -> None:
        self.log(AuditEventBuilder.entity_updated(entity_type, entity_id, summary))

    def log_deleted(self, entity_type: str, entity_id: UUID) -> None:
        self.log(AuditEventBuilder.entity_deleted(entity_type, entity_id))

    def log_balance_adjusted(
        self,
        account_id: UUID,
        delta: str,
        new_balance: str,
        transaction_id: UUID,
    ) -> None:
        """Log a cached balance change caused by a transaction mutation."""
        self.log(AuditEventBuilder.balance_adjusted(
            account_id=account_id,
            delta=delta,
            new_balance=new_balance,
            transaction_id=transaction_id,
        ))

    def log_transfer(
        self,
        transfer_id: UUID,
        amount: str,
        from_account_id: UUID,
        to_account_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.transfer_recorded(
            transfer_id=transfer_id,
            amount=amount,
            from_account_id=from_account_id,
            to_account_id=to_account_id,
        ))

    def log_income_allocated(self, amount: str, shares: list[dict]) -> None:
        self.log(AuditEventBuilder.income_allocated(amount=amount, shares=shares))

    def log_rejected(
        self,
        operation: str,
        error: Exception,
        entity_id: Optional[UUID] = None,
    ) -> None:
        """Log a mutation that was refused and left the ledger unchanged."""
        self.log(AuditEventBuilder.mutation_rejected(operation, error, entity_id))

    def log_loaded(self, counts: dict[str, int]) -> None:
        self.log(AuditEventBuilder.ledger_loaded(counts))

    def log_persistence_failed(self, operation: str, error_message: str) -> None:
        self.log(AuditEventBuilder.persistence_failed(operation, error_message))

    def log_backup_exported(self, path: str, backup_format: str, counts: dict[str, int]) -> None:
        self.log(AuditEventBuilder.backup_exported(path, backup_format, counts))

    def log_backup_restored(self, path: str, counts: dict[str, int]) -> None:
        self.log(AuditEventBuilder.backup_restored(path, counts))

    def log_backup_failed(self, operation: str, path: str, error: Exception) -> None:
        self.log(AuditEventBuilder.backup_failed(operation, path, error))

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
    ) -> None:
        """Log an error."""
        self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
        ))
