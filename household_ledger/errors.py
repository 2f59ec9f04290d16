"""
Ledger Error Taxonomy

Every operation that can fail raises one of these. Callers can catch
LedgerError to handle all of them, or a specific subclass.
"""

from typing import Optional
from uuid import UUID


class LedgerError(Exception):
    """Base exception for ledger operations."""
    pass


class NotFoundError(LedgerError):
    """Referenced entity does not exist."""

    entity_type = "entity"

    def __init__(self, entity_id: UUID, message: Optional[str] = None):
        self.entity_id = entity_id
        super().__init__(message or f"{self.entity_type.capitalize()} not found: {entity_id}")


class AccountNotFoundError(NotFoundError):
    entity_type = "account"


class CategoryNotFoundError(NotFoundError):
    entity_type = "category"


class MemberNotFoundError(NotFoundError):
    entity_type = "member"


class TransactionNotFoundError(NotFoundError):
    entity_type = "transaction"


class LoanNotFoundError(NotFoundError):
    entity_type = "loan"


class AllocationNotFoundError(NotFoundError):
    entity_type = "allocation"


class ValidationFailedError(LedgerError):
    """Input was rejected (non-positive amount, empty name, kind mismatch...)."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class PersistenceError(LedgerError):
    """The durable write or read did not complete."""
    pass


class DecodeError(LedgerError):
    """Backup content or a persisted blob could not be decoded."""
    pass
