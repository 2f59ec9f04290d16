"""
Core Ledger Models for Household Ledger

These models define the strict schemas for every entity the ledger owns.
They are designed to:
1. Enforce type safety at runtime
2. Keep money exact (Decimal, never float)
3. Be serializable for persistence and backup
4. Carry the signed-effect rules used for balance bookkeeping
5. Be immutable: changes go through model_copy(update=...) and the store

An account balance is a cached value. It is only ever changed as a side
effect of a transaction mutation inside the ledger store.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Annotated, Literal, Optional, Union
from uuid import UUID, uuid4

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def _ensure_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC; aware ones are converted to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UtcDatetime = Annotated[datetime, AfterValidator(_ensure_utc)]

PositiveAmount = Annotated[Decimal, Field(gt=0, description="Strictly positive amount")]


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class AccountKind(str, Enum):
    """Supported account kinds."""
    CASH = "cash"
    BANK = "bank"
    CREDIT = "credit"
    SAVINGS = "savings"
    INVESTMENT = "investment"


class CategoryKind(str, Enum):
    """A category is used either for income or for expenses, never both."""
    INCOME = "income"
    EXPENSE = "expense"


class TransactionType(str, Enum):
    """
    Transaction types.

    A transfer is stored as two independent TRANSFER rows, one per leg,
    each with its own direction.
    """
    INCOME = "income"
    EXPENSE = "expense"
    TRANSFER = "transfer"


class TransferDirection(str, Enum):
    """Which side of a transfer a TRANSFER row represents."""
    OUT = "out"
    IN = "in"


class LoanType(str, Enum):
    """Money borrowed from someone, or lent to someone."""
    BORROW_IN = "borrow_in"
    BORROW_OUT = "borrow_out"


# =============================================================================
# ENTITIES
# =============================================================================

class Account(BaseModel):
    """
    A place money is kept.

    The balance starts at whatever the user enters when creating the
    account and afterwards moves only with transaction add/update/delete.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Display name"
    )
    kind: AccountKind = Field(
        default=AccountKind.CASH,
        description="Account kind"
    )
    balance: Decimal = Field(
        default=Decimal("0"),
        description="Cached balance"
    )
    created_at: UtcDatetime = Field(default_factory=utc_now)


class Category(BaseModel):
    """
    Income or expense category.

    parent_id allows one level of nesting. The hierarchy is not enforced
    and a dangling parent reference is tolerated.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(..., min_length=1, max_length=100)
    kind: CategoryKind
    icon: Optional[str] = Field(default=None, max_length=100)
    parent_id: Optional[UUID] = None

    @model_validator(mode='after')
    def validate_parent(self) -> 'Category':
        if self.parent_id is not None and self.parent_id == self.id:
            raise ValueError("A category cannot be its own parent")
        return self


class Member(BaseModel):
    """Household member a transaction or loan can be tagged with."""
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(..., min_length=1, max_length=100)
    avatar: Optional[str] = Field(default=None, max_length=200)
    created_at: UtcDatetime = Field(default_factory=utc_now)
    is_active: bool = True


class Transaction(BaseModel):
    """
    A single ledger movement against one account.

    Signed effect on the account balance:
    - income: +amount
    - expense: -amount
    - transfer out: -amount
    - transfer in: +amount
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    record_kind: Literal["transaction"] = "transaction"

    id: UUID = Field(default_factory=uuid4)
    amount: PositiveAmount
    type: TransactionType
    account_id: UUID
    category_id: Optional[UUID] = None
    member_id: Optional[UUID] = None
    date: UtcDatetime = Field(default_factory=utc_now)
    note: Optional[str] = Field(default=None, max_length=1000)

    # Only set on transfer legs
    transfer_direction: Optional[TransferDirection] = None
    transfer_id: Optional[UUID] = None

    @model_validator(mode='after')
    def validate_shape(self) -> 'Transaction':
        """Check the fields required by each transaction type."""
        if self.type == TransactionType.TRANSFER:
            if self.transfer_direction is None:
                raise ValueError("Transfer legs must have a transfer_direction")
        else:
            if self.category_id is None:
                raise ValueError(f"{self.type.value.capitalize()} transactions require a category")
            if self.transfer_direction is not None or self.transfer_id is not None:
                raise ValueError("Only transfer legs may carry transfer fields")
        return self

    @property
    def signed_amount(self) -> Decimal:
        """Contribution of this transaction to its account balance."""
        if self.type == TransactionType.INCOME:
            return self.amount
        if self.type == TransactionType.EXPENSE:
            return -self.amount
        if self.transfer_direction == TransferDirection.IN:
            return self.amount
        return -self.amount


class Loan(BaseModel):
    """
    Money borrowed or lent.

    Loans are tracked off-balance-sheet: they never change an account
    balance and only take part in the statistics.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    record_kind: Literal["loan"] = "loan"

    id: UUID = Field(default_factory=uuid4)
    type: LoanType
    amount: PositiveAmount
    account_id: UUID
    member_id: Optional[UUID] = None
    counterparty: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Who the money was borrowed from or lent to"
    )
    date: UtcDatetime = Field(default_factory=utc_now)
    note: Optional[str] = Field(default=None, max_length=1000)
    is_settled: bool = False


class IncomeAllocation(BaseModel):
    """
    Percentage of incoming income assigned to one account.

    The percentages of all allocations are expected to add up to 100,
    but nothing enforces it.
    """
    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    account_id: UUID
    percentage: int
    last_modified: UtcDatetime = Field(default_factory=utc_now)


# Transactions and loans shown together, e.g. in a chronological feed.
LedgerRecord = Annotated[Union[Transaction, Loan], Field(discriminator="record_kind")]
