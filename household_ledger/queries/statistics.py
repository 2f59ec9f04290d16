"""
Ledger Statistics

Read-only aggregates over the ledger: the home-screen summary (total
balance, outstanding loans, net savings) and per-period income/expense
statistics with category rankings.

Every figure is computed from the stored records on each call. Nothing
here is cached and nothing here writes to the ledger. Amounts stay
Decimal throughout.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from enum import Enum
from typing import Iterable, Optional

from pydantic import BaseModel, Field

from household_ledger.ledger import LedgerStore
from household_ledger.models.ledger import (
    Account,
    Loan,
    LoanType,
    TransactionType,
)
from household_ledger.models.snapshot import LedgerCollections


UNKNOWN_CATEGORY_LABEL = "Unknown category"
BORROWED_IN_LABEL = "Borrowed in"
BORROWED_OUT_LABEL = "Borrowed out"
DEFAULT_RANKING_LIMIT = 10

ZERO = Decimal("0")


class StatisticsPeriod(str, Enum):
    """Granularity of a statistics window."""
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


class CategoryTotal(BaseModel):
    """One line of an income or expense ranking."""
    label: str
    amount: Decimal


class LedgerSummary(BaseModel):
    """Current position across all accounts and outstanding loans."""

    total_balance: Decimal = Field(..., description="Sum of all account balances")
    borrowed_in: Decimal = Field(..., description="Unsettled money owed to others")
    borrowed_out: Decimal = Field(..., description="Unsettled money owed by others")
    net_savings: Decimal = Field(
        ...,
        description="total_balance - borrowed_in + borrowed_out"
    )


class PeriodStatistics(BaseModel):
    """Income, expense and loan totals for a date window."""

    date_from: datetime
    date_to: datetime
    total_income: Decimal = ZERO
    total_expense: Decimal = ZERO
    net_income: Decimal = ZERO
    total_borrow_in: Decimal = ZERO
    total_borrow_out: Decimal = ZERO
    net_savings: Decimal = Field(
        default=ZERO,
        description="income - expense + borrowed in - borrowed out"
    )
    income_ranking: list[CategoryTotal] = Field(default_factory=list)
    expense_ranking: list[CategoryTotal] = Field(default_factory=list)


def period_bounds(period: StatisticsPeriod, reference: datetime) -> tuple[datetime, datetime]:
    """
    Inclusive [start, end] of the period containing reference, in UTC.

    Weeks start on Monday. A naive reference is taken to be UTC.
    """
    if reference.tzinfo is None:
        reference = reference.replace(tzinfo=timezone.utc)
    reference = reference.astimezone(timezone.utc)
    day = reference.replace(hour=0, minute=0, second=0, microsecond=0)

    if period == StatisticsPeriod.DAY:
        start = day
        end = start + timedelta(days=1)
    elif period == StatisticsPeriod.WEEK:
        start = day - timedelta(days=day.weekday())
        end = start + timedelta(days=7)
    elif period == StatisticsPeriod.MONTH:
        start = day.replace(day=1)
        if start.month == 12:
            end = start.replace(year=start.year + 1, month=1)
        else:
            end = start.replace(month=start.month + 1)
    else:
        start = day.replace(month=1, day=1)
        end = start.replace(year=start.year + 1)

    return start, end - timedelta(microseconds=1)


def total_balance(accounts: Iterable[Account]) -> Decimal:
    return sum((a.balance for a in accounts), ZERO)


def unsettled_loan_total(loans: Iterable[Loan], loan_type: LoanType) -> Decimal:
    """Sum of loans of one type that are not settled yet."""
    return sum(
        (loan.amount for loan in loans if loan.type == loan_type and not loan.is_settled),
        ZERO,
    )


def _ranking(totals: dict[str, Decimal], limit: int) -> list[CategoryTotal]:
    ordered = sorted(totals.items(), key=lambda item: (-item[1], item[0]))
    return [CategoryTotal(label=label, amount=amount) for label, amount in ordered[:limit]]


class LedgerStatistics:
    """
    Computes statistics from a ledger store.

    Each call reads the store's state once, so all figures in one result
    come from the same version of the ledger.
    """

    def __init__(self, store: LedgerStore, ranking_limit: int = DEFAULT_RANKING_LIMIT):
        self._store = store
        self._ranking_limit = ranking_limit

    def summary(self) -> LedgerSummary:
        """Total balance, outstanding loans and net savings right now."""
        state = self._store.state
        balance = total_balance(state.accounts)
        borrowed_in = unsettled_loan_total(state.loans, LoanType.BORROW_IN)
        borrowed_out = unsettled_loan_total(state.loans, LoanType.BORROW_OUT)
        return LedgerSummary(
            total_balance=balance,
            borrowed_in=borrowed_in,
            borrowed_out=borrowed_out,
            net_savings=balance - borrowed_in + borrowed_out,
        )

    def for_period(self, period: StatisticsPeriod, reference: Optional[datetime] = None) -> PeriodStatistics:
        """Statistics for the day/week/month/year containing reference (default: now)."""
        start, end = period_bounds(period, reference or datetime.now(timezone.utc))
        return self.between(start, end)

    def between(self, date_from: datetime, date_to: datetime) -> PeriodStatistics:
        """
        Statistics for records dated within [date_from, date_to].

        Transfer legs move money between the household's own accounts and
        are not counted as income or expense. Loans count in full whether
        settled or not, and appear in the rankings under their own labels.
        """
        return compute_period_statistics(
            self._store.state, date_from, date_to, self._ranking_limit
        )


def compute_period_statistics(
    state: LedgerCollections,
    date_from: datetime,
    date_to: datetime,
    ranking_limit: int = DEFAULT_RANKING_LIMIT,
) -> PeriodStatistics:
    if date_from.tzinfo is None:
        date_from = date_from.replace(tzinfo=timezone.utc)
    if date_to.tzinfo is None:
        date_to = date_to.replace(tzinfo=timezone.utc)

    category_names = {c.id: c.name for c in state.categories}
    income_by_label: dict[str, Decimal] = {}
    expense_by_label: dict[str, Decimal] = {}
    stats = PeriodStatistics(date_from=date_from, date_to=date_to)

    for transaction in state.transactions:
        if not date_from <= transaction.date <= date_to:
            continue
        label = category_names.get(transaction.category_id, UNKNOWN_CATEGORY_LABEL)
        if transaction.type == TransactionType.INCOME:
            stats.total_income += transaction.amount
            income_by_label[label] = income_by_label.get(label, ZERO) + transaction.amount
        elif transaction.type == TransactionType.EXPENSE:
            stats.total_expense += transaction.amount
            expense_by_label[label] = expense_by_label.get(label, ZERO) + transaction.amount

    for loan in state.loans:
        if not date_from <= loan.date <= date_to:
            continue
        if loan.type == LoanType.BORROW_IN:
            stats.total_borrow_in += loan.amount
            income_by_label[BORROWED_IN_LABEL] = income_by_label.get(BORROWED_IN_LABEL, ZERO) + loan.amount
        else:
            stats.total_borrow_out += loan.amount
            expense_by_label[BORROWED_OUT_LABEL] = expense_by_label.get(BORROWED_OUT_LABEL, ZERO) + loan.amount

    stats.net_income = stats.total_income - stats.total_expense
    stats.net_savings = stats.net_income + stats.total_borrow_in - stats.total_borrow_out
    stats.income_ranking = _ranking(income_by_label, ranking_limit)
    stats.expense_ranking = _ranking(expense_by_label, ranking_limit)
    return stats
