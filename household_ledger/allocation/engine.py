"""
Income Allocation Engine

Splits an incoming income amount across accounts according to the stored
percentage weights. Arithmetic is exact Decimal: amount * p / 100.

The engine never normalizes. If the percentages add up to 80, a fifth of
the income is left unallocated; if they add up to 120, more than the income
is allocated. Nothing here mutates the ledger; turning shares into income
transactions is the caller's job.
"""

from decimal import Decimal
from typing import Iterable, NamedTuple
from uuid import UUID

from household_ledger.models.ledger import IncomeAllocation

HUNDRED = Decimal(100)


class AllocationShare(NamedTuple):
    account_id: UUID
    amount: Decimal


def share_of(amount: Decimal, percentage: int) -> Decimal:
    """Exact share of amount for an integer percentage."""
    return amount * Decimal(percentage) / HUNDRED


def allocate(amount: Decimal, allocations: Iterable[IncomeAllocation]) -> list[AllocationShare]:
    """
    Compute one (account_id, amount) pair per allocation row, in row order.

    Rows whose share is not positive produce no pair, so a 0% row never
    turns into a zero-amount transaction.
    """
    shares = []
    for allocation in allocations:
        allocated = share_of(amount, allocation.percentage)
        if allocated > 0:
            shares.append(AllocationShare(allocation.account_id, allocated))
    return shares


def total_percentage(allocations: Iterable[IncomeAllocation]) -> int:
    return sum(a.percentage for a in allocations)


def unallocated_remainder(amount: Decimal, allocations: Iterable[IncomeAllocation]) -> Decimal:
    """What is left of amount after allocation. Negative when over-allocated."""
    shares = allocate(amount, allocations)
    return amount - sum((s.amount for s in shares), Decimal(0))
