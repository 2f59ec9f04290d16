"""Tests for the income allocation engine."""

from decimal import Decimal
from uuid import uuid4

from household_ledger.allocation import (
    AllocationShare,
    allocate,
    share_of,
    total_percentage,
    unallocated_remainder,
)
from household_ledger.models import IncomeAllocation


def rows(*percentages):
    return [IncomeAllocation(account_id=uuid4(), percentage=p) for p in percentages]


class TestAllocate:
    """Splitting an amount by percentage weights."""

    def test_full_split(self):
        a, b = rows(60, 40)
        shares = allocate(Decimal("100.00"), [a, b])
        assert shares == [
            AllocationShare(a.account_id, Decimal("60.00")),
            AllocationShare(b.account_id, Decimal("40.00")),
        ]

    def test_partial_split_is_not_normalized(self):
        (a,) = rows(33)
        assert allocate(Decimal("100.00"), [a]) == [AllocationShare(a.account_id, Decimal("33.00"))]

    def test_zero_percentage_is_skipped(self):
        a, b = rows(0, 100)
        shares = allocate(Decimal("50"), [a, b])
        assert [s.account_id for s in shares] == [b.account_id]

    def test_over_allocation_allowed(self):
        shares = allocate(Decimal("10"), rows(70, 50))
        assert sum(s.amount for s in shares) == Decimal("12")

    def test_exact_decimal_arithmetic(self):
        assert share_of(Decimal("0.10"), 33) == Decimal("0.033")

    def test_no_rows(self):
        assert allocate(Decimal("100"), []) == []


class TestTotals:
    """Aggregate helpers."""

    def test_total_percentage(self):
        assert total_percentage(rows(20, 30, 10)) == 60

    def test_remainder(self):
        assert unallocated_remainder(Decimal("100"), rows(80)) == Decimal("20")

    def test_negative_remainder_when_over_allocated(self):
        assert unallocated_remainder(Decimal("100"), rows(80, 40)) == Decimal("-20")
