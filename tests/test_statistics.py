"""Tests for ledger statistics."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from household_ledger.models import CategoryKind, LoanType, TransactionType
from household_ledger.queries import (
    BORROWED_IN_LABEL,
    BORROWED_OUT_LABEL,
    LedgerStatistics,
    StatisticsPeriod,
    period_bounds,
)
from household_ledger.queries.statistics import UNKNOWN_CATEGORY_LABEL


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def stats(store):
    return LedgerStatistics(store)


class TestSummary:
    """Home-screen totals."""

    def test_net_savings_counts_only_unsettled_loans(self, store, stats, wallet, bank):
        store.add_loan(LoanType.BORROW_IN, Decimal("30"), wallet.id, "Alice")
        store.add_loan(LoanType.BORROW_OUT, Decimal("10"), wallet.id, "Bob")
        settled = store.add_loan(LoanType.BORROW_IN, Decimal("500"), wallet.id, "Carol")
        store.toggle_loan_settled(settled.id)

        summary = stats.summary()

        assert summary.total_balance == Decimal("100")
        assert summary.borrowed_in == Decimal("30")
        assert summary.borrowed_out == Decimal("10")
        assert summary.net_savings == Decimal("80")

    def test_empty_ledger(self, stats):
        summary = stats.summary()
        assert summary.total_balance == Decimal("0")
        assert summary.net_savings == Decimal("0")


class TestPeriodStatistics:
    """Totals and rankings over a date window."""

    def test_totals_and_rankings(self, store, stats, wallet, bank, salary, groceries):
        rent = store.add_category("Rent", CategoryKind.EXPENSE)
        may = utc(2024, 5, 10)
        store.add_transaction(Decimal("1000"), TransactionType.INCOME, wallet.id, category_id=salary.id, date=may)
        store.add_transaction(Decimal("40"), TransactionType.EXPENSE, wallet.id, category_id=groceries.id, date=may)
        store.add_transaction(Decimal("25"), TransactionType.EXPENSE, wallet.id, category_id=groceries.id, date=may)
        store.add_transaction(Decimal("600"), TransactionType.EXPENSE, wallet.id, category_id=rent.id, date=may)
        store.add_transfer(Decimal("200"), wallet.id, bank.id, date=may)
        store.add_loan(LoanType.BORROW_IN, Decimal("50"), wallet.id, "Alice", date=may)
        store.add_loan(LoanType.BORROW_OUT, Decimal("15"), wallet.id, "Bob", date=may)
        # outside the window
        store.add_transaction(Decimal("999"), TransactionType.INCOME, wallet.id, category_id=salary.id,
                              date=utc(2024, 6, 1))

        result = stats.for_period(StatisticsPeriod.MONTH, utc(2024, 5, 20))

        assert result.total_income == Decimal("1000")
        assert result.total_expense == Decimal("665")
        assert result.net_income == Decimal("335")
        assert result.total_borrow_in == Decimal("50")
        assert result.total_borrow_out == Decimal("15")
        assert result.net_savings == Decimal("370")
        assert [(r.label, r.amount) for r in result.income_ranking] == [
            ("Salary", Decimal("1000")),
            (BORROWED_IN_LABEL, Decimal("50")),
        ]
        assert [(r.label, r.amount) for r in result.expense_ranking] == [
            ("Rent", Decimal("600")),
            ("Groceries", Decimal("65")),
            (BORROWED_OUT_LABEL, Decimal("15")),
        ]

    def test_deleted_category_ranks_as_unknown(self, store, stats, wallet, groceries):
        store.add_transaction(Decimal("5"), TransactionType.EXPENSE, wallet.id, category_id=groceries.id,
                              date=utc(2024, 1, 2))
        store.delete_category(groceries.id)

        result = stats.between(utc(2024, 1, 1), utc(2024, 1, 31))

        assert [r.label for r in result.expense_ranking] == [UNKNOWN_CATEGORY_LABEL]

    def test_ranking_limit(self, store, wallet):
        day = utc(2024, 3, 3)
        for i in range(12):
            category = store.add_category(f"Cat {i:02d}", CategoryKind.EXPENSE)
            store.add_transaction(Decimal(i + 1), TransactionType.EXPENSE, wallet.id,
                                  category_id=category.id, date=day)

        result = LedgerStatistics(store).between(utc(2024, 3, 1), utc(2024, 3, 31))

        assert len(result.expense_ranking) == 10
        assert result.expense_ranking[0].label == "Cat 11"


class TestPeriodBounds:
    """Window boundaries."""

    def test_week_starts_monday(self):
        start, end = period_bounds(StatisticsPeriod.WEEK, utc(2024, 5, 15, 13, 30))
        assert start == utc(2024, 5, 13)
        assert end == utc(2024, 5, 19, 23, 59, 59, 999999)

    def test_december_month(self):
        start, end = period_bounds(StatisticsPeriod.MONTH, utc(2024, 12, 31, 8))
        assert start == utc(2024, 12, 1)
        assert end == utc(2024, 12, 31, 23, 59, 59, 999999)

    def test_day_and_year(self):
        assert period_bounds(StatisticsPeriod.DAY, datetime(2024, 2, 29, 9))[0] == utc(2024, 2, 29)
        assert period_bounds(StatisticsPeriod.YEAR, utc(2024, 7, 4))[1] == utc(2024, 12, 31, 23, 59, 59, 999999)
