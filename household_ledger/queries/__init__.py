"""Read-only ledger queries."""

from household_ledger.queries.statistics import (
    BORROWED_IN_LABEL,
    BORROWED_OUT_LABEL,
    CategoryTotal,
    LedgerStatistics,
    LedgerSummary,
    PeriodStatistics,
    StatisticsPeriod,
    compute_period_statistics,
    period_bounds,
    total_balance,
    unsettled_loan_total,
)

__all__ = [
    "BORROWED_IN_LABEL",
    "BORROWED_OUT_LABEL",
    "CategoryTotal",
    "LedgerStatistics",
    "LedgerSummary",
    "PeriodStatistics",
    "StatisticsPeriod",
    "compute_period_statistics",
    "period_bounds",
    "total_balance",
    "unsettled_loan_total",
]
