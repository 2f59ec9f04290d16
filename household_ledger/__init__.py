"""
Household Ledger - Source Package

A household finance ledger: accounts, categories, members, transactions,
transfers, loans and percentage-based income allocation, persisted to a
local key-value store with JSON/CSV backups.

DESIGN PRINCIPLES:
1. Money is exact (Decimal, never float)
2. Balances always match the transactions behind them
3. Every write is all-or-nothing
4. Every change and every failure is logged
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Household Ledger Team"
