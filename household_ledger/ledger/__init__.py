"""Ledger store package."""

from household_ledger.ledger.store import LedgerStore

__all__ = ["LedgerStore"]
