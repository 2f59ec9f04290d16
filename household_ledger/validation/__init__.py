"""Validation package."""

from household_ledger.validation.validator import LedgerValidator

__all__ = ["LedgerValidator"]
