"""Income allocation package."""

from household_ledger.allocation.engine import (
    AllocationShare,
    allocate,
    share_of,
    total_percentage,
    unallocated_remainder,
)

__all__ = [
    "AllocationShare",
    "allocate",
    "share_of",
    "total_percentage",
    "unallocated_remainder",
]
