"""
Change Notification Models

After every successful mutation the ledger store emits exactly one
LedgerEvent, scoped to the collection that changed. Observers (a UI
layer, a sync job) use it to refresh what they display.
"""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from household_ledger.models.ledger import utc_now


class LedgerEventKind(str, Enum):
    """Which collection changed."""
    ACCOUNTS_CHANGED = "accounts_changed"
    CATEGORIES_CHANGED = "categories_changed"
    MEMBERS_CHANGED = "members_changed"
    TRANSACTIONS_CHANGED = "transactions_changed"
    LOANS_CHANGED = "loans_changed"
    ALLOCATIONS_CHANGED = "allocations_changed"
    SNAPSHOT_RESTORED = "snapshot_restored"


class LedgerEvent(BaseModel):
    """A single "collection changed" notification."""

    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(default_factory=utc_now)
    kind: LedgerEventKind
    operation: str = Field(
        ...,
        description="Store operation that produced the change (e.g. 'add_transaction')"
    )
    entity_ids: list[UUID] = Field(
        default_factory=list,
        description="IDs of the records created, updated or deleted"
    )
    details: dict[str, Any] = Field(default_factory=dict)
