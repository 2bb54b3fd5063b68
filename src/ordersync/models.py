"""
Data models for the order synchronization engine.

Enums:
    - Store: The two persisted representations of an order
    - SyncDirection: Direction in which divergent records are repaired
    - DivergenceClass: Closed set of ways an order can be out of sync
    - QueryKind: Concrete, authority-independent pending-set queries

Core Models:
    - OrderRecord: One order as read from or written to a store
    - DeletionMarker: Unmirrored deletion of an order from one store
    - SyncStatus: Progress snapshot of a bulk synchronization
    - SyncAdvisory: Pending count and direction for operator warnings
    - BatchResult: Outcome of one reconciled batch
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

PLACEHOLDER_ORDER_TYPE = "order_placeholder"
"""Legacy content type reserving an order id without carrying order data."""

AUTO_DRAFT_STATUS = "auto-draft"
"""Status of orders that were never saved by a user."""


class Store(Enum):
    """
    The two persisted representations of an order.

    Attributes:
        LEGACY: Generic key/value-style content table.
        STRUCTURED: Purpose-built orders table.
    """

    LEGACY = "legacy"
    STRUCTURED = "structured"

    @property
    def other(self) -> Store:
        """The store that is not this one."""
        return Store.STRUCTURED if self is Store.LEGACY else Store.LEGACY


class SyncDirection(Enum):
    """
    Direction of repair, derived from which store is authoritative.

    Attributes:
        BACKFILL: Structured store is authoritative; copy into legacy store.
        FORWARD_MIGRATE: Legacy store is authoritative; copy into structured store.
    """

    BACKFILL = "backfill"
    FORWARD_MIGRATE = "forward_migrate"

    @classmethod
    def from_authority(cls, authoritative: Store) -> SyncDirection:
        if authoritative is Store.STRUCTURED:
            return cls.BACKFILL
        return cls.FORWARD_MIGRATE


class QueryKind(Enum):
    """
    Authority-independent pending-set queries.

    Each member maps to exactly one statically defined query in every
    PendingQueries implementation.

    Attributes:
        MISSING_IN_STRUCTURED: Legacy order rows with no structured row.
        MISSING_IN_LEGACY: Structured rows whose legacy row is absent or a placeholder.
        STRUCTURED_NEWER: Rows in both stores, structured timestamp newer.
        LEGACY_NEWER: Rows in both stores, legacy timestamp newer.
    """

    MISSING_IN_STRUCTURED = "missing_in_structured"
    MISSING_IN_LEGACY = "missing_in_legacy"
    STRUCTURED_NEWER = "structured_newer"
    LEGACY_NEWER = "legacy_newer"


class DivergenceClass(Enum):
    """
    Ways an order can be out of sync, relative to the authoritative store.

    Attributes:
        MISSING_IN_TARGET: In the authoritative store, absent (or placeholder)
            in the other one.
        MISSING_IN_AUTHORITATIVE: In the non-authoritative store, absent in
            the authoritative one.
        STALE_TIMESTAMP: In both, authoritative side updated more recently.
        DELETED_FROM_AUTHORITATIVE: Unresolved deletion marker tagged with
            the authoritative store.
        DELETED_FROM_NON_AUTHORITATIVE: Unresolved deletion marker tagged
            with the non-authoritative store.
    """

    MISSING_IN_TARGET = "missing_in_target"
    MISSING_IN_AUTHORITATIVE = "missing_in_authoritative"
    STALE_TIMESTAMP = "stale_timestamp"
    DELETED_FROM_AUTHORITATIVE = "deleted_from_authoritative"
    DELETED_FROM_NON_AUTHORITATIVE = "deleted_from_non_authoritative"

    @property
    def is_deletion(self) -> bool:
        return self in (
            DivergenceClass.DELETED_FROM_AUTHORITATIVE,
            DivergenceClass.DELETED_FROM_NON_AUTHORITATIVE,
        )

    def query_kind(self, authoritative: Store) -> QueryKind:
        """
        Translate this class into the concrete query for the given authority.

        Args:
            authoritative: The store currently authoritative.

        Returns:
            The QueryKind to run.

        Raises:
            ValueError: If called on a deletion class.
        """
        structured = authoritative is Store.STRUCTURED
        if self is DivergenceClass.MISSING_IN_TARGET:
            return QueryKind.MISSING_IN_LEGACY if structured else QueryKind.MISSING_IN_STRUCTURED
        if self is DivergenceClass.MISSING_IN_AUTHORITATIVE:
            return QueryKind.MISSING_IN_STRUCTURED if structured else QueryKind.MISSING_IN_LEGACY
        if self is DivergenceClass.STALE_TIMESTAMP:
            return QueryKind.STRUCTURED_NEWER if structured else QueryKind.LEGACY_NEWER
        raise ValueError(f"{self.value} is answered by deletion markers, not a query")

    def marker_source(self, authoritative: Store) -> Store:
        """Store the deletion markers of this class are tagged with."""
        if self is DivergenceClass.DELETED_FROM_AUTHORITATIVE:
            return authoritative
        if self is DivergenceClass.DELETED_FROM_NON_AUTHORITATIVE:
            return authoritative.other
        raise ValueError(f"{self.value} is not a deletion class")


class OrderRecord(BaseModel):
    """
    One order as stored in either representation.

    Both stores carry the same logical id for the same order. The record is
    immutable; use ``model_copy(update=...)`` to derive a modified one.

    Attributes:
        id: Logical order id, shared by both stores.
        order_type: Registered order subtype (e.g., 'shop_order').
        status: Order status ('auto-draft' for unsaved drafts).
        updated_at: Last modification time (UTC).
        data: Remaining order payload.
    """

    model_config = ConfigDict(frozen=True)

    id: int = Field(..., gt=0)
    order_type: str = Field(..., min_length=1)
    status: str = Field(default="pending")
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    data: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_auto_draft(self) -> bool:
        return self.status == AUTO_DRAFT_STATUS


@dataclass(frozen=True)
class DeletionMarker:
    """
    Records that an order was deleted from one store but not yet the other.

    Attributes:
        marker_id: Identifier of the marker row.
        order_id: The deleted order.
        source: Store the order was deleted from.
        created_at: When the deletion was recorded.
    """

    marker_id: int
    order_id: int
    source: Store
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass(frozen=True)
class SyncStatus:
    """
    Progress of the current synchronization.

    Meaningful only while a bulk synchronization is in progress; the initial
    count is zero otherwise.
    """

    initial_pending_count: int
    current_pending_count: int
    in_progress: bool = False

    @property
    def progress_percent(self) -> float:
        """Share of the initial backlog already reconciled, capped to 0..100."""
        if self.initial_pending_count <= 0:
            return 100.0 if self.current_pending_count == 0 else 0.0
        done = self.initial_pending_count - self.current_pending_count
        return max(0.0, min(100.0, done * 100.0 / self.initial_pending_count))

    def to_dict(self) -> dict[str, Any]:
        return {
            "initial_pending_count": self.initial_pending_count,
            "current_pending_count": self.current_pending_count,
            "in_progress": self.in_progress,
        }


@dataclass(frozen=True)
class SyncAdvisory:
    """
    Information an operator-facing UI needs to warn about outstanding drift.

    The engine supplies the count and direction only; wording is up to the UI.
    """

    pending_count: int
    direction: SyncDirection

    @property
    def source(self) -> Store:
        if self.direction is SyncDirection.BACKFILL:
            return Store.STRUCTURED
        return Store.LEGACY

    @property
    def target(self) -> Store:
        return self.source.other

    @property
    def is_safe_to_disable(self) -> bool:
        """True when nothing is pending, so sync (or cutover) can proceed."""
        return self.pending_count == 0


@dataclass
class BatchResult:
    """
    Outcome of one process_batch call.

    Attributes:
        requested: Deduplicated ids the batch was asked to reconcile.
        deleted: Ids resolved through deletion markers.
        backfilled: Ids copied into the legacy store.
        placeholders: Ids whose legacy row was reserved with a placeholder first.
        migrated: Ids handed to the bulk migrator.
        skipped: Ids whose authoritative record could not be found.
        remaining_pending: Total pending count after the batch.
    """

    requested: list[int] = field(default_factory=list)
    deleted: set[int] = field(default_factory=set)
    backfilled: list[int] = field(default_factory=list)
    placeholders: list[int] = field(default_factory=list)
    migrated: list[int] = field(default_factory=list)
    skipped: list[int] = field(default_factory=list)
    remaining_pending: int = 0

    @property
    def converged(self) -> bool:
        return self.remaining_pending == 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            "requested": len(self.requested),
            "deleted": len(self.deleted),
            "backfilled": len(self.backfilled),
            "placeholders": len(self.placeholders),
            "migrated": len(self.migrated),
            "skipped": len(self.skipped),
            "remaining_pending": self.remaining_pending,
        }


__all__ = [
    "AUTO_DRAFT_STATUS",
    "PLACEHOLDER_ORDER_TYPE",
    "Store",
    "SyncDirection",
    "QueryKind",
    "DivergenceClass",
    "OrderRecord",
    "DeletionMarker",
    "SyncStatus",
    "SyncAdvisory",
    "BatchResult",
]
