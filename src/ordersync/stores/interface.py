"""
Store adapter protocols consumed by the synchronization engine.

The engine never talks to a database directly. It depends on these
protocols, which have in-memory implementations (ordersync.stores.in_memory)
and SQLAlchemy implementations (ordersync.stores.sql).

Protocols:
    - OrderStore: CRUD-by-id for one representation of an order
    - LegacyOrderStore: OrderStore plus placeholder rows
    - StructuredOrderStore: OrderStore plus auto-draft housekeeping
    - DeletionMarkerStore: Append-only deletion markers
    - OptionStore: Persisted flags and counters
    - PendingQueries: The closed set of pending-set queries
    - BulkMigrator: Full-record forward copy from legacy to structured
"""

from __future__ import annotations

from collections.abc import Collection, Sequence
from datetime import datetime
from typing import Protocol, runtime_checkable

from ordersync.models import DeletionMarker, OrderRecord, QueryKind, Store


@runtime_checkable
class OrderStore(Protocol):
    """
    Protocol for one persisted representation of orders.

    Implementations must be safe to call repeatedly with the same id: writes
    overwrite, deletes of missing records are no-ops.
    """

    @property
    def store(self) -> Store:
        """Which representation this adapter persists."""
        ...

    async def read(self, order_id: int) -> OrderRecord | None:
        """
        Read an order.

        Args:
            order_id: Logical order id

        Returns:
            The record, or None if the order does not exist (or is only a
            placeholder)
        """
        ...

    async def write(self, record: OrderRecord) -> None:
        """Create or overwrite the record with ``record.id``."""
        ...

    async def exists(self, order_id: int) -> bool:
        """True if any row (placeholders included) exists for the id."""
        ...

    async def delete(self, order_id: int, hard: bool = True) -> None:
        """
        Delete an order.

        Args:
            order_id: Logical order id
            hard: Remove the row instead of moving it to trash, bypassing
                soft-delete filters
        """
        ...


@runtime_checkable
class LegacyOrderStore(OrderStore, Protocol):
    """Legacy content-table store, which can reserve ids with placeholders."""

    async def write_placeholder(self, order_id: int) -> bool:
        """
        Reserve ``order_id`` with a placeholder row if no row exists.

        Returns:
            True if a placeholder was created
        """
        ...


@runtime_checkable
class StructuredOrderStore(OrderStore, Protocol):
    """Dedicated orders-table store."""

    async def list_auto_drafts(self, updated_before: datetime) -> list[int]:
        """Ids of auto-draft orders last updated before the given time, ascending."""
        ...


@runtime_checkable
class DeletionMarkerStore(Protocol):
    """
    Protocol for append-only deletion markers.

    A marker states that an order was deleted from ``source`` and the
    deletion has not been mirrored to the other store yet.
    """

    async def append(
        self,
        order_id: int,
        source: Store,
        created_at: datetime | None = None,
    ) -> DeletionMarker:
        """Append a marker and return it."""
        ...

    async def list(self, source: Store, limit: int) -> list[int]:
        """Distinct order ids with markers tagged ``source``, ascending, at most ``limit``."""
        ...

    async def list_for_ids(
        self,
        source: Store,
        order_ids: Collection[int],
    ) -> list[DeletionMarker]:
        """Markers tagged ``source`` for the given ids, ordered by order id descending."""
        ...

    async def exists(self, order_id: int, source: Store) -> bool:
        """True if an unresolved marker for ``(order_id, source)`` exists."""
        ...

    async def count(self, source: Store) -> int:
        """Number of distinct order ids with markers tagged ``source``."""
        ...

    async def remove(self, marker_ids: Collection[int]) -> int:
        """Remove markers by id and return how many were removed."""
        ...


@runtime_checkable
class OptionStore(Protocol):
    """Persisted process-wide options (flags and counters)."""

    async def get(self, key: str) -> str | None:
        """Return the stored value, or None if unset."""
        ...

    async def set(self, key: str, value: str) -> None:
        """Store a value, replacing any previous one."""
        ...

    async def delete(self, key: str) -> None:
        """Remove a value; missing keys are ignored."""
        ...


@runtime_checkable
class PendingQueries(Protocol):
    """
    The closed set of pending-set queries, one per QueryKind.

    Auto-draft orders never count as missing. Only legacy rows whose content
    type is in ``order_types`` take part in the comparison.
    """

    async def ids(
        self,
        kind: QueryKind,
        order_types: Sequence[str],
        limit: int,
    ) -> list[int]:
        """Matching ids in strictly ascending order, at most ``limit``."""
        ...

    async def count(self, kind: QueryKind, order_types: Sequence[str]) -> int:
        """Number of matching ids."""
        ...


@runtime_checkable
class BulkMigrator(Protocol):
    """Forward-copies full legacy records into the structured store."""

    async def migrate(self, order_ids: Sequence[int]) -> list[int]:
        """
        Copy the given orders.

        Missing legacy records and placeholder rows are skipped.

        Returns:
            Ids that were copied, in the given order
        """
        ...


__all__ = [
    "OrderStore",
    "LegacyOrderStore",
    "StructuredOrderStore",
    "DeletionMarkerStore",
    "OptionStore",
    "PendingQueries",
    "BulkMigrator",
]
