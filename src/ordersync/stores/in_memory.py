"""
In-memory store adapters.

Suitable for tests and single-process deployments. All data is lost when
the process terminates. InMemoryPendingQueries evaluates the pending-set
queries directly against a pair of in-memory order stores.
"""

from __future__ import annotations

import asyncio
import itertools
from collections.abc import Collection, Sequence
from datetime import UTC, datetime

from ordersync.models import (
    AUTO_DRAFT_STATUS,
    PLACEHOLDER_ORDER_TYPE,
    DeletionMarker,
    OrderRecord,
    QueryKind,
    Store,
)

TRASH_STATUS = "trash"


class _InMemoryOrderStore:
    """Shared implementation of the OrderStore protocol over a dict."""

    _store: Store

    def __init__(self, records: Sequence[OrderRecord] | None = None) -> None:
        self._rows: dict[int, OrderRecord] = {r.id: r for r in records or []}
        self._lock: asyncio.Lock = asyncio.Lock()

    @property
    def store(self) -> Store:
        return self._store

    async def read(self, order_id: int) -> OrderRecord | None:
        async with self._lock:
            row = self._rows.get(order_id)
        if row is None or row.order_type == PLACEHOLDER_ORDER_TYPE:
            return None
        return row

    async def write(self, record: OrderRecord) -> None:
        async with self._lock:
            self._rows[record.id] = record

    async def exists(self, order_id: int) -> bool:
        async with self._lock:
            return order_id in self._rows

    async def delete(self, order_id: int, hard: bool = True) -> None:
        async with self._lock:
            row = self._rows.get(order_id)
            if row is None:
                return
            if hard:
                del self._rows[order_id]
            else:
                self._rows[order_id] = row.model_copy(update={"status": TRASH_STATUS})

    def snapshot(self) -> dict[int, OrderRecord]:
        """Copy of all rows, placeholders included."""
        return dict(self._rows)


class InMemoryLegacyOrderStore(_InMemoryOrderStore):
    """
    In-memory legacy content table.

    Rows are kept as OrderRecord; ``order_type`` plays the part of the
    content type, so placeholder rows carry PLACEHOLDER_ORDER_TYPE.

    Example:
        >>> legacy = InMemoryLegacyOrderStore()
        >>> await legacy.write_placeholder(42)
        True
        >>> await legacy.read(42) is None
        True
    """

    _store = Store.LEGACY

    async def write_placeholder(self, order_id: int) -> bool:
        async with self._lock:
            if order_id in self._rows:
                return False
            self._rows[order_id] = OrderRecord(
                id=order_id,
                order_type=PLACEHOLDER_ORDER_TYPE,
                status="draft",
                updated_at=datetime.now(UTC),
            )
            return True


class InMemoryStructuredOrderStore(_InMemoryOrderStore):
    """In-memory dedicated orders table."""

    _store = Store.STRUCTURED

    async def list_auto_drafts(self, updated_before: datetime) -> list[int]:
        async with self._lock:
            return sorted(
                r.id
                for r in self._rows.values()
                if r.status == AUTO_DRAFT_STATUS and r.updated_at < updated_before
            )


class InMemoryDeletionMarkerStore:
    """
    In-memory deletion marker store.

    Example:
        >>> markers = InMemoryDeletionMarkerStore()
        >>> marker = await markers.append(7, Store.LEGACY)
        >>> await markers.list(Store.LEGACY, limit=10)
        [7]
    """

    def __init__(self) -> None:
        self._markers: dict[int, DeletionMarker] = {}
        self._ids = itertools.count(1)
        self._lock: asyncio.Lock = asyncio.Lock()

    async def append(
        self,
        order_id: int,
        source: Store,
        created_at: datetime | None = None,
    ) -> DeletionMarker:
        async with self._lock:
            marker = DeletionMarker(
                marker_id=next(self._ids),
                order_id=order_id,
                source=source,
                created_at=created_at or datetime.now(UTC),
            )
            self._markers[marker.marker_id] = marker
            return marker

    async def list(self, source: Store, limit: int) -> list[int]:
        async with self._lock:
            order_ids = {m.order_id for m in self._markers.values() if m.source is source}
        return sorted(order_ids)[:limit]

    async def list_for_ids(
        self,
        source: Store,
        order_ids: Collection[int],
    ) -> list[DeletionMarker]:
        wanted = set(order_ids)
        async with self._lock:
            found = [
                m for m in self._markers.values() if m.source is source and m.order_id in wanted
            ]
        return sorted(found, key=lambda m: (m.order_id, m.marker_id), reverse=True)

    async def exists(self, order_id: int, source: Store) -> bool:
        async with self._lock:
            return any(
                m.order_id == order_id and m.source is source for m in self._markers.values()
            )

    async def count(self, source: Store) -> int:
        async with self._lock:
            return len({m.order_id for m in self._markers.values() if m.source is source})

    async def remove(self, marker_ids: Collection[int]) -> int:
        removed = 0
        async with self._lock:
            for marker_id in set(marker_ids):
                if self._markers.pop(marker_id, None) is not None:
                    removed += 1
        return removed

    def all_markers(self) -> list[DeletionMarker]:
        """All unresolved markers, oldest first."""
        return sorted(self._markers.values(), key=lambda m: m.marker_id)


class InMemoryOptionStore:
    """In-memory option store."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str | None:
        return self._values.get(key)

    async def set(self, key: str, value: str) -> None:
        self._values[key] = value

    async def delete(self, key: str) -> None:
        self._values.pop(key, None)


class InMemoryPendingQueries:
    """
    Pending-set queries evaluated over in-memory legacy and structured stores.

    Mirrors the semantics of SQLAlchemyPendingQueries so tests can exercise
    the resolver without a database.
    """

    def __init__(
        self,
        legacy: InMemoryLegacyOrderStore,
        structured: InMemoryStructuredOrderStore,
    ) -> None:
        self._legacy = legacy
        self._structured = structured

    def _matching(self, kind: QueryKind, order_types: Sequence[str]) -> list[int]:
        legacy = self._legacy.snapshot()
        structured = self._structured.snapshot()
        types = set(order_types)

        if kind is QueryKind.MISSING_IN_STRUCTURED:
            ids = (
                r.id
                for r in legacy.values()
                if r.order_type in types and r.status != AUTO_DRAFT_STATUS and r.id not in structured
            )
        elif kind is QueryKind.MISSING_IN_LEGACY:
            ids = (
                r.id
                for r in structured.values()
                if r.status != AUTO_DRAFT_STATUS
                and (r.id not in legacy or legacy[r.id].order_type == PLACEHOLDER_ORDER_TYPE)
            )
        elif kind is QueryKind.STRUCTURED_NEWER:
            ids = (
                r.id
                for r in structured.values()
                if r.id in legacy
                and legacy[r.id].order_type in types
                and r.updated_at > legacy[r.id].updated_at
            )
        elif kind is QueryKind.LEGACY_NEWER:
            ids = (
                r.id
                for r in structured.values()
                if r.id in legacy
                and legacy[r.id].order_type in types
                and r.updated_at < legacy[r.id].updated_at
            )
        else:
            raise ValueError(f"Unknown query kind: {kind!r}")
        return sorted(ids)

    async def ids(
        self,
        kind: QueryKind,
        order_types: Sequence[str],
        limit: int,
    ) -> list[int]:
        return self._matching(kind, order_types)[:limit]

    async def count(self, kind: QueryKind, order_types: Sequence[str]) -> int:
        return len(self._matching(kind, order_types))


__all__ = [
    "InMemoryLegacyOrderStore",
    "InMemoryStructuredOrderStore",
    "InMemoryDeletionMarkerStore",
    "InMemoryOptionStore",
    "InMemoryPendingQueries",
]
