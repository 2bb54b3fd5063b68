"""
Unit tests for the in-memory store adapters.

Tests cover:
- Protocol conformance
- Placeholder rows in the legacy store
- Soft and hard deletes
- Deletion marker listing and counting
- Option store
"""

from collections.abc import Callable
from datetime import datetime, timedelta

import pytest

from ordersync.models import AUTO_DRAFT_STATUS, OrderRecord, Store
from ordersync.stores.in_memory import (
    TRASH_STATUS,
    InMemoryDeletionMarkerStore,
    InMemoryLegacyOrderStore,
    InMemoryOptionStore,
    InMemoryPendingQueries,
    InMemoryStructuredOrderStore,
)
from ordersync.stores.interface import (
    DeletionMarkerStore,
    LegacyOrderStore,
    OptionStore,
    PendingQueries,
    StructuredOrderStore,
)


class TestProtocols:
    """The in-memory adapters satisfy the store protocols."""

    def test_conformance(self) -> None:
        legacy = InMemoryLegacyOrderStore()
        structured = InMemoryStructuredOrderStore()
        assert isinstance(legacy, LegacyOrderStore)
        assert isinstance(structured, StructuredOrderStore)
        assert isinstance(InMemoryDeletionMarkerStore(), DeletionMarkerStore)
        assert isinstance(InMemoryOptionStore(), OptionStore)
        assert isinstance(InMemoryPendingQueries(legacy, structured), PendingQueries)


class TestLegacyStore:
    """Tests for InMemoryLegacyOrderStore."""

    @pytest.mark.asyncio
    async def test_placeholder_reserves_id_without_record(self) -> None:
        legacy = InMemoryLegacyOrderStore()
        assert await legacy.write_placeholder(42) is True
        assert await legacy.exists(42)
        assert await legacy.read(42) is None

    @pytest.mark.asyncio
    async def test_placeholder_never_overwrites(
        self, order_factory: Callable[..., OrderRecord]
    ) -> None:
        legacy = InMemoryLegacyOrderStore([order_factory(42)])
        assert await legacy.write_placeholder(42) is False
        assert await legacy.read(42) == order_factory(42)

    @pytest.mark.asyncio
    async def test_soft_and_hard_delete(self, order_factory: Callable[..., OrderRecord]) -> None:
        legacy = InMemoryLegacyOrderStore([order_factory(1), order_factory(2)])

        await legacy.delete(1, hard=False)
        await legacy.delete(2)
        await legacy.delete(3)

        assert (await legacy.read(1)).status == TRASH_STATUS  # type: ignore[union-attr]
        assert not await legacy.exists(2)


class TestStructuredStore:
    """Tests for InMemoryStructuredOrderStore."""

    @pytest.mark.asyncio
    async def test_list_auto_drafts(
        self, order_factory: Callable[..., OrderRecord], t0: datetime
    ) -> None:
        structured = InMemoryStructuredOrderStore(
            [
                order_factory(3, status=AUTO_DRAFT_STATUS, updated_at=t0),
                order_factory(1, status=AUTO_DRAFT_STATUS, updated_at=t0),
                order_factory(2, status=AUTO_DRAFT_STATUS, updated_at=t0 + timedelta(days=2)),
                order_factory(4, updated_at=t0),
            ]
        )
        assert await structured.list_auto_drafts(t0 + timedelta(days=1)) == [1, 3]


class TestDeletionMarkerStore:
    """Tests for InMemoryDeletionMarkerStore."""

    @pytest.mark.asyncio
    async def test_list_is_distinct_ascending_and_limited(self) -> None:
        markers = InMemoryDeletionMarkerStore()
        for order_id in (9, 3, 3, 5):
            await markers.append(order_id, Store.LEGACY)
        await markers.append(1, Store.STRUCTURED)

        assert await markers.list(Store.LEGACY, limit=10) == [3, 5, 9]
        assert await markers.list(Store.LEGACY, limit=2) == [3, 5]
        assert await markers.count(Store.LEGACY) == 3
        assert await markers.count(Store.STRUCTURED) == 1

    @pytest.mark.asyncio
    async def test_list_for_ids_newest_order_first(self) -> None:
        markers = InMemoryDeletionMarkerStore()
        first = await markers.append(3, Store.LEGACY)
        second = await markers.append(3, Store.LEGACY)
        other = await markers.append(5, Store.LEGACY)

        found = await markers.list_for_ids(Store.LEGACY, [3, 5])

        assert [m.marker_id for m in found] == [
            other.marker_id,
            second.marker_id,
            first.marker_id,
        ]

    @pytest.mark.asyncio
    async def test_exists_and_remove(self) -> None:
        markers = InMemoryDeletionMarkerStore()
        marker = await markers.append(3, Store.LEGACY)

        assert await markers.exists(3, Store.LEGACY)
        assert not await markers.exists(3, Store.STRUCTURED)
        assert await markers.remove([marker.marker_id, 999]) == 1
        assert not await markers.exists(3, Store.LEGACY)


class TestOptionStore:
    """Tests for InMemoryOptionStore."""

    @pytest.mark.asyncio
    async def test_get_set_delete(self) -> None:
        options = InMemoryOptionStore({"a": "1"})
        assert await options.get("a") == "1"
        await options.set("b", "2")
        await options.delete("a")
        await options.delete("missing")
        assert await options.get("a") is None
        assert await options.get("b") == "2"
