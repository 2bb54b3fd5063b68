"""
Unit tests for DeletionTracker.

Tests cover:
- record_deletion() guards against duplicates, already-gone targets and
  deletions from the non-authoritative store
- discard_markers() after a repair re-created the rows
- resolve_deletions() mirroring direction
- Already-mirrored deletions
- Delete failures keep the marker
- Duplicate markers for one order
"""

from collections.abc import Callable
from unittest.mock import AsyncMock

import pytest

from ordersync.deletions import DeletionTracker
from ordersync.models import OrderRecord, Store
from ordersync.state import SyncState
from ordersync.stores.in_memory import (
    InMemoryDeletionMarkerStore,
    InMemoryLegacyOrderStore,
    InMemoryStructuredOrderStore,
)


@pytest.fixture
def tracker(
    marker_store: InMemoryDeletionMarkerStore,
    legacy_store: InMemoryLegacyOrderStore,
    structured_store: InMemoryStructuredOrderStore,
    sync_state: SyncState,
) -> DeletionTracker:
    return DeletionTracker(
        marker_store,
        {Store.LEGACY: legacy_store, Store.STRUCTURED: structured_store},
        sync_state,
        enable_tracing=False,
    )


class TestInit:
    """Tests for constructor validation."""

    def test_requires_both_stores(
        self,
        marker_store: InMemoryDeletionMarkerStore,
        legacy_store: InMemoryLegacyOrderStore,
        sync_state: SyncState,
    ) -> None:
        with pytest.raises(ValueError, match="structured"):
            DeletionTracker(marker_store, {Store.LEGACY: legacy_store}, sync_state)


class TestRecordDeletion:
    """Tests for record_deletion."""

    @pytest.mark.asyncio
    async def test_records_when_other_store_has_order(
        self,
        tracker: DeletionTracker,
        structured_store: InMemoryStructuredOrderStore,
        marker_store: InMemoryDeletionMarkerStore,
        order_factory: Callable[..., OrderRecord],
    ) -> None:
        await structured_store.write(order_factory(7))

        assert await tracker.record_deletion(7, Store.LEGACY) is True

        markers = marker_store.all_markers()
        assert [(m.order_id, m.source) for m in markers] == [(7, Store.LEGACY)]

    @pytest.mark.asyncio
    async def test_skips_when_other_store_lacks_order(
        self,
        tracker: DeletionTracker,
        marker_store: InMemoryDeletionMarkerStore,
    ) -> None:
        assert await tracker.record_deletion(7, Store.LEGACY) is False
        assert marker_store.all_markers() == []

    @pytest.mark.asyncio
    async def test_never_duplicates_a_marker(
        self,
        tracker: DeletionTracker,
        structured_store: InMemoryStructuredOrderStore,
        marker_store: InMemoryDeletionMarkerStore,
        order_factory: Callable[..., OrderRecord],
    ) -> None:
        await structured_store.write(order_factory(7))

        await tracker.record_deletion(7, Store.LEGACY)
        assert await tracker.record_deletion(7, Store.LEGACY) is False

        assert len(marker_store.all_markers()) == 1

    @pytest.mark.asyncio
    async def test_skips_deletion_from_non_authoritative_store(
        self,
        tracker: DeletionTracker,
        legacy_store: InMemoryLegacyOrderStore,
        marker_store: InMemoryDeletionMarkerStore,
        order_factory: Callable[..., OrderRecord],
    ) -> None:
        await legacy_store.write(order_factory(7))

        assert await tracker.record_deletion(7, Store.STRUCTURED) is False
        assert marker_store.all_markers() == []


class TestDiscardMarkers:
    """Tests for discard_markers."""

    @pytest.mark.asyncio
    async def test_removes_only_markers_of_given_source_and_ids(
        self,
        tracker: DeletionTracker,
        marker_store: InMemoryDeletionMarkerStore,
    ) -> None:
        await marker_store.append(5, Store.STRUCTURED)
        await marker_store.append(5, Store.STRUCTURED)
        await marker_store.append(6, Store.STRUCTURED)
        await marker_store.append(5, Store.LEGACY)

        assert await tracker.discard_markers([5], Store.STRUCTURED) == 2

        assert [(m.order_id, m.source) for m in marker_store.all_markers()] == [
            (6, Store.STRUCTURED),
            (5, Store.LEGACY),
        ]

    @pytest.mark.asyncio
    async def test_no_ids_is_a_noop(
        self,
        tracker: DeletionTracker,
        marker_store: InMemoryDeletionMarkerStore,
    ) -> None:
        await marker_store.append(5, Store.STRUCTURED)
        assert await tracker.discard_markers([], Store.STRUCTURED) == 0
        assert len(marker_store.all_markers()) == 1


class TestResolveDeletions:
    """Tests for resolve_deletions."""

    @pytest.mark.asyncio
    async def test_empty_batch(self, tracker: DeletionTracker) -> None:
        assert await tracker.resolve_deletions([]) == set()

    @pytest.mark.asyncio
    async def test_mirrors_deletion_from_authoritative_store(
        self,
        tracker: DeletionTracker,
        structured_store: InMemoryStructuredOrderStore,
        marker_store: InMemoryDeletionMarkerStore,
        order_factory: Callable[..., OrderRecord],
    ) -> None:
        await structured_store.write(order_factory(7))
        await structured_store.write(order_factory(8))
        await marker_store.append(7, Store.LEGACY)

        resolved = await tracker.resolve_deletions([7, 8])

        assert resolved == {7}
        assert not await structured_store.exists(7)
        assert await structured_store.exists(8)
        assert marker_store.all_markers() == []

    @pytest.mark.asyncio
    async def test_hard_deletes(
        self,
        marker_store: InMemoryDeletionMarkerStore,
        legacy_store: InMemoryLegacyOrderStore,
        sync_state: SyncState,
    ) -> None:
        structured = AsyncMock()
        structured.store = Store.STRUCTURED
        structured.exists.return_value = True
        tracker = DeletionTracker(
            marker_store,
            {Store.LEGACY: legacy_store, Store.STRUCTURED: structured},
            sync_state,
            enable_tracing=False,
        )
        await marker_store.append(7, Store.LEGACY)

        await tracker.resolve_deletions([7])

        structured.delete.assert_awaited_once_with(7, hard=True)

    @pytest.mark.asyncio
    async def test_ignores_markers_from_non_authoritative_store(
        self,
        tracker: DeletionTracker,
        legacy_store: InMemoryLegacyOrderStore,
        marker_store: InMemoryDeletionMarkerStore,
        order_factory: Callable[..., OrderRecord],
    ) -> None:
        await legacy_store.write(order_factory(7))
        await marker_store.append(7, Store.STRUCTURED)

        assert await tracker.resolve_deletions([7]) == set()
        assert await legacy_store.exists(7)
        assert len(marker_store.all_markers()) == 1

    @pytest.mark.asyncio
    async def test_already_mirrored_is_resolved_with_warning(
        self,
        tracker: DeletionTracker,
        marker_store: InMemoryDeletionMarkerStore,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        await marker_store.append(7, Store.LEGACY)

        with caplog.at_level("WARNING", logger="ordersync.deletions"):
            assert await tracker.resolve_deletions([7]) == {7}

        assert "already deleted" in caplog.text
        assert marker_store.all_markers() == []

    @pytest.mark.asyncio
    async def test_failed_delete_keeps_marker(
        self,
        marker_store: InMemoryDeletionMarkerStore,
        legacy_store: InMemoryLegacyOrderStore,
        structured_store: InMemoryStructuredOrderStore,
        sync_state: SyncState,
        order_factory: Callable[..., OrderRecord],
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        await structured_store.write(order_factory(7))
        await structured_store.write(order_factory(8))
        await marker_store.append(7, Store.LEGACY)
        await marker_store.append(8, Store.LEGACY)

        original_delete = structured_store.delete

        async def flaky_delete(order_id: int, hard: bool = True) -> None:
            if order_id == 8:
                raise RuntimeError("disk full")
            await original_delete(order_id, hard=hard)

        structured_store.delete = flaky_delete  # type: ignore[method-assign]
        tracker = DeletionTracker(
            marker_store,
            {Store.LEGACY: legacy_store, Store.STRUCTURED: structured_store},
            sync_state,
            enable_tracing=False,
        )

        with caplog.at_level("ERROR", logger="ordersync.deletions"):
            resolved = await tracker.resolve_deletions([7, 8])

        assert resolved == {7}
        assert [m.order_id for m in marker_store.all_markers()] == [8]
        assert "disk full" in caplog.text

    @pytest.mark.asyncio
    async def test_duplicate_markers_resolved_once(
        self,
        marker_store: InMemoryDeletionMarkerStore,
        legacy_store: InMemoryLegacyOrderStore,
        sync_state: SyncState,
    ) -> None:
        structured = AsyncMock()
        structured.store = Store.STRUCTURED
        structured.exists.return_value = True
        tracker = DeletionTracker(
            marker_store,
            {Store.LEGACY: legacy_store, Store.STRUCTURED: structured},
            sync_state,
            enable_tracing=False,
        )
        await marker_store.append(7, Store.LEGACY)
        await marker_store.append(7, Store.LEGACY)

        assert await tracker.resolve_deletions([7, 7]) == {7}

        structured.delete.assert_awaited_once()
        assert marker_store.all_markers() == []

    @pytest.mark.usefixtures("structured_authoritative")
    @pytest.mark.asyncio
    async def test_structured_authoritative_deletes_from_legacy(
        self,
        tracker: DeletionTracker,
        legacy_store: InMemoryLegacyOrderStore,
        marker_store: InMemoryDeletionMarkerStore,
        order_factory: Callable[..., OrderRecord],
    ) -> None:
        await legacy_store.write(order_factory(5))
        await marker_store.append(5, Store.STRUCTURED)

        assert await tracker.resolve_deletions([5]) == {5}
        assert not await legacy_store.exists(5)
