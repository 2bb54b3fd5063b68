"""
OrderSynchronizer - scheduler-facing facade of the synchronization engine.

The synchronizer wires the pending-set resolver, deletion tracker, batch
reconciler, sync state and batch-size policy around one pair of order
stores. An external scheduler drives it:

    >>> async with lock_manager.acquire(config.batch_lock_key):
    ...     ids = await synchronizer.get_next_batch(await synchronizer.get_default_batch_size())
    ...     await synchronizer.process_batch(ids)

or simply ``await synchronizer.run_next_batch(lock_manager)``.

Write paths publish OrderUpdated / OrderDeleted events on a bus the
synchronizer is subscribed to; see subscribe().
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import UTC, datetime, timedelta
from typing import Any

from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from ordersync.batching import BatchSizeOverride, BatchSizePolicy
from ordersync.bus import InMemoryOrderEventBus
from ordersync.cache import CacheController, OrderCacheController
from ordersync.config import SyncConfig
from ordersync.deletions import DeletionTracker
from ordersync.events import OrderDeleted, OrderUpdated
from ordersync.locks import LockManager
from ordersync.migrator import StoreCopyMigrator
from ordersync.models import (
    BatchResult,
    DivergenceClass,
    Store,
    SyncAdvisory,
    SyncStatus,
)
from ordersync.observability import ATTR_ORDER_COUNT, Tracer, create_tracer
from ordersync.pending import PendingSetResolver
from ordersync.reconciler import BatchReconciler
from ordersync.registry import OrderTypeRegistry
from ordersync.state import SyncState
from ordersync.stores.interface import (
    BulkMigrator,
    DeletionMarkerStore,
    LegacyOrderStore,
    OptionStore,
    PendingQueries,
    StructuredOrderStore,
)
from ordersync.stores.sql import (
    SQLAlchemyDeletionMarkerStore,
    SQLAlchemyLegacyOrderStore,
    SQLAlchemyOptionStore,
    SQLAlchemyPendingQueries,
    SQLAlchemyStructuredOrderStore,
)

logger = logging.getLogger(__name__)


class OrderSynchronizer:
    """
    Keeps the legacy and structured order stores in sync.

    Example:
        >>> synchronizer = OrderSynchronizer(
        ...     legacy_store=legacy,
        ...     structured_store=structured,
        ...     markers=markers,
        ...     options=options,
        ...     queries=InMemoryPendingQueries(legacy, structured),
        ...     registry=OrderTypeRegistry(["shop_order"]),
        ... )
        >>> await synchronizer.start_bulk_sync()
        >>> while await synchronizer.get_total_pending_count():
        ...     await synchronizer.run_next_batch(InMemoryLockManager())
    """

    name = "Order synchronizer"
    description = "Synchronizes orders between the legacy content table and the orders table."

    def __init__(
        self,
        *,
        legacy_store: LegacyOrderStore,
        structured_store: StructuredOrderStore,
        markers: DeletionMarkerStore,
        options: OptionStore,
        queries: PendingQueries,
        registry: OrderTypeRegistry,
        migrator: BulkMigrator | None = None,
        cache: CacheController | None = None,
        config: SyncConfig | None = None,
        batch_size_override: BatchSizeOverride | None = None,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        """
        Initialize the synchronizer.

        Args:
            legacy_store: Legacy content table adapter
            structured_store: Orders table adapter
            markers: Deletion marker store
            options: Persisted option store (authority flag, counters)
            queries: Pending-set queries over both stores
            registry: Registered order subtypes
            migrator: Forward migrator (defaults to StoreCopyMigrator)
            cache: Order cache controller (defaults to a private OrderCacheController)
            config: Sync configuration
            batch_size_override: Operator hook tuning the batch size
            tracer: Optional custom Tracer instance shared by all components
            enable_tracing: Whether to enable OpenTelemetry tracing
        """
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._config = config or SyncConfig()
        self._legacy = legacy_store
        self._structured = structured_store
        self._registry = registry
        self._cache = cache if cache is not None else OrderCacheController()

        self.state = SyncState(options, self._config)
        self.migrator = migrator or StoreCopyMigrator(
            legacy_store, structured_store, tracer=self._tracer
        )
        self.resolver = PendingSetResolver(
            queries, markers, self.state, registry, tracer=self._tracer
        )
        self.deletions = DeletionTracker(
            markers,
            {Store.LEGACY: legacy_store, Store.STRUCTURED: structured_store},
            self.state,
            tracer=self._tracer,
        )
        self.reconciler = BatchReconciler(
            legacy_store=legacy_store,
            structured_store=structured_store,
            migrator=self.migrator,
            deletions=self.deletions,
            resolver=self.resolver,
            state=self.state,
            cache=self._cache,
            config=self._config,
            tracer=self._tracer,
        )
        self.batch_size_policy = BatchSizePolicy(self._config, override=batch_size_override)

    @classmethod
    def from_engine(
        cls,
        conn: AsyncConnection | AsyncEngine,
        registry: OrderTypeRegistry,
        **kwargs: object,
    ) -> OrderSynchronizer:
        """
        Build a synchronizer over the SQLAlchemy store adapters.

        Args:
            conn: Engine or connection for the database holding both stores
            registry: Registered order subtypes
            **kwargs: Further keyword arguments for __init__

        Example:
            >>> engine = create_async_engine("postgresql+asyncpg://localhost/shop")
            >>> synchronizer = OrderSynchronizer.from_engine(engine, registry)
        """
        tracing: dict[str, Any] = {
            "tracer": kwargs.get("tracer"),
            "enable_tracing": kwargs.get("enable_tracing", True),
        }
        return cls(
            legacy_store=SQLAlchemyLegacyOrderStore(conn, **tracing),
            structured_store=SQLAlchemyStructuredOrderStore(conn, **tracing),
            markers=SQLAlchemyDeletionMarkerStore(conn, **tracing),
            options=SQLAlchemyOptionStore(conn),
            queries=SQLAlchemyPendingQueries(conn, **tracing),
            registry=registry,
            **kwargs,  # type: ignore[arg-type]
        )

    # =========================================================================
    # State
    # =========================================================================

    async def is_authoritative(self, store: Store) -> bool:
        return await self.state.is_authoritative(store)

    async def data_sync_is_enabled(self) -> bool:
        return await self.state.data_sync_enabled()

    async def get_total_pending_count(self, use_cache: bool = False) -> int:
        return await self.resolver.get_total_pending_count(use_cache=use_cache)

    async def get_sync_status(self) -> SyncStatus:
        """Progress of the bulk sync, using the cached current pending count."""
        return SyncStatus(
            initial_pending_count=await self.state.get_initial_pending_count(),
            current_pending_count=await self.get_total_pending_count(use_cache=True),
            in_progress=await self.state.is_bulk_sync_in_progress(),
        )

    async def get_advisory(self) -> SyncAdvisory:
        """Pending count and repair direction for operator-facing warnings."""
        return SyncAdvisory(
            pending_count=await self.get_total_pending_count(use_cache=True),
            direction=await self.state.direction(),
        )

    async def start_bulk_sync(self) -> int:
        """
        Snapshot the current pending count as the initial count.

        Returns:
            The snapshotted count
        """
        count = await self.get_total_pending_count(use_cache=False)
        await self.state.start_bulk_sync(count)
        return count

    async def cleanup_synchronization_state(self) -> None:
        await self.state.clear_sync_state()

    # =========================================================================
    # Batches
    # =========================================================================

    async def get_default_batch_size(self) -> int:
        return self.batch_size_policy.next_batch_size(await self.state.direction())

    async def get_ids_of_pending(self, divergence_class: DivergenceClass, limit: int) -> list[int]:
        return await self.resolver.get_ids_of_pending(divergence_class, limit)

    async def get_next_batch(self, size: int) -> list[int]:
        return await self.resolver.get_next_batch(size)

    async def process_batch(self, order_ids: Iterable[int | str]) -> BatchResult:
        return await self.reconciler.process_batch(order_ids)

    async def run_next_batch(
        self,
        lock_manager: LockManager,
        size: int | None = None,
    ) -> BatchResult:
        """
        Pick and reconcile one batch while holding the batch lease.

        Args:
            lock_manager: Lease backend shared by every scheduler instance
            size: Batch size (defaults to get_default_batch_size())

        Raises:
            LockAcquisitionError: If another batch holds the lease past the configured timeout
        """
        async with lock_manager.acquire(
            self._config.batch_lock_key,
            timeout=self._config.batch_lock_timeout_seconds,
        ):
            if size is None:
                size = await self.get_default_batch_size()
            order_ids = await self.get_next_batch(size)
            return await self.process_batch(order_ids)

    async def delete_auto_draft_orders(self, now: datetime | None = None) -> list[int]:
        """
        Purge stale auto-draft orders from the structured store.

        Only runs while the structured store is authoritative. Deletions are
        mirrored to the legacy store the same way as any other deletion.

        Returns:
            Ids of the deleted orders
        """
        if not await self.state.is_authoritative(Store.STRUCTURED):
            return []

        now = now or datetime.now(UTC)
        cutoff = now - timedelta(days=self._config.auto_draft_max_age_days)
        order_ids = await self._structured.list_auto_drafts(cutoff)

        with self._tracer.span(
            "ordersync.synchronizer.delete_auto_drafts",
            {ATTR_ORDER_COUNT: len(order_ids)},
        ):
            for order_id in order_ids:
                await self._structured.delete(order_id, hard=True)
                await self._mirror_deletion(order_id, Store.STRUCTURED)

        if order_ids:
            logger.info("Deleted %d auto-draft order(s)", len(order_ids))
        return order_ids

    # =========================================================================
    # Write-path events
    # =========================================================================

    def subscribe(self, bus: InMemoryOrderEventBus) -> None:
        bus.subscribe(OrderUpdated, self.handle_order_updated)
        bus.subscribe(OrderDeleted, self.handle_order_deleted)

    def unsubscribe(self, bus: InMemoryOrderEventBus) -> None:
        bus.unsubscribe(OrderUpdated, self.handle_order_updated)
        bus.unsubscribe(OrderDeleted, self.handle_order_deleted)

    async def handle_order_updated(self, event: OrderUpdated) -> None:
        """Forward-copy a legacy write right away while data sync is on."""
        if event.store is not Store.LEGACY:
            return
        if await self.state.is_authoritative(Store.LEGACY) and await self.state.data_sync_enabled():
            await self.migrator.migrate([event.order_id])

    async def handle_order_deleted(self, event: OrderDeleted) -> None:
        """
        Mirror or record a deletion.

        Legacy rows of unregistered content types are not orders and are
        ignored. With data sync off, only deletions from the authoritative
        store are recorded; a row deleted from the other store is re-created
        by the next batch.
        """
        if event.store is Store.LEGACY and event.order_type not in self._registry:
            return

        await self._mirror_deletion(event.order_id, event.store)

    async def _mirror_deletion(self, order_id: int, source: Store) -> None:
        if await self.state.data_sync_enabled():
            target = self._structured if source is Store.LEGACY else self._legacy
            await target.delete(order_id, hard=True)
        await self.deletions.record_deletion(order_id, source)


__all__ = ["OrderSynchronizer"]
