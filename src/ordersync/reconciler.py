"""
BatchReconciler - applies directional repair to a bounded batch of orders.

For each batch the reconciler:
    1. Deduplicates the ids
    2. Suppresses the order cache for the rest of the bulk synchronization
    3. Mirrors pending deletions first and drops the resolved ids
    4. Backfills (structured authoritative) or forward-migrates (legacy
       authoritative) the remaining ids
    5. Recounts pending orders; at zero the sync state is cleared and the
       cache restored

Batches are idempotent: re-running a batch that already converged changes
nothing. Per-record problems are logged and skipped; storage errors
propagate to the caller and leave the ids pending for the next run.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from ordersync.cache import CacheController
from ordersync.config import SyncConfig
from ordersync.deletions import DeletionTracker
from ordersync.models import BatchResult, Store
from ordersync.observability import (
    ATTR_BATCH_SIZE,
    ATTR_SYNC_DIRECTION,
    Tracer,
    create_tracer,
)
from ordersync.pending import PendingSetResolver
from ordersync.state import SyncState
from ordersync.stores.interface import BulkMigrator, LegacyOrderStore, OrderStore

logger = logging.getLogger(__name__)


def normalize_order_ids(order_ids: Iterable[int | str]) -> list[int]:
    """Coerce ids to positive ints, dropping duplicates and keeping first-seen order."""
    normalized: dict[int, None] = {}
    for raw in order_ids:
        order_id = int(raw)
        if order_id > 0:
            normalized[order_id] = None
    return list(normalized)


class BatchReconciler:
    """
    Reconciles one batch of order ids at a time.

    Example:
        >>> reconciler = BatchReconciler(
        ...     legacy_store=legacy,
        ...     structured_store=structured,
        ...     migrator=StoreCopyMigrator(legacy, structured),
        ...     deletions=tracker,
        ...     resolver=resolver,
        ...     state=state,
        ...     cache=OrderCacheController(),
        ... )
        >>> result = await reconciler.process_batch([42])
        >>> result.converged
        True
    """

    def __init__(
        self,
        *,
        legacy_store: LegacyOrderStore,
        structured_store: OrderStore,
        migrator: BulkMigrator,
        deletions: DeletionTracker,
        resolver: PendingSetResolver,
        state: SyncState,
        cache: CacheController,
        config: SyncConfig | None = None,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._legacy = legacy_store
        self._structured = structured_store
        self._migrator = migrator
        self._deletions = deletions
        self._resolver = resolver
        self._state = state
        self._cache = cache
        self._config = config or SyncConfig()

    async def process_batch(self, order_ids: Iterable[int | str]) -> BatchResult:
        """
        Reconcile the given orders.

        Args:
            order_ids: Ids picked by the scheduler, usually from get_next_batch()

        Returns:
            BatchResult describing what was done
        """
        result = BatchResult(requested=normalize_order_ids(order_ids))
        if not result.requested:
            return await self._finish(result)

        authoritative = await self._state.authoritative_store()

        with self._tracer.span(
            "ordersync.reconciler.process_batch",
            {
                ATTR_BATCH_SIZE: len(result.requested),
                ATTR_SYNC_DIRECTION: authoritative.value,
            },
        ):
            self._cache.suppress(self._config.order_entity_type)

            result.deleted = await self._deletions.resolve_deletions(result.requested)
            remaining = [i for i in result.requested if i not in result.deleted]

            if remaining:
                if authoritative is Store.STRUCTURED:
                    await self._backfill(remaining, result)
                else:
                    await self._forward_migrate(remaining, result)

            return await self._finish(result)

    async def _backfill(self, order_ids: list[int], result: BatchResult) -> None:
        """
        Copy structured records into the legacy store.

        Legacy ids are allocated by the legacy table itself. A missing row is
        first reserved with an insert-if-absent placeholder so no legacy write
        can claim the id between the existence check and the full write.
        """
        for order_id in order_ids:
            record = await self._structured.read(order_id)
            if record is None:
                logger.error("Order %s not found during batch process, skipping.", order_id)
                result.skipped.append(order_id)
                continue

            if await self._legacy.write_placeholder(order_id):
                result.placeholders.append(order_id)
            await self._legacy.write(record)
            result.backfilled.append(order_id)

        await self._deletions.discard_markers(result.backfilled, Store.LEGACY)

    async def _forward_migrate(self, order_ids: list[int], result: BatchResult) -> None:
        copied = set(await self._migrator.migrate(order_ids))
        for order_id in order_ids:
            if order_id in copied:
                result.migrated.append(order_id)
            else:
                logger.error("Order %s not found during batch process, skipping.", order_id)
                result.skipped.append(order_id)

        await self._deletions.discard_markers(result.migrated, Store.STRUCTURED)

    async def _finish(self, result: BatchResult) -> BatchResult:
        self._state.invalidate_pending_count()
        result.remaining_pending = await self._resolver.get_total_pending_count(use_cache=False)

        if result.remaining_pending == 0:
            await self._state.clear_sync_state()
            self._cache.restore(self._config.order_entity_type)
            if result.requested:
                logger.info("Order synchronization converged, no orders pending")

        logger.debug(
            "Processed batch of %d order(s)",
            len(result.requested),
            extra=result.to_dict(),
        )
        return result


__all__ = ["BatchReconciler", "normalize_order_ids"]
