"""
PendingSetResolver - discovers which orders are out of sync.

The resolver answers two questions for the scheduler and the reconciler:
which ids diverge in a given way (get_ids_of_pending), and how many ids
diverge in total (get_total_pending_count).

Divergence classes are relative to the authoritative store. The resolver
reads the authority flag and translates each class into one member of the
closed QueryKind enum, which PendingQueries implementations map to a
static, parameterized query. Deletion classes are answered from the
deletion marker store.

Start-up window:
    Order subtypes are registered while the process boots. A pending count
    requested before that is reported as zero with a debug log, since no
    order can be classified yet; id queries fail with SyncConfigurationError.
"""

from __future__ import annotations

import logging

from ordersync.exceptions import InvalidDivergenceClassError, SyncConfigurationError
from ordersync.models import DivergenceClass
from ordersync.observability import (
    ATTR_AUTHORITATIVE_STORE,
    ATTR_DIVERGENCE_CLASS,
    ATTR_LIMIT,
    ATTR_PENDING_COUNT,
    ATTR_USE_CACHE,
    Tracer,
    create_tracer,
)
from ordersync.registry import OrderTypeRegistry
from ordersync.state import SyncState
from ordersync.stores.interface import DeletionMarkerStore, PendingQueries

logger = logging.getLogger(__name__)


class PendingSetResolver:
    """
    Computes the ordered set of order ids that are out of sync.

    Example:
        >>> resolver = PendingSetResolver(queries, markers, state, registry)
        >>> await resolver.get_ids_of_pending(DivergenceClass.MISSING_IN_TARGET, 10)
        [3, 8, 42]
        >>> await resolver.get_total_pending_count()
        3
    """

    def __init__(
        self,
        queries: PendingQueries,
        markers: DeletionMarkerStore,
        state: SyncState,
        registry: OrderTypeRegistry,
        *,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        """
        Initialize the resolver.

        Args:
            queries: Pending-set query implementation
            markers: Deletion marker store
            state: Authority and progress state
            registry: Registered order subtypes
            tracer: Optional custom Tracer instance
            enable_tracing: Whether to enable OpenTelemetry tracing
        """
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._queries = queries
        self._markers = markers
        self._state = state
        self._registry = registry

    async def get_ids_of_pending(
        self,
        divergence_class: DivergenceClass,
        limit: int,
    ) -> list[int]:
        """
        Get ids of orders that diverge in the given way.

        Args:
            divergence_class: Which kind of divergence to look for
            limit: Maximum number of ids to return (at least 1)

        Returns:
            Order ids in strictly ascending order, at most ``limit`` of them

        Raises:
            InvalidDivergenceClassError: If divergence_class is not a DivergenceClass
            SyncConfigurationError: If limit < 1 or no order types are registered
        """
        if not isinstance(divergence_class, DivergenceClass):
            raise InvalidDivergenceClassError(divergence_class)

        if limit < 1:
            raise SyncConfigurationError(f"limit must be at least 1, got {limit}")

        order_types = self._registry.order_types()
        if not order_types:
            logger.debug(
                "get_ids_of_pending was called but no order types were registered: "
                "it may have been called too early."
            )
            raise SyncConfigurationError("No order types are registered")

        authoritative = await self._state.authoritative_store()

        with self._tracer.span(
            "ordersync.pending.get_ids",
            {
                ATTR_DIVERGENCE_CLASS: divergence_class.value,
                ATTR_AUTHORITATIVE_STORE: authoritative.value,
                ATTR_LIMIT: limit,
            },
        ):
            if divergence_class.is_deletion:
                source = divergence_class.marker_source(authoritative)
                order_ids = await self._markers.list(source, limit)
            else:
                kind = divergence_class.query_kind(authoritative)
                order_ids = await self._queries.ids(kind, order_types, limit)

        return sorted(set(order_ids))[:limit]

    async def get_total_pending_count(self, use_cache: bool = False) -> int:
        """
        Count orders pending synchronization.

        The total is the number of orders missing from the non-authoritative
        store, plus orders whose authoritative copy is newer, plus orders
        deleted from the authoritative store whose deletion is not mirrored.

        Args:
            use_cache: Serve an unexpired cached count if one exists

        Returns:
            Total pending count (0 while no order types are registered)
        """
        if use_cache:
            cached = self._state.cached_pending_count()
            if cached is not None:
                return cached

        order_types = self._registry.order_types()
        if not order_types:
            logger.debug(
                "get_total_pending_count was called but no order types were registered: "
                "it may have been called too early."
            )
            return 0

        authoritative = await self._state.authoritative_store()

        with self._tracer.span(
            "ordersync.pending.get_total_count",
            {
                ATTR_AUTHORITATIVE_STORE: authoritative.value,
                ATTR_USE_CACHE: use_cache,
            },
        ) as span:
            missing = await self._queries.count(
                DivergenceClass.MISSING_IN_TARGET.query_kind(authoritative), order_types
            )
            stale = await self._queries.count(
                DivergenceClass.STALE_TIMESTAMP.query_kind(authoritative), order_types
            )
            deleted = await self._markers.count(
                DivergenceClass.DELETED_FROM_AUTHORITATIVE.marker_source(authoritative)
            )
            total = missing + stale + deleted
            if span:
                span.set_attribute(ATTR_PENDING_COUNT, total)

        logger.debug(
            "Pending synchronization: %d missing, %d stale, %d deleted",
            missing,
            stale,
            deleted,
            extra={"authoritative_store": authoritative.value, "pending_count": total},
        )

        self._state.cache_pending_count(total)
        return total

    async def get_next_batch(self, size: int) -> list[int]:
        """
        Pick the ids the next batch should reconcile.

        Fills the batch from orders missing in the non-authoritative store,
        then from stale orders, then from unmirrored deletions.

        Args:
            size: Maximum batch size (at least 1)

        Returns:
            Up to ``size`` distinct order ids

        Raises:
            SyncConfigurationError: If size < 1
        """
        if size < 1:
            raise SyncConfigurationError(f"Batch size must be at least 1, got {size}")

        order_ids: list[int] = []
        for divergence_class in (
            DivergenceClass.MISSING_IN_TARGET,
            DivergenceClass.STALE_TIMESTAMP,
            DivergenceClass.DELETED_FROM_AUTHORITATIVE,
        ):
            remaining = size - len(order_ids)
            if remaining < 1:
                break
            found = await self.get_ids_of_pending(divergence_class, remaining)
            order_ids.extend(i for i in found if i not in order_ids)

        return order_ids[:size]


__all__ = ["PendingSetResolver"]
