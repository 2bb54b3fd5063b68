"""
DeletionTracker - append-only deletion markers.

A marker ``(order_id, source)`` means the order was deleted from ``source``
and the deletion has not been mirrored to the other store yet. Markers are
recorded by the write-path observer and resolved by the batch reconciler,
which mirrors deletions from the authoritative store to the other one.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from ordersync.models import Store
from ordersync.observability import (
    ATTR_AUTHORITATIVE_STORE,
    ATTR_DELETIONS_RESOLVED,
    ATTR_ORDER_COUNT,
    ATTR_ORDER_ID,
    Tracer,
    create_tracer,
)
from ordersync.state import SyncState
from ordersync.stores.interface import DeletionMarkerStore, OrderStore

logger = logging.getLogger(__name__)


class DeletionTracker:
    """
    Records and resolves deletion markers.

    Example:
        >>> tracker = DeletionTracker(markers, {Store.LEGACY: legacy, Store.STRUCTURED: structured}, state)
        >>> await tracker.record_deletion(7, Store.LEGACY)
        True
        >>> await tracker.resolve_deletions([7])
        {7}
    """

    def __init__(
        self,
        markers: DeletionMarkerStore,
        stores: Mapping[Store, OrderStore],
        state: SyncState,
        *,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        """
        Initialize the tracker.

        Args:
            markers: Deletion marker store
            stores: Order store adapter for each Store
            state: Authority state
            tracer: Optional custom Tracer instance
            enable_tracing: Whether to enable OpenTelemetry tracing
        """
        missing = [s.value for s in Store if s not in stores]
        if missing:
            raise ValueError(f"No order store configured for: {', '.join(missing)}")

        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._markers = markers
        self._stores = dict(stores)
        self._state = state

    async def record_deletion(self, order_id: int, source: Store) -> bool:
        """
        Record that an order was deleted from ``source``.

        Nothing is recorded if ``source`` is not the authoritative store (the
        next batch re-creates the row from the authoritative copy), if the
        other store no longer has the order, or if a marker for the same
        deletion already exists.

        Returns:
            True if a new marker was appended
        """
        if await self._state.authoritative_store() is not source:
            logger.debug(
                "Order %s was deleted from the non-authoritative %s store, not recording",
                order_id,
                source.value,
            )
            return False

        other = self._stores[source.other]
        if not await other.exists(order_id):
            return False
        if await self._markers.exists(order_id, source):
            return False

        with self._tracer.span(
            "ordersync.deletions.record",
            {ATTR_ORDER_ID: order_id},
        ):
            await self._markers.append(order_id, source)

        logger.debug(
            "Recorded deletion of order %s from the %s store",
            order_id,
            source.value,
            extra={"order_id": order_id, "source": source.value},
        )
        return True

    async def discard_markers(self, order_ids: Iterable[int], source: Store) -> int:
        """
        Drop deletion markers from ``source`` for orders it holds again.

        Called after a repair re-created the rows in ``source``; an earlier
        deletion from that store no longer needs mirroring.

        Returns:
            Number of markers removed
        """
        order_ids = list(order_ids)
        if not order_ids:
            return 0

        markers = await self._markers.list_for_ids(source, order_ids)
        if not markers:
            return 0

        removed = await self._markers.remove([m.marker_id for m in markers])
        logger.debug(
            "Discarded %d obsolete deletion marker(s) from the %s store",
            removed,
            source.value,
        )
        return removed

    async def resolve_deletions(self, order_ids: Iterable[int]) -> set[int]:
        """
        Mirror pending deletions of the given orders.

        Only markers tagged with the authoritative store are considered: the
        order is hard-deleted from the non-authoritative store and the marker
        removed. A target that is already gone counts as resolved. A failed
        delete keeps the marker so the id is retried by a later batch.

        Args:
            order_ids: Ids of the current batch

        Returns:
            Ids whose deletion is now mirrored
        """
        order_ids = list(order_ids)
        if not order_ids:
            return set()

        authoritative = await self._state.authoritative_store()
        target = self._stores[authoritative.other]

        with self._tracer.span(
            "ordersync.deletions.resolve",
            {
                ATTR_AUTHORITATIVE_STORE: authoritative.value,
                ATTR_ORDER_COUNT: len(order_ids),
            },
        ) as span:
            markers = await self._markers.list_for_ids(authoritative, order_ids)

            resolved: set[int] = set()
            attempted: set[int] = set()
            resolved_marker_ids: list[int] = []

            for marker in markers:
                order_id = marker.order_id
                if order_id in attempted:
                    if order_id in resolved:
                        resolved_marker_ids.append(marker.marker_id)
                    continue
                attempted.add(order_id)

                try:
                    if not await target.exists(order_id):
                        logger.warning(
                            "Order %s was already deleted from the %s store, "
                            "removing its deletion marker",
                            order_id,
                            target.store.value,
                        )
                    else:
                        await target.delete(order_id, hard=True)
                except Exception as e:
                    logger.error(
                        "Could not delete order %s from the %s store: %s",
                        order_id,
                        target.store.value,
                        e,
                        exc_info=True,
                        extra={"order_id": order_id},
                    )
                    continue

                resolved.add(order_id)
                resolved_marker_ids.append(marker.marker_id)

            if resolved_marker_ids:
                await self._markers.remove(resolved_marker_ids)

            if span:
                span.set_attribute(ATTR_DELETIONS_RESOLVED, len(resolved))

        if resolved:
            logger.debug(
                "Mirrored %d deletion(s) to the %s store",
                len(resolved),
                target.store.value,
            )
        return resolved


__all__ = ["DeletionTracker"]
