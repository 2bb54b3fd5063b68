"""
Order cache suppression.

While a bulk synchronization is in progress a record may be half-migrated,
so read-through caches for orders are switched off process-wide before the
first batch and only switched back on once the global pending count reaches
zero. The controller remembers which entity types it suppressed itself and
only restores those, leaving caches disabled by an operator untouched.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Awaitable, Callable
from typing import Protocol, runtime_checkable

from ordersync.models import OrderRecord

logger = logging.getLogger(__name__)


@runtime_checkable
class CacheController(Protocol):
    """Protocol for suppressing and restoring a read-through cache."""

    def suppress(self, entity_type: str) -> None:
        """Stop serving cached reads for ``entity_type``."""
        ...

    def restore(self, entity_type: str) -> None:
        """Resume cached reads for ``entity_type`` if this controller suppressed them."""
        ...

    def is_suppressed(self, entity_type: str) -> bool:
        """True while cached reads for ``entity_type`` are bypassed."""
        ...


class OrderCacheController:
    """
    Process-wide toggle for order cache usage.

    Example:
        >>> controller = OrderCacheController()
        >>> controller.suppress("order")
        >>> controller.is_suppressed("order")
        True
        >>> controller.restore("order")
        >>> controller.is_suppressed("order")
        False
    """

    def __init__(self) -> None:
        self._disabled: set[str] = set()
        self._suppressed_by_us: set[str] = set()
        self._lock = threading.Lock()

    def disable(self, entity_type: str) -> None:
        """Disable the cache permanently (operator action); restore() will not undo it."""
        with self._lock:
            self._disabled.add(entity_type)
            self._suppressed_by_us.discard(entity_type)

    def enable(self, entity_type: str) -> None:
        with self._lock:
            self._disabled.discard(entity_type)
            self._suppressed_by_us.discard(entity_type)

    def suppress(self, entity_type: str) -> None:
        with self._lock:
            if entity_type in self._disabled:
                return
            self._disabled.add(entity_type)
            self._suppressed_by_us.add(entity_type)
        logger.debug("Temporarily suppressed %s cache usage", entity_type)

    def restore(self, entity_type: str) -> None:
        with self._lock:
            if entity_type not in self._suppressed_by_us:
                return
            self._suppressed_by_us.discard(entity_type)
            self._disabled.discard(entity_type)
        logger.info("Restored %s cache usage", entity_type)

    def is_suppressed(self, entity_type: str) -> bool:
        with self._lock:
            return entity_type in self._disabled


class InMemoryOrderCache:
    """
    Read-through order cache that honours a CacheController.

    Args:
        loader: Coroutine function loading a record on a cache miss
        controller: Controller consulted on every read
        entity_type: Entity type key used with the controller

    Example:
        >>> cache = InMemoryOrderCache(structured_store.read, controller)
        >>> record = await cache.get(42)
    """

    def __init__(
        self,
        loader: Callable[[int], Awaitable[OrderRecord | None]],
        controller: CacheController,
        entity_type: str = "order",
    ) -> None:
        self._loader = loader
        self._controller = controller
        self._entity_type = entity_type
        self._entries: dict[int, OrderRecord] = {}
        self.hits = 0
        self.misses = 0

    async def get(self, order_id: int) -> OrderRecord | None:
        if self._controller.is_suppressed(self._entity_type):
            # Half-migrated records must not be served from or written to cache
            self._entries.pop(order_id, None)
            return await self._loader(order_id)

        if order_id in self._entries:
            self.hits += 1
            return self._entries[order_id]

        self.misses += 1
        record = await self._loader(order_id)
        if record is not None:
            self._entries[order_id] = record
        return record

    def invalidate(self, order_id: int | None = None) -> None:
        """Drop one entry, or every entry when ``order_id`` is None."""
        if order_id is None:
            self._entries.clear()
        else:
            self._entries.pop(order_id, None)

    def __len__(self) -> int:
        return len(self._entries)


__all__ = [
    "CacheController",
    "OrderCacheController",
    "InMemoryOrderCache",
]
