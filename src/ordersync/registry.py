"""
Registry of order subtypes recognised in the legacy content table.

Subtypes are registered during process start-up. Queries issued before
registration completes see an empty registry; the pending-set resolver
treats that window explicitly (see PendingSetResolver).
"""

from __future__ import annotations

import logging
import threading

logger = logging.getLogger(__name__)


class OrderTypeRegistry:
    """
    Thread-safe set of legacy content types that represent orders.

    Example:
        >>> registry = OrderTypeRegistry()
        >>> registry.register("shop_order")
        >>> registry.register("shop_order_refund")
        >>> registry.order_types()
        ('shop_order', 'shop_order_refund')
    """

    def __init__(self, order_types: list[str] | None = None) -> None:
        self._order_types: list[str] = []
        self._lock = threading.Lock()
        for order_type in order_types or []:
            self.register(order_type)

    def register(self, order_type: str) -> None:
        if not order_type:
            raise ValueError("order_type must not be empty")
        with self._lock:
            if order_type in self._order_types:
                return
            self._order_types.append(order_type)
        logger.debug("Registered order type %s", order_type)

    def unregister(self, order_type: str) -> bool:
        with self._lock:
            if order_type not in self._order_types:
                return False
            self._order_types.remove(order_type)
            return True

    def order_types(self) -> tuple[str, ...]:
        """Registered types in registration order."""
        with self._lock:
            return tuple(self._order_types)

    def __contains__(self, order_type: object) -> bool:
        with self._lock:
            return order_type in self._order_types

    def __len__(self) -> int:
        with self._lock:
            return len(self._order_types)


__all__ = ["OrderTypeRegistry"]
