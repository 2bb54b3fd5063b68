"""
In-process event bus for write-path events.

Write paths call ``await bus.publish([...])`` after persisting a change;
every handler subscribed to the event's class runs before publish()
returns. Handlers run one after another in subscription order, and a
failing handler is logged without stopping the others or the writer.
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

from ordersync.events import OrderEvent
from ordersync.observability import (
    ATTR_EVENT_ID,
    ATTR_EVENT_TYPE,
    ATTR_HANDLER_COUNT,
    ATTR_HANDLER_NAME,
    ATTR_HANDLER_SUCCESS,
    ATTR_ORDER_ID,
    Tracer,
    create_tracer,
)

logger = logging.getLogger(__name__)

OrderEventHandler = Callable[[Any], Awaitable[None]]
"""Coroutine function receiving one event."""


def _handler_name(handler: OrderEventHandler) -> str:
    return getattr(handler, "__qualname__", None) or type(handler).__name__


class InMemoryOrderEventBus:
    """
    Synchronous in-process dispatch of OrderEvent instances.

    Example:
        >>> bus = InMemoryOrderEventBus()
        >>> bus.subscribe(OrderDeleted, synchronizer.handle_order_deleted)
        >>> await bus.publish([OrderDeleted(order_id=7, store=Store.LEGACY, order_type="shop_order")])

    Thread Safety:
        - subscribe() and unsubscribe() are thread-safe
        - publish() must be awaited from the event loop
    """

    def __init__(
        self,
        *,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        self._subscribers: dict[type[OrderEvent], list[OrderEventHandler]] = defaultdict(list)
        self._lock = threading.RLock()
        self._stats = {
            "events_published": 0,
            "handlers_invoked": 0,
            "handler_errors": 0,
        }
        self._tracer = tracer or create_tracer(__name__, enable_tracing)

    def subscribe(self, event_type: type[OrderEvent], handler: OrderEventHandler) -> None:
        with self._lock:
            self._subscribers[event_type].append(handler)

        logger.debug(
            "Registered handler %s for %s",
            _handler_name(handler),
            event_type.__name__,
        )

    def unsubscribe(self, event_type: type[OrderEvent], handler: OrderEventHandler) -> bool:
        """
        Remove a handler.

        Returns:
            True if the handler was found and removed
        """
        with self._lock:
            handlers = self._subscribers.get(event_type, [])
            for i, registered in enumerate(handlers):
                if registered == handler:
                    handlers.pop(i)
                    return True
        return False

    async def publish(self, events: Sequence[OrderEvent]) -> None:
        """
        Dispatch events in order to their subscribers.

        Args:
            events: Events to publish
        """
        for event in events:
            await self._dispatch(event)
            self._stats["events_published"] += 1

    async def _dispatch(self, event: OrderEvent) -> None:
        with self._lock:
            handlers = list(self._subscribers.get(type(event), []))

        if not handlers:
            logger.debug("No handlers registered for %s", event.event_type)
            return

        with self._tracer.span(
            "ordersync.event_bus.dispatch",
            {
                ATTR_EVENT_TYPE: event.event_type,
                ATTR_EVENT_ID: str(event.event_id),
                ATTR_ORDER_ID: event.order_id,
                ATTR_HANDLER_COUNT: len(handlers),
            },
        ):
            for handler in handlers:
                await self._safe_handle(handler, event)

    async def _safe_handle(self, handler: OrderEventHandler, event: OrderEvent) -> None:
        name = _handler_name(handler)
        with self._tracer.span(
            "ordersync.event_bus.handle",
            {
                ATTR_EVENT_TYPE: event.event_type,
                ATTR_ORDER_ID: event.order_id,
                ATTR_HANDLER_NAME: name,
            },
        ) as span:
            try:
                await handler(event)
                if span:
                    span.set_attribute(ATTR_HANDLER_SUCCESS, True)
                self._stats["handlers_invoked"] += 1
            except Exception as e:
                if span:
                    span.set_attribute(ATTR_HANDLER_SUCCESS, False)
                    span.record_exception(e)
                self._stats["handler_errors"] += 1
                logger.error(
                    "Handler %s failed processing %s for order %s: %s",
                    name,
                    event.event_type,
                    event.order_id,
                    e,
                    exc_info=True,
                    extra={
                        "handler": name,
                        "event_type": event.event_type,
                        "event_id": str(event.event_id),
                    },
                )

    def get_stats(self) -> dict[str, int]:
        """Copy of the dispatch counters."""
        return dict(self._stats)

    def get_subscriber_count(self, event_type: type[OrderEvent] | None = None) -> int:
        with self._lock:
            if event_type is not None:
                return len(self._subscribers.get(event_type, []))
            return sum(len(h) for h in self._subscribers.values())


__all__ = ["InMemoryOrderEventBus", "OrderEventHandler"]
