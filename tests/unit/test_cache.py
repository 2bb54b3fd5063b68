"""
Unit tests for order cache suppression.

Tests cover:
- OrderCacheController suppress/restore bookkeeping
- InMemoryOrderCache honouring suppression
"""

from unittest.mock import AsyncMock

import pytest

from ordersync.cache import CacheController, InMemoryOrderCache, OrderCacheController
from ordersync.models import OrderRecord


class TestOrderCacheController:
    """Tests for OrderCacheController."""

    def test_implements_protocol(self) -> None:
        assert isinstance(OrderCacheController(), CacheController)

    def test_suppress_and_restore(self) -> None:
        controller = OrderCacheController()
        controller.suppress("order")
        assert controller.is_suppressed("order")
        controller.restore("order")
        assert not controller.is_suppressed("order")

    def test_restore_without_suppress_is_noop(self) -> None:
        controller = OrderCacheController()
        controller.restore("order")
        assert not controller.is_suppressed("order")

    def test_restore_leaves_operator_disable_alone(self) -> None:
        controller = OrderCacheController()
        controller.disable("order")
        controller.suppress("order")
        controller.restore("order")
        assert controller.is_suppressed("order")

    def test_enable_clears_everything(self) -> None:
        controller = OrderCacheController()
        controller.suppress("order")
        controller.enable("order")
        assert not controller.is_suppressed("order")

    def test_entity_types_are_independent(self) -> None:
        controller = OrderCacheController()
        controller.suppress("order")
        assert not controller.is_suppressed("refund")


class TestInMemoryOrderCache:
    """Tests for InMemoryOrderCache."""

    @pytest.mark.asyncio
    async def test_read_through(self) -> None:
        record = OrderRecord(id=1, order_type="shop_order")
        loader = AsyncMock(return_value=record)
        cache = InMemoryOrderCache(loader, OrderCacheController())

        assert await cache.get(1) == record
        assert await cache.get(1) == record

        loader.assert_awaited_once_with(1)
        assert cache.hits == 1
        assert cache.misses == 1

    @pytest.mark.asyncio
    async def test_suppressed_cache_always_loads(self) -> None:
        record = OrderRecord(id=1, order_type="shop_order")
        loader = AsyncMock(return_value=record)
        controller = OrderCacheController()
        cache = InMemoryOrderCache(loader, controller)
        await cache.get(1)

        controller.suppress("order")
        await cache.get(1)
        await cache.get(1)

        assert loader.await_count == 3
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_missing_records_are_not_cached(self) -> None:
        loader = AsyncMock(return_value=None)
        cache = InMemoryOrderCache(loader, OrderCacheController())
        assert await cache.get(9) is None
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_invalidate(self) -> None:
        loader = AsyncMock(side_effect=lambda i: OrderRecord(id=i, order_type="shop_order"))
        cache = InMemoryOrderCache(loader, OrderCacheController())
        await cache.get(1)
        await cache.get(2)

        cache.invalidate(1)
        assert len(cache) == 1
        cache.invalidate()
        assert len(cache) == 0
