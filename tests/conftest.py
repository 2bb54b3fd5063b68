"""
Shared pytest fixtures for the ordersync tests.

This module provides:
- Order fixtures (order_factory, fixed timestamps)
- In-memory store fixtures (legacy_store, structured_store, marker_store, ...)
- Engine component fixtures (sync_state, resolver, synchronizer)
- SQLite fixtures (sqlite_engine) backed by an in-memory aiosqlite database
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool

from ordersync.config import AUTHORITATIVE_OPTION, DATA_SYNC_ENABLED_OPTION, SyncConfig
from ordersync.models import OrderRecord
from ordersync.observability import MockTracer
from ordersync.registry import OrderTypeRegistry
from ordersync.state import SyncState
from ordersync.stores.in_memory import (
    InMemoryDeletionMarkerStore,
    InMemoryLegacyOrderStore,
    InMemoryOptionStore,
    InMemoryPendingQueries,
    InMemoryStructuredOrderStore,
)
from ordersync.stores.schema import create_tables
from ordersync.synchronizer import OrderSynchronizer

ORDER_TYPE = "shop_order"

# ============================================================================
# Timestamps
# ============================================================================

T0 = datetime(2024, 3, 1, 12, 0, 0, tzinfo=UTC)
T1 = T0 + timedelta(hours=1)


@pytest.fixture
def t0() -> datetime:
    """Older of the two fixed timestamps."""
    return T0


@pytest.fixture
def t1() -> datetime:
    """Newer of the two fixed timestamps."""
    return T1


# ============================================================================
# Orders
# ============================================================================


@pytest.fixture
def order_factory() -> Callable[..., OrderRecord]:
    """
    Factory for OrderRecord instances.

    Example:
        def test_something(order_factory):
            order = order_factory(42, updated_at=T1, status="completed")
    """

    def _create(
        order_id: int,
        *,
        order_type: str = ORDER_TYPE,
        status: str = "processing",
        updated_at: datetime = T0,
        **data: Any,
    ) -> OrderRecord:
        return OrderRecord(
            id=order_id,
            order_type=order_type,
            status=status,
            updated_at=updated_at,
            data=data or {"total": "10.00"},
        )

    return _create


# ============================================================================
# In-memory stores
# ============================================================================


@pytest.fixture
def registry() -> OrderTypeRegistry:
    return OrderTypeRegistry([ORDER_TYPE])


@pytest.fixture
def legacy_store() -> InMemoryLegacyOrderStore:
    return InMemoryLegacyOrderStore()


@pytest.fixture
def structured_store() -> InMemoryStructuredOrderStore:
    return InMemoryStructuredOrderStore()


@pytest.fixture
def marker_store() -> InMemoryDeletionMarkerStore:
    return InMemoryDeletionMarkerStore()


@pytest.fixture
def option_store() -> InMemoryOptionStore:
    return InMemoryOptionStore()


@pytest.fixture
def pending_queries(
    legacy_store: InMemoryLegacyOrderStore,
    structured_store: InMemoryStructuredOrderStore,
) -> InMemoryPendingQueries:
    return InMemoryPendingQueries(legacy_store, structured_store)


@pytest.fixture
def sync_config() -> SyncConfig:
    return SyncConfig()


@pytest.fixture
def sync_state(option_store: InMemoryOptionStore, sync_config: SyncConfig) -> SyncState:
    return SyncState(option_store, sync_config)


@pytest.fixture
def mock_tracer() -> MockTracer:
    return MockTracer()


@pytest_asyncio.fixture
async def structured_authoritative(option_store: InMemoryOptionStore) -> None:
    """Make the structured store authoritative."""
    await option_store.set(AUTHORITATIVE_OPTION, "yes")


@pytest_asyncio.fixture
async def data_sync_enabled(option_store: InMemoryOptionStore) -> None:
    """Turn on immediate mirroring of writes."""
    await option_store.set(DATA_SYNC_ENABLED_OPTION, "yes")


@pytest.fixture
def synchronizer(
    legacy_store: InMemoryLegacyOrderStore,
    structured_store: InMemoryStructuredOrderStore,
    marker_store: InMemoryDeletionMarkerStore,
    option_store: InMemoryOptionStore,
    pending_queries: InMemoryPendingQueries,
    registry: OrderTypeRegistry,
    sync_config: SyncConfig,
    mock_tracer: MockTracer,
) -> OrderSynchronizer:
    """OrderSynchronizer over the in-memory stores."""
    return OrderSynchronizer(
        legacy_store=legacy_store,
        structured_store=structured_store,
        markers=marker_store,
        options=option_store,
        queries=pending_queries,
        registry=registry,
        config=sync_config,
        tracer=mock_tracer,
    )


# ============================================================================
# SQLite
# ============================================================================


@pytest_asyncio.fixture
async def sqlite_engine() -> AsyncGenerator[AsyncEngine, None]:
    """
    In-memory SQLite engine with the ordersync tables created.

    StaticPool keeps a single connection so every adapter sees the same
    in-memory database.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await create_tables(engine)
    try:
        yield engine
    finally:
        await engine.dispose()
