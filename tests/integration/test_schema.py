"""Integration tests for table management helpers."""

from datetime import UTC, datetime, timedelta, timezone

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine

from ordersync.stores.schema import (
    create_tables,
    drop_tables,
    from_utc,
    get_missing_tables,
    metadata,
    tables_exist,
    to_utc,
)

pytestmark = [pytest.mark.sqlite]


class TestTableManagement:
    """create_tables / drop_tables / get_missing_tables."""

    @pytest.mark.asyncio
    async def test_tables_created_by_fixture(self, sqlite_engine: AsyncEngine) -> None:
        assert await tables_exist(sqlite_engine)
        assert await get_missing_tables(sqlite_engine) == []

    @pytest.mark.asyncio
    async def test_drop_and_recreate(self, sqlite_engine: AsyncEngine) -> None:
        await drop_tables(sqlite_engine)

        assert not await tables_exist(sqlite_engine)
        assert sorted(await get_missing_tables(sqlite_engine)) == sorted(metadata.tables)

        await create_tables(sqlite_engine)
        assert await tables_exist(sqlite_engine)

    @pytest.mark.asyncio
    async def test_create_is_idempotent(self, sqlite_engine: AsyncEngine) -> None:
        await create_tables(sqlite_engine)
        assert await tables_exist(sqlite_engine)


class TestTimestamps:
    """Naive UTC conversion helpers."""

    def test_round_trip_keeps_instant(self) -> None:
        aware = datetime(2024, 3, 1, 14, 0, tzinfo=timezone(timedelta(hours=2)))
        stored = to_utc(aware)

        assert stored.tzinfo is None
        assert stored == datetime(2024, 3, 1, 12, 0)
        assert from_utc(stored) == aware
        assert from_utc(stored).tzinfo is UTC
