"""
SQLAlchemy schema for both order representations and the engine's own state.

Tables:
    - ordersync_legacy_content: generic content rows; orders are rows whose
      content_type is a registered order subtype, placeholders reserve ids
    - ordersync_orders: purpose-built orders table
    - ordersync_deletion_markers: append-only unmirrored deletions
    - ordersync_options: persisted flags and counters

All timestamps are stored as naive UTC.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    inspect,
)
from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)

metadata = MetaData()

legacy_content = Table(
    "ordersync_legacy_content",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=False),
    Column("content_type", String(64), nullable=False, index=True),
    Column("status", String(32), nullable=False),
    Column("modified_at", DateTime(), nullable=False),
    Column("data", JSON, nullable=False),
)

orders = Table(
    "ordersync_orders",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=False),
    Column("order_type", String(64), nullable=False),
    Column("status", String(32), nullable=False, index=True),
    Column("updated_at", DateTime(), nullable=False),
    Column("data", JSON, nullable=False),
)

deletion_markers = Table(
    "ordersync_deletion_markers",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("order_id", Integer, nullable=False, index=True),
    Column("source", String(16), nullable=False, index=True),
    Column("created_at", DateTime(), nullable=False),
)

options = Table(
    "ordersync_options",
    metadata,
    Column("key", String(191), primary_key=True),
    Column("value", Text, nullable=False),
)


def to_utc(value: datetime) -> datetime:
    """Normalise a datetime to naive UTC for storage."""
    if value.tzinfo is not None:
        value = value.astimezone(UTC)
    return value.replace(tzinfo=None)


def from_utc(value: datetime) -> datetime:
    """Attach UTC to a datetime read back from storage."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


async def create_tables(engine: AsyncEngine) -> None:
    """Create all ordersync tables that do not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
    logger.info("Created ordersync tables")


async def drop_tables(engine: AsyncEngine) -> None:
    """Drop all ordersync tables."""
    async with engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)
    logger.info("Dropped ordersync tables")


async def get_missing_tables(engine: AsyncEngine) -> list[str]:
    """Names of ordersync tables absent from the database."""
    async with engine.connect() as conn:
        existing = await conn.run_sync(lambda sync_conn: set(inspect(sync_conn).get_table_names()))
    return [name for name in metadata.tables if name not in existing]


async def tables_exist(engine: AsyncEngine) -> bool:
    """True if every ordersync table exists."""
    return not await get_missing_tables(engine)


__all__ = [
    "metadata",
    "legacy_content",
    "orders",
    "deletion_markers",
    "options",
    "to_utc",
    "from_utc",
    "create_tables",
    "drop_tables",
    "get_missing_tables",
    "tables_exist",
]
