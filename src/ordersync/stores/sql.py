"""
SQLAlchemy store adapters.

Dialect-agnostic SQLAlchemy Core implementations of the store protocols,
tested against SQLite (aiosqlite) and intended for PostgreSQL (asyncpg) in
production. Every adapter accepts an AsyncEngine or an AsyncConnection;
see ordersync.stores._connection.execute_with_connection.

Pending-set queries are a closed mapping from QueryKind to a statically
defined select(); callers can only choose which one runs and bind its
parameters, never alter its text.

Example:
    >>> engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    >>> await create_tables(engine)
    >>> legacy = SQLAlchemyLegacyOrderStore(engine)
    >>> queries = SQLAlchemyPendingQueries(engine)
    >>> await queries.ids(QueryKind.MISSING_IN_STRUCTURED, ["shop_order"], limit=10)
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Sequence
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import Select, bindparam, delete, func, insert, select, update
from sqlalchemy.engine import Row
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from ordersync.models import (
    AUTO_DRAFT_STATUS,
    PLACEHOLDER_ORDER_TYPE,
    DeletionMarker,
    OrderRecord,
    QueryKind,
    Store,
)
from ordersync.observability import (
    ATTR_DB_OPERATION,
    ATTR_DB_SYSTEM,
    ATTR_LIMIT,
    ATTR_ORDER_ID,
    ATTR_QUERY_KIND,
    Tracer,
    create_tracer,
)
from ordersync.stores._connection import dialect_name, execute_with_connection
from ordersync.stores.schema import (
    deletion_markers,
    from_utc,
    legacy_content,
    options,
    orders,
    to_utc,
)

logger = logging.getLogger(__name__)

TRASH_STATUS = "trash"


# =============================================================================
# Pending-set queries
# =============================================================================


def _order_types_param() -> Any:
    return bindparam("order_types", expanding=True)


_LEGACY_JOIN_ORDERS = legacy_content.outerjoin(orders, legacy_content.c.id == orders.c.id)
_ORDERS_JOIN_LEGACY = orders.outerjoin(legacy_content, orders.c.id == legacy_content.c.id)
_ORDERS_INNER_LEGACY = orders.join(legacy_content, orders.c.id == legacy_content.c.id)

PENDING_QUERIES: dict[QueryKind, Select[Any]] = {
    QueryKind.MISSING_IN_STRUCTURED: (
        select(legacy_content.c.id.label("id"))
        .select_from(_LEGACY_JOIN_ORDERS)
        .where(
            legacy_content.c.content_type.in_(_order_types_param()),
            legacy_content.c.status != AUTO_DRAFT_STATUS,
            orders.c.id.is_(None),
        )
    ),
    QueryKind.MISSING_IN_LEGACY: (
        select(orders.c.id.label("id"))
        .select_from(_ORDERS_JOIN_LEGACY)
        .where(
            orders.c.status != AUTO_DRAFT_STATUS,
            (legacy_content.c.id.is_(None))
            | (legacy_content.c.content_type == PLACEHOLDER_ORDER_TYPE),
        )
    ),
    QueryKind.STRUCTURED_NEWER: (
        select(orders.c.id.label("id"))
        .select_from(_ORDERS_INNER_LEGACY)
        .where(
            legacy_content.c.content_type.in_(_order_types_param()),
            orders.c.updated_at > legacy_content.c.modified_at,
        )
    ),
    QueryKind.LEGACY_NEWER: (
        select(orders.c.id.label("id"))
        .select_from(_ORDERS_INNER_LEGACY)
        .where(
            legacy_content.c.content_type.in_(_order_types_param()),
            orders.c.updated_at < legacy_content.c.modified_at,
        )
    ),
}
"""One static query per QueryKind, each selecting a single ``id`` column."""

_USES_ORDER_TYPES = frozenset(
    {
        QueryKind.MISSING_IN_STRUCTURED,
        QueryKind.STRUCTURED_NEWER,
        QueryKind.LEGACY_NEWER,
    }
)


class SQLAlchemyPendingQueries:
    """
    PendingQueries implementation running the static PENDING_QUERIES.

    Args:
        conn: Database engine or connection
        tracer: Optional custom Tracer instance
        enable_tracing: Whether to enable OpenTelemetry tracing
    """

    def __init__(
        self,
        conn: AsyncConnection | AsyncEngine,
        *,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._conn = conn

    @staticmethod
    def _params(kind: QueryKind, order_types: Sequence[str]) -> dict[str, Any]:
        if kind in _USES_ORDER_TYPES:
            return {"order_types": list(order_types)}
        return {}

    async def ids(
        self,
        kind: QueryKind,
        order_types: Sequence[str],
        limit: int,
    ) -> list[int]:
        query = PENDING_QUERIES[kind]
        stmt = query.order_by(query.selected_columns.id.asc()).limit(limit)
        with self._tracer.span(
            "ordersync.pending_queries.ids",
            {
                ATTR_QUERY_KIND: kind.value,
                ATTR_LIMIT: limit,
                ATTR_DB_SYSTEM: dialect_name(self._conn),
                ATTR_DB_OPERATION: "SELECT",
            },
        ):
            async with execute_with_connection(self._conn, transactional=False) as conn:
                result = await conn.execute(stmt, self._params(kind, order_types))
                return [int(row.id) for row in result]

    async def count(self, kind: QueryKind, order_types: Sequence[str]) -> int:
        stmt = select(func.count()).select_from(PENDING_QUERIES[kind].subquery())
        with self._tracer.span(
            "ordersync.pending_queries.count",
            {
                ATTR_QUERY_KIND: kind.value,
                ATTR_DB_SYSTEM: dialect_name(self._conn),
                ATTR_DB_OPERATION: "SELECT",
            },
        ):
            async with execute_with_connection(self._conn, transactional=False) as conn:
                result = await conn.execute(stmt, self._params(kind, order_types))
                return int(result.scalar_one())


# =============================================================================
# Order stores
# =============================================================================


class SQLAlchemyLegacyOrderStore:
    """
    LegacyOrderStore over the ordersync_legacy_content table.

    The content type column holds the order subtype, or
    PLACEHOLDER_ORDER_TYPE for rows that only reserve an id.
    """

    def __init__(
        self,
        conn: AsyncConnection | AsyncEngine,
        *,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._conn = conn

    @property
    def store(self) -> Store:
        return Store.LEGACY

    @staticmethod
    def _values(record: OrderRecord) -> dict[str, Any]:
        return {
            "content_type": record.order_type,
            "status": record.status,
            "modified_at": to_utc(record.updated_at),
            "data": record.data,
        }

    @staticmethod
    def _to_record(row: Row[Any]) -> OrderRecord:
        return OrderRecord(
            id=row.id,
            order_type=row.content_type,
            status=row.status,
            updated_at=from_utc(row.modified_at),
            data=row.data or {},
        )

    async def read(self, order_id: int) -> OrderRecord | None:
        with self._tracer.span("ordersync.legacy_store.read", {ATTR_ORDER_ID: order_id}):
            async with execute_with_connection(self._conn, transactional=False) as conn:
                result = await conn.execute(
                    select(legacy_content).where(legacy_content.c.id == order_id)
                )
                row = result.first()
        if row is None or row.content_type == PLACEHOLDER_ORDER_TYPE:
            return None
        return self._to_record(row)

    async def write(self, record: OrderRecord) -> None:
        values = self._values(record)
        with self._tracer.span("ordersync.legacy_store.write", {ATTR_ORDER_ID: record.id}):
            async with execute_with_connection(self._conn) as conn:
                result = await conn.execute(
                    update(legacy_content).where(legacy_content.c.id == record.id).values(**values)
                )
                if result.rowcount == 0:
                    await conn.execute(insert(legacy_content).values(id=record.id, **values))

    async def write_placeholder(self, order_id: int) -> bool:
        with self._tracer.span(
            "ordersync.legacy_store.write_placeholder", {ATTR_ORDER_ID: order_id}
        ):
            async with execute_with_connection(self._conn) as conn:
                result = await conn.execute(
                    select(legacy_content.c.id).where(legacy_content.c.id == order_id)
                )
                if result.first() is not None:
                    return False
                await conn.execute(
                    insert(legacy_content).values(
                        id=order_id,
                        content_type=PLACEHOLDER_ORDER_TYPE,
                        status="draft",
                        modified_at=to_utc(datetime.now(UTC)),
                        data={},
                    )
                )
                return True

    async def exists(self, order_id: int) -> bool:
        async with execute_with_connection(self._conn, transactional=False) as conn:
            result = await conn.execute(
                select(legacy_content.c.id).where(legacy_content.c.id == order_id)
            )
            return result.first() is not None

    async def delete(self, order_id: int, hard: bool = True) -> None:
        with self._tracer.span("ordersync.legacy_store.delete", {ATTR_ORDER_ID: order_id}):
            async with execute_with_connection(self._conn) as conn:
                if hard:
                    await conn.execute(delete(legacy_content).where(legacy_content.c.id == order_id))
                else:
                    await conn.execute(
                        update(legacy_content)
                        .where(legacy_content.c.id == order_id)
                        .values(status=TRASH_STATUS)
                    )


class SQLAlchemyStructuredOrderStore:
    """StructuredOrderStore over the ordersync_orders table."""

    def __init__(
        self,
        conn: AsyncConnection | AsyncEngine,
        *,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._conn = conn

    @property
    def store(self) -> Store:
        return Store.STRUCTURED

    async def read(self, order_id: int) -> OrderRecord | None:
        with self._tracer.span("ordersync.structured_store.read", {ATTR_ORDER_ID: order_id}):
            async with execute_with_connection(self._conn, transactional=False) as conn:
                result = await conn.execute(select(orders).where(orders.c.id == order_id))
                row = result.first()
        if row is None:
            return None
        return OrderRecord(
            id=row.id,
            order_type=row.order_type,
            status=row.status,
            updated_at=from_utc(row.updated_at),
            data=row.data or {},
        )

    async def write(self, record: OrderRecord) -> None:
        values = {
            "order_type": record.order_type,
            "status": record.status,
            "updated_at": to_utc(record.updated_at),
            "data": record.data,
        }
        with self._tracer.span("ordersync.structured_store.write", {ATTR_ORDER_ID: record.id}):
            async with execute_with_connection(self._conn) as conn:
                result = await conn.execute(
                    update(orders).where(orders.c.id == record.id).values(**values)
                )
                if result.rowcount == 0:
                    await conn.execute(insert(orders).values(id=record.id, **values))

    async def exists(self, order_id: int) -> bool:
        async with execute_with_connection(self._conn, transactional=False) as conn:
            result = await conn.execute(select(orders.c.id).where(orders.c.id == order_id))
            return result.first() is not None

    async def delete(self, order_id: int, hard: bool = True) -> None:
        with self._tracer.span("ordersync.structured_store.delete", {ATTR_ORDER_ID: order_id}):
            async with execute_with_connection(self._conn) as conn:
                if hard:
                    await conn.execute(delete(orders).where(orders.c.id == order_id))
                else:
                    await conn.execute(
                        update(orders).where(orders.c.id == order_id).values(status=TRASH_STATUS)
                    )

    async def list_auto_drafts(self, updated_before: datetime) -> list[int]:
        async with execute_with_connection(self._conn, transactional=False) as conn:
            result = await conn.execute(
                select(orders.c.id)
                .where(
                    orders.c.status == AUTO_DRAFT_STATUS,
                    orders.c.updated_at < to_utc(updated_before),
                )
                .order_by(orders.c.id.asc())
            )
            return [int(order_id) for order_id in result.scalars()]


# =============================================================================
# Deletion markers and options
# =============================================================================


class SQLAlchemyDeletionMarkerStore:
    """DeletionMarkerStore over the ordersync_deletion_markers table."""

    def __init__(
        self,
        conn: AsyncConnection | AsyncEngine,
        *,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._conn = conn

    async def append(
        self,
        order_id: int,
        source: Store,
        created_at: datetime | None = None,
    ) -> DeletionMarker:
        created = created_at or datetime.now(UTC)
        with self._tracer.span("ordersync.deletion_markers.append", {ATTR_ORDER_ID: order_id}):
            async with execute_with_connection(self._conn) as conn:
                result = await conn.execute(
                    insert(deletion_markers).values(
                        order_id=order_id,
                        source=source.value,
                        created_at=to_utc(created),
                    )
                )
                marker_id = result.inserted_primary_key[0]
        return DeletionMarker(
            marker_id=int(marker_id),
            order_id=order_id,
            source=source,
            created_at=created,
        )

    async def list(self, source: Store, limit: int) -> list[int]:
        async with execute_with_connection(self._conn, transactional=False) as conn:
            result = await conn.execute(
                select(deletion_markers.c.order_id)
                .where(deletion_markers.c.source == source.value)
                .distinct()
                .order_by(deletion_markers.c.order_id.asc())
                .limit(limit)
            )
            return [int(order_id) for order_id in result.scalars()]

    async def list_for_ids(
        self,
        source: Store,
        order_ids: Collection[int],
    ) -> list[DeletionMarker]:
        if not order_ids:
            return []
        async with execute_with_connection(self._conn, transactional=False) as conn:
            result = await conn.execute(
                select(deletion_markers)
                .where(
                    deletion_markers.c.source == source.value,
                    deletion_markers.c.order_id.in_(list(order_ids)),
                )
                .order_by(deletion_markers.c.order_id.desc(), deletion_markers.c.id.desc())
            )
            return [
                DeletionMarker(
                    marker_id=int(row.id),
                    order_id=int(row.order_id),
                    source=Store(row.source),
                    created_at=from_utc(row.created_at),
                )
                for row in result
            ]

    async def exists(self, order_id: int, source: Store) -> bool:
        async with execute_with_connection(self._conn, transactional=False) as conn:
            result = await conn.execute(
                select(deletion_markers.c.id)
                .where(
                    deletion_markers.c.order_id == order_id,
                    deletion_markers.c.source == source.value,
                )
                .limit(1)
            )
            return result.first() is not None

    async def count(self, source: Store) -> int:
        async with execute_with_connection(self._conn, transactional=False) as conn:
            result = await conn.execute(
                select(func.count(func.distinct(deletion_markers.c.order_id))).where(
                    deletion_markers.c.source == source.value
                )
            )
            return int(result.scalar_one())

    async def remove(self, marker_ids: Collection[int]) -> int:
        if not marker_ids:
            return 0
        with self._tracer.span(
            "ordersync.deletion_markers.remove",
            {ATTR_DB_OPERATION: "DELETE"},
        ):
            async with execute_with_connection(self._conn) as conn:
                result = await conn.execute(
                    delete(deletion_markers).where(deletion_markers.c.id.in_(list(marker_ids)))
                )
                return int(result.rowcount)


class SQLAlchemyOptionStore:
    """OptionStore over the ordersync_options table."""

    def __init__(self, conn: AsyncConnection | AsyncEngine) -> None:
        self._conn = conn

    async def get(self, key: str) -> str | None:
        async with execute_with_connection(self._conn, transactional=False) as conn:
            result = await conn.execute(select(options.c.value).where(options.c.key == key))
            return result.scalar_one_or_none()

    async def set(self, key: str, value: str) -> None:
        async with execute_with_connection(self._conn) as conn:
            result = await conn.execute(
                update(options).where(options.c.key == key).values(value=value)
            )
            if result.rowcount == 0:
                await conn.execute(insert(options).values(key=key, value=value))

    async def delete(self, key: str) -> None:
        async with execute_with_connection(self._conn) as conn:
            await conn.execute(delete(options).where(options.c.key == key))


__all__ = [
    "PENDING_QUERIES",
    "SQLAlchemyPendingQueries",
    "SQLAlchemyLegacyOrderStore",
    "SQLAlchemyStructuredOrderStore",
    "SQLAlchemyDeletionMarkerStore",
    "SQLAlchemyOptionStore",
]
