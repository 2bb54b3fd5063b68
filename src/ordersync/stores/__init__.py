"""
Store adapters for ordersync.

Protocols describing what the engine needs from each collaborator, plus
in-memory implementations (tests, single process) and SQLAlchemy Core
implementations (SQLite via aiosqlite, PostgreSQL via asyncpg).
"""

from ordersync.stores.in_memory import (
    InMemoryDeletionMarkerStore,
    InMemoryLegacyOrderStore,
    InMemoryOptionStore,
    InMemoryPendingQueries,
    InMemoryStructuredOrderStore,
)
from ordersync.stores.interface import (
    BulkMigrator,
    DeletionMarkerStore,
    LegacyOrderStore,
    OptionStore,
    OrderStore,
    PendingQueries,
    StructuredOrderStore,
)
from ordersync.stores.schema import (
    create_tables,
    drop_tables,
    get_missing_tables,
    metadata,
    tables_exist,
)
from ordersync.stores.sql import (
    PENDING_QUERIES,
    SQLAlchemyDeletionMarkerStore,
    SQLAlchemyLegacyOrderStore,
    SQLAlchemyOptionStore,
    SQLAlchemyPendingQueries,
    SQLAlchemyStructuredOrderStore,
)

__all__ = [
    # Protocols
    "OrderStore",
    "LegacyOrderStore",
    "StructuredOrderStore",
    "DeletionMarkerStore",
    "OptionStore",
    "PendingQueries",
    "BulkMigrator",
    # In-memory
    "InMemoryLegacyOrderStore",
    "InMemoryStructuredOrderStore",
    "InMemoryDeletionMarkerStore",
    "InMemoryOptionStore",
    "InMemoryPendingQueries",
    # SQLAlchemy
    "PENDING_QUERIES",
    "SQLAlchemyPendingQueries",
    "SQLAlchemyLegacyOrderStore",
    "SQLAlchemyStructuredOrderStore",
    "SQLAlchemyDeletionMarkerStore",
    "SQLAlchemyOptionStore",
    # Schema
    "metadata",
    "create_tables",
    "drop_tables",
    "get_missing_tables",
    "tables_exist",
]
