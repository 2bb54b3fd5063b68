"""
Connection handling helper for the SQLAlchemy store adapters.

Every adapter accepts either an AsyncEngine (each call opens its own
connection or transaction) or an AsyncConnection (the caller owns the
transaction, so several adapters can share one unit of work).
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine


@asynccontextmanager
async def execute_with_connection(
    conn: AsyncConnection | AsyncEngine,
    transactional: bool = True,
) -> AsyncIterator[AsyncConnection]:
    """
    Context manager for executing database operations.

    Args:
        conn: Database connection or engine
        transactional: If True, wrap in transaction (begin).
                       If False, use bare connection (connect).
                       Only applies when conn is an AsyncEngine.

    Yields:
        AsyncConnection ready for execute() calls

    Example:
        >>> async with execute_with_connection(self._conn) as conn:
        ...     await conn.execute(stmt, params)
    """
    if isinstance(conn, AsyncEngine):
        if transactional:
            async with conn.begin() as connection:
                yield connection
        else:
            async with conn.connect() as connection:
                yield connection
    else:
        # Caller is responsible for transaction management
        yield conn


def dialect_name(conn: AsyncConnection | AsyncEngine) -> str:
    """Database system name used for the db.system span attribute."""
    return conn.dialect.name
