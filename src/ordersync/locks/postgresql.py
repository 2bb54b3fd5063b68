"""
PostgreSQL advisory lock lease for multi-process deployments.

Advisory locks are session-level: each held lease keeps its own pooled
connection open until it is released, and is released automatically if
that connection drops.

Usage:
    >>> locks = PostgreSQLLockManager(engine)
    >>> async with locks.acquire("ordersync:batch", timeout=5.0):
    ...     await synchronizer.process_batch(ids)
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from ordersync.locks.interface import LockAcquisitionError, LockInfo
from ordersync.observability import (
    ATTR_LOCK_ACQUIRED,
    ATTR_LOCK_ID,
    ATTR_LOCK_KEY,
    ATTR_LOCK_TIMEOUT,
    Tracer,
    create_tracer,
)

logger = logging.getLogger(__name__)

_LOCK = text("SELECT pg_advisory_lock(:lock_id)")
_TRY_LOCK = text("SELECT pg_try_advisory_lock(:lock_id)")
_UNLOCK = text("SELECT pg_advisory_unlock(:lock_id)")


def key_to_lock_id(key: str) -> int:
    """
    Convert a string key to a PostgreSQL advisory lock id.

    Uses the first 8 bytes of the SHA-256 hash, masked to 63 bits so the
    value fits a signed bigint.
    """
    digest = hashlib.sha256(key.encode()).digest()
    return int.from_bytes(digest[:8], byteorder="big") & 0x7FFFFFFFFFFFFFFF


class PostgreSQLLockManager:
    """
    Lease backed by PostgreSQL advisory locks.

    Args:
        engine: Async engine for a postgresql+asyncpg database
        holder_id: Optional identifier for this lock holder (for debugging)
        tracer: Optional custom Tracer instance
        enable_tracing: Whether to enable OpenTelemetry tracing

    Note:
        Each held lock pins one pooled connection.
    """

    def __init__(
        self,
        engine: AsyncEngine,
        *,
        holder_id: str | None = None,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._engine = engine
        self._holder_id = holder_id
        self._held: set[str] = set()

    @asynccontextmanager
    async def acquire(
        self,
        key: str,
        *,
        timeout: float | None = None,
        retry_interval: float = 0.1,
    ) -> AsyncIterator[LockInfo]:
        """
        Hold an advisory lock for the duration of the context.

        Args:
            key: String key identifying the lock
            timeout: Maximum seconds to wait (None = wait forever)
            retry_interval: Seconds between attempts when a timeout is set

        Raises:
            LockAcquisitionError: If the lock cannot be acquired within timeout
        """
        lock_id = key_to_lock_id(key)

        with self._tracer.span(
            "ordersync.lock.acquire",
            {
                ATTR_LOCK_KEY: key,
                ATTR_LOCK_ID: lock_id,
                ATTR_LOCK_TIMEOUT: timeout if timeout is not None else -1,
            },
        ) as span:
            conn = await self._acquire(key, lock_id, timeout, retry_interval)
            if span:
                span.set_attribute(ATTR_LOCK_ACQUIRED, True)

        self._held.add(key)
        logger.debug("Acquired advisory lock: key=%s, lock_id=%d", key, lock_id)
        try:
            yield LockInfo(
                key=key,
                lock_id=lock_id,
                acquired_at=datetime.now(UTC),
                holder_id=self._holder_id,
            )
        finally:
            await self._release(key, conn, lock_id)

    async def _acquire(
        self,
        key: str,
        lock_id: int,
        timeout: float | None,
        retry_interval: float,
    ) -> AsyncConnection:
        conn = await self._engine.connect()
        try:
            if timeout is None:
                await conn.execute(_LOCK, {"lock_id": lock_id})
                await conn.commit()
                return conn

            loop = asyncio.get_running_loop()
            deadline = loop.time() + timeout
            while True:
                result = await conn.execute(_TRY_LOCK, {"lock_id": lock_id})
                acquired = result.scalar()
                await conn.commit()
                if acquired:
                    return conn
                if loop.time() >= deadline:
                    raise LockAcquisitionError(
                        key=key,
                        reason=f"Timeout after {timeout}s",
                        timeout=timeout,
                    )
                await asyncio.sleep(retry_interval)

        except LockAcquisitionError:
            await conn.close()
            raise
        except Exception as e:
            await conn.close()
            raise LockAcquisitionError(key=key, reason=f"Database error: {e}") from e

    async def _release(self, key: str, conn: AsyncConnection, lock_id: int) -> None:
        try:
            await conn.execute(_UNLOCK, {"lock_id": lock_id})
            await conn.commit()
            logger.debug("Released advisory lock: key=%s, lock_id=%d", key, lock_id)
        except Exception as e:
            logger.warning("Error releasing advisory lock: key=%s, error=%s", key, e)
        finally:
            self._held.discard(key)
            await conn.close()

    async def is_held(self, key: str) -> bool:
        return key in self._held


__all__ = ["PostgreSQLLockManager", "key_to_lock_id"]
