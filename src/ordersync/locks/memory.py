"""
In-process lease backed by asyncio locks.

Enough for a single process running the scheduler; use
PostgreSQLLockManager when several processes share the stores.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from ordersync.locks.interface import LockAcquisitionError, LockInfo
from ordersync.observability import (
    ATTR_LOCK_ACQUIRED,
    ATTR_LOCK_KEY,
    ATTR_LOCK_TIMEOUT,
    Tracer,
    create_tracer,
)

logger = logging.getLogger(__name__)


class InMemoryLockManager:
    """
    Keyed asyncio locks.

    Example:
        >>> locks = InMemoryLockManager()
        >>> async with locks.acquire("ordersync:batch", timeout=1.0):
        ...     await synchronizer.process_batch(ids)
    """

    def __init__(
        self,
        *,
        holder_id: str | None = None,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._holder_id = holder_id
        self._locks: dict[str, asyncio.Lock] = {}
        self._ids = itertools.count(1)

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    @asynccontextmanager
    async def acquire(
        self,
        key: str,
        *,
        timeout: float | None = None,
    ) -> AsyncIterator[LockInfo]:
        lock = self._lock_for(key)

        with self._tracer.span(
            "ordersync.lock.acquire",
            {
                ATTR_LOCK_KEY: key,
                ATTR_LOCK_TIMEOUT: timeout if timeout is not None else -1,
            },
        ) as span:
            try:
                if timeout is None:
                    await lock.acquire()
                else:
                    await asyncio.wait_for(lock.acquire(), timeout=timeout)
            except TimeoutError as e:
                if span:
                    span.set_attribute(ATTR_LOCK_ACQUIRED, False)
                raise LockAcquisitionError(
                    key=key,
                    reason=f"Timeout after {timeout}s",
                    timeout=timeout,
                ) from e
            if span:
                span.set_attribute(ATTR_LOCK_ACQUIRED, True)

        logger.debug("Acquired lock: key=%s", key)
        try:
            yield LockInfo(
                key=key,
                lock_id=next(self._ids),
                acquired_at=datetime.now(UTC),
                holder_id=self._holder_id,
            )
        finally:
            lock.release()
            logger.debug("Released lock: key=%s", key)

    async def is_held(self, key: str) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()


__all__ = ["InMemoryLockManager"]
