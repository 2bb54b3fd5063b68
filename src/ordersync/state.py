"""
SyncState - authority flag and synchronization progress.

SyncState is the injected replacement for process-wide options: it reads
and writes the persisted authority flag, data-sync flag and initial
pending count through an OptionStore, and keeps a short-lived in-process
cache of the current pending count.

Lifecycle:
    - Created at process start with the option store and config
    - start_bulk_sync() snapshots the initial pending count
    - clear_sync_state() runs once the pending count reaches zero

The engine only reads the authority flag; flipping it is a cutover
performed by an external operator, gated on a zero pending count.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from ordersync.config import (
    AUTHORITATIVE_OPTION,
    DATA_SYNC_ENABLED_OPTION,
    INITIAL_PENDING_COUNT_OPTION,
    SyncConfig,
)
from ordersync.models import Store, SyncDirection
from ordersync.stores.interface import OptionStore

logger = logging.getLogger(__name__)

_TRUE_VALUES = frozenset({"yes", "true", "1", "on"})


def option_to_bool(value: str | None) -> bool:
    """Interpret a persisted option as a boolean ('yes', 'true', '1', 'on')."""
    return value is not None and value.strip().lower() in _TRUE_VALUES


class SyncState:
    """
    Authority and progress state backed by persisted options.

    Example:
        >>> state = SyncState(InMemoryOptionStore())
        >>> await state.authoritative_store()
        <Store.LEGACY: 'legacy'>
        >>> await state.start_bulk_sync(120)
        >>> await state.get_initial_pending_count()
        120
    """

    def __init__(
        self,
        options: OptionStore,
        config: SyncConfig | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize the state service.

        Args:
            options: Persisted option store
            config: Sync configuration (cache TTL)
            clock: Monotonic clock, injectable for tests
        """
        self._options = options
        self._config = config or SyncConfig()
        self._clock = clock
        self._cached_count: int | None = None
        self._cached_at: float = 0.0

    # =========================================================================
    # Authority
    # =========================================================================

    async def authoritative_store(self) -> Store:
        value = await self._options.get(AUTHORITATIVE_OPTION)
        return Store.STRUCTURED if option_to_bool(value) else Store.LEGACY

    async def is_authoritative(self, store: Store) -> bool:
        """True if ``store`` is currently the source of truth."""
        return await self.authoritative_store() is store

    async def direction(self) -> SyncDirection:
        return SyncDirection.from_authority(await self.authoritative_store())

    async def data_sync_enabled(self) -> bool:
        """True if writes are mirrored to the non-authoritative store as they happen."""
        return option_to_bool(await self._options.get(DATA_SYNC_ENABLED_OPTION))

    # =========================================================================
    # Progress
    # =========================================================================

    async def get_initial_pending_count(self) -> int:
        value = await self._options.get(INITIAL_PENDING_COUNT_OPTION)
        if value is None:
            return 0
        try:
            return max(0, int(value))
        except ValueError:
            logger.warning("Ignoring malformed %s option: %r", INITIAL_PENDING_COUNT_OPTION, value)
            return 0

    async def is_bulk_sync_in_progress(self) -> bool:
        return await self._options.get(INITIAL_PENDING_COUNT_OPTION) is not None

    async def start_bulk_sync(self, initial_pending_count: int) -> None:
        """
        Snapshot the pending count at the start of a bulk synchronization.

        Args:
            initial_pending_count: Total pending count right now

        Raises:
            ValueError: If the count is negative
        """
        if initial_pending_count < 0:
            raise ValueError(
                f"initial_pending_count must be >= 0, got {initial_pending_count}"
            )
        await self._options.set(INITIAL_PENDING_COUNT_OPTION, str(initial_pending_count))
        self.cache_pending_count(initial_pending_count)
        logger.info("Bulk synchronization started with %d pending order(s)", initial_pending_count)

    async def clear_sync_state(self) -> None:
        """Forget the bulk synchronization snapshot and the cached count."""
        await self._options.delete(INITIAL_PENDING_COUNT_OPTION)
        self.invalidate_pending_count()

    # =========================================================================
    # Pending count cache
    # =========================================================================

    def cached_pending_count(self) -> int | None:
        """The cached pending count, or None if absent or expired."""
        if self._cached_count is None:
            return None
        if self._clock() - self._cached_at > self._config.pending_count_cache_ttl_seconds:
            self._cached_count = None
            return None
        return self._cached_count

    def cache_pending_count(self, count: int) -> None:
        self._cached_count = max(0, count)
        self._cached_at = self._clock()

    def invalidate_pending_count(self) -> None:
        self._cached_count = None


__all__ = ["SyncState", "option_to_bool"]
