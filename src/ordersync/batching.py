"""
BatchSizePolicy - how many ids the next batch should reconcile.

Forward migration uses the base batch size. Backfilling is slower per
record (it may create a legacy placeholder before overwriting it), so its
batches are cut to roughly a tenth of the base size.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from ordersync.config import SyncConfig
from ordersync.models import SyncDirection

logger = logging.getLogger(__name__)

BatchSizeOverride = Callable[[int], int]
"""Operator hook receiving the computed size and returning the size to use."""


class BatchSizePolicy:
    """
    Produces batch sizes from the repair direction.

    Example:
        >>> policy = BatchSizePolicy(SyncConfig(base_batch_size=250))
        >>> policy.next_batch_size(SyncDirection.FORWARD_MIGRATE)
        250
        >>> policy.next_batch_size(SyncDirection.BACKFILL)
        26
        >>> tuned = BatchSizePolicy(override=lambda size: size * 2)
        >>> tuned.next_batch_size(SyncDirection.FORWARD_MIGRATE)
        500
    """

    def __init__(
        self,
        config: SyncConfig | None = None,
        *,
        override: BatchSizeOverride | None = None,
    ) -> None:
        self._config = config or SyncConfig()
        self._override = override

    def next_batch_size(self, direction: SyncDirection) -> int:
        size = self._config.base_batch_size
        if direction is SyncDirection.BACKFILL:
            size = size // self._config.backfill_divisor + 1

        if self._override is not None:
            overridden = int(self._override(size))
            if overridden < 1:
                logger.warning(
                    "Batch size override returned %d, using 1 instead", overridden
                )
                overridden = 1
            size = overridden

        return size


__all__ = ["BatchSizePolicy", "BatchSizeOverride"]
