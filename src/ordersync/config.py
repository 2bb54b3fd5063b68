"""
Configuration for the order synchronization engine.

SyncConfig holds tuning knobs that do not change while the process runs.
Values that do change at runtime (the authority flag, progress counters)
live in persisted options managed by ordersync.state.SyncState; their keys
are defined here so every adapter agrees on them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

AUTHORITATIVE_OPTION = "ordersync_structured_store_authoritative"
"""Option holding 'yes' when the structured store is authoritative."""

DATA_SYNC_ENABLED_OPTION = "ordersync_data_sync_enabled"
"""Option holding 'yes' when writes are mirrored to the other store immediately."""

INITIAL_PENDING_COUNT_OPTION = "ordersync_initial_pending_count"
"""Option holding the pending count snapshot taken when a bulk sync started."""

DEFAULT_BATCH_SIZE = 250


@dataclass(frozen=True)
class SyncConfig:
    """
    Configuration for order synchronization.

    Attributes:
        base_batch_size: Ids per batch when forward-migrating (default 250).
        backfill_divisor: Backfill batches are base_batch_size // divisor + 1
            (default 10), since backfilling also creates legacy placeholders.
        pending_count_cache_ttl_seconds: How long a computed pending count may
            be served from cache (default 60).
        auto_draft_max_age_days: Age after which structured auto-draft orders
            are purged (default 7).
        order_entity_type: Cache entity type suppressed during batches.
        batch_lock_key: Lease key guaranteeing one batch in flight.
        batch_lock_timeout_seconds: How long run_next_batch waits for the
            lease (None waits forever).

    Example:
        >>> config = SyncConfig(base_batch_size=100)
        >>> config.base_batch_size
        100
    """

    base_batch_size: int = DEFAULT_BATCH_SIZE
    backfill_divisor: int = 10
    pending_count_cache_ttl_seconds: float = 60.0
    auto_draft_max_age_days: int = 7
    order_entity_type: str = "order"
    batch_lock_key: str = "ordersync:batch"
    batch_lock_timeout_seconds: float | None = None

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.base_batch_size < 1:
            raise ValueError(f"base_batch_size must be >= 1, got {self.base_batch_size}")

        if self.backfill_divisor < 1:
            raise ValueError(f"backfill_divisor must be >= 1, got {self.backfill_divisor}")

        if self.pending_count_cache_ttl_seconds < 0:
            raise ValueError(
                "pending_count_cache_ttl_seconds must be >= 0, "
                f"got {self.pending_count_cache_ttl_seconds}"
            )

        if self.auto_draft_max_age_days < 1:
            raise ValueError(
                f"auto_draft_max_age_days must be >= 1, got {self.auto_draft_max_age_days}"
            )

        if not self.batch_lock_key:
            raise ValueError("batch_lock_key must not be empty")

        if self.batch_lock_timeout_seconds is not None and self.batch_lock_timeout_seconds <= 0:
            raise ValueError(
                "batch_lock_timeout_seconds must be > 0 or None, "
                f"got {self.batch_lock_timeout_seconds}"
            )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON storage."""
        return {
            "base_batch_size": self.base_batch_size,
            "backfill_divisor": self.backfill_divisor,
            "pending_count_cache_ttl_seconds": self.pending_count_cache_ttl_seconds,
            "auto_draft_max_age_days": self.auto_draft_max_age_days,
            "order_entity_type": self.order_entity_type,
            "batch_lock_key": self.batch_lock_key,
            "batch_lock_timeout_seconds": self.batch_lock_timeout_seconds,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SyncConfig:
        """Create from dictionary, falling back to defaults for missing keys."""
        return cls(
            base_batch_size=data.get("base_batch_size", DEFAULT_BATCH_SIZE),
            backfill_divisor=data.get("backfill_divisor", 10),
            pending_count_cache_ttl_seconds=data.get("pending_count_cache_ttl_seconds", 60.0),
            auto_draft_max_age_days=data.get("auto_draft_max_age_days", 7),
            order_entity_type=data.get("order_entity_type", "order"),
            batch_lock_key=data.get("batch_lock_key", "ordersync:batch"),
            batch_lock_timeout_seconds=data.get("batch_lock_timeout_seconds"),
        )


__all__ = [
    "AUTHORITATIVE_OPTION",
    "DATA_SYNC_ENABLED_OPTION",
    "INITIAL_PENDING_COUNT_OPTION",
    "DEFAULT_BATCH_SIZE",
    "SyncConfig",
]
