"""
Batch lease interface.

At most one reconciliation batch may run at a time across all processes
sharing the two stores. LockManager makes that guarantee explicit: the
synchronizer holds a lease for the duration of each batch.
"""

from __future__ import annotations

from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol, runtime_checkable

from ordersync.exceptions import OrderSyncError


@dataclass(frozen=True)
class LockInfo:
    """
    Information about an acquired lease.

    Attributes:
        key: The string key used to identify the lock
        lock_id: Numeric lock id (derived from the key where the backend needs one)
        acquired_at: When the lock was acquired
        holder_id: Optional identifier for the lock holder (for debugging)
    """

    key: str
    lock_id: int
    acquired_at: datetime
    holder_id: str | None = None


class LockAcquisitionError(OrderSyncError):
    """
    Raised when a lock cannot be acquired.

    Attributes:
        key: The lock key that could not be acquired
        reason: Description of why acquisition failed
        timeout: The timeout value if timeout was the cause
    """

    def __init__(
        self,
        key: str,
        reason: str,
        timeout: float | None = None,
    ):
        self.key = key
        self.reason = reason
        self.timeout = timeout
        super().__init__(f"Failed to acquire lock '{key}': {reason}")


@runtime_checkable
class LockManager(Protocol):
    """Protocol for lease backends."""

    def acquire(
        self,
        key: str,
        *,
        timeout: float | None = None,
    ) -> AbstractAsyncContextManager[LockInfo]:
        """
        Hold the lock for the duration of an ``async with`` block.

        Raises:
            LockAcquisitionError: If the lock cannot be acquired within timeout
        """
        ...

    async def is_held(self, key: str) -> bool:
        """True if this manager currently holds ``key``."""
        ...


__all__ = [
    "LockInfo",
    "LockAcquisitionError",
    "LockManager",
]
