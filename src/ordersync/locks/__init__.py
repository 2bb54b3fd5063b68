"""
Batch lease backends.

Reconciliation assumes one batch in flight at a time. The synchronizer
takes a lease from a LockManager around every scheduled batch:

    >>> from ordersync.locks import InMemoryLockManager
    >>> await synchronizer.run_next_batch(InMemoryLockManager())

PostgreSQLLockManager extends the guarantee across processes using
advisory locks.
"""

from ordersync.locks.interface import (
    LockAcquisitionError,
    LockInfo,
    LockManager,
)
from ordersync.locks.memory import InMemoryLockManager
from ordersync.locks.postgresql import PostgreSQLLockManager, key_to_lock_id

__all__ = [
    "LockAcquisitionError",
    "LockInfo",
    "LockManager",
    "InMemoryLockManager",
    "PostgreSQLLockManager",
    "key_to_lock_id",
]
