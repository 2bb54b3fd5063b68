"""
ordersync - keeps legacy and structured order stores consistent.

This library provides:
- Pending-set discovery per divergence class over a closed set of static queries
- Idempotent batch reconciliation (backfill or forward migration)
- Append-only deletion markers and their resolution
- Authority flag and bulk synchronization progress state
- Write-path event bus and a batch lease for the scheduler
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("ordersync")
except PackageNotFoundError:
    # Package not installed (running from source without install)
    __version__ = "0.0.0.dev0"

from ordersync.batching import BatchSizeOverride, BatchSizePolicy
from ordersync.bus import InMemoryOrderEventBus, OrderEventHandler
from ordersync.cache import CacheController, InMemoryOrderCache, OrderCacheController
from ordersync.config import (
    AUTHORITATIVE_OPTION,
    DATA_SYNC_ENABLED_OPTION,
    DEFAULT_BATCH_SIZE,
    INITIAL_PENDING_COUNT_OPTION,
    SyncConfig,
)
from ordersync.deletions import DeletionTracker
from ordersync.events import OrderDeleted, OrderEvent, OrderUpdated
from ordersync.exceptions import (
    InvalidDivergenceClassError,
    OrderSyncError,
    SyncConfigurationError,
)
from ordersync.locks import (
    InMemoryLockManager,
    LockAcquisitionError,
    LockInfo,
    LockManager,
    PostgreSQLLockManager,
)
from ordersync.migrator import StoreCopyMigrator
from ordersync.models import (
    AUTO_DRAFT_STATUS,
    PLACEHOLDER_ORDER_TYPE,
    BatchResult,
    DeletionMarker,
    DivergenceClass,
    OrderRecord,
    QueryKind,
    Store,
    SyncAdvisory,
    SyncDirection,
    SyncStatus,
)
from ordersync.pending import PendingSetResolver
from ordersync.reconciler import BatchReconciler
from ordersync.registry import OrderTypeRegistry
from ordersync.state import SyncState
from ordersync.synchronizer import OrderSynchronizer

__all__ = [
    "__version__",
    # Facade
    "OrderSynchronizer",
    # Components
    "PendingSetResolver",
    "BatchReconciler",
    "DeletionTracker",
    "SyncState",
    "BatchSizePolicy",
    "BatchSizeOverride",
    "OrderTypeRegistry",
    "StoreCopyMigrator",
    # Models
    "Store",
    "SyncDirection",
    "DivergenceClass",
    "QueryKind",
    "OrderRecord",
    "DeletionMarker",
    "SyncStatus",
    "SyncAdvisory",
    "BatchResult",
    "PLACEHOLDER_ORDER_TYPE",
    "AUTO_DRAFT_STATUS",
    # Config
    "SyncConfig",
    "AUTHORITATIVE_OPTION",
    "DATA_SYNC_ENABLED_OPTION",
    "INITIAL_PENDING_COUNT_OPTION",
    "DEFAULT_BATCH_SIZE",
    # Events
    "OrderEvent",
    "OrderUpdated",
    "OrderDeleted",
    "InMemoryOrderEventBus",
    "OrderEventHandler",
    # Cache
    "CacheController",
    "OrderCacheController",
    "InMemoryOrderCache",
    # Locks
    "LockManager",
    "LockInfo",
    "LockAcquisitionError",
    "InMemoryLockManager",
    "PostgreSQLLockManager",
    # Exceptions
    "OrderSyncError",
    "SyncConfigurationError",
    "InvalidDivergenceClassError",
]
