"""
Standard span attributes for ordersync.

Attribute constants shared by all ordersync components so spans carry
consistent keys regardless of which component emitted them.
"""

# =============================================================================
# Order Attributes
# =============================================================================

ATTR_ORDER_ID = "ordersync.order.id"
"""Identifier of the order being reconciled (integer)."""

ATTR_ORDER_COUNT = "ordersync.order.count"
"""Number of order ids involved in an operation."""

# =============================================================================
# Synchronization Attributes
# =============================================================================

ATTR_AUTHORITATIVE_STORE = "ordersync.sync.authoritative_store"
"""Store currently authoritative ('legacy' or 'structured')."""

ATTR_SYNC_DIRECTION = "ordersync.sync.direction"
"""Direction of repair ('backfill' or 'forward_migrate')."""

ATTR_DIVERGENCE_CLASS = "ordersync.sync.divergence_class"
"""Divergence class being queried."""

ATTR_QUERY_KIND = "ordersync.sync.query_kind"
"""Concrete pending-set query kind."""

ATTR_LIMIT = "ordersync.sync.limit"
"""Maximum number of ids requested."""

ATTR_BATCH_SIZE = "ordersync.sync.batch_size"
"""Number of ids in the batch being processed."""

ATTR_PENDING_COUNT = "ordersync.sync.pending_count"
"""Total pending count observed."""

ATTR_DELETIONS_RESOLVED = "ordersync.sync.deletions_resolved"
"""Number of deletion markers resolved in a batch."""

ATTR_USE_CACHE = "ordersync.sync.use_cache"
"""Whether a cached pending count was allowed."""

# =============================================================================
# Event Bus Attributes
# =============================================================================

ATTR_EVENT_TYPE = "ordersync.event.type"
"""Class name of the published write-path event."""

ATTR_EVENT_ID = "ordersync.event.id"
"""Unique id of the published event."""

ATTR_HANDLER_COUNT = "ordersync.event.handler_count"
"""Number of handlers an event was dispatched to."""

ATTR_HANDLER_NAME = "ordersync.event.handler"
"""Name of the handler processing an event."""

ATTR_HANDLER_SUCCESS = "ordersync.event.handler_success"
"""Whether the handler completed without raising."""

# =============================================================================
# Database Attributes (OpenTelemetry semantic conventions)
# =============================================================================

ATTR_DB_SYSTEM = "db.system"
"""Database system name (e.g., 'postgresql', 'sqlite')."""

ATTR_DB_OPERATION = "db.operation"
"""Database operation name (e.g., 'SELECT', 'DELETE')."""

# =============================================================================
# Lock Attributes
# =============================================================================

ATTR_LOCK_KEY = "ordersync.lock.key"
"""String key used to identify the lock."""

ATTR_LOCK_ID = "ordersync.lock.id"
"""Numeric lock identifier (advisory lock id)."""

ATTR_LOCK_TIMEOUT = "ordersync.lock.timeout"
"""Lock acquisition timeout in seconds."""

ATTR_LOCK_ACQUIRED = "ordersync.lock.acquired"
"""Whether the lock was successfully acquired."""

__all__ = [
    "ATTR_ORDER_ID",
    "ATTR_ORDER_COUNT",
    "ATTR_AUTHORITATIVE_STORE",
    "ATTR_SYNC_DIRECTION",
    "ATTR_DIVERGENCE_CLASS",
    "ATTR_QUERY_KIND",
    "ATTR_LIMIT",
    "ATTR_BATCH_SIZE",
    "ATTR_PENDING_COUNT",
    "ATTR_DELETIONS_RESOLVED",
    "ATTR_USE_CACHE",
    "ATTR_EVENT_TYPE",
    "ATTR_EVENT_ID",
    "ATTR_HANDLER_COUNT",
    "ATTR_HANDLER_NAME",
    "ATTR_HANDLER_SUCCESS",
    "ATTR_DB_SYSTEM",
    "ATTR_DB_OPERATION",
    "ATTR_LOCK_KEY",
    "ATTR_LOCK_ID",
    "ATTR_LOCK_TIMEOUT",
    "ATTR_LOCK_ACQUIRED",
]
