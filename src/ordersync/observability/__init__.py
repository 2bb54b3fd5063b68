"""
Observability utilities for ordersync.

Provides the composition-based Tracer used by every component and the
standard attribute names. OpenTelemetry is optional; without it every
component falls back to NullTracer.

Example:
    >>> from ordersync.observability import create_tracer
    >>> tracer = create_tracer(__name__, enable_tracing=True)
    >>> with tracer.span("ordersync.example"):
    ...     pass
"""

from ordersync.observability.attributes import (
    ATTR_AUTHORITATIVE_STORE,
    ATTR_BATCH_SIZE,
    ATTR_DB_OPERATION,
    ATTR_DB_SYSTEM,
    ATTR_DELETIONS_RESOLVED,
    ATTR_DIVERGENCE_CLASS,
    ATTR_EVENT_ID,
    ATTR_EVENT_TYPE,
    ATTR_HANDLER_COUNT,
    ATTR_HANDLER_NAME,
    ATTR_HANDLER_SUCCESS,
    ATTR_LIMIT,
    ATTR_LOCK_ACQUIRED,
    ATTR_LOCK_ID,
    ATTR_LOCK_KEY,
    ATTR_LOCK_TIMEOUT,
    ATTR_ORDER_COUNT,
    ATTR_ORDER_ID,
    ATTR_PENDING_COUNT,
    ATTR_QUERY_KIND,
    ATTR_SYNC_DIRECTION,
    ATTR_USE_CACHE,
)
from ordersync.observability.tracer import (
    MockTracer,
    NullTracer,
    OpenTelemetryTracer,
    Tracer,
    clean_attributes,
    create_tracer,
)
from ordersync.observability.tracing import OTEL_AVAILABLE, get_tracer, should_trace

__all__ = [
    "OTEL_AVAILABLE",
    "get_tracer",
    "should_trace",
    "Tracer",
    "NullTracer",
    "OpenTelemetryTracer",
    "MockTracer",
    "create_tracer",
    "clean_attributes",
    "ATTR_AUTHORITATIVE_STORE",
    "ATTR_BATCH_SIZE",
    "ATTR_DB_OPERATION",
    "ATTR_DB_SYSTEM",
    "ATTR_DELETIONS_RESOLVED",
    "ATTR_DIVERGENCE_CLASS",
    "ATTR_EVENT_ID",
    "ATTR_EVENT_TYPE",
    "ATTR_HANDLER_COUNT",
    "ATTR_HANDLER_NAME",
    "ATTR_HANDLER_SUCCESS",
    "ATTR_LIMIT",
    "ATTR_LOCK_ACQUIRED",
    "ATTR_LOCK_ID",
    "ATTR_LOCK_KEY",
    "ATTR_LOCK_TIMEOUT",
    "ATTR_ORDER_COUNT",
    "ATTR_ORDER_ID",
    "ATTR_PENDING_COUNT",
    "ATTR_QUERY_KIND",
    "ATTR_SYNC_DIRECTION",
    "ATTR_USE_CACHE",
]
