"""
Span factories handed to ordersync components.

Every component takes an optional ``tracer`` and falls back to
``create_tracer(__name__, enable_tracing)``. Spans are opened with
``with self._tracer.span(name, attributes) as span:``; ``span`` is the
OpenTelemetry span or None, so callers guard ``set_attribute`` with
``if span:``.
"""

from __future__ import annotations

import contextlib
from collections.abc import Iterator, Mapping
from contextlib import AbstractContextManager
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from ordersync.observability.tracing import get_tracer, should_trace

if TYPE_CHECKING:
    from opentelemetry.trace import Span

SpanAttributes = Mapping[str, Any]


@runtime_checkable
class Tracer(Protocol):
    """Opens spans named ``ordersync.<component>.<operation>``."""

    def span(
        self,
        name: str,
        attributes: SpanAttributes | None = None,
    ) -> AbstractContextManager[Span | None]: ...


def clean_attributes(attributes: SpanAttributes | None) -> dict[str, Any]:
    """Drop None values, which OpenTelemetry rejects as attribute values."""
    if not attributes:
        return {}
    return {key: value for key, value in attributes.items() if value is not None}


class NullTracer:
    """Tracer used when tracing is off or OpenTelemetry is not installed."""

    @contextlib.contextmanager
    def span(
        self,
        name: str,
        attributes: SpanAttributes | None = None,
    ) -> Iterator[None]:
        yield None


class OpenTelemetryTracer:
    """
    Opens spans on the OpenTelemetry tracer registered under ``tracer_name``.

    Raises:
        ImportError: If OpenTelemetry is not installed
    """

    def __init__(self, tracer_name: str) -> None:
        tracer = get_tracer(tracer_name)
        if tracer is None:
            raise ImportError("OpenTelemetry is not installed, install ordersync[telemetry]")
        self._tracer = tracer

    def span(
        self,
        name: str,
        attributes: SpanAttributes | None = None,
    ) -> AbstractContextManager[Span | None]:
        return self._tracer.start_as_current_span(name, attributes=clean_attributes(attributes))


class MockTracer:
    """
    Records the spans opened through it.

    Example:
        >>> tracer = MockTracer()
        >>> await PendingSetResolver(..., tracer=tracer).get_total_pending_count()
        >>> tracer.span_names
        ['ordersync.pending.get_total_count']
    """

    def __init__(self) -> None:
        self.spans: list[tuple[str, dict[str, Any] | None]] = []

    @contextlib.contextmanager
    def span(
        self,
        name: str,
        attributes: SpanAttributes | None = None,
    ) -> Iterator[None]:
        self.spans.append((name, dict(attributes) if attributes is not None else None))
        yield None

    @property
    def span_names(self) -> list[str]:
        return [name for name, _ in self.spans]

    def clear(self) -> None:
        self.spans.clear()


def create_tracer(name: str, enable_tracing: bool = True) -> Tracer:
    """OpenTelemetryTracer when tracing is enabled and available, else NullTracer."""
    if should_trace(enable_tracing):
        return OpenTelemetryTracer(name)
    return NullTracer()


__all__ = [
    "SpanAttributes",
    "Tracer",
    "NullTracer",
    "OpenTelemetryTracer",
    "MockTracer",
    "clean_attributes",
    "create_tracer",
]
