"""
Span plumbing for ingestion and query runs.

Pipeline code opens spans through get_tracer() whether or not tracing is on:

- NoOpTracer while TRACING_ENABLED is off or init_tracing() has not run
- OTelTracer once an SDK TracerProvider is installed

Spans expose only what the pipelines record: single attributes, a dict of
counters copied in one go, and a failure marker. A span left through an
exception is marked failed on the way out. Failures the pipeline absorbs
(a rejected batch upsert while ingestion carries on) call mark_failed()
themselves, so the batch span shows the failure even though nothing raised.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, ContextManager, Iterator, Mapping, Protocol

from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.trace import Status, StatusCode

from proposal_rag.observability.config import get_config

logger = logging.getLogger(__name__)

INSTRUMENTATION_SCOPE = "proposal_rag"


# ---------------------------------------------------------------------------
# PROTOCOLS
# ---------------------------------------------------------------------------


class SpanProtocol(Protocol):
    """What ingestion and query code may do with an open span."""

    def set_attribute(self, key: str, value: Any) -> None:
        ...

    def set_attributes(self, attributes: Mapping[str, Any]) -> None:
        ...

    def mark_failed(self, exception: BaseException) -> None:
        """Record the exception and flag the span as an error."""
        ...


class TracerProtocol(Protocol):
    def start_span(self, name: str, attributes: Mapping[str, Any] | None = None) -> ContextManager[SpanProtocol]:
        ...


# ---------------------------------------------------------------------------
# DISABLED TRACING
# ---------------------------------------------------------------------------


class NoOpSpan:
    """Accepts every call and keeps nothing."""

    def set_attribute(self, key: str, value: Any) -> None:
        pass

    def set_attributes(self, attributes: Mapping[str, Any]) -> None:
        pass

    def mark_failed(self, exception: BaseException) -> None:
        pass


class NoOpTracer:
    """Hands out one shared NoOpSpan."""

    _span = NoOpSpan()

    @contextmanager
    def start_span(self, name: str, attributes: Mapping[str, Any] | None = None) -> Iterator[NoOpSpan]:
        yield self._span


# ---------------------------------------------------------------------------
# OPENTELEMETRY
# ---------------------------------------------------------------------------


def _exportable(attributes: Mapping[str, Any] | None) -> dict[str, Any]:
    """Drop None values; OTel rejects them."""
    return {key: value for key, value in (attributes or {}).items() if value is not None}


class OTelSpan:
    """Adapts an OTel span to SpanProtocol."""

    def __init__(self, span: Any):
        self._span = span

    def set_attribute(self, key: str, value: Any) -> None:
        if value is not None:
            self._span.set_attribute(key, value)

    def set_attributes(self, attributes: Mapping[str, Any]) -> None:
        self._span.set_attributes(_exportable(attributes))

    def mark_failed(self, exception: BaseException) -> None:
        self._span.record_exception(exception)
        self._span.set_status(Status(StatusCode.ERROR, f"{type(exception).__name__}: {exception}"))


class OTelTracer:
    """
    Opens spans on an OTel tracer.

    OTel's own exception handling is turned off so that a failing span is
    marked exactly once, by mark_failed(), whether the failure raised or not.
    """

    def __init__(self, tracer: Any):
        self._tracer = tracer

    @contextmanager
    def start_span(self, name: str, attributes: Mapping[str, Any] | None = None) -> Iterator[OTelSpan]:
        with self._tracer.start_as_current_span(
            name,
            attributes=_exportable(attributes),
            record_exception=False,
            set_status_on_exception=False,
        ) as otel_span:
            span = OTelSpan(otel_span)
            try:
                yield span
            except Exception as exc:
                span.mark_failed(exc)
                raise


# ---------------------------------------------------------------------------
# FACTORY
# ---------------------------------------------------------------------------


_tracer: TracerProtocol | None = None


def _build_tracer(scope: str) -> TracerProtocol:
    if not get_config().enabled:
        return NoOpTracer()
    if not isinstance(trace.get_tracer_provider(), TracerProvider):
        # TRACING_ENABLED without init_tracing(): spans would go nowhere
        logger.debug("Tracing enabled but no TracerProvider installed, spans are dropped")
        return NoOpTracer()
    return OTelTracer(trace.get_tracer(scope))


def get_tracer(scope: str = INSTRUMENTATION_SCOPE) -> TracerProtocol:
    """Process-wide tracer, chosen on first call (see module docstring)."""
    global _tracer
    if _tracer is None:
        _tracer = _build_tracer(scope)
    return _tracer


def reset_tracer() -> None:
    """Forget the chosen tracer; the next get_tracer() decides again."""
    global _tracer
    _tracer = None
