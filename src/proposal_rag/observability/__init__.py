"""
Observability Module - OpenTelemetry tracing for ingestion and queries.

USAGE:
------
# At application startup:
from proposal_rag.observability import init_tracing

init_tracing()  # Installs a TracerProvider if TRACING_ENABLED=true

# In code that needs tracing:
from proposal_rag.observability import get_tracer

tracer = get_tracer()
with tracer.start_span("ingest.batch", attributes={"key": "value"}) as span:
    # ... do work ...
    span.set_attributes({"processed": 10, "errors": 0})

# Leaving the block through an exception marks the span failed; a failure
# that is handled inside the block is marked with span.mark_failed(exc).
"""

from __future__ import annotations

import logging

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

from proposal_rag.observability.config import (
    TracingConfig,
    get_config,
    reset_config,
)
from proposal_rag.observability.tracer import (
    TracerProtocol,
    SpanProtocol,
    NoOpTracer,
    NoOpSpan,
    OTelTracer,
    get_tracer,
    reset_tracer,
)
from proposal_rag.observability.attributes import (
    GEN_AI_SYSTEM,
    GEN_AI_REQUEST_MODEL,
    GEN_AI_PROMPT,
    INGEST_DOCUMENT_ID,
    INGEST_BATCH_INDEX,
    INGEST_PROCESSED,
    INGEST_SKIPPED,
    INGEST_ERRORS,
    QUERY_TOP_K,
    QUERY_FILTER,
    QUERY_MATCH_COUNT,
    ingest_attributes,
    ingest_result_attributes,
    batch_attributes,
    generation_attributes,
)

logger = logging.getLogger(__name__)

_provider: TracerProvider | None = None


def init_tracing(config: TracingConfig | None = None) -> bool:
    """
    Install an OpenTelemetry TracerProvider.

    This should be called once at application startup.

    Args:
        config: Optional config (uses env vars if not provided)

    Returns:
        True if tracing was initialized, False if disabled
    """
    global _provider
    if _provider is not None:
        return True

    config = config or get_config()

    if not config.enabled:
        logger.debug("Tracing disabled")
        return False

    if config.collector_endpoint:
        exporter = OTLPSpanExporter(endpoint=config.collector_endpoint)
        logger.info("Exporting spans to %s", config.collector_endpoint)
    else:
        exporter = ConsoleSpanExporter()
        logger.info("No OTLP endpoint configured, writing spans to the console")

    provider = TracerProvider(resource=Resource.create({SERVICE_NAME: config.service_name}))
    provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)

    _provider = provider
    reset_tracer()
    return True


def shutdown_tracing() -> None:
    """Flush pending spans and drop the provider."""
    global _provider

    if _provider is None:
        return

    _provider.shutdown()
    _provider = None
    reset_tracer()
    reset_config()


__all__ = [
    # Initialization
    "init_tracing",
    "shutdown_tracing",
    # Config
    "TracingConfig",
    "get_config",
    "reset_config",
    # Tracer
    "TracerProtocol",
    "SpanProtocol",
    "NoOpTracer",
    "NoOpSpan",
    "OTelTracer",
    "get_tracer",
    "reset_tracer",
    # Attributes
    "GEN_AI_SYSTEM",
    "GEN_AI_REQUEST_MODEL",
    "GEN_AI_PROMPT",
    "INGEST_DOCUMENT_ID",
    "INGEST_BATCH_INDEX",
    "INGEST_PROCESSED",
    "INGEST_SKIPPED",
    "INGEST_ERRORS",
    "QUERY_TOP_K",
    "QUERY_FILTER",
    "QUERY_MATCH_COUNT",
    # Helpers
    "ingest_attributes",
    "ingest_result_attributes",
    "batch_attributes",
    "generation_attributes",
]
