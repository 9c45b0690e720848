"""
Tracing Configuration

Loads tracing settings from environment variables. Tracing is off unless
TRACING_ENABLED is set.
"""

import os
from dataclasses import dataclass


@dataclass
class TracingConfig:
    """Configuration for OpenTelemetry tracing.

    Environment Variables:
        TRACING_ENABLED: Enable span export (default: false)
        TRACING_SERVICE_NAME: service.name resource attribute (default: proposal-rag)
        OTEL_EXPORTER_OTLP_ENDPOINT: OTLP/HTTP collector, e.g. http://localhost:6006/v1/traces.
            Spans go to the console when unset.
        TRACING_CAPTURE_CONTENT: Put question text on query spans (default: false)

    PRIVACY WARNING:
        Setting TRACING_CAPTURE_CONTENT=true exports user questions to the
        collector. Proposal data can be commercially sensitive; only enable it
        against a collector you control.
    """

    enabled: bool = False
    service_name: str = "proposal-rag"
    collector_endpoint: str | None = None
    capture_content: bool = False

    @classmethod
    def from_env(cls) -> "TracingConfig":
        """Load config from environment variables."""
        return cls(
            enabled=os.environ.get("TRACING_ENABLED", "false").lower() in ("true", "1", "yes"),
            service_name=os.environ.get("TRACING_SERVICE_NAME", "proposal-rag"),
            collector_endpoint=os.environ.get("OTEL_EXPORTER_OTLP_ENDPOINT") or None,
            capture_content=os.environ.get("TRACING_CAPTURE_CONTENT", "false").lower() in ("true", "1", "yes"),
        )


# Global config singleton
_config: TracingConfig | None = None


def get_config() -> TracingConfig:
    """Get the global tracing config (lazy-loaded from env)."""
    global _config
    if _config is None:
        _config = TracingConfig.from_env()
    return _config


def reset_config() -> None:
    """Reset config (useful for testing)."""
    global _config
    _config = None
