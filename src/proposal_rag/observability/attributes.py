"""
Semantic Conventions for Span Attributes

OpenTelemetry GenAI keys for model calls, plus a custom namespace for the
ingestion and query pipelines.

Reference: https://opentelemetry.io/docs/specs/semconv/gen-ai/
"""

# ---------------------------------------------------------------------------
# GENAI NAMESPACE (OTel standard)
# ---------------------------------------------------------------------------

GEN_AI_SYSTEM = "gen_ai.system"  # "openai"
GEN_AI_REQUEST_MODEL = "gen_ai.request.model"  # "gpt-4"
GEN_AI_PROMPT = "gen_ai.prompt"  # only with TRACING_CAPTURE_CONTENT


# ---------------------------------------------------------------------------
# INGESTION NAMESPACE (custom)
# ---------------------------------------------------------------------------

INGEST_DOCUMENT_ID = "ingest.document.id"
INGEST_DOCUMENT_TITLE = "ingest.document.title"
INGEST_BATCH_INDEX = "ingest.batch.index"
INGEST_BATCH_SIZE = "ingest.batch.size"
INGEST_TOTAL_ITEMS = "ingest.total_items"
INGEST_PROCESSED = "ingest.processed"
INGEST_SKIPPED = "ingest.skipped"
INGEST_ERRORS = "ingest.errors"
INGEST_SHEET_COUNT = "ingest.sheet_count"


# ---------------------------------------------------------------------------
# QUERY NAMESPACE (custom)
# ---------------------------------------------------------------------------

QUERY_TOP_K = "query.top_k"
QUERY_FILTER = "query.filter"  # JSON-encoded filter expression
QUERY_MATCH_COUNT = "query.match_count"
QUERY_TOP_SIMILARITY = "query.top_similarity"


# ---------------------------------------------------------------------------
# HELPER FUNCTIONS
# ---------------------------------------------------------------------------


def ingest_attributes(
    document_id: str,
    title: str,
) -> dict:
    """Create attributes dict for an ingestion span."""
    return {
        INGEST_DOCUMENT_ID: document_id,
        INGEST_DOCUMENT_TITLE: title,
    }


def ingest_result_attributes(
    total_items: int,
    processed: int,
    skipped: int,
    errors: int,
    sheet_count: int,
) -> dict:
    """Create attributes dict summarising a finished ingestion."""
    return {
        INGEST_TOTAL_ITEMS: total_items,
        INGEST_PROCESSED: processed,
        INGEST_SKIPPED: skipped,
        INGEST_ERRORS: errors,
        INGEST_SHEET_COUNT: sheet_count,
    }


def batch_attributes(index: int, size: int) -> dict:
    """Create attributes dict for one ingestion batch."""
    return {
        INGEST_BATCH_INDEX: index,
        INGEST_BATCH_SIZE: size,
    }


def generation_attributes(model: str) -> dict:
    """Create attributes dict for a generation span."""
    return {
        GEN_AI_SYSTEM: "openai",
        GEN_AI_REQUEST_MODEL: model,
    }
