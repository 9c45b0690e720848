"""Pydantic models returned across the package boundary."""

from proposal_rag.schemas.results import (
    IngestResult,
    QueryFilters,
    QueryResult,
    SourceContext,
)

__all__ = [
    "IngestResult",
    "QueryFilters",
    "QueryResult",
    "SourceContext",
]
