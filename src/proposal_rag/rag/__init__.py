"""RAG module - question answering over the stored proposal records."""

from proposal_rag.rag.prompts import (
    SYSTEM_PROMPT,
    build_messages,
    build_user_message,
    format_context,
)
from proposal_rag.rag.query_engine import (
    DEFAULT_FILTER,
    DEFAULT_TOP_K,
    QueryEngine,
    build_filter,
    match_to_context,
)

__all__ = [
    # Prompts
    "SYSTEM_PROMPT",
    "build_messages",
    "build_user_message",
    "format_context",
    # Engine
    "DEFAULT_FILTER",
    "DEFAULT_TOP_K",
    "QueryEngine",
    "build_filter",
    "match_to_context",
]
