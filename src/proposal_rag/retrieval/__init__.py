"""
Retrieval module - the external vector database behind the pipeline.

This module provides:
- VectorStoreConfig: Configuration for stores
- PgVectorStore: PostgreSQL production store
- InMemoryVectorStore: Testing/development store
- get_vector_store(): Factory function
- matches_filter / to_sql: the metadata filter grammar both stores honour
"""

from proposal_rag.retrieval.filters import (
    matches_filter,
    to_sql,
    validate_filter,
)
from proposal_rag.retrieval.store import (
    VectorStoreConfig,
    PgVectorStore,
    InMemoryVectorStore,
    get_vector_store,
)

__all__ = [
    # Config
    "VectorStoreConfig",
    # Implementations
    "PgVectorStore",
    "InMemoryVectorStore",
    # Factory
    "get_vector_store",
    # Filters
    "matches_filter",
    "to_sql",
    "validate_filter",
]
