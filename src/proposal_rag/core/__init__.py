"""
Core module - shared protocols, types and errors for the entire system.

USAGE:
------
from proposal_rag.core import VectorStore, EmbeddingProvider

class MyVectorStore:
    '''Implements VectorStore protocol.'''
    ...
"""

from proposal_rag.core.errors import (
    ProposalRagError,
    ConfigurationError,
    ParseError,
    ExternalServiceError,
    EmbeddingError,
    GenerationError,
    StoreError,
    StoreReadError,
    StoreWriteError,
    QueryServiceError,
)
from proposal_rag.core.protocols import (
    # Protocols
    EmbeddingProvider,
    VectorStore,
    TextGenerator,
    # Data classes
    ChatMessage,
    MetadataFilter,
    VectorEntry,
    VectorMatch,
)

__all__ = [
    # Errors
    "ProposalRagError",
    "ConfigurationError",
    "ParseError",
    "ExternalServiceError",
    "EmbeddingError",
    "GenerationError",
    "StoreError",
    "StoreReadError",
    "StoreWriteError",
    "QueryServiceError",
    # Protocols
    "EmbeddingProvider",
    "VectorStore",
    "TextGenerator",
    # Data classes
    "ChatMessage",
    "MetadataFilter",
    "VectorEntry",
    "VectorMatch",
]
