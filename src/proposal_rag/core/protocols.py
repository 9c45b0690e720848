"""
Core protocols defining contracts for the outbound services.

The pipeline talks to three external services: an embedding model, a vector
database and a chat model. Each is described here as a Protocol so the
ingestion coordinator and the query engine receive them by injection.

PATTERN:
--------
- Protocol defines the contract
- Production implementation (OpenAIEmbeddings, PgVectorStore, ChatOpenAIGenerator)
- Test double (MockEmbeddings, InMemoryVectorStore, MockGenerator)
- Factory function builds the right one from PipelineConfig
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Mapping, Protocol, runtime_checkable


# ---------------------------------------------------------------------------
# VECTOR STORE TYPES
# ---------------------------------------------------------------------------


@dataclass
class VectorEntry:
    """
    The persisted unit in the vector store.

    id is the record fingerprint, so writing the same record twice lands on
    the same entry.
    """
    id: str
    embedding: list[float]
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class VectorMatch:
    """A similarity search hit. score is cosine similarity, higher is closer."""
    id: str
    score: float
    metadata: dict[str, Any] | None = None


# Metadata filter in the Pinecone-style grammar, see retrieval/filters.py
MetadataFilter = Mapping[str, Any]


# ---------------------------------------------------------------------------
# EMBEDDING PROVIDER PROTOCOL
# ---------------------------------------------------------------------------


@runtime_checkable
class EmbeddingProvider(Protocol):
    """
    Contract for embedding generation.

    Implementations:
    - OpenAIEmbeddings (production)
    - MockEmbeddings (testing)
    """

    @property
    def dimensions(self) -> int:
        """Length of every vector this provider returns."""
        ...

    def embed(self, text: str) -> list[float]:
        """Generate embedding for a single text."""
        ...

    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Generate embeddings for multiple texts."""
        ...


# ---------------------------------------------------------------------------
# VECTOR STORE PROTOCOL
# ---------------------------------------------------------------------------


@runtime_checkable
class VectorStore(Protocol):
    """
    Contract for the external vector database.

    Implementations:
    - PgVectorStore (production with PostgreSQL)
    - InMemoryVectorStore (testing/development)
    """

    def fetch(self, ids: list[str]) -> dict[str, VectorEntry]:
        """Return the stored entries for the ids that exist."""
        ...

    def upsert(self, entries: list[VectorEntry]) -> None:
        """Write entries in one call."""
        ...

    def query(
        self,
        vector: list[float],
        top_k: int = 5,
        filter: MetadataFilter | None = None,
        include_metadata: bool = True,
    ) -> list[VectorMatch]:
        """Nearest neighbours of vector, best match first."""
        ...


# ---------------------------------------------------------------------------
# TEXT GENERATOR PROTOCOL
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ChatMessage:
    """One message of a chat prompt."""
    role: Literal["system", "user", "assistant"]
    content: str


@runtime_checkable
class TextGenerator(Protocol):
    """
    Contract for the chat completion service.

    Implementations:
    - ChatOpenAIGenerator (production)
    - MockGenerator (testing)
    """

    @property
    def model(self) -> str:
        ...

    def complete(self, messages: list[ChatMessage]) -> str:
        """Return the model's reply to messages."""
        ...
