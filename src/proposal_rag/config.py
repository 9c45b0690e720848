"""
Pipeline Configuration

Loads client and pipeline settings from environment variables. Nothing here
opens a connection; the factories in knowledge_base.py turn a PipelineConfig
into live clients.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

from proposal_rag.core.errors import ConfigurationError

VectorBackend = Literal["postgres", "memory"]


def _env_bool(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).lower() in ("true", "1", "yes")


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"Environment variable {name} is not an integer: {raw!r}") from exc


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"Environment variable {name} is not a number: {raw!r}") from exc


@dataclass
class PipelineConfig:
    """Configuration for the ingestion and query pipelines.

    Environment Variables:
        OPENAI_API_KEY: API key for embeddings and generation
        EMBEDDING_MODEL: Embedding model name (default: text-embedding-ada-002)
        EMBEDDING_DIM: Vector length stored in the database (default: 1536)
        GENERATION_MODEL: Chat model name (default: gpt-4)
        GENERATION_TEMPERATURE: Sampling temperature (default: 0.0)
        VECTOR_BACKEND: "postgres" or "memory" (default: postgres)
        DATABASE_URL: PostgreSQL connection string
        VECTOR_TABLE: Table holding vector entries (default: proposal_vectors)
        INGEST_BATCH_SIZE: Records per bulk upsert (default: 10)
        EMBED_CONCURRENCY: Parallel embedding calls inside a batch (default: 4)
        QUERY_TOP_K: Matches retrieved per question (default: 5)
        REQUEST_TIMEOUT: Seconds before an external call is abandoned (default: 60)
        MAX_RETRIES: Attempts per external call, first one included (default: 3)
        USE_MOCK_CLIENTS: Use offline embedding and generation doubles (default: false)
    """

    openai_api_key: str | None = None
    embedding_model: str = "text-embedding-ada-002"
    embedding_dim: int = 1536
    generation_model: str = "gpt-4"
    generation_temperature: float = 0.0
    vector_backend: VectorBackend = "postgres"
    database_url: str = "postgresql://localhost/proposal_rag"
    vector_table: str = "proposal_vectors"
    batch_size: int = 10
    embed_concurrency: int = 4
    top_k: int = 5
    request_timeout: float = 60.0
    max_retries: int = 3
    use_mock_clients: bool = False

    def __post_init__(self) -> None:
        if self.batch_size < 1:
            raise ConfigurationError("batch_size must be at least 1")
        if self.embed_concurrency < 1:
            raise ConfigurationError("embed_concurrency must be at least 1")
        if self.top_k < 1:
            raise ConfigurationError("top_k must be at least 1")
        if self.vector_backend not in ("postgres", "memory"):
            raise ConfigurationError(f"Unknown vector backend: {self.vector_backend!r}")

    @classmethod
    def from_env(cls) -> "PipelineConfig":
        """Load config from environment variables."""
        return cls(
            openai_api_key=os.environ.get("OPENAI_API_KEY") or None,
            embedding_model=os.environ.get("EMBEDDING_MODEL", "text-embedding-ada-002"),
            embedding_dim=_env_int("EMBEDDING_DIM", 1536),
            generation_model=os.environ.get("GENERATION_MODEL", "gpt-4"),
            generation_temperature=_env_float("GENERATION_TEMPERATURE", 0.0),
            vector_backend=os.environ.get("VECTOR_BACKEND", "postgres").lower(),  # type: ignore[arg-type]
            database_url=os.environ.get("DATABASE_URL", "postgresql://localhost/proposal_rag"),
            vector_table=os.environ.get("VECTOR_TABLE", "proposal_vectors"),
            batch_size=_env_int("INGEST_BATCH_SIZE", 10),
            embed_concurrency=_env_int("EMBED_CONCURRENCY", 4),
            top_k=_env_int("QUERY_TOP_K", 5),
            request_timeout=_env_float("REQUEST_TIMEOUT", 60.0),
            max_retries=_env_int("MAX_RETRIES", 3),
            use_mock_clients=_env_bool("USE_MOCK_CLIENTS"),
        )
