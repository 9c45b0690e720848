"""
Proposal knowledge base - the two operations callers actually use.

    kb = create_knowledge_base()
    kb.ingest(buffer, {"id": "RFP-001", "title": "...", "uploadDate": "...", "category": "..."})
    kb.query("What pricing did we offer?", {"category": "Pricing"})

create_knowledge_base() builds every client from a PipelineConfig (env vars by
default). Tests construct ProposalKnowledgeBase directly around doubles.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from proposal_rag.config import PipelineConfig
from proposal_rag.core.protocols import EmbeddingProvider, TextGenerator, VectorStore
from proposal_rag.embeddings import get_embedding_provider
from proposal_rag.generation import get_text_generator
from proposal_rag.ingestion.coordinator import IngestionCoordinator
from proposal_rag.ingestion.records import DocumentMetadata
from proposal_rag.observability import TracerProtocol
from proposal_rag.rag.query_engine import QueryEngine
from proposal_rag.retrieval import VectorStoreConfig, get_vector_store
from proposal_rag.schemas.results import IngestResult, QueryFilters, QueryResult

logger = logging.getLogger(__name__)


class ProposalKnowledgeBase:
    """Ingestion and querying over one shared store."""

    def __init__(self, coordinator: IngestionCoordinator, engine: QueryEngine, store: VectorStore | None = None):
        self.coordinator = coordinator
        self.engine = engine
        self.store = store

    def ingest(self, buffer: bytes, metadata: DocumentMetadata | Mapping[str, str]) -> IngestResult:
        return self.coordinator.ingest(buffer, metadata)

    def query(self, question: str, filters: QueryFilters | Mapping[str, Any] | None = None) -> QueryResult:
        return self.engine.query(question, filters)

    def close(self) -> None:
        close = getattr(self.store, "close", None)
        if close is not None:
            close()


def build_knowledge_base(
    embeddings: EmbeddingProvider,
    store: VectorStore,
    generator: TextGenerator,
    batch_size: int = 10,
    embed_concurrency: int = 4,
    top_k: int = 5,
    tracer: TracerProtocol | None = None,
) -> ProposalKnowledgeBase:
    """Wire already-built clients together."""
    coordinator = IngestionCoordinator(
        embeddings,
        store,
        batch_size=batch_size,
        embed_concurrency=embed_concurrency,
        tracer=tracer,
    )
    engine = QueryEngine(embeddings, store, generator, top_k=top_k, tracer=tracer)
    return ProposalKnowledgeBase(coordinator, engine, store)


def create_knowledge_base(config: PipelineConfig | None = None) -> ProposalKnowledgeBase:
    """
    Build a knowledge base from configuration.

    With the postgres backend the table and indexes are created if missing,
    so the first call needs a reachable database.

    Raises:
        StoreError: the database could not be reached or prepared
    """
    config = config or PipelineConfig.from_env()

    embeddings = get_embedding_provider(
        model=config.embedding_model,
        api_key=config.openai_api_key,
        timeout=config.request_timeout,
        max_retries=config.max_retries,
        use_mock=config.use_mock_clients,
        dimensions=config.embedding_dim,
    )
    generator = get_text_generator(
        model=config.generation_model,
        temperature=config.generation_temperature,
        api_key=config.openai_api_key,
        timeout=config.request_timeout,
        max_retries=config.max_retries,
        use_mock=config.use_mock_clients,
    )

    use_postgres = config.vector_backend == "postgres"
    store = get_vector_store(
        use_postgres=use_postgres,
        config=VectorStoreConfig(
            connection_string=config.database_url,
            embedding_dim=config.embedding_dim,
            table_name=config.vector_table,
            connect_timeout=int(config.request_timeout),
        ),
    )
    store.create_schema()

    logger.info(
        "Knowledge base ready (backend=%s, embeddings=%s, generator=%s)",
        config.vector_backend,
        "mock" if config.use_mock_clients else config.embedding_model,
        generator.model,
    )
    return build_knowledge_base(
        embeddings,
        store,
        generator,
        batch_size=config.batch_size,
        embed_concurrency=config.embed_concurrency,
        top_k=config.top_k,
    )
