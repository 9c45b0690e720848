"""
Retrieval-augmented query engine.

FLOW:
-----
question -> embed -> filtered similarity search (top 5) -> contexts
         -> system persona + contexts + question -> one model call -> answer

Any failure while embedding, searching or generating ends the call with
QueryServiceError, whatever the client raised; there is no partial answer.
Filters are checked before anything is embedded. An empty search result is not
a failure: the model still answers, from its instructions alone.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Mapping

from pydantic import ValidationError

from proposal_rag.core.errors import QueryServiceError
from proposal_rag.core.protocols import EmbeddingProvider, TextGenerator, VectorMatch, VectorStore
from proposal_rag.observability import (
    GEN_AI_PROMPT,
    QUERY_FILTER,
    QUERY_MATCH_COUNT,
    QUERY_TOP_K,
    TracerProtocol,
    generation_attributes,
    get_config,
    get_tracer,
)
from proposal_rag.observability.attributes import QUERY_TOP_SIMILARITY
from proposal_rag.rag.prompts import build_messages
from proposal_rag.retrieval.filters import validate_filter
from proposal_rag.schemas.results import QueryFilters, QueryResult, SourceContext

logger = logging.getLogger(__name__)

DEFAULT_TOP_K = 5

# Applied when the caller gives no filters: leaves out entries without a category
DEFAULT_FILTER: dict[str, Any] = {"category": {"$exists": True}}


def build_filter(filters: QueryFilters | Mapping[str, Any] | None) -> dict[str, Any] | None:
    """
    Turn caller filters into a store filter expression.

    - None or an empty mapping: DEFAULT_FILTER
    - category / sheetName present and non-empty: exact matches on them
    - anything else: no filter at all

    Raises:
        ValueError: filters is not a mapping, or a value uses an unknown operator
    """
    if isinstance(filters, QueryFilters):
        filters = filters.model_dump(by_alias=True, exclude_none=True)
    if not filters:
        return dict(DEFAULT_FILTER)
    if not isinstance(filters, Mapping):
        raise ValueError(f"Filters must be a mapping, got {type(filters).__name__}")

    conditions: dict[str, Any] = {}
    category = filters.get("category")
    sheet_name = filters.get("sheetName") or filters.get("sheet_name")
    if category:
        conditions["category"] = category
    if sheet_name:
        conditions["sheetName"] = sheet_name
    validate_filter(conditions)
    return conditions or None


def match_to_context(match: VectorMatch) -> SourceContext:
    """
    Rebuild a context from a stored entry.

    Raises:
        ValueError: originalData is not valid JSON
    """
    metadata = match.metadata or {}
    raw = metadata.get("originalData")
    original_data = json.loads(raw) if isinstance(raw, str) else (raw or {})

    return SourceContext(
        text=metadata.get("text", ""),
        original_data=original_data,
        category=metadata.get("category"),
        sheet_name=metadata.get("sheetName"),
        similarity=match.score,
    )


class QueryEngine:
    """Answers questions from the vector store with injected clients."""

    def __init__(
        self,
        embeddings: EmbeddingProvider,
        store: VectorStore,
        generator: TextGenerator,
        top_k: int = DEFAULT_TOP_K,
        tracer: TracerProtocol | None = None,
    ):
        self._embeddings = embeddings
        self._store = store
        self._generator = generator
        self.top_k = top_k
        self._tracer = tracer or get_tracer()

    def retrieve(
        self,
        question: str,
        filters: QueryFilters | Mapping[str, Any] | None = None,
    ) -> list[SourceContext]:
        """Embed the question and return matching contexts, best first."""
        try:
            store_filter = build_filter(filters)
        except (TypeError, ValueError) as exc:
            raise QueryServiceError(f"Invalid query filters: {exc}") from exc

        with self._tracer.start_span(
            "query.retrieve",
            attributes={QUERY_TOP_K: self.top_k, QUERY_FILTER: json.dumps(store_filter, default=str)},
        ) as span:
            try:
                vector = self._embeddings.embed(question)
            except Exception as exc:
                raise QueryServiceError(f"Failed to embed question: {exc}") from exc

            try:
                matches = self._store.query(vector, top_k=self.top_k, filter=store_filter, include_metadata=True)
            except Exception as exc:
                raise QueryServiceError(f"Vector search failed: {exc}") from exc

            try:
                contexts = [match_to_context(match) for match in matches]
            except (ValueError, ValidationError) as exc:
                raise QueryServiceError(f"Stored entry could not be decoded: {exc}") from exc

            span.set_attribute(QUERY_MATCH_COUNT, len(contexts))
            if contexts:
                span.set_attribute(QUERY_TOP_SIMILARITY, contexts[0].similarity)

        logger.debug("Retrieved %d contexts for filter %s", len(contexts), store_filter)
        return contexts

    def query(
        self,
        question: str,
        filters: QueryFilters | Mapping[str, Any] | None = None,
    ) -> QueryResult:
        """
        Answer a question.

        Raises:
            QueryServiceError: embedding, search or generation failed
        """
        if not question or not question.strip():
            raise QueryServiceError("Question must not be empty")

        logger.info("Received query: %s", question)
        with self._tracer.start_span("query") as span:
            contexts = self.retrieve(question, filters)
            messages = build_messages(question, contexts)

            with self._tracer.start_span(
                "query.generate", attributes=generation_attributes(self._generator.model)
            ) as gen_span:
                if get_config().capture_content:
                    gen_span.set_attribute(GEN_AI_PROMPT, messages[-1].content)
                try:
                    answer = self._generator.complete(messages)
                except Exception as exc:
                    raise QueryServiceError(f"Answer generation failed: {exc}") from exc

            span.set_attribute(QUERY_MATCH_COUNT, len(contexts))

        return QueryResult(answer=answer, sources=contexts)
