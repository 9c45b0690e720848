"""
Unit Tests for the Query Engine

Tests filter construction, context decoding, prompt hand-off and error
wrapping. Clients are MockEmbeddings, InMemoryVectorStore and MockGenerator,
or MagicMocks where a failure has to be injected.
"""

import json

import pytest
from unittest.mock import MagicMock

from proposal_rag.core.errors import EmbeddingError, GenerationError, QueryServiceError, StoreReadError
from proposal_rag.core.protocols import VectorEntry, VectorMatch
from proposal_rag.embeddings import MockEmbeddings
from proposal_rag.generation import MockGenerator
from proposal_rag.rag.prompts import SYSTEM_PROMPT
from proposal_rag.rag.query_engine import DEFAULT_FILTER, QueryEngine, build_filter, match_to_context
from proposal_rag.retrieval.store import InMemoryVectorStore
from proposal_rag.schemas.results import QueryFilters


# ---------------------------------------------------------------------------
# FIXTURES
# ---------------------------------------------------------------------------


@pytest.fixture
def embeddings():
    return MockEmbeddings(dimensions=8)


@pytest.fixture
def store(embeddings):
    """Store holding one categorized and one uncategorized entry."""
    store = InMemoryVectorStore()
    store.upsert([
        VectorEntry(
            id="pricing",
            embedding=embeddings.embed("Category: Pricing\nPrice: 100"),
            metadata={
                "category": "Pricing",
                "sheetName": "Sheet1",
                "text": "Category: Pricing\nPrice: 100",
                "originalData": json.dumps({"Category": "Pricing", "Price": "100"}),
            },
        ),
        VectorEntry(
            id="orphan",
            embedding=embeddings.embed("orphan text"),
            metadata={"sheetName": "Sheet1", "text": "orphan text", "originalData": "{}"},
        ),
    ])
    return store


@pytest.fixture
def generator():
    return MockGenerator(answer="We offered 100.")


@pytest.fixture
def engine(embeddings, store, generator):
    return QueryEngine(embeddings, store, generator)


# ---------------------------------------------------------------------------
# FILTER CONSTRUCTION
# ---------------------------------------------------------------------------


class TestBuildFilter:
    """Test caller filters -> store filter."""

    def test_none_gives_default(self):
        assert build_filter(None) == {"category": {"$exists": True}}

    def test_empty_mapping_gives_default(self):
        assert build_filter({}) == DEFAULT_FILTER

    def test_default_is_a_copy(self):
        build_filter(None)["category"] = "changed"
        assert DEFAULT_FILTER == {"category": {"$exists": True}}

    def test_category_only(self):
        assert build_filter({"category": "Pricing"}) == {"category": "Pricing"}

    def test_sheet_only(self):
        assert build_filter({"sheetName": "Q1"}) == {"sheetName": "Q1"}

    def test_both(self):
        assert build_filter({"category": "Pricing", "sheetName": "Q1"}) == {"category": "Pricing", "sheetName": "Q1"}

    def test_unrelated_keys_give_no_filter(self):
        assert build_filter({"region": "EU"}) is None

    def test_empty_values_give_no_filter(self):
        assert build_filter({"category": "", "sheetName": None}) is None

    def test_query_filters_model(self):
        assert build_filter(QueryFilters(category="Pricing", sheet_name="Q1")) == {
            "category": "Pricing",
            "sheetName": "Q1",
        }

    def test_empty_query_filters_model_gives_default(self):
        assert build_filter(QueryFilters()) == DEFAULT_FILTER

    def test_operator_condition_passes_through(self):
        assert build_filter({"category": {"$in": ["Pricing", "Legal"]}}) == {"category": {"$in": ["Pricing", "Legal"]}}

    def test_unknown_operator_rejected(self):
        with pytest.raises(ValueError, match=r"\$regex"):
            build_filter({"category": {"$regex": "x"}})

    def test_non_mapping_rejected(self):
        with pytest.raises(ValueError):
            build_filter(["category"])


# ---------------------------------------------------------------------------
# CONTEXT DECODING
# ---------------------------------------------------------------------------


class TestMatchToContext:
    """Test stored entry -> SourceContext."""

    def test_decodes_original_data(self):
        match = VectorMatch(id="a", score=0.9, metadata={
            "text": "t", "category": "C", "sheetName": "S", "originalData": '{"Price": "100"}',
        })

        context = match_to_context(match)

        assert context.original_data == {"Price": "100"}
        assert context.similarity == 0.9
        assert context.category == "C"
        assert context.sheet_name == "S"

    def test_missing_original_data_is_empty(self):
        context = match_to_context(VectorMatch(id="a", score=0.5, metadata={"text": "t"}))
        assert context.original_data == {}

    def test_malformed_original_data_raises(self):
        with pytest.raises(ValueError):
            match_to_context(VectorMatch(id="a", score=0.5, metadata={"text": "t", "originalData": "{not json"}))


# ---------------------------------------------------------------------------
# QUERY
# ---------------------------------------------------------------------------


class TestQuery:
    """Test the full query flow."""

    def test_returns_answer_and_sources(self, engine):
        result = engine.query("What was the price?")

        assert result.answer == "We offered 100."
        assert len(result.sources) == 1
        assert result.sources[0].original_data == {"Category": "Pricing", "Price": "100"}

    def test_unfiltered_query_excludes_uncategorized(self, engine):
        result = engine.query("orphan text")
        assert all(source.category for source in result.sources)

    def test_explicit_filter_bypasses_default(self, engine):
        result = engine.query("orphan text", {"sheetName": "Sheet1"})
        assert {s.text for s in result.sources} == {"orphan text", "Category: Pricing\nPrice: 100"}

    def test_sources_in_ranking_order(self, engine):
        result = engine.query("orphan text", {"sheetName": "Sheet1"})

        assert result.sources[0].text == "orphan text"
        assert result.sources[0].similarity >= result.sources[1].similarity

    def test_prompt_contains_contexts_and_question(self, engine, generator):
        engine.query("What was the price?")

        messages = generator.calls[0]
        assert messages[0].role == "system"
        assert messages[0].content == SYSTEM_PROMPT
        assert "[Sheet: Sheet1, Category: Pricing]" in messages[1].content
        assert messages[1].content.endswith("Question: What was the price?")

    def test_no_matches_still_answers(self, embeddings, generator):
        engine = QueryEngine(embeddings, InMemoryVectorStore(), generator)

        result = engine.query("anything?")

        assert result.sources == []
        assert result.answer == "We offered 100."

    def test_top_k_passed_to_store(self, embeddings, generator):
        store = MagicMock()
        store.query.return_value = []
        engine = QueryEngine(embeddings, store, generator, top_k=3)

        engine.query("q")

        assert store.query.call_args.kwargs["top_k"] == 3
        assert store.query.call_args.kwargs["filter"] == DEFAULT_FILTER


class TestQueryFailures:
    """Test that every collaborator failure becomes QueryServiceError."""

    def test_embedding_failure(self, store, generator):
        embeddings = MagicMock()
        embeddings.embed.side_effect = EmbeddingError("quota exceeded")
        engine = QueryEngine(embeddings, store, generator)

        with pytest.raises(QueryServiceError, match="quota exceeded") as exc_info:
            engine.query("q")

        assert isinstance(exc_info.value.__cause__, EmbeddingError)

    def test_store_failure(self, embeddings, generator):
        store = MagicMock()
        store.query.side_effect = StoreReadError("index offline")
        engine = QueryEngine(embeddings, store, generator)

        with pytest.raises(QueryServiceError, match="index offline"):
            engine.query("q")

    def test_generation_failure(self, embeddings, store):
        generator = MagicMock()
        generator.model = "gpt-4"
        generator.complete.side_effect = GenerationError("model overloaded")
        engine = QueryEngine(embeddings, store, generator)

        with pytest.raises(QueryServiceError, match="model overloaded"):
            engine.query("q")

    def test_corrupt_stored_entry(self, embeddings, generator):
        store = MagicMock()
        store.query.return_value = [VectorMatch(id="a", score=1.0, metadata={"text": "t", "originalData": "{bad"})]
        engine = QueryEngine(embeddings, store, generator)

        with pytest.raises(QueryServiceError):
            engine.query("q")

    @pytest.mark.parametrize("question", ["", "   "])
    def test_blank_question(self, engine, question):
        with pytest.raises(QueryServiceError):
            engine.query(question)

    def test_invalid_filter_rejected_before_embedding(self, store, generator):
        embeddings = MagicMock()
        engine = QueryEngine(embeddings, store, generator)

        with pytest.raises(QueryServiceError, match="Invalid query filters") as exc_info:
            engine.query("hi", {"category": {"$regex": "x"}})

        assert isinstance(exc_info.value.__cause__, ValueError)
        embeddings.embed.assert_not_called()

    def test_unexpected_embedding_exception_wrapped(self, store, generator):
        embeddings = MagicMock()
        embeddings.embed.side_effect = RuntimeError("client bug")
        engine = QueryEngine(embeddings, store, generator)

        with pytest.raises(QueryServiceError, match="client bug") as exc_info:
            engine.query("q")

        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_unexpected_store_exception_wrapped(self, embeddings, generator):
        store = MagicMock()
        store.query.side_effect = ConnectionError("socket reset")
        engine = QueryEngine(embeddings, store, generator)

        with pytest.raises(QueryServiceError, match="socket reset"):
            engine.query("q")

    def test_unexpected_generation_exception_wrapped(self, embeddings, store):
        generator = MagicMock()
        generator.model = "gpt-4"
        generator.complete.side_effect = TimeoutError("read timed out")
        engine = QueryEngine(embeddings, store, generator)

        with pytest.raises(QueryServiceError, match="read timed out"):
            engine.query("q")
