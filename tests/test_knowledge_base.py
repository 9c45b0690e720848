"""
End-to-End Tests for the Knowledge Base

Ingest a workbook, then ask about it, all against in-process doubles.
"""

import pytest

from proposal_rag.config import PipelineConfig
from proposal_rag.embeddings import MockEmbeddings
from proposal_rag.generation import MockGenerator
from proposal_rag.knowledge_base import build_knowledge_base, create_knowledge_base
from proposal_rag.retrieval.store import InMemoryVectorStore


# ---------------------------------------------------------------------------
# FIXTURES
# ---------------------------------------------------------------------------


@pytest.fixture
def generator():
    return MockGenerator(answer="The quoted price was 100.")


@pytest.fixture
def kb(generator):
    return build_knowledge_base(MockEmbeddings(dimensions=16), InMemoryVectorStore(), generator)


@pytest.fixture
def pricing_workbook(workbook_bytes):
    return workbook_bytes({"Sheet1": [["Category", "Price"], ["Pricing", 100]]})


METADATA = {"id": "RFP-001", "title": "Pricing.xlsx", "uploadDate": "2024-01-01T00:00:00.000Z", "category": "General"}


# ---------------------------------------------------------------------------
# PRICING SCENARIO
# ---------------------------------------------------------------------------


class TestPricingScenario:
    """Ingest, re-ingest, then query one Pricing row."""

    def test_first_ingest_processes_row(self, kb, pricing_workbook):
        result = kb.ingest(pricing_workbook, METADATA)

        assert result.model_dump(by_alias=True) == {
            "totalItems": 1,
            "processed": 1,
            "skipped": 0,
            "errors": 0,
            "sheetNames": ["Sheet1"],
        }

    def test_second_ingest_skips_row(self, kb, pricing_workbook):
        kb.ingest(pricing_workbook, METADATA)

        result = kb.ingest(pricing_workbook, METADATA)

        assert result.processed == 0
        assert result.skipped == 1

    def test_query_returns_pricing_context(self, kb, pricing_workbook, generator):
        kb.ingest(pricing_workbook, METADATA)

        result = kb.query("What price did we quote?", {"category": "Pricing"})

        assert result.answer == "The quoted price was 100."
        assert len(result.sources) == 1
        source = result.sources[0]
        assert source.text == "Category: Pricing\nPrice: 100"
        assert source.original_data == {"Category": "Pricing", "Price": "100"}
        assert source.category == "Pricing"
        assert source.sheet_name == "Sheet1"
        assert "Category: Pricing\nPrice: 100" in generator.calls[0][1].content

    def test_query_result_serializes_camel_case(self, kb, pricing_workbook):
        kb.ingest(pricing_workbook, METADATA)

        payload = kb.query("price?").model_dump(by_alias=True)

        assert set(payload) == {"answer", "sources"}
        assert set(payload["sources"][0]) == {"text", "originalData", "category", "sheetName", "similarity"}

    def test_other_category_filter_finds_nothing(self, kb, pricing_workbook):
        kb.ingest(pricing_workbook, METADATA)

        assert kb.query("price?", {"category": "Legal"}).sources == []


# ---------------------------------------------------------------------------
# FACTORY
# ---------------------------------------------------------------------------


class TestCreateKnowledgeBase:
    """Test wiring from PipelineConfig."""

    def test_memory_backend_with_mock_clients(self, pricing_workbook):
        config = PipelineConfig(vector_backend="memory", use_mock_clients=True, embedding_dim=32, batch_size=5, top_k=2)

        kb = create_knowledge_base(config)

        assert isinstance(kb.store, InMemoryVectorStore)
        assert kb.coordinator.batch_size == 5
        assert kb.engine.top_k == 2
        assert kb.ingest(pricing_workbook, METADATA).processed == 1
        assert kb.query("price?").answer.startswith("[mock answer]")
        kb.close()
