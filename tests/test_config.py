"""
Unit Tests for PipelineConfig

Environment handling is tested with patch.dict on os.environ.
"""

import pytest
from unittest.mock import patch

from proposal_rag.config import PipelineConfig
from proposal_rag.core.errors import ConfigurationError, ProposalRagError


class TestPipelineConfigDefaults:
    """Test defaults when no env vars are set."""

    def test_defaults(self):
        with patch.dict("os.environ", {}, clear=True):
            config = PipelineConfig.from_env()

        assert config.openai_api_key is None
        assert config.embedding_model == "text-embedding-ada-002"
        assert config.embedding_dim == 1536
        assert config.generation_model == "gpt-4"
        assert config.generation_temperature == 0.0
        assert config.vector_backend == "postgres"
        assert config.vector_table == "proposal_vectors"
        assert config.batch_size == 10
        assert config.embed_concurrency == 4
        assert config.top_k == 5
        assert config.request_timeout == 60.0
        assert config.max_retries == 3
        assert config.use_mock_clients is False


class TestPipelineConfigFromEnv:
    """Test env var parsing."""

    def test_reads_values(self):
        env = {
            "OPENAI_API_KEY": "sk-test",
            "GENERATION_MODEL": "gpt-4o",
            "GENERATION_TEMPERATURE": "0.3",
            "VECTOR_BACKEND": "MEMORY",
            "DATABASE_URL": "postgresql://db/rfp",
            "INGEST_BATCH_SIZE": "25",
            "QUERY_TOP_K": "8",
            "USE_MOCK_CLIENTS": "1",
        }
        with patch.dict("os.environ", env, clear=True):
            config = PipelineConfig.from_env()

        assert config.openai_api_key == "sk-test"
        assert config.generation_model == "gpt-4o"
        assert config.generation_temperature == 0.3
        assert config.vector_backend == "memory"
        assert config.database_url == "postgresql://db/rfp"
        assert config.batch_size == 25
        assert config.top_k == 8
        assert config.use_mock_clients is True

    def test_empty_api_key_is_none(self):
        with patch.dict("os.environ", {"OPENAI_API_KEY": ""}, clear=True):
            assert PipelineConfig.from_env().openai_api_key is None

    def test_non_integer_rejected(self):
        with patch.dict("os.environ", {"INGEST_BATCH_SIZE": "ten"}, clear=True):
            with pytest.raises(ConfigurationError, match="INGEST_BATCH_SIZE"):
                PipelineConfig.from_env()


class TestPipelineConfigValidation:
    """Test __post_init__ checks."""

    @pytest.mark.parametrize("kwargs", [
        {"batch_size": 0},
        {"embed_concurrency": 0},
        {"top_k": 0},
        {"vector_backend": "pinecone"},
    ])
    def test_invalid_values(self, kwargs):
        with pytest.raises(ConfigurationError):
            PipelineConfig(**kwargs)

    def test_error_is_caught_as_package_error(self):
        # Caught by the CLI handlers and by plain ValueError handlers alike
        with pytest.raises(ProposalRagError):
            PipelineConfig(top_k=0)
        with pytest.raises(ValueError):
            PipelineConfig(top_k=0)
