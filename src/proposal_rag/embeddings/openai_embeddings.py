"""
Embeddings Module - Single Responsibility: Generate text embeddings.

It has ONE job: convert text to a fixed-length vector. Whatever goes wrong on
the API side comes back as EmbeddingError; there is no fallback vector; the
caller decides whether to skip the record or fail.

Transient API failures (timeouts, connection resets, rate limits, 5xx) are
retried with exponential backoff before giving up.
"""

from __future__ import annotations

import hashlib
import logging

import numpy as np
from openai import (
    APIConnectionError,
    APITimeoutError,
    InternalServerError,
    OpenAI,
    OpenAIError,
    RateLimitError,
)
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from proposal_rag.core.errors import EmbeddingError
from proposal_rag.core.protocols import EmbeddingProvider

logger = logging.getLogger(__name__)

TRANSIENT_ERRORS = (APIConnectionError, APITimeoutError, RateLimitError, InternalServerError)

MODEL_DIMENSIONS = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
}


def _log_retry(retry_state) -> None:
    logger.warning(
        "Embedding API retry %d after error: %s",
        retry_state.attempt_number,
        retry_state.outcome.exception() if retry_state.outcome else "unknown",
    )


class OpenAIEmbeddings:
    """
    OpenAI-based embedding provider.

    Uses text-embedding-ada-002 by default (1536 dimensions).
    """

    def __init__(
        self,
        model: str = "text-embedding-ada-002",
        api_key: str | None = None,
        timeout: float = 60.0,
        max_retries: int = 3,
    ):
        self.model = model
        self.max_retries = max(1, max_retries)
        # Retries are handled below so the backoff is logged and bounded here
        self._client = OpenAI(api_key=api_key, timeout=timeout, max_retries=0)

    @property
    def dimensions(self) -> int:
        """Return embedding dimensions for the model."""
        return MODEL_DIMENSIONS.get(self.model, 1536)

    def _create(self, texts: str | list[str]):
        retryer = Retrying(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(multiplier=1, min=1, max=20),
            retry=retry_if_exception_type(TRANSIENT_ERRORS),
            before_sleep=_log_retry,
            reraise=True,
        )
        try:
            return retryer(self._client.embeddings.create, input=texts, model=self.model)
        except OpenAIError as exc:
            raise EmbeddingError(f"Embedding request failed ({self.model}): {exc}") from exc

    def embed(self, text: str) -> list[float]:
        """Generate embedding for a single text."""
        response = self._create(text)
        return list(response.data[0].embedding)

    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Generate embeddings for multiple texts in one request."""
        if not texts:
            return []

        response = self._create(texts)
        # Response data carries the input index; do not rely on arrival order
        ordered = sorted(response.data, key=lambda item: item.index)
        return [list(item.embedding) for item in ordered]


class MockEmbeddings:
    """
    Mock embedding provider for testing without API calls.

    Generates deterministic unit vectors seeded from a text hash, so the same
    text always maps to the same vector and identical texts have similarity 1.
    NOT for production use - only for testing/development.
    """

    def __init__(self, dimensions: int = 1536):
        self._dimensions = dimensions

    @property
    def dimensions(self) -> int:
        return self._dimensions

    def embed(self, text: str) -> list[float]:
        """Generate deterministic pseudo-embedding from text hash."""
        seed = int.from_bytes(hashlib.sha256(text.encode("utf-8")).digest()[:8], "big")
        vector = np.random.default_rng(seed).standard_normal(self._dimensions)
        return (vector / np.linalg.norm(vector)).astype(np.float32).tolist()

    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Generate embeddings for multiple texts."""
        return [self.embed(text) for text in texts]


def get_embedding_provider(
    model: str = "text-embedding-ada-002",
    api_key: str | None = None,
    timeout: float = 60.0,
    max_retries: int = 3,
    use_mock: bool = False,
    dimensions: int = 1536,
) -> EmbeddingProvider:
    """
    Factory function to get the appropriate embedding provider.

    Args:
        use_mock: If True, return MockEmbeddings (for testing)
    """
    if use_mock:
        return MockEmbeddings(dimensions=dimensions)
    return OpenAIEmbeddings(model=model, api_key=api_key, timeout=timeout, max_retries=max_retries)
