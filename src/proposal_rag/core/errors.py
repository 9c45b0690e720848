"""
Exception taxonomy for the ingestion and query pipelines.

Call-level failures (a workbook that cannot be parsed, a question that cannot
be answered) propagate to the caller. Per-record and per-batch failures are
raised by the clients too, but the ingestion coordinator absorbs them into its
counters instead of letting them escape.

HIERARCHY:
----------
ProposalRagError
├── ConfigurationError         bad setting in the environment or PipelineConfig
├── ParseError                 malformed spreadsheet, fatal to one ingest call
├── ExternalServiceError       anything that went wrong on the other side of a wire
│   ├── EmbeddingError
│   ├── GenerationError
│   └── StoreError
│       ├── StoreReadError
│       └── StoreWriteError
└── QueryServiceError          fatal to one query call, wraps the cause
"""

from __future__ import annotations


class ProposalRagError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(ProposalRagError, ValueError):
    """A pipeline setting is missing or out of range."""


class ParseError(ProposalRagError):
    """The spreadsheet buffer could not be read as a workbook."""


class ExternalServiceError(ProposalRagError):
    """A call to an external service failed.

    These are retryable by nature: the same request may succeed later.
    """

    retryable = True


class EmbeddingError(ExternalServiceError):
    """The embedding service did not return a vector."""


class GenerationError(ExternalServiceError):
    """The language model did not return a completion."""


class StoreError(ExternalServiceError):
    """The vector store rejected or failed a request."""


class StoreReadError(StoreError):
    """A fetch or similarity query against the vector store failed."""


class StoreWriteError(StoreError):
    """A bulk upsert into the vector store failed."""


class QueryServiceError(ProposalRagError):
    """A query could not be answered.

    Raised for failures while embedding the question, searching the store or
    generating the answer. The message carries the underlying cause.
    """
