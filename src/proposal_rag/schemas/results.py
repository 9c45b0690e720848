"""
Boundary Schemas

These Pydantic models are what ingest() and query() hand back to the upload
and chat handlers. Field names are snake_case in Python and camelCase on the
wire (model_dump(by_alias=True) / model_dump_json(by_alias=True)), matching
the JSON the front end already reads.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class IngestResult(_CamelModel):
    """Counters for one ingestion call."""

    total_items: int = Field(
        alias="totalItems",
        description="Records produced by extraction (blank rows excluded)",
    )
    processed: int = Field(description="Records embedded and staged for upsert")
    skipped: int = Field(description="Records whose fingerprint was already stored")
    errors: int = Field(
        description="Per-record embedding failures plus every staged record of a failed batch upsert"
    )
    sheet_names: list[str] = Field(
        alias="sheetNames",
        description="Worksheets found in the workbook, in workbook order",
    )


class SourceContext(_CamelModel):
    """
    One retrieved entry, as shown to the model and returned to the caller.
    """

    text: str
    original_data: dict[str, Any] = Field(alias="originalData")
    category: str | None = None
    sheet_name: str | None = Field(default=None, alias="sheetName")
    similarity: float


class QueryResult(_CamelModel):
    """Answer plus the sources it was conditioned on, best match first."""

    answer: str
    sources: list[SourceContext] = Field(default_factory=list)


class QueryFilters(_CamelModel):
    """Optional exact-match filters a caller can put on a query."""

    category: str | None = None
    sheet_name: str | None = Field(default=None, alias="sheetName")
