"""
Record models for the ingestion pipeline.

DocumentMetadata describes one uploaded spreadsheet; Record is one row of it
after extraction. Metadata is frozen: once ingestion starts, every record of
the document carries the same values.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping

UNCATEGORIZED = "uncategorized"


def utc_now_iso() -> str:
    """Current time as ISO-8601 with millisecond precision and a Z suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class DocumentMetadata:
    """Caller-supplied description of an ingested spreadsheet."""
    id: str
    title: str
    upload_date: str = field(default_factory=utc_now_iso)
    category: str = UNCATEGORIZED

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("DocumentMetadata.id must not be empty")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DocumentMetadata":
        """Build from the camelCase mapping collaborators send."""
        doc_id = data.get("id") or data.get("rfpId")
        if not doc_id:
            raise ValueError("Document metadata needs an 'id'")
        return cls(
            id=str(doc_id),
            title=str(data.get("title") or doc_id),
            upload_date=str(data.get("uploadDate") or utc_now_iso()),
            category=str(data.get("category") or UNCATEGORIZED),
        )

    def to_dict(self) -> dict[str, str]:
        """camelCase form stored alongside every vector entry."""
        return {
            "id": self.id,
            "title": self.title,
            "uploadDate": self.upload_date,
            "category": self.category,
        }


@dataclass
class Record:
    """
    One logical unit extracted from a worksheet row.

    text is the row rendered as "field: value" lines; original_data is the
    row mapping it was rendered from.
    """
    category: str
    sheet_name: str
    text: str
    original_data: dict[str, str]

    def to_metadata(self, document: DocumentMetadata) -> dict[str, Any]:
        """
        Merge document metadata with this record's fields.

        Record fields are applied last, so the record's category replaces the
        document's category key.
        """
        return {
            **document.to_dict(),
            "category": self.category,
            "sheetName": self.sheet_name,
            "text": self.text,
            "originalData": json.dumps(self.original_data, ensure_ascii=False),
        }
