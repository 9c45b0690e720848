"""
Content fingerprints - the identity of a vector entry.

A fingerprint is the MD5 hex digest of

    "{document id}-{sheet name}-{category}-{first 50 characters of text}"

Same inputs, same id, every run, so re-ingesting a document finds its
entries already present. Only the first 50 characters of the text take part:
two rows of the same sheet and category that agree on their first 50
characters share an id and only one entry survives.

COMPATIBILITY: the digest layout and algorithm are part of the stored data.
Changing either makes every previously written id unreachable, so the next
ingestion of an old document writes a second copy of all its rows.
"""

from __future__ import annotations

import hashlib

from proposal_rag.ingestion.records import DocumentMetadata, Record

TEXT_PREFIX_LENGTH = 50


def fingerprint_source(document: DocumentMetadata, record: Record) -> str:
    """The string that gets hashed."""
    return f"{document.id}-{record.sheet_name}-{record.category}-{record.text[:TEXT_PREFIX_LENGTH]}"


def fingerprint(document: DocumentMetadata, record: Record) -> str:
    """Stable 128-bit hex id for a record of a document."""
    return hashlib.md5(fingerprint_source(document, record).encode("utf-8")).hexdigest()
