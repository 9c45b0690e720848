"""
Ingestion module - spreadsheets into the vector store.

- records: DocumentMetadata and Record
- extractor: workbook bytes -> Records
- fingerprint: stable content ids for deduplication
- coordinator: batching, dedup check, embedding, bulk upsert
- batch: ingest a whole directory of spreadsheets
"""

from proposal_rag.ingestion.records import (
    UNCATEGORIZED,
    DocumentMetadata,
    Record,
)
from proposal_rag.ingestion.extractor import (
    ExtractionResult,
    ExtractionStats,
    build_record_text,
    extract_records,
    iter_records,
    open_workbook,
)
from proposal_rag.ingestion.fingerprint import fingerprint
from proposal_rag.ingestion.coordinator import (
    DEFAULT_BATCH_SIZE,
    IngestionCoordinator,
    batched,
)
from proposal_rag.ingestion.batch import (
    FileIngestOutcome,
    ingest_directory,
    metadata_for_file,
)

__all__ = [
    # Records
    "UNCATEGORIZED",
    "DocumentMetadata",
    "Record",
    # Extraction
    "ExtractionResult",
    "ExtractionStats",
    "build_record_text",
    "extract_records",
    "iter_records",
    "open_workbook",
    # Deduplication
    "fingerprint",
    # Coordinator
    "DEFAULT_BATCH_SIZE",
    "IngestionCoordinator",
    "batched",
    # Directory
    "FileIngestOutcome",
    "ingest_directory",
    "metadata_for_file",
]
