"""
Batch directory ingestion.

Ingests every spreadsheet in a directory. Each file gets metadata derived from
its name; files that ingest cleanly are moved into a processed/ sub-directory
so a re-run only picks up what is new or what failed.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from proposal_rag.core.errors import ProposalRagError
from proposal_rag.ingestion.records import DocumentMetadata, utc_now_iso
from proposal_rag.schemas.results import IngestResult

logger = logging.getLogger(__name__)

SPREADSHEET_SUFFIXES = (".xlsx", ".xls")
PROCESSED_DIRNAME = "processed"
BATCH_CATEGORY = "batch-uploaded"


class Ingestor(Protocol):
    def ingest(self, buffer: bytes, metadata: DocumentMetadata) -> IngestResult:
        ...


@dataclass
class FileIngestOutcome:
    """What happened to one file of the directory."""
    path: Path
    result: IngestResult | None = None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


def metadata_for_file(path: Path) -> DocumentMetadata:
    """Derive document metadata from a spreadsheet's file name."""
    return DocumentMetadata(
        id=f"RFP-{path.stem}",
        title=path.name,
        upload_date=utc_now_iso(),
        category=BATCH_CATEGORY,
    )


def find_spreadsheets(directory: Path) -> list[Path]:
    """Spreadsheets directly inside directory, sorted by name."""
    return sorted(
        p for p in directory.iterdir()
        if p.is_file() and p.suffix.lower() in SPREADSHEET_SUFFIXES
    )


def ingest_directory(
    ingestor: Ingestor,
    directory: str | Path,
    processed_dirname: str = PROCESSED_DIRNAME,
) -> list[FileIngestOutcome]:
    """
    Ingest every spreadsheet in directory, one file at a time.

    The directory is created if missing. A file that fails is logged and left
    where it is; the remaining files are still processed.

    Returns:
        One outcome per file found, in processing order
    """
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    processed_dir = directory / processed_dirname

    files = find_spreadsheets(directory)
    logger.info("Found %d Excel files to process in %s", len(files), directory)

    outcomes: list[FileIngestOutcome] = []
    for path in files:
        logger.info("Processing %s...", path.name)
        try:
            result = ingestor.ingest(path.read_bytes(), metadata_for_file(path))
            processed_dir.mkdir(exist_ok=True)
            shutil.move(str(path), str(processed_dir / path.name))
        except (ProposalRagError, OSError) as exc:
            logger.error("Error processing %s: %s", path.name, exc)
            outcomes.append(FileIngestOutcome(path=path, error=str(exc)))
            continue

        logger.info(
            "Successfully processed %s: %d processed, %d skipped, %d errors",
            path.name, result.processed, result.skipped, result.errors,
        )
        outcomes.append(FileIngestOutcome(path=path, result=result))

    logger.info("Batch processing completed")
    return outcomes
