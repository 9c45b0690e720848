"""
Spreadsheet extraction - workbook bytes to ordered Records.

For every worksheet:
1. The first row is the header; header text is trimmed.
2. Each later row becomes a {header: trimmed cell text} mapping, using only
   columns with a non-empty header and only cells that hold a value.
   Rows that map nothing are skipped.
3. Rows are grouped by their "Category" field, groups in order of first
   appearance, rows in sheet order inside a group.
4. Each row is rendered as "field: value" lines (non-empty values, field
   order kept). Rows whose rendering is blank produce no Record.

Records are produced lazily, one worksheet at a time, so a caller that
batches them never holds more than one worksheet of rows.
"""

from __future__ import annotations

import io
import logging
import zipfile
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Any, Iterable, Iterator

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException
from openpyxl.workbook.workbook import Workbook

from proposal_rag.core.errors import ParseError
from proposal_rag.ingestion.records import UNCATEGORIZED, Record

logger = logging.getLogger(__name__)

CATEGORY_FIELD = "Category"

# What a damaged xlsx can throw while openpyxl unpacks or parses it
_WORKBOOK_ERRORS = (InvalidFileException, zipfile.BadZipFile, KeyError, ValueError, OSError, SyntaxError)


# ---------------------------------------------------------------------------
# RESULT TYPES
# ---------------------------------------------------------------------------


@dataclass
class ExtractionStats:
    """Counts collected while records are produced."""
    sheet_names: list[str] = field(default_factory=list)
    sheet_row_counts: dict[str, int] = field(default_factory=dict)
    records: int = 0

    @property
    def total_rows(self) -> int:
        """Data rows across all worksheets, header rows excluded."""
        return sum(self.sheet_row_counts.values())


@dataclass
class ExtractionResult:
    """Fully materialized extraction of one workbook."""
    records: list[Record]
    stats: ExtractionStats


# ---------------------------------------------------------------------------
# CELL AND ROW HELPERS
# ---------------------------------------------------------------------------


def cell_text(value: Any) -> str:
    """Render a cell value the way it reads in the sheet, trimmed."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return str(value).strip()


def read_headers(cells: Iterable[Any]) -> list[str]:
    """Header texts by column position; unreadable header cells become ""."""
    headers = []
    for value in cells:
        try:
            headers.append(cell_text(value))
        except (TypeError, ValueError) as exc:
            logger.debug("Unreadable header cell %r: %s", value, exc)
            headers.append("")
    return headers


def map_row(headers: list[str], cells: Iterable[Any]) -> dict[str, str]:
    """
    Map one data row onto the headers.

    Empty cells and cells under a blank header are left out. A cell that
    cannot be rendered is skipped on its own; the rest of the row still maps.
    """
    row: dict[str, str] = {}
    for col, value in enumerate(cells):
        if value is None or col >= len(headers) or not headers[col]:
            continue
        try:
            row[headers[col]] = cell_text(value)
        except (TypeError, ValueError) as exc:
            logger.debug("Skipping unreadable cell in column %r: %s", headers[col], exc)
    return row


def group_by_category(rows: Iterable[dict[str, str]]) -> dict[str | None, list[dict[str, str]]]:
    """Group rows by their Category value, keeping first-appearance order."""
    groups: dict[str | None, list[dict[str, str]]] = {}
    for row in rows:
        groups.setdefault(row.get(CATEGORY_FIELD), []).append(row)
    return groups


def build_record_text(row: dict[str, Any]) -> str:
    """Render a row as "key: value" lines, skipping empty and non-string values."""
    return "\n".join(
        f"{key}: {value}"
        for key, value in row.items()
        if isinstance(value, str) and value
    )


# ---------------------------------------------------------------------------
# WORKBOOK
# ---------------------------------------------------------------------------


def load_workbook(buffer: bytes) -> Workbook:
    """Open workbook bytes read-only; anything unreadable raises ParseError."""
    if not buffer:
        raise ParseError("Could not read workbook: buffer is empty")
    try:
        return openpyxl.load_workbook(io.BytesIO(buffer), read_only=True, data_only=True)
    except _WORKBOOK_ERRORS as exc:
        raise ParseError(f"Could not read workbook: {exc}") from exc


@contextmanager
def open_workbook(buffer: bytes) -> Iterator[Workbook]:
    """load_workbook() as a context manager that closes the archive."""
    workbook = load_workbook(buffer)
    try:
        yield workbook
    finally:
        workbook.close()


def sheet_names(workbook: Workbook) -> list[str]:
    return [worksheet.title for worksheet in workbook.worksheets]


def _read_worksheet(worksheet) -> tuple[list[dict[str, str]], int]:
    """Return (row mappings, data row count) for one worksheet."""
    rows: list[dict[str, str]] = []
    headers: list[str] = []
    row_count = 0

    try:
        for row_number, cells in enumerate(worksheet.iter_rows(values_only=True), start=1):
            row_count = row_number
            if row_number == 1:
                headers = read_headers(cells)
                continue
            mapped = map_row(headers, cells)
            if mapped:
                rows.append(mapped)
    except _WORKBOOK_ERRORS as exc:
        raise ParseError(f"Could not read worksheet {worksheet.title!r}: {exc}") from exc

    return rows, max(row_count - 1, 0)


def iter_records(workbook: Workbook, stats: ExtractionStats | None = None) -> Iterator[Record]:
    """
    Yield Records for every worksheet, in workbook order.

    Args:
        workbook: An open workbook (see open_workbook)
        stats: Optional accumulator, filled in as worksheets are read
    """
    stats = stats if stats is not None else ExtractionStats()

    for worksheet in workbook.worksheets:
        sheet = worksheet.title
        logger.info("Processing worksheet: %s", sheet)
        if sheet not in stats.sheet_names:
            stats.sheet_names.append(sheet)

        rows, data_rows = _read_worksheet(worksheet)
        stats.sheet_row_counts[sheet] = data_rows

        emitted = 0
        for category, items in group_by_category(rows).items():
            for item in items:
                text = build_record_text(item)
                if not text.strip():
                    continue
                emitted += 1
                stats.records += 1
                yield Record(
                    category=category or UNCATEGORIZED,
                    sheet_name=sheet,
                    text=text,
                    original_data=item,
                )

        logger.debug("Worksheet %s: %d data rows, %d records", sheet, data_rows, emitted)


def extract_records(buffer: bytes) -> ExtractionResult:
    """Extract every record of a workbook into memory."""
    stats = ExtractionStats()
    with open_workbook(buffer) as workbook:
        stats.sheet_names = sheet_names(workbook)
        records = list(iter_records(workbook, stats))
    return ExtractionResult(records=records, stats=stats)
