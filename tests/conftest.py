"""
Shared fixtures.

Workbooks are built in memory with openpyxl so no test touches a fixture file.
"""

import io

import openpyxl
import pytest

from proposal_rag.observability import reset_config, reset_tracer


def build_workbook(sheets: dict[str, list[list]]) -> bytes:
    """
    Build an .xlsx in memory.

    Args:
        sheets: sheet name -> rows; the first row is the header
    """
    workbook = openpyxl.Workbook()
    workbook.remove(workbook.active)
    for name, rows in sheets.items():
        worksheet = workbook.create_sheet(title=name)
        for row in rows:
            worksheet.append(row)

    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


@pytest.fixture
def workbook_bytes():
    """Factory fixture: workbook_bytes({"Sheet": [[...header], [...row]]})."""
    return build_workbook


@pytest.fixture(autouse=True)
def _reset_tracing():
    """Every test starts with tracing disabled and fresh singletons."""
    reset_config()
    reset_tracer()
    yield
    reset_config()
    reset_tracer()
