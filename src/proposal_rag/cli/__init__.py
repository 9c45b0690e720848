"""
CLI module - command-line interface.

Provides entry points for:
- Ingesting a single spreadsheet
- Ingesting a directory of spreadsheets
- Asking questions
"""

from proposal_rag.cli.commands import (
    main,
    run_ingest_cli,
    run_ingest_dir_cli,
    run_query_cli,
)

__all__ = [
    "main",
    "run_ingest_cli",
    "run_ingest_dir_cli",
    "run_query_cli",
]
