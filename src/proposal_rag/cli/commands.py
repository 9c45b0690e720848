"""
CLI commands - entry points for ingestion and querying.

Each command follows a consistent pattern:
1. Parse arguments
2. Load environment
3. Build the knowledge base from PipelineConfig
4. Print the result as JSON
5. Return exit code

The commands are thin wrappers: all the work happens in the knowledge base,
which keeps the CLI simple and the business logic testable.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
import time
from pathlib import Path

from dotenv import load_dotenv

from proposal_rag.core.errors import ProposalRagError
from proposal_rag.ingestion.batch import ingest_directory
from proposal_rag.ingestion.records import UNCATEGORIZED, DocumentMetadata, utc_now_iso
from proposal_rag.knowledge_base import create_knowledge_base
from proposal_rag.observability import init_tracing, shutdown_tracing

logger = logging.getLogger(__name__)

DEFAULT_UPLOAD_DIR = "rfp_documents"


def _load_env() -> None:
    """Load environment variables from .env file."""
    load_dotenv()


def _configure_logging() -> None:
    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _print_json(payload) -> None:
    print(json.dumps(payload, indent=2, default=str))


def run_ingest_cli() -> int:
    """CLI entry point for ingesting one spreadsheet."""
    _load_env()

    parser = argparse.ArgumentParser(description="Ingest one spreadsheet into the knowledge base")
    parser.add_argument("file", type=Path, help="Path to an .xlsx workbook")
    parser.add_argument("--id", dest="doc_id", help="Document id (default: RFP-<epoch ms>)")
    parser.add_argument("--title", help="Document title (default: file name)")
    parser.add_argument("--category", default=UNCATEGORIZED, help="Document category")
    args = parser.parse_args()

    metadata = DocumentMetadata(
        id=args.doc_id or f"RFP-{int(time.time() * 1000)}",
        title=args.title or args.file.name,
        upload_date=utc_now_iso(),
        category=args.category,
    )

    try:
        buffer = args.file.read_bytes()
    except OSError as exc:
        logger.error("Could not read %s: %s", args.file, exc)
        return 1

    kb = None
    try:
        kb = create_knowledge_base()
        result = kb.ingest(buffer, metadata)
    except ProposalRagError as exc:
        logger.error("Ingestion of %s failed: %s", args.file, exc)
        return 1
    finally:
        if kb is not None:
            kb.close()

    _print_json({"success": True, "message": "File processed successfully", **result.model_dump(by_alias=True)})
    return 0


def run_ingest_dir_cli() -> int:
    """CLI entry point for batch ingestion of a directory."""
    _load_env()

    parser = argparse.ArgumentParser(description="Ingest every spreadsheet in a directory")
    parser.add_argument("directory", nargs="?", default=DEFAULT_UPLOAD_DIR, help="Directory to scan")
    args = parser.parse_args()

    try:
        kb = create_knowledge_base()
    except ProposalRagError as exc:
        logger.error("Could not start batch ingestion: %s", exc)
        return 1

    try:
        outcomes = ingest_directory(kb, args.directory)
    finally:
        kb.close()

    _print_json([
        {
            "file": outcome.path.name,
            "success": outcome.succeeded,
            "error": outcome.error,
            "result": outcome.result.model_dump(by_alias=True) if outcome.result else None,
        }
        for outcome in outcomes
    ])
    return 0 if all(outcome.succeeded for outcome in outcomes) else 1


def run_query_cli() -> int:
    """CLI entry point for asking a question."""
    _load_env()

    parser = argparse.ArgumentParser(description="Ask the knowledge base a question")
    parser.add_argument("question", help="Question to answer")
    parser.add_argument("--category", help="Only use records of this category")
    parser.add_argument("--sheet", help="Only use records from this worksheet")
    args = parser.parse_args()

    filters = {}
    if args.category:
        filters["category"] = args.category
    if args.sheet:
        filters["sheetName"] = args.sheet

    kb = None
    try:
        kb = create_knowledge_base()
        result = kb.query(args.question, filters or None)
    except ProposalRagError as exc:
        logger.error("Query failed: %s", exc)
        _print_json({"error": "Failed to process query"})
        return 1
    finally:
        if kb is not None:
            kb.close()

    _print_json(result.model_dump(by_alias=True))
    return 0


def main() -> int:
    """
    Main CLI entry point with subcommands.

    Usage:
        proposal-rag ingest FILE        # Ingest one workbook
        proposal-rag ingest-dir [DIR]   # Ingest a directory of workbooks
        proposal-rag query QUESTION     # Ask a question
    """
    _load_env()
    _configure_logging()

    parser = argparse.ArgumentParser(
        description="Proposal knowledge base",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  ingest      Ingest one spreadsheet
  ingest-dir  Ingest every spreadsheet in a directory (default: rfp_documents)
  query       Answer a question from the ingested records

Examples:
  proposal-rag ingest bids.xlsx --category Pricing
  proposal-rag ingest-dir ./rfp_documents
  proposal-rag query "What support hours did we commit to?" --sheet SLA
        """,
    )

    parser.add_argument(
        "command",
        choices=["ingest", "ingest-dir", "query"],
        help="Command to run",
    )

    # Parse just the command first
    args, remaining = parser.parse_known_args()

    commands = {
        "ingest": run_ingest_cli,
        "ingest-dir": run_ingest_dir_cli,
        "query": run_query_cli,
    }

    # Re-inject remaining args for the subcommand
    sys.argv = [sys.argv[0]] + remaining

    init_tracing()
    try:
        return commands[args.command]()
    except KeyboardInterrupt:
        print("\nInterrupted")
        return 130
    finally:
        shutdown_tracing()


if __name__ == "__main__":
    sys.exit(main())
