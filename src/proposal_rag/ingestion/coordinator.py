"""
Ingestion coordinator - spreadsheet bytes into the vector store.

FLOW:
-----
1. Extract records from the workbook (lazily, one worksheet at a time)
2. Cut the record stream into fixed-size batches, order preserved
3. For each record of a batch, independently:
   a. fingerprint it
   b. ask the store whether that id exists; if the store cannot answer,
      assume it does not (fail open: re-embedding beats losing the row)
   c. existing id -> skipped
   d. otherwise embed; success stages an entry, failure counts an error
4. Upsert the batch's staged entries in one call; if that fails, every staged
   entry of the batch is also counted as an error and the next batch runs
5. Return the counters and the worksheet names

Batches run strictly one after another. Inside a batch, records are embedded
on a small thread pool; the upsert waits for all of them.

KNOWN DIVERGENCE:
-----------------
A failed bulk upsert adds its staged entries to `errors` without taking them
back out of `processed`, so for that batch the outcome is counted twice and
processed + skipped + errors exceeds the number of records. Whether
`processed` should be reduced instead is undecided; the behaviour is pinned
by tests so any change is deliberate.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from contextlib import nullcontext
from dataclasses import dataclass
from itertools import islice
from typing import Iterable, Iterator, Literal, Mapping, TypeVar

from proposal_rag.core.errors import EmbeddingError
from proposal_rag.core.protocols import EmbeddingProvider, VectorEntry, VectorStore
from proposal_rag.ingestion.extractor import ExtractionStats, iter_records, open_workbook, sheet_names
from proposal_rag.ingestion.fingerprint import fingerprint
from proposal_rag.ingestion.records import DocumentMetadata, Record
from proposal_rag.observability import (
    TracerProtocol,
    batch_attributes,
    get_tracer,
    ingest_attributes,
    ingest_result_attributes,
)
from proposal_rag.schemas.results import IngestResult

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 10
DEFAULT_EMBED_CONCURRENCY = 4

T = TypeVar("T")


def batched(items: Iterable[T], size: int) -> Iterator[list[T]]:
    """Yield consecutive lists of up to size items."""
    if size < 1:
        raise ValueError("batch size must be at least 1")
    iterator = iter(items)
    while batch := list(islice(iterator, size)):
        yield batch


# ---------------------------------------------------------------------------
# COUNTERS
# ---------------------------------------------------------------------------


@dataclass
class _RecordOutcome:
    status: Literal["staged", "skipped", "error"]
    entry: VectorEntry | None = None


@dataclass
class IngestCounters:
    """Running totals for one ingestion call."""
    processed: int = 0
    skipped: int = 0
    errors: int = 0
    attempted: int = 0


# ---------------------------------------------------------------------------
# COORDINATOR
# ---------------------------------------------------------------------------


class IngestionCoordinator:
    """
    Runs ingestion against injected clients.

    Holds no state between calls; concurrent ingest() calls only meet in the
    vector store.
    """

    def __init__(
        self,
        embeddings: EmbeddingProvider,
        store: VectorStore,
        batch_size: int = DEFAULT_BATCH_SIZE,
        embed_concurrency: int = DEFAULT_EMBED_CONCURRENCY,
        tracer: TracerProtocol | None = None,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        if embed_concurrency < 1:
            raise ValueError("embed_concurrency must be at least 1")
        self._embeddings = embeddings
        self._store = store
        self.batch_size = batch_size
        self.embed_concurrency = embed_concurrency
        self._tracer = tracer or get_tracer()

    def ingest(
        self,
        buffer: bytes,
        metadata: DocumentMetadata | Mapping[str, str],
    ) -> IngestResult:
        """
        Ingest one workbook.

        Raises:
            ParseError: the buffer is not a readable workbook
        """
        document = metadata if isinstance(metadata, DocumentMetadata) else DocumentMetadata.from_dict(metadata)
        counters = IngestCounters()

        with self._tracer.start_span("ingest", attributes=ingest_attributes(document.id, document.title)) as span:
            with open_workbook(buffer) as workbook:
                stats = ExtractionStats(sheet_names=sheet_names(workbook))
                pool = (
                    ThreadPoolExecutor(max_workers=self.embed_concurrency, thread_name_prefix="embed")
                    if self.embed_concurrency > 1
                    else nullcontext()
                )
                with pool:
                    records = iter_records(workbook, stats)
                    for index, batch in enumerate(batched(records, self.batch_size)):
                        self._process_batch(index, batch, document, counters, pool)

            result = IngestResult(
                total_items=stats.records,
                processed=counters.processed,
                skipped=counters.skipped,
                errors=counters.errors,
                sheet_names=stats.sheet_names,
            )
            span.set_attributes(ingest_result_attributes(
                result.total_items, result.processed, result.skipped, result.errors, len(result.sheet_names)
            ))

        logger.info(
            "Ingested %s (%s): %d items, %d processed, %d skipped, %d errors across %d rows",
            document.id, document.title, result.total_items, result.processed,
            result.skipped, result.errors, stats.total_rows,
        )
        return result

    # -----------------------------------------------------------------------
    # BATCH
    # -----------------------------------------------------------------------

    def _process_batch(
        self,
        index: int,
        batch: list[Record],
        document: DocumentMetadata,
        counters: IngestCounters,
        pool: ThreadPoolExecutor | nullcontext,
    ) -> None:
        with self._tracer.start_span("ingest.batch", attributes=batch_attributes(index, len(batch))) as span:
            if isinstance(pool, ThreadPoolExecutor):
                outcomes = list(pool.map(lambda record: self._prepare_record(document, record), batch))
            else:
                outcomes = [self._prepare_record(document, record) for record in batch]

            staged: list[VectorEntry] = []
            for outcome in outcomes:
                counters.attempted += 1
                if outcome.status == "staged":
                    staged.append(outcome.entry)
                    counters.processed += 1
                elif outcome.status == "skipped":
                    counters.skipped += 1
                else:
                    counters.errors += 1

            logger.info(
                "Batch %d: %d prepared, %d skipped so far, %d errors so far",
                index + 1, len(staged), counters.skipped, counters.errors,
            )

            if not staged:
                return

            try:
                self._store.upsert(staged)
            except Exception as exc:
                # Any store failure fails the batch, never the whole ingest call
                logger.error("Error uploading batch %d of %d items: %s", index + 1, len(staged), exc)
                counters.errors += len(staged)
                span.mark_failed(exc)
                return

            logger.info("Successfully uploaded batch %d of %d items", index + 1, len(staged))

    # -----------------------------------------------------------------------
    # RECORD
    # -----------------------------------------------------------------------

    def _exists(self, vector_id: str) -> bool:
        """Existence check that fails open."""
        try:
            return vector_id in self._store.fetch([vector_id])
        except Exception as exc:
            logger.warning("Fetch check failed for %s, proceeding with upsert: %s", vector_id, exc)
            return False

    def _prepare_record(self, document: DocumentMetadata, record: Record) -> _RecordOutcome:
        """Decide one record's fate; never raises."""
        try:
            vector_id = fingerprint(document, record)
            if self._exists(vector_id):
                logger.debug("Skipping duplicate entry %s from %s", vector_id, record.sheet_name)
                return _RecordOutcome("skipped")
            embedding = self._embeddings.embed(record.text)
        except EmbeddingError as exc:
            logger.error("Error embedding item from %s: %s", record.sheet_name, exc)
            return _RecordOutcome("error")
        except Exception:
            # Counted like an embedding failure; the batch continues
            logger.exception("Error preparing item from %s", record.sheet_name)
            return _RecordOutcome("error")

        return _RecordOutcome(
            "staged",
            VectorEntry(id=vector_id, embedding=embedding, metadata=record.to_metadata(document)),
        )
