"""
Vector store implementations.

Pattern: Protocol → Production impl → Test double → Factory

This module contains:
1. VectorStoreConfig - Configuration dataclass
2. PgVectorStore - PostgreSQL with pgvector (production)
3. InMemoryVectorStore - In-memory store (testing/development)
4. get_vector_store() - Factory function

Both stores speak the same fetch/upsert/query contract and evaluate the same
metadata filter grammar (see filters.py), so the ingestion coordinator and
query engine cannot tell them apart.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Mapping

import numpy as np
import psycopg
from pgvector.psycopg import register_vector
from psycopg import sql
from psycopg.types.json import Jsonb

from proposal_rag.core.errors import StoreReadError, StoreWriteError
from proposal_rag.core.protocols import VectorEntry, VectorMatch
from proposal_rag.retrieval.filters import matches_filter, to_sql, validate_filter

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# CONFIGURATION
# ---------------------------------------------------------------------------


@dataclass
class VectorStoreConfig:
    """Configuration for the vector store."""

    connection_string: str = "postgresql://localhost/proposal_rag"
    embedding_dim: int = 1536
    table_name: str = "proposal_vectors"
    index_type: str = "hnsw"  # or "ivfflat"
    connect_timeout: int = 60


# ---------------------------------------------------------------------------
# PGVECTOR STORE (Production)
# ---------------------------------------------------------------------------


class PgVectorStore:
    """
    PostgreSQL vector store using pgvector.

    Entries live in one table: id TEXT PRIMARY KEY, embedding vector(n),
    metadata JSONB. Similarity is cosine (1 - cosine distance).

    The connection is opened lazily on first use. Every driver error is
    translated into StoreReadError or StoreWriteError.
    """

    def __init__(self, config: VectorStoreConfig):
        self.config = config
        self._conn = None
        self._lock = threading.Lock()

    def connect(self) -> None:
        """Establish database connection."""
        try:
            self._conn = psycopg.connect(
                self.config.connection_string,
                autocommit=True,
                connect_timeout=self.config.connect_timeout,
            )
            self._conn.execute("CREATE EXTENSION IF NOT EXISTS vector")
            register_vector(self._conn)
        except psycopg.Error as exc:
            self._conn = None
            raise StoreReadError(f"Could not connect to vector database: {exc}") from exc

    def close(self) -> None:
        """Close database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    def _connection(self):
        if self._conn is None:
            self.connect()
        return self._conn

    @property
    def _table(self) -> sql.Identifier:
        return sql.Identifier(self.config.table_name)

    def create_schema(self) -> None:
        """Create the entries table and its indexes."""
        conn = self._connection()
        dim = sql.Literal(self.config.embedding_dim)
        index_method = sql.SQL("hnsw" if self.config.index_type == "hnsw" else "ivfflat")

        try:
            conn.execute(
                sql.SQL(
                    """
                    CREATE TABLE IF NOT EXISTS {table} (
                        id TEXT PRIMARY KEY,
                        embedding vector({dim}) NOT NULL,
                        metadata JSONB NOT NULL DEFAULT '{{}}'::jsonb
                    )
                    """
                ).format(table=self._table, dim=dim)
            )

            # Approximate nearest neighbour index for cosine search
            conn.execute(
                sql.SQL(
                    """
                    CREATE INDEX IF NOT EXISTS {name}
                    ON {table} USING {method} (embedding vector_cosine_ops)
                    """
                ).format(
                    name=sql.Identifier(f"{self.config.table_name}_embedding_idx"),
                    table=self._table,
                    method=index_method,
                )
            )

            # GIN index so metadata containment filters stay cheap
            conn.execute(
                sql.SQL(
                    """
                    CREATE INDEX IF NOT EXISTS {name}
                    ON {table} USING GIN (metadata)
                    """
                ).format(
                    name=sql.Identifier(f"{self.config.table_name}_metadata_idx"),
                    table=self._table,
                )
            )
        except psycopg.Error as exc:
            raise StoreWriteError(f"Could not create schema: {exc}") from exc

    def fetch(self, ids: list[str]) -> dict[str, VectorEntry]:
        """Return stored entries keyed by id; unknown ids are absent."""
        if not ids:
            return {}

        with self._lock:
            try:
                rows = self._connection().execute(
                    sql.SQL("SELECT id, embedding, metadata FROM {} WHERE id = ANY(%s)").format(self._table),
                    (list(ids),),
                ).fetchall()
            except psycopg.Error as exc:
                raise StoreReadError(f"Fetch failed: {exc}") from exc

        return {
            row[0]: VectorEntry(id=row[0], embedding=np.asarray(row[1]).tolist(), metadata=row[2] or {})
            for row in rows
        }

    def upsert(self, entries: list[VectorEntry]) -> None:
        """Insert or replace entries in a single transaction."""
        if not entries:
            return

        statement = sql.SQL(
            """
            INSERT INTO {} (id, embedding, metadata)
            VALUES (%s, %s, %s)
            ON CONFLICT (id) DO UPDATE SET
                embedding = EXCLUDED.embedding,
                metadata = EXCLUDED.metadata
            """
        ).format(self._table)
        params = [
            (entry.id, np.asarray(entry.embedding, dtype=np.float32), Jsonb(entry.metadata))
            for entry in entries
        ]

        with self._lock:
            try:
                conn = self._connection()
                with conn.transaction():
                    with conn.cursor() as cur:
                        cur.executemany(statement, params)
            except psycopg.Error as exc:
                raise StoreWriteError(f"Upsert of {len(entries)} entries failed: {exc}") from exc

    def query(
        self,
        vector: list[float],
        top_k: int = 5,
        filter: Mapping[str, Any] | None = None,
        include_metadata: bool = True,
    ) -> list[VectorMatch]:
        """Cosine nearest neighbours under an optional metadata filter."""
        where, where_params = to_sql(filter)
        statement = sql.SQL(
            """
            SELECT id, metadata, embedding <=> %s AS distance
            FROM {table}
            WHERE {where}
            ORDER BY distance
            LIMIT %s
            """
        ).format(table=self._table, where=where)
        params = [np.asarray(vector, dtype=np.float32), *where_params, top_k]

        with self._lock:
            try:
                rows = self._connection().execute(statement, params).fetchall()
            except psycopg.Error as exc:
                raise StoreReadError(f"Similarity query failed: {exc}") from exc

        return [
            VectorMatch(
                id=row[0],
                score=1 - float(row[2]),  # Convert distance to similarity
                metadata=(row[1] or {}) if include_metadata else None,
            )
            for row in rows
        ]


# ---------------------------------------------------------------------------
# IN-MEMORY STORE (Testing/Development)
# ---------------------------------------------------------------------------


class InMemoryVectorStore:
    """
    In-memory vector store for development/testing.

    Implements the same interface as PgVectorStore but doesn't require Postgres.
    Uses cosine similarity for searching. Writes are visible to the next read
    immediately.
    """

    def __init__(self):
        self._entries: dict[str, VectorEntry] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def connect(self) -> None:
        """No-op for in-memory store."""
        pass

    def close(self) -> None:
        """No-op for in-memory store."""
        pass

    def create_schema(self) -> None:
        """No-op for in-memory store."""
        pass

    def fetch(self, ids: list[str]) -> dict[str, VectorEntry]:
        with self._lock:
            return {id_: self._entries[id_] for id_ in ids if id_ in self._entries}

    def upsert(self, entries: list[VectorEntry]) -> None:
        with self._lock:
            for entry in entries:
                self._entries[entry.id] = entry

    def _cosine_similarity(self, a: np.ndarray, b: np.ndarray) -> float:
        """Calculate cosine similarity between two vectors."""
        norm = np.linalg.norm(a) * np.linalg.norm(b)
        if norm == 0:
            return 0.0
        return float(np.dot(a, b) / norm)

    def query(
        self,
        vector: list[float],
        top_k: int = 5,
        filter: Mapping[str, Any] | None = None,
        include_metadata: bool = True,
    ) -> list[VectorMatch]:
        """Search using cosine similarity."""
        validate_filter(filter)
        query_vec = np.asarray(vector, dtype=np.float32)

        with self._lock:
            candidates = list(self._entries.values())

        scored = [
            (entry, self._cosine_similarity(query_vec, np.asarray(entry.embedding, dtype=np.float32)))
            for entry in candidates
            if matches_filter(entry.metadata, filter)
        ]

        # Sort by score descending
        scored.sort(key=lambda x: x[1], reverse=True)

        return [
            VectorMatch(
                id=entry.id,
                score=score,
                metadata=dict(entry.metadata) if include_metadata else None,
            )
            for entry, score in scored[:top_k]
        ]


# ---------------------------------------------------------------------------
# FACTORY FUNCTION
# ---------------------------------------------------------------------------


def get_vector_store(
    use_postgres: bool = False,
    config: VectorStoreConfig | None = None,
) -> PgVectorStore | InMemoryVectorStore:
    """
    Factory function to get the appropriate vector store.

    Args:
        use_postgres: Use PostgreSQL store (default: False for dev)
        config: Store configuration (uses defaults if not provided)

    Returns:
        VectorStore implementation
    """
    if use_postgres:
        return PgVectorStore(config or VectorStoreConfig())
    return InMemoryVectorStore()
