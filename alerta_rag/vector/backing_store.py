"""
Durable persistence for rule embeddings.

The Vector Store only needs a small contract from its backing store:
save a blob, load one or all blobs, check existence, count rows.
:class:`SQLiteBackingStore` implements it on a single SQLite file so the
service needs no external database.

Storage: ``.alerta-rag/vectors.db`` (configurable)
"""

from __future__ import annotations

import logging
import os
import sqlite3
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from ..errors import PersistenceError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS business_rule_embeddings (
    business_rule_id  TEXT PRIMARY KEY,
    dimension         INTEGER NOT NULL,
    provider          TEXT NOT NULL,
    embedding         BLOB NOT NULL,
    created_at        REAL NOT NULL
);
"""

_CREATE_INDEX = """
CREATE INDEX IF NOT EXISTS idx_embedding_provider
ON business_rule_embeddings(provider);
"""

_UPSERT = (
    "INSERT OR REPLACE INTO business_rule_embeddings "
    "(business_rule_id, dimension, provider, embedding, created_at) "
    "VALUES (?, ?, ?, ?, ?)"
)
_SELECT_ALL = (
    "SELECT business_rule_id, dimension, provider, embedding, created_at "
    "FROM business_rule_embeddings"
)
_SELECT_ONE = _SELECT_ALL + " WHERE business_rule_id = ?"
_EXISTS = "SELECT 1 FROM business_rule_embeddings WHERE business_rule_id = ? LIMIT 1"
_COUNT = "SELECT COUNT(*) FROM business_rule_embeddings"


# ---------------------------------------------------------------------------
# Contract
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class EmbeddingRow:
    """One persisted embedding, still in its encoded form."""

    entity_id: str
    dimension: int
    provider_tag: str
    data: bytes
    created_at: float


class BackingStore(ABC):
    """Durable key/value persistence for encoded vectors."""

    @abstractmethod
    def save(self, entity_id: str, dimension: int, provider_tag: str,
             data: bytes) -> None:
        """Insert or overwrite the row for *entity_id*."""

    @abstractmethod
    def find_all(self) -> list[EmbeddingRow]:
        """Return every persisted row."""

    @abstractmethod
    def find_by_id(self, entity_id: str) -> Optional[EmbeddingRow]:
        """Return the row for *entity_id*, or None."""

    @abstractmethod
    def exists_by_id(self, entity_id: str) -> bool:
        """True if a row for *entity_id* is persisted."""

    @abstractmethod
    def count(self) -> int:
        """Number of persisted rows."""

    def close(self) -> None:
        """Release any held resources."""


# ---------------------------------------------------------------------------
# SQLiteBackingStore
# ---------------------------------------------------------------------------

class SQLiteBackingStore(BackingStore):
    """Backing store on a single SQLite database file.

    All access goes through one connection guarded by a lock, so the
    store can be shared between worker threads.  Every ``sqlite3.Error``
    is re-raised as :class:`~alerta_rag.errors.PersistenceError`.

    Parameters
    ----------
    db_path:
        Path to the database file.  Parent directories are created.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._lock = threading.Lock()
        self._conn: sqlite3.Connection | None = None
        self._init_db()
        logger.info("[SQLiteBackingStore] Opened %s", db_path)

    @property
    def db_path(self) -> str:
        return self._db_path

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _init_db(self) -> None:
        """Create the database and table if missing."""
        os.makedirs(os.path.dirname(self._db_path) or ".", exist_ok=True)
        try:
            with self._lock:
                conn = self._get_conn()
                conn.executescript(_CREATE_TABLE)
                conn.execute(_CREATE_INDEX)
                conn.commit()
        except sqlite3.Error as exc:
            raise PersistenceError(
                f"cannot initialise embedding database {self._db_path}: {exc}"
            ) from exc

    def _get_conn(self) -> sqlite3.Connection:
        """Lazy connection; callers hold ``self._lock``."""
        if self._conn is None:
            self._conn = sqlite3.connect(self._db_path, check_same_thread=False)
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute("PRAGMA synchronous=NORMAL")
        return self._conn

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._conn is not None:
                try:
                    self._conn.close()
                except sqlite3.Error as exc:
                    logger.warning("[SQLiteBackingStore] Close error: %s", exc)
                self._conn = None

    # ------------------------------------------------------------------
    # Contract
    # ------------------------------------------------------------------

    def save(self, entity_id: str, dimension: int, provider_tag: str,
             data: bytes) -> None:
        try:
            with self._lock:
                conn = self._get_conn()
                conn.execute(
                    _UPSERT,
                    (entity_id, int(dimension), provider_tag,
                     sqlite3.Binary(data), time.time()),
                )
                conn.commit()
        except sqlite3.Error as exc:
            raise PersistenceError(f"save failed for {entity_id}: {exc}") from exc
        logger.debug("[SQLiteBackingStore] Saved %s (dim=%d)", entity_id, dimension)

    def find_all(self) -> list[EmbeddingRow]:
        try:
            with self._lock:
                rows = self._get_conn().execute(_SELECT_ALL).fetchall()
        except sqlite3.Error as exc:
            raise PersistenceError(f"find_all failed: {exc}") from exc
        return [_to_row(r) for r in rows]

    def find_by_id(self, entity_id: str) -> Optional[EmbeddingRow]:
        try:
            with self._lock:
                row = self._get_conn().execute(_SELECT_ONE, (entity_id,)).fetchone()
        except sqlite3.Error as exc:
            raise PersistenceError(f"find_by_id failed for {entity_id}: {exc}") from exc
        return _to_row(row) if row else None

    def exists_by_id(self, entity_id: str) -> bool:
        try:
            with self._lock:
                row = self._get_conn().execute(_EXISTS, (entity_id,)).fetchone()
        except sqlite3.Error as exc:
            raise PersistenceError(f"exists_by_id failed for {entity_id}: {exc}") from exc
        return row is not None

    def count(self) -> int:
        try:
            with self._lock:
                row = self._get_conn().execute(_COUNT).fetchone()
        except sqlite3.Error as exc:
            raise PersistenceError(f"count failed: {exc}") from exc
        return int(row[0]) if row else 0


def _to_row(row: tuple) -> EmbeddingRow:
    # Column values are passed through as stored; a malformed row is
    # rejected later by the codec, one row at a time.
    entity_id, dimension, provider, blob, created_at = row
    return EmbeddingRow(
        entity_id=str(entity_id),
        dimension=dimension,
        provider_tag=str(provider),
        data=bytes(blob) if isinstance(blob, (bytes, bytearray, memoryview)) else blob,
        created_at=created_at,
    )
