"""
Vector Store: rule embeddings held in memory, written through to disk.

The in-memory map is a cache of the backing store: ``save`` writes the
durable row first and only then updates memory, and the whole map can be
rebuilt at any time with :meth:`VectorStore.hydrate`.  Without a backing
store the Vector Store runs cache-only.

Usage::

    store = VectorStore(SQLiteBackingStore(".alerta-rag/vectors.db"),
                        provider_tag="DUMMY", dimension=128)
    store.save("rule-42", vector)
    store.find_top_k(query_vector, k=5)   # -> ["rule-42", ...]
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np

from ..errors import CorruptDataError
from .backing_store import BackingStore, EmbeddingRow
from .codec import decode, encode
from .similarity import SIMILARITY_THRESHOLD, cosine_similarity_batch

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class VectorEntry:
    """A rule embedding as held in memory."""

    entity_id: str
    vector: np.ndarray      # float32, read-only
    dimension: int
    provider_tag: str
    created_at: float       # epoch seconds


@dataclass(frozen=True)
class ScoredMatch:
    """One search hit."""

    entity_id: str
    score: float


@dataclass
class HydrationReport:
    """Outcome of loading persisted rows into memory."""

    loaded: int = 0
    skipped: int = 0    # rows that failed to decode
    stale: int = 0      # rows from another provider or dimension

    @property
    def total(self) -> int:
        return self.loaded + self.skipped + self.stale


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _normalize_id(entity_id) -> Optional[str]:
    """Ids are opaque but compared as trimmed strings; blank ids are invalid."""
    if entity_id is None:
        return None
    key = str(entity_id).strip()
    return key or None


def _as_vector(vector) -> Optional[np.ndarray]:
    """Copy *vector* into a read-only float32 array, or None if unusable."""
    if vector is None:
        return None
    try:
        arr = np.array(vector, dtype=np.float32)
    except (TypeError, ValueError):
        return None
    if arr.ndim != 1 or arr.size == 0 or not np.all(np.isfinite(arr)):
        return None
    arr.flags.writeable = False
    return arr


# ---------------------------------------------------------------------------
# VectorStore
# ---------------------------------------------------------------------------

class VectorStore:
    """Durable-plus-cached mapping from rule id to embedding.

    Safe to share between worker threads.  Writes are serialised so the
    durable row and the in-memory entry for an id never disagree; searches
    work on a snapshot of the map taken under a short lock.

    Parameters
    ----------
    backing_store:
        Durable persistence, or None for cache-only operation.
    provider_tag:
        Tag of the embedding provider in use.  Persisted rows carrying a
        different tag are ignored.
    dimension:
        Expected vector length.  When set, vectors of any other length are
        rejected on save and ignored on load.
    similarity_threshold:
        Minimum score for a search hit.
    hydrate:
        Load every persisted row on construction.
    clock:
        Returns the current time in epoch seconds.
    """

    def __init__(
        self,
        backing_store: Optional[BackingStore] = None,
        provider_tag: str = "DUMMY",
        dimension: Optional[int] = None,
        similarity_threshold: float = SIMILARITY_THRESHOLD,
        hydrate: bool = True,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._backing = backing_store
        self._provider_tag = provider_tag
        self._dimension = dimension
        self._threshold = float(similarity_threshold)
        self._clock = clock

        self._entries: dict[str, VectorEntry] = {}
        self._unpersisted: set[str] = set()
        self._lock = threading.Lock()         # guards _entries / _unpersisted
        self._write_lock = threading.Lock()   # serialises save / hydrate

        mode = "write-through" if backing_store is not None else "cache-only"
        logger.info(
            "[VectorStore] Initialised | mode=%s | provider=%s | dim=%s | threshold=%.2f",
            mode, provider_tag, dimension, self._threshold,
        )

        self.last_hydration = self.hydrate() if hydrate else HydrationReport()

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def provider_tag(self) -> str:
        return self._provider_tag

    @property
    def dimension(self) -> Optional[int]:
        return self._dimension

    @property
    def similarity_threshold(self) -> float:
        return self._threshold

    @property
    def is_persistent(self) -> bool:
        return self._backing is not None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def save(self, entity_id, vector) -> bool:
        """
        Store *vector* under *entity_id*, overwriting any previous entry.

        The durable row is written before the in-memory entry.  If the
        backing store fails, the entry is still kept in memory and the id
        is reported by :meth:`unpersisted_ids` until a later save of the
        same id succeeds.

        Returns
        -------
        bool
            False if the input was rejected; nothing is raised.
        """
        try:
            key = _normalize_id(entity_id)
            if key is None:
                logger.warning("[VectorStore] Rejected save: empty entity id")
                return False
            arr = _as_vector(vector)
            if arr is None:
                logger.warning("[VectorStore] Rejected save for %s: empty or non-finite vector", key)
                return False
            if self._dimension is not None and arr.size != self._dimension:
                logger.warning(
                    "[VectorStore] Rejected save for %s: dimension %d, expected %d",
                    key, arr.size, self._dimension,
                )
                return False

            entry = VectorEntry(
                entity_id=key,
                vector=arr,
                dimension=int(arr.size),
                provider_tag=self._provider_tag,
                created_at=self._clock(),
            )
            with self._write_lock:
                persisted = self._persist(entry)
                with self._lock:
                    self._entries[key] = entry
                    if persisted or self._backing is None:
                        self._unpersisted.discard(key)
                    else:
                        self._unpersisted.add(key)
            logger.debug("[VectorStore] Saved %s (dim=%d, persisted=%s)", key, entry.dimension, persisted)
            return True
        except Exception:
            logger.exception("[VectorStore] Unexpected error saving %s", entity_id)
            return False

    def _persist(self, entry: VectorEntry) -> bool:
        if self._backing is None:
            return False
        try:
            self._backing.save(entry.entity_id, entry.dimension,
                               entry.provider_tag, encode(entry.vector))
            return True
        except Exception as exc:
            logger.error(
                "[VectorStore] Persist failed for %s, keeping it in memory only: %s",
                entry.entity_id, exc,
            )
            return False

    def clear(self) -> None:
        """Empty the in-memory map.  Persisted rows are left untouched."""
        with self._lock:
            removed = len(self._entries)
            self._entries.clear()
            self._unpersisted.clear()
        logger.info("[VectorStore] Cleared %d in-memory embeddings (backing store untouched)", removed)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_embedding(self, entity_id) -> Optional[np.ndarray]:
        """
        Return a copy of the vector for *entity_id*, or None if unknown.

        Memory is checked first; on a miss the row is loaded once from the
        backing store and cached.
        """
        key = _normalize_id(entity_id)
        if key is None:
            logger.warning("[VectorStore] get_embedding called with an empty id")
            return None

        with self._lock:
            entry = self._entries.get(key)
        if entry is not None:
            return entry.vector.copy()
        if self._backing is None:
            return None

        try:
            row = self._backing.find_by_id(key)
        except Exception as exc:
            logger.error("[VectorStore] Load from backing store failed for %s: %s", key, exc)
            return None
        if row is None:
            return None
        if self._is_stale(row):
            logger.debug("[VectorStore] Ignoring stale row for %s (provider=%s)", key, row.provider_tag)
            return None
        try:
            loaded = self._decode_row(row)
        except (CorruptDataError, TypeError, ValueError) as exc:
            logger.error("[VectorStore] Corrupt row for %s: %s", key, exc)
            return None

        with self._lock:
            # A concurrent save wins over the row we just read.
            current = self._entries.setdefault(key, loaded)
        logger.info("[VectorStore] Loaded %s from backing store", key)
        return current.vector.copy()

    def find_top_k(self, query, k: int) -> list[str]:
        """Ids of the *k* most similar entries, best first."""
        return [m.entity_id for m in self.find_top_k_scored(query, k)]

    def find_top_k_scored(self, query, k: int) -> list[ScoredMatch]:
        """
        Score every entry against *query* and return the best *k*.

        Hits below the similarity threshold are dropped.  Results are
        ordered by descending score, then ascending id.  Entries whose
        dimension differs from the query score 0.0.
        """
        try:
            q = _as_vector(query)
            if q is None:
                logger.warning("[VectorStore] Invalid query embedding")
                return []
            if k is None or k <= 0:
                return []

            with self._lock:
                entries = list(self._entries.values())
            if not entries:
                logger.warning("[VectorStore] Search on an empty vector store")
                return []

            comparable = [e for e in entries if e.dimension == q.size]
            mismatched = [e for e in entries if e.dimension != q.size]
            if mismatched:
                logger.warning(
                    "[VectorStore] Dimension mismatch: %d entries differ from query dimension %d",
                    len(mismatched), q.size,
                )

            matches: list[ScoredMatch] = []
            if comparable:
                matrix = np.stack([e.vector for e in comparable])
                scores = cosine_similarity_batch(q, matrix)
                for e, score in zip(comparable, scores):
                    logger.debug("[VectorStore] Similarity %s = %.4f", e.entity_id, score)
                    matches.append(ScoredMatch(e.entity_id, float(score)))
            matches.extend(ScoredMatch(e.entity_id, 0.0) for e in mismatched)

            hits = [m for m in matches if m.score >= self._threshold]
            hits.sort(key=lambda m: (-m.score, m.entity_id))
            hits = hits[:k]
            logger.info(
                "[VectorStore] Search returned %d hit(s) | threshold=%.2f | k=%d | scanned=%d",
                len(hits), self._threshold, k, len(entries),
            )
            return hits
        except Exception:
            logger.exception("[VectorStore] Similarity search failed")
            return []

    def size(self) -> int:
        """Number of embeddings held in memory."""
        with self._lock:
            return len(self._entries)

    def has_embedding(self, entity_id) -> bool:
        """
        True if *entity_id* can be served by this store.

        A persisted row only counts when it belongs to the current
        provider and decodes; it is loaded into memory as a side effect.
        """
        key = _normalize_id(entity_id)
        if key is None:
            return False
        with self._lock:
            if key in self._entries:
                return True
        if self._backing is None:
            return False
        return self.get_embedding(key) is not None

    def persisted_count(self) -> int:
        """Rows in the backing store across all providers; 0 when cache-only or unreachable."""
        if self._backing is None:
            return 0
        try:
            return self._backing.count()
        except Exception as exc:
            logger.error("[VectorStore] Could not count persisted embeddings: %s", exc)
            return 0

    def unpersisted_ids(self) -> set[str]:
        """Ids whose latest save reached memory but not the backing store."""
        with self._lock:
            return set(self._unpersisted)

    # ------------------------------------------------------------------
    # Hydration
    # ------------------------------------------------------------------

    def hydrate(self) -> HydrationReport:
        """
        Load every persisted row into memory.

        Rows that fail to decode are skipped and counted, as are rows from
        another provider or of an unexpected dimension.  Entries that only
        exist in memory (failed persists) are not overwritten.
        """
        report = HydrationReport()
        if self._backing is None:
            return report

        with self._write_lock:
            try:
                rows = self._backing.find_all()
            except Exception as exc:
                logger.error("[VectorStore] Could not read persisted embeddings, continuing with memory only: %s", exc)
                return report

            loaded: dict[str, VectorEntry] = {}
            for row in rows:
                if self._is_stale(row):
                    report.stale += 1
                    continue
                try:
                    entry = self._decode_row(row)
                except (CorruptDataError, TypeError, ValueError) as exc:
                    logger.error("[VectorStore] Skipping corrupt row %s: %s", row.entity_id, exc)
                    report.skipped += 1
                    continue
                loaded[entry.entity_id] = entry
                report.loaded += 1

            with self._lock:
                for key, entry in loaded.items():
                    if key not in self._unpersisted:
                        self._entries[key] = entry

        logger.info(
            "[VectorStore] Hydrated from backing store | loaded=%d | skipped=%d | stale=%d | total=%d",
            report.loaded, report.skipped, report.stale, report.total,
        )
        return report

    def _is_stale(self, row: EmbeddingRow) -> bool:
        if row.provider_tag != self._provider_tag:
            return True
        return self._dimension is not None and row.dimension != self._dimension

    def _decode_row(self, row: EmbeddingRow) -> VectorEntry:
        vector = decode(row.data, row.dimension)
        vector.flags.writeable = False
        created_at = float(row.created_at) if row.created_at is not None else self._clock()
        return VectorEntry(
            entity_id=row.entity_id,
            vector=vector,
            dimension=int(row.dimension),
            provider_tag=row.provider_tag,
            created_at=created_at,
        )
