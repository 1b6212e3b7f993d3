"""
Semantic lookup of business rules.

    query ──normalize──> cache.get ──miss──> provider.embed(query) ──> cache.put
                              │                                          │
                              └────────────hit───────────────────────────┴──> store.find_top_k

Usage::

    retriever = SemanticRetriever(provider, store, cache)
    retriever.find_related_rules("change to interest calculation", k=5)
"""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np

from .cache.query_cache import QueryEmbeddingCache
from .embedding.base import EmbeddingProvider
from .normalize import normalize_query
from .vector.store import ScoredMatch, VectorStore

logger = logging.getLogger(__name__)

DEFAULT_TOP_K = 5


class SemanticRetriever:
    """Ranks stored rules against free-text queries.

    Never raises: provider failures and malformed embeddings yield an
    empty result.

    Parameters
    ----------
    provider:
        Embedding provider used for queries; must match the store's.
    store:
        Vector Store holding the rule embeddings.
    cache:
        Query embedding cache, or None to always call the provider.
    default_top_k:
        ``k`` used when a call does not pass one.
    """

    def __init__(self, provider: EmbeddingProvider, store: VectorStore,
                 cache: Optional[QueryEmbeddingCache] = None,
                 default_top_k: int = DEFAULT_TOP_K) -> None:
        self._provider = provider
        self._store = store
        self._cache = cache
        self._default_top_k = default_top_k

    def embed_query(self, query: str) -> Optional[np.ndarray]:
        """
        Embedding for *query*, served from the cache when possible.

        The provider sees the query as typed; the normalized form is only
        the cache key.
        """
        key = normalize_query(query)
        if not key:
            logger.warning("Empty query, nothing to embed")
            return None

        if self._cache is not None:
            cached = self._cache.get(key)
            if cached is not None:
                return cached

        try:
            vector = self._provider.embed(query.strip())
        except Exception as exc:
            logger.error("Query embedding failed (%s): %s", self._provider.tag, exc)
            return None

        expected = self._provider.dimension()
        if vector is None or len(vector) != expected:
            logger.warning(
                "Provider %s returned %s dimensions, expected %d; discarding",
                self._provider.tag, None if vector is None else len(vector), expected,
            )
            return None

        if self._cache is not None:
            self._cache.put(key, vector)
        return np.asarray(vector, dtype=np.float32)

    def search(self, query: str, k: Optional[int] = None) -> list[ScoredMatch]:
        """Scored matches for *query*, best first."""
        k = self._default_top_k if k is None else k
        vector = self.embed_query(query)
        if vector is None:
            return []
        return self._store.find_top_k_scored(vector, k)

    def find_related_rules(self, query: str, k: Optional[int] = None) -> list[str]:
        """Ids of the rules most related to *query*, best first."""
        return [m.entity_id for m in self.search(query, k)]
