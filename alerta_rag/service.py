"""
Start-up wiring for the retrieval core.

``build_service`` is called once by the host process.  It picks the
embedding provider and the vector store from configuration, creates the
query cache, and returns the collaborators bundled together so they can
be injected wherever they are needed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .cache.query_cache import QueryEmbeddingCache
from .config import Config
from .embedding.base import EmbeddingProvider
from .embedding.factory import create_embedding_provider
from .retrieval import SemanticRetriever
from .rules import RuleIndexer
from .vector.factory import create_vector_store
from .vector.store import VectorStore

logger = logging.getLogger(__name__)


@dataclass
class RetrievalService:
    provider: EmbeddingProvider
    store: VectorStore
    cache: QueryEmbeddingCache
    retriever: SemanticRetriever
    indexer: RuleIndexer


def build_service(config: Optional[Config] = None, show_progress: bool = False) -> RetrievalService:
    """Build every collaborator from *config* (loaded from disk if None)."""
    config = config or Config.load()
    provider = create_embedding_provider(config.embedding)
    store = create_vector_store(config.vector_store, provider)
    cache = QueryEmbeddingCache(config.query_cache)
    retriever = SemanticRetriever(provider, store, cache, default_top_k=config.TOP_K)
    indexer = RuleIndexer(provider, store, show_progress=show_progress)
    logger.info(
        "Retrieval service ready | provider=%s | store=%s | cache_enabled=%s",
        provider.tag, "sqlite" if store.is_persistent else "memory", cache.enabled,
    )
    return RetrievalService(provider, store, cache, retriever, indexer)
