"""
alerta_rag: semantic retrieval of business rules for pull-request risk scoring.

Public API for library usage::

    from alerta_rag import build_service

    service = build_service()
    service.indexer.index_all(rules)
    service.retriever.find_related_rules("changes to the interest calculation")
"""

from .cache.query_cache import CacheStats, QueryEmbeddingCache
from .config import Config, EmbeddingSettings, QueryCacheSettings, VectorStoreSettings
from .errors import CorruptDataError, EmbeddingError, PersistenceError, RagError
from .normalize import normalize_query
from .retrieval import SemanticRetriever
from .rules import BusinessRule, RuleIndexer, load_rules
from .service import RetrievalService, build_service
from .vector.store import ScoredMatch, VectorStore

__version__ = "0.1.0"

__all__ = [
    "CacheStats",
    "QueryEmbeddingCache",
    "Config",
    "EmbeddingSettings",
    "QueryCacheSettings",
    "VectorStoreSettings",
    "CorruptDataError",
    "EmbeddingError",
    "PersistenceError",
    "RagError",
    "normalize_query",
    "SemanticRetriever",
    "BusinessRule",
    "RuleIndexer",
    "load_rules",
    "RetrievalService",
    "build_service",
    "ScoredMatch",
    "VectorStore",
]
