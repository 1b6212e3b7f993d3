"""
Query embedding cache.
"""

from .query_cache import CacheEntry, CacheStats, QueryEmbeddingCache, is_expired

__all__ = ["CacheEntry", "CacheStats", "QueryEmbeddingCache", "is_expired"]
