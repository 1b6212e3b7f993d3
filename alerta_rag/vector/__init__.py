"""
Vector layer: codec, similarity, backing store and the Vector Store.
"""

from .backing_store import BackingStore, EmbeddingRow, SQLiteBackingStore
from .codec import decode, encode
from .factory import create_vector_store
from .similarity import SIMILARITY_THRESHOLD, cosine_similarity, cosine_similarity_batch
from .store import HydrationReport, ScoredMatch, VectorEntry, VectorStore

__all__ = [
    "BackingStore",
    "EmbeddingRow",
    "SQLiteBackingStore",
    "encode",
    "decode",
    "create_vector_store",
    "SIMILARITY_THRESHOLD",
    "cosine_similarity",
    "cosine_similarity_batch",
    "HydrationReport",
    "ScoredMatch",
    "VectorEntry",
    "VectorStore",
]
