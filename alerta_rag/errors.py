"""
Exception types raised inside the retrieval core.

Only the leaf components raise these; the Vector Store, the Query
Embedding Cache and the retriever catch them and degrade instead of
letting them reach the caller.
"""


class RagError(Exception):
    """Base class for all alerta_rag errors."""


class CorruptDataError(RagError):
    """Raised when a persisted vector blob cannot be decoded."""


class PersistenceError(RagError):
    """Raised when the backing store cannot read or write a row."""


class EmbeddingError(RagError):
    """Raised when an embedding provider cannot produce a vector."""
