"""
Start-up factory for the Vector Store.

Evaluated once when the service boots: the configured ``type`` decides
whether the store writes through to SQLite or runs cache-only.  A
database that cannot be opened is a configuration error and is raised.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .backing_store import SQLiteBackingStore
from .store import VectorStore

if TYPE_CHECKING:
    from ..config import VectorStoreSettings
    from ..embedding.base import EmbeddingProvider

logger = logging.getLogger(__name__)

STORE_TYPES = ("memory", "sqlite")


def create_vector_store(
    settings: "VectorStoreSettings",
    provider: "EmbeddingProvider",
) -> VectorStore:
    """
    Build the Vector Store described by *settings* for *provider*.

    Parameters
    ----------
    settings:
        Vector store settings (type, database path, threshold).
    provider:
        The embedding provider in use; its tag and dimension scope which
        persisted rows are loaded.

    Returns
    -------
    VectorStore

    Raises
    ------
    ValueError
        If ``settings.type`` is not one of ``memory`` / ``sqlite``.
    alerta_rag.errors.PersistenceError
        If the SQLite database cannot be opened.
    """
    store_type = (settings.type or "").strip().lower()
    if store_type not in STORE_TYPES:
        raise ValueError(
            f"Unknown vector store type {settings.type!r}; expected one of {', '.join(STORE_TYPES)}"
        )

    backing = SQLiteBackingStore(settings.db_path) if store_type == "sqlite" else None
    store = VectorStore(
        backing_store=backing,
        provider_tag=provider.tag,
        dimension=provider.dimension(),
        similarity_threshold=settings.similarity_threshold,
    )
    logger.info(
        "[create_vector_store] %s vector store ready | embeddings in memory: %d",
        store_type, store.size(),
    )
    return store
