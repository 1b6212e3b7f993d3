"""
Shared fixtures: an in-memory backing store and a controllable clock.
"""

from __future__ import annotations

import logging
import time
from typing import Optional

import pytest

from alerta_rag.vector.backing_store import BackingStore, EmbeddingRow


class DictBackingStore(BackingStore):
    """Backing store kept in a dict; records the order of calls."""

    def __init__(self) -> None:
        self.rows: dict[str, EmbeddingRow] = {}
        self.calls: list[str] = []

    def save(self, entity_id, dimension, provider_tag, data) -> None:
        self.calls.append(f"save:{entity_id}")
        self.rows[entity_id] = EmbeddingRow(entity_id, dimension, provider_tag, data, time.time())

    def find_all(self) -> list[EmbeddingRow]:
        self.calls.append("find_all")
        return list(self.rows.values())

    def find_by_id(self, entity_id) -> Optional[EmbeddingRow]:
        self.calls.append(f"find_by_id:{entity_id}")
        return self.rows.get(entity_id)

    def exists_by_id(self, entity_id) -> bool:
        return entity_id in self.rows

    def count(self) -> int:
        return len(self.rows)


class FakeClock:
    """Callable returning a settable epoch time."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def dict_backing() -> DictBackingStore:
    return DictBackingStore()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every environment variable the config layer reads."""
    for key in (
        "RAG_QUERY_CACHE_ENABLED", "RAG_QUERY_CACHE_TTL_MINUTES",
        "RAG_QUERY_CACHE_MAX_ENTRIES", "RAG_VECTOR_STORE_TYPE",
        "RAG_VECTOR_STORE_DB_PATH", "RAG_SIMILARITY_THRESHOLD",
        "RAG_EMBEDDING_PROVIDER", "OPENAI_API_KEY", "OPENAI_BASE_URL",
        "RAG_OPENAI_EMBEDDING_MODEL", "RAG_SENTENCE_TRANSFORMER_URL",
        "RAG_EMBEDDING_TIMEOUT_SECONDS", "RAG_EMBEDDING_ENABLE_FALLBACK",
        "RAG_TOP_K", "RAG_LOG_DIR",
    ):
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


@pytest.fixture(autouse=True)
def _restore_package_logger():
    """Undo handler and propagation changes made by ``setup_logger``."""
    logger = logging.getLogger("alerta_rag")
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield
    for handler in list(logger.handlers):
        if handler not in handlers:
            logger.removeHandler(handler)
            handler.close()
    logger.setLevel(level)
    logger.propagate = propagate
