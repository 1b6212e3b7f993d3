"""
Configuration: loads settings from .alerta-rag.yaml, environment variables,
and built-in defaults (in that priority order: env > YAML > defaults).

Example ``.alerta-rag.yaml``::

    query_embedding_cache:
      enabled: true
      ttl_minutes: 30
      max_entries: 1000
    vector_store:
      type: sqlite
      db_path: .alerta-rag/vectors.db
      similarity_threshold: 0.1
    embedding:
      provider: dummy
"""

import logging
import os
from dataclasses import dataclass

import yaml

from .vector.similarity import SIMILARITY_THRESHOLD

logger = logging.getLogger(__name__)


_DEFAULTS = {
    "query_cache_enabled": True,
    "query_cache_ttl_minutes": 30,
    "query_cache_max_entries": 1000,
    "vector_store_type": "sqlite",
    "vector_store_db_path": ".alerta-rag/vectors.db",
    "similarity_threshold": SIMILARITY_THRESHOLD,
    "embedding_provider": "dummy",
    "openai_api_key": "",
    "openai_api_url": "https://api.openai.com/v1",
    "openai_model": "text-embedding-3-small",
    "sentence_transformer_url": "http://localhost:8000/embed",
    "embedding_timeout_seconds": 10,
    "embedding_enable_fallback": True,
    "top_k": 5,
    "log_dir": "",
}

# Config file search locations
_CONFIG_FILENAMES = [".alerta-rag.yaml", ".alerta-rag.yml"]


def _find_config_file(explicit_path: str | None = None) -> str | None:
    """Find the config file. Checks explicit path, CWD, then user home."""
    if explicit_path:
        if os.path.isfile(explicit_path):
            return explicit_path
        return None

    search_dirs = [os.getcwd(), os.path.expanduser("~")]
    for d in search_dirs:
        for name in _CONFIG_FILENAMES:
            path = os.path.join(d, name)
            if os.path.isfile(path):
                return path
    return None


def _load_yaml(path: str) -> dict:
    """Load YAML file, returns empty dict on failure."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return data if isinstance(data, dict) else {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Could not read config file %s: %s", path, e)
        return {}


def _to_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


@dataclass(frozen=True)
class QueryCacheSettings:
    enabled: bool = True
    ttl_minutes: int = 30
    max_entries: int = 1000


@dataclass(frozen=True)
class VectorStoreSettings:
    type: str = "sqlite"
    db_path: str = ".alerta-rag/vectors.db"
    similarity_threshold: float = SIMILARITY_THRESHOLD


@dataclass(frozen=True)
class EmbeddingSettings:
    provider: str = "dummy"
    openai_api_key: str = ""
    openai_api_url: str = "https://api.openai.com/v1"
    openai_model: str = "text-embedding-3-small"
    sentence_transformer_url: str = "http://localhost:8000/embed"
    timeout_seconds: int = 10
    enable_fallback: bool = True


class Config:
    """Application configuration.

    Settings are resolved in priority order:
    1. Environment variables
    2. .alerta-rag.yaml config file
    3. Built-in defaults
    """

    def __init__(self, yaml_data: dict | None = None):
        yd = yaml_data or {}

        def _section(name: str) -> dict:
            section = yd.get(name, {})
            return section if isinstance(section, dict) else {}

        # Helper: env var > yaml > default
        def _get(env_key: str, section: dict, yaml_key: str, default, cast=str):
            env_val = os.getenv(env_key)
            if env_val is not None:
                try:
                    return cast(env_val)
                except (TypeError, ValueError):
                    logger.warning("Ignoring invalid %s=%r, using default %r",
                                   env_key, env_val, default)
                    return default
            yaml_val = section.get(yaml_key)
            if yaml_val is not None:
                try:
                    return cast(yaml_val)
                except (TypeError, ValueError):
                    logger.warning("Ignoring invalid config value %s=%r, using default %r",
                                   yaml_key, yaml_val, default)
            return default

        cache_yd = _section("query_embedding_cache")
        store_yd = _section("vector_store")
        embed_yd = _section("embedding")

        self.query_cache = QueryCacheSettings(
            enabled=_get("RAG_QUERY_CACHE_ENABLED", cache_yd, "enabled",
                         _DEFAULTS["query_cache_enabled"], cast=_to_bool),
            ttl_minutes=_get("RAG_QUERY_CACHE_TTL_MINUTES", cache_yd, "ttl_minutes",
                             _DEFAULTS["query_cache_ttl_minutes"], cast=int),
            max_entries=_get("RAG_QUERY_CACHE_MAX_ENTRIES", cache_yd, "max_entries",
                             _DEFAULTS["query_cache_max_entries"], cast=int),
        )

        self.vector_store = VectorStoreSettings(
            type=_get("RAG_VECTOR_STORE_TYPE", store_yd, "type",
                      _DEFAULTS["vector_store_type"]),
            db_path=_get("RAG_VECTOR_STORE_DB_PATH", store_yd, "db_path",
                         _DEFAULTS["vector_store_db_path"]),
            similarity_threshold=_get("RAG_SIMILARITY_THRESHOLD", store_yd,
                                      "similarity_threshold",
                                      _DEFAULTS["similarity_threshold"], cast=float),
        )

        self.embedding = EmbeddingSettings(
            provider=_get("RAG_EMBEDDING_PROVIDER", embed_yd, "provider",
                          _DEFAULTS["embedding_provider"]),
            openai_api_key=_get("OPENAI_API_KEY", embed_yd, "openai_api_key",
                                _DEFAULTS["openai_api_key"]),
            openai_api_url=_get("OPENAI_BASE_URL", embed_yd, "openai_api_url",
                                _DEFAULTS["openai_api_url"]),
            openai_model=_get("RAG_OPENAI_EMBEDDING_MODEL", embed_yd, "openai_model",
                              _DEFAULTS["openai_model"]),
            sentence_transformer_url=_get("RAG_SENTENCE_TRANSFORMER_URL", embed_yd,
                                          "sentence_transformer_url",
                                          _DEFAULTS["sentence_transformer_url"]),
            timeout_seconds=_get("RAG_EMBEDDING_TIMEOUT_SECONDS", embed_yd,
                                 "timeout_seconds",
                                 _DEFAULTS["embedding_timeout_seconds"], cast=int),
            enable_fallback=_get("RAG_EMBEDDING_ENABLE_FALLBACK", embed_yd,
                                 "enable_fallback",
                                 _DEFAULTS["embedding_enable_fallback"], cast=_to_bool),
        )

        self.TOP_K = _get("RAG_TOP_K", yd, "top_k", _DEFAULTS["top_k"], cast=int)
        self.LOG_DIR = _get("RAG_LOG_DIR", yd, "log_dir", _DEFAULTS["log_dir"])

    @classmethod
    def load(cls, config_path: str | None = None) -> "Config":
        """Load config from YAML file (if found) + env vars + defaults."""
        path = _find_config_file(config_path)
        yaml_data = _load_yaml(path) if path else {}
        return cls(yaml_data)
