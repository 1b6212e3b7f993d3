"""
Sentence-Transformer embeddings served by a local HTTP service.

The service answers ``GET <endpoint>/health`` with 200 and
``POST <endpoint>`` with ``{"embedding": [...]}`` for a body of
``{"text": "..."}``.  The provider probes ``/health`` once on construction
and refuses to start if the service is down.
"""

from __future__ import annotations

import logging

import numpy as np
import requests

from ..errors import EmbeddingError
from .base import EmbeddingProvider

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "http://localhost:8000/embed"
DIMENSION = 384
HEALTH_TIMEOUT = 2


class SentenceTransformerEmbeddingProvider(EmbeddingProvider):

    tag = "SENTENCE_TRANSFORMER"

    def __init__(self, endpoint: str = DEFAULT_ENDPOINT, timeout_seconds: float = 10,
                 session: requests.Session | None = None) -> None:
        self._endpoint = endpoint.rstrip("/")
        self._timeout = timeout_seconds
        self._session = session or requests.Session()
        self._check_health()

    def _check_health(self) -> None:
        url = f"{self._endpoint}/health"
        try:
            response = self._session.get(url, timeout=HEALTH_TIMEOUT)
        except requests.exceptions.RequestException as exc:
            raise EmbeddingError(f"Sentence-Transformer service unreachable at {url}: {exc}") from exc
        if response.status_code != 200:
            raise EmbeddingError(
                f"Sentence-Transformer service unhealthy at {url}: HTTP {response.status_code}"
            )
        logger.info("[SentenceTransformer] Service available at %s", self._endpoint)

    def embed(self, text: str) -> np.ndarray:
        if text is None or not text.strip():
            return np.zeros(DIMENSION, dtype=np.float32)
        try:
            response = self._session.post(
                self._endpoint, json={"text": text}, timeout=self._timeout,
            )
            response.raise_for_status()
            values = response.json()["embedding"]
        except requests.exceptions.RequestException as exc:
            raise EmbeddingError(f"Sentence-Transformer request failed: {exc}") from exc
        except (KeyError, TypeError, ValueError) as exc:
            raise EmbeddingError(f"unexpected Sentence-Transformer response: {exc}") from exc

        vec = np.asarray(values, dtype=np.float32)
        if vec.ndim != 1 or vec.size != DIMENSION:
            raise EmbeddingError(
                f"Sentence-Transformer returned {vec.size} dimensions, expected {DIMENSION}"
            )
        return vec

    def dimension(self) -> int:
        return DIMENSION
