"""
OpenAI Embeddings API provider.

Calls ``POST {base_url}/embeddings`` with ``requests`` and retries with
exponential back-off.  ``text-embedding-3-small`` returns 1536 floats.
"""

from __future__ import annotations

import logging
import time

import numpy as np
import requests

from ..errors import EmbeddingError
from .base import EmbeddingProvider

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "text-embedding-3-small"
DEFAULT_BASE_URL = "https://api.openai.com/v1"
DIMENSION = 1536
MAX_RETRIES = 3


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """Embeddings from the OpenAI HTTP API.

    Parameters
    ----------
    api_key:
        OpenAI API key.  Required.
    base_url:
        API root, without the trailing ``/embeddings``.
    model:
        Embedding model name.
    timeout_seconds:
        Per-request timeout.
    max_retries:
        Attempts before :class:`EmbeddingError` is raised.
    retry_delay:
        Base delay in seconds; doubles after each failed attempt.
    dimension:
        Vector length of *model*.
    session:
        Optional ``requests.Session`` (connection pooling, tests).
    """

    tag = "OPENAI"

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        model: str = DEFAULT_MODEL,
        timeout_seconds: float = 10,
        max_retries: int = MAX_RETRIES,
        retry_delay: float = 1.0,
        dimension: int = DIMENSION,
        session: requests.Session | None = None,
    ) -> None:
        if not api_key or not api_key.strip():
            raise EmbeddingError("OPENAI_API_KEY is not configured")
        self._api_key = api_key.strip()
        self._url = f"{base_url.rstrip('/')}/embeddings"
        self._model = model
        self._timeout = timeout_seconds
        self._max_retries = max(1, max_retries)
        self._retry_delay = retry_delay
        self._dimension = dimension
        self._session = session or requests.Session()

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

    def embed(self, text: str) -> np.ndarray:
        if text is None or not text.strip():
            return np.zeros(self._dimension, dtype=np.float32)
        payload = {"model": self._model, "input": text}
        last_error: Exception | None = None

        for attempt in range(1, self._max_retries + 1):
            try:
                response = self._session.post(
                    self._url, headers=self._headers(), json=payload,
                    timeout=self._timeout,
                )
                response.raise_for_status()
                return self._parse(response.json())
            except EmbeddingError:
                raise
            except (requests.exceptions.RequestException, ValueError) as exc:
                last_error = exc
                if attempt < self._max_retries:
                    wait = self._retry_delay * (2 ** (attempt - 1))
                    logger.warning(
                        "[OpenAI] Embedding error (attempt %d/%d): %s, retrying in %.1fs",
                        attempt, self._max_retries, exc, wait,
                    )
                    time.sleep(wait)

        raise EmbeddingError(
            f"OpenAI embedding failed after {self._max_retries} attempts: {last_error}"
        ) from last_error

    def _parse(self, data: dict) -> np.ndarray:
        try:
            values = data["data"][0]["embedding"]
        except (KeyError, IndexError, TypeError) as exc:
            raise EmbeddingError(f"unexpected embeddings response: {exc}") from exc
        try:
            vec = np.asarray(values, dtype=np.float32)
        except (TypeError, ValueError) as exc:
            raise EmbeddingError(f"non-numeric embedding in response: {exc}") from exc
        if vec.ndim != 1 or vec.size != self._dimension:
            raise EmbeddingError(
                f"OpenAI returned {vec.size} dimensions, expected {self._dimension}"
            )
        return vec

    def dimension(self) -> int:
        return self._dimension
