"""
Deterministic hash-based embeddings.

No model and no network: the SHA-256 digest of the lowercased, trimmed
text is spread over 128 dimensions and L2-normalised.  Identical texts
get identical vectors, which is all the tests and offline deployments
need.
"""

import hashlib

import numpy as np

from .base import EmbeddingProvider

DIMENSION = 128


class DummyEmbeddingProvider(EmbeddingProvider):

    tag = "DUMMY"

    def embed(self, text: str) -> np.ndarray:
        if text is None or not text.strip():
            return np.zeros(DIMENSION, dtype=np.float32)

        digest = hashlib.sha256(text.strip().lower().encode("utf-8")).digest()
        idx = (np.arange(DIMENSION) * len(digest) // DIMENSION) % len(digest)
        vec = np.frombuffer(digest, dtype=np.uint8)[idx].astype(np.float32) / 255.0

        norm = float(np.linalg.norm(vec))
        if norm > 0:
            vec = vec / norm
        return vec.astype(np.float32)

    def dimension(self) -> int:
        return DIMENSION
