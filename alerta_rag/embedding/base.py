from abc import ABC, abstractmethod

import numpy as np


class EmbeddingProvider(ABC):
    """Turns text into a fixed-length float32 vector.

    ``embed`` must be deterministic for identical text within one provider
    version, and every vector it returns has length ``dimension()``.
    Transport or parse failures raise
    :class:`~alerta_rag.errors.EmbeddingError`.
    """

    #: Stored next to every persisted vector; rows with another tag are stale.
    tag: str = ""

    @abstractmethod
    def embed(self, text: str) -> np.ndarray:
        """Return the embedding of *text*."""

    @abstractmethod
    def dimension(self) -> int:
        """Length of every vector this provider returns."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(tag={self.tag!r}, dimension={self.dimension()})"
