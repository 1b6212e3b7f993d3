"""
Embedding providers: text in, fixed-length float32 vector out.
"""

from .base import EmbeddingProvider
from .dummy import DummyEmbeddingProvider
from .factory import PROVIDERS, create_embedding_provider
from .openai_provider import OpenAIEmbeddingProvider
from .sentence_transformer import SentenceTransformerEmbeddingProvider

__all__ = [
    "EmbeddingProvider",
    "DummyEmbeddingProvider",
    "OpenAIEmbeddingProvider",
    "SentenceTransformerEmbeddingProvider",
    "PROVIDERS",
    "create_embedding_provider",
]
