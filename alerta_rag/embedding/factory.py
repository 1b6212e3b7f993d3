"""
Start-up factory for the embedding provider.

``create_embedding_provider`` runs once when the service boots.  It
builds the configured provider, smoke-tests it with a short text and,
when fallback is enabled, settles on the deterministic dummy provider if
anything goes wrong.  The returned provider is used for the whole life of
the process; nothing is swapped at runtime.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..errors import EmbeddingError
from .base import EmbeddingProvider
from .dummy import DummyEmbeddingProvider
from .openai_provider import OpenAIEmbeddingProvider
from .sentence_transformer import SentenceTransformerEmbeddingProvider

if TYPE_CHECKING:
    from ..config import EmbeddingSettings

logger = logging.getLogger(__name__)

PROVIDERS = ("dummy", "openai", "sentence_transformer")

_SMOKE_TEST_TEXT = "embedding provider start-up check"


def _build(settings: "EmbeddingSettings") -> EmbeddingProvider:
    name = (settings.provider or "").strip().lower()
    if name == "dummy":
        return DummyEmbeddingProvider()
    if name == "openai":
        return OpenAIEmbeddingProvider(
            api_key=settings.openai_api_key,
            base_url=settings.openai_api_url,
            model=settings.openai_model,
            timeout_seconds=settings.timeout_seconds,
        )
    if name == "sentence_transformer":
        return SentenceTransformerEmbeddingProvider(
            endpoint=settings.sentence_transformer_url,
            timeout_seconds=settings.timeout_seconds,
        )
    raise EmbeddingError(
        f"Unknown embedding provider {settings.provider!r}; expected one of {', '.join(PROVIDERS)}"
    )


def _smoke_test(provider: EmbeddingProvider) -> None:
    vec = provider.embed(_SMOKE_TEST_TEXT)
    if vec is None or len(vec) == 0:
        raise EmbeddingError(f"{provider.tag} returned an empty embedding")
    if len(vec) != provider.dimension():
        raise EmbeddingError(
            f"{provider.tag} returned {len(vec)} dimensions, declared {provider.dimension()}"
        )


def create_embedding_provider(settings: "EmbeddingSettings") -> EmbeddingProvider:
    """
    Build and verify the configured embedding provider.

    Raises
    ------
    EmbeddingError
        If the configured provider cannot be built or fails its smoke test
        and ``settings.enable_fallback`` is False.
    """
    logger.info("[EmbeddingProvider] Initialising provider: %s", settings.provider)
    try:
        provider = _build(settings)
        _smoke_test(provider)
    except Exception as exc:
        if not settings.enable_fallback:
            logger.error("[EmbeddingProvider] %s failed and fallback is disabled: %s", settings.provider, exc)
            if isinstance(exc, EmbeddingError):
                raise
            raise EmbeddingError(f"cannot create embedding provider {settings.provider!r}: {exc}") from exc
        logger.warning(
            "[EmbeddingProvider] %s failed (%s), falling back to the dummy provider",
            settings.provider, exc,
        )
        provider = DummyEmbeddingProvider()

    logger.info("[EmbeddingProvider] Ready: %r", provider)
    return provider
