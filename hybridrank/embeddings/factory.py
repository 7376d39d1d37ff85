"""Factory for creating embedding providers from settings."""

import structlog

from hybridrank.config.schemas import EmbeddingConfig
from hybridrank.embeddings.errors import EmbeddingProviderUnavailable
from hybridrank.embeddings.protocols import EmbeddingProvider
from hybridrank.settings import AppSettings, EmbeddingProviderName


logger = structlog.get_logger()


def create_embedding_provider(
    settings: AppSettings,
    config: EmbeddingConfig | None = None,
) -> EmbeddingProvider | None:
    """Create the embedding provider selected in settings.

    The model comes from ``HYBRIDRANK_EMBEDDING_MODEL``, then the scoring
    file, then the provider default.

    Args:
        settings: Environment settings.
        config: Embedding section of the scoring configuration.

    Returns:
        A provider, or None when embeddings are disabled.

    Raises:
        EmbeddingProviderUnavailable: If the selected provider has no
            credentials or its package is not installed.
    """
    cfg = config or EmbeddingConfig()
    model = settings.embedding_model or cfg.model
    log = logger.bind(component="embeddings", subcomponent="factory")

    if settings.embedding_provider is EmbeddingProviderName.NONE:
        log.info("embedding_provider_disabled")
        return None

    if settings.embedding_provider is EmbeddingProviderName.FASTEMBED:
        from hybridrank.embeddings.fastembed_provider import (
            DEFAULT_MODEL as FASTEMBED_DEFAULT_MODEL,
            FastEmbedProvider,
            is_available,
        )

        if not is_available():
            msg = "fastembed is not installed (pip install 'hybridrank[semantic]')"
            raise EmbeddingProviderUnavailable(msg)
        log.info("embedding_provider_created", provider="fastembed")
        return FastEmbedProvider(model=model or FASTEMBED_DEFAULT_MODEL)

    api_key = settings.openai_api_key
    if not api_key:
        msg = "No OpenAI credentials configured (need OPENAI_API_KEY)"
        raise EmbeddingProviderUnavailable(msg)

    from hybridrank.embeddings.openai_client import (
        DEFAULT_MODEL as OPENAI_DEFAULT_MODEL,
        OpenAIEmbeddingProvider,
    )

    log.info("embedding_provider_created", provider="openai")
    return OpenAIEmbeddingProvider(
        api_key=api_key,
        model=model or OPENAI_DEFAULT_MODEL,
        base_url=settings.openai_base_url,
        timeout=cfg.request_timeout_seconds,
    )
