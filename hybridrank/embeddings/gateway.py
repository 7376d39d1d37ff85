"""Embedding gateway between the orchestrator and a provider."""

import time

import structlog

from hybridrank.config.schemas import EmbeddingConfig
from hybridrank.embeddings.errors import (
    EmbeddingError,
    EmbeddingProviderError,
    EmbeddingProviderUnavailable,
)
from hybridrank.embeddings.metrics import EmbeddingMetrics
from hybridrank.embeddings.protocols import EmbeddingProvider, EmbeddingResult
from hybridrank.embeddings.text import extract_content_text, extract_statement_text
from hybridrank.store.errors import FeatureStoreError
from hybridrank.store.models import ContentItem, ResearchStatement
from hybridrank.store.store import FeatureStore


logger = structlog.get_logger()


class EmbeddingGateway:
    """Turns items and statements into embeddings.

    Builds the provider text, calls the provider once (no retries) and
    records token usage in the store when the provider reports it.
    """

    def __init__(
        self,
        provider: EmbeddingProvider | None,
        store: FeatureStore | None = None,
        config: EmbeddingConfig | None = None,
    ) -> None:
        """Initialize the gateway.

        Args:
            provider: Embedding backend; None means embeddings are unavailable.
            store: Store used for daily usage accounting.
            config: Text limits and cost accounting.
        """
        self._provider = provider
        self._store = store
        self._config = config or EmbeddingConfig()
        self._metrics = EmbeddingMetrics.get_instance()
        self._log = logger.bind(component="embeddings", subcomponent="gateway")

    @property
    def is_available(self) -> bool:
        """Whether a provider is wired in."""
        return self._provider is not None

    def embed_item(self, item: ContentItem) -> EmbeddingResult | None:
        """Embed a content item.

        Returns:
            The embedding, or None when the item has no text to embed.

        Raises:
            EmbeddingProviderUnavailable: If no provider is configured.
            EmbeddingProviderError: If the provider call fails.
        """
        text = extract_content_text(item, self._config.max_chars)
        if not text:
            self._metrics.record_skipped()
            self._log.debug("embedding_skipped_no_text", content_item_id=item.id)
            return None
        return self._embed(text)

    def embed_statement(self, statement: ResearchStatement) -> EmbeddingResult:
        """Embed a research statement's name and text.

        Raises:
            EmbeddingProviderUnavailable: If no provider is configured.
            EmbeddingProviderError: If the statement has no text or the
                provider call fails.
        """
        text = extract_statement_text(statement, self._config.max_chars)
        if not text:
            msg = f"Research statement {statement.id} has no text to embed"
            raise EmbeddingProviderError(msg)
        return self._embed(text)

    def _embed(self, text: str) -> EmbeddingResult:
        if self._provider is None:
            raise EmbeddingProviderUnavailable("No embedding provider configured")

        start = time.perf_counter()
        try:
            result = self._provider.embed(text)
        except EmbeddingError:
            self._metrics.record_failure((time.perf_counter() - start) * 1000)
            raise
        except Exception as e:
            self._metrics.record_failure((time.perf_counter() - start) * 1000)
            raise EmbeddingProviderError(f"Embedding provider failed: {e}") from e

        duration_ms = (time.perf_counter() - start) * 1000
        self._metrics.record_request(duration_ms, result.tokens)
        if result.tokens:
            self._record_usage(result.tokens)
        return result

    def _record_usage(self, tokens: int) -> None:
        if self._store is None:
            return
        cost = tokens / 1000 * self._config.cost_per_1k_tokens
        try:
            self._store.record_ai_usage(tokens=tokens, estimated_cost=cost)
        except FeatureStoreError:
            self._log.warning("ai_usage_record_failed", tokens=tokens, exc_info=True)
