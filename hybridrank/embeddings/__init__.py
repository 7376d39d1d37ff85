"""Embedding providers and the gateway used by enrichment runs."""

from hybridrank.embeddings.errors import (
    EmbeddingError,
    EmbeddingProviderError,
    EmbeddingProviderUnavailable,
)
from hybridrank.embeddings.factory import create_embedding_provider
from hybridrank.embeddings.gateway import EmbeddingGateway
from hybridrank.embeddings.metrics import EmbeddingMetrics
from hybridrank.embeddings.openai_client import OpenAIEmbeddingProvider
from hybridrank.embeddings.protocols import EmbeddingProvider, EmbeddingResult
from hybridrank.embeddings.text import extract_content_text, extract_statement_text


__all__ = [
    "EmbeddingError",
    "EmbeddingGateway",
    "EmbeddingMetrics",
    "EmbeddingProvider",
    "EmbeddingProviderError",
    "EmbeddingProviderUnavailable",
    "EmbeddingResult",
    "OpenAIEmbeddingProvider",
    "create_embedding_provider",
    "extract_content_text",
    "extract_statement_text",
]
