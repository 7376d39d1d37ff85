"""Protocol interface for embedding providers."""

from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from hybridrank.store.models import Vector


@dataclass(frozen=True)
class EmbeddingResult:
    """One embedding returned by a provider.

    Attributes:
        vector: The embedding.
        tokens: Tokens billed for the request, 0 when not reported.
        model: Model that produced the vector.
    """

    vector: Vector = field(repr=False)
    tokens: int = 0
    model: str | None = None


@runtime_checkable
class EmbeddingProvider(Protocol):
    """Protocol for text embedding backends.

    Any object exposing ``model`` and ``embed`` with the matching signature
    can back the gateway, whether it calls a remote API or a local model.
    """

    model: str

    def embed(self, text: str) -> EmbeddingResult:
        """Embed a single text.

        Args:
            text: Non-empty text to embed.

        Returns:
            The embedding and reported usage.

        Raises:
            EmbeddingProviderError: If the provider call fails.
        """
        ...
