"""Local embedding provider backed by fastembed.

Uses fastembed (ONNX-based) so embeddings can be computed without an API
key. fastembed is an optional dependency; ``is_available`` reports whether
it is installed.
"""

import numpy as np
import structlog

from hybridrank.embeddings.errors import EmbeddingProviderError
from hybridrank.embeddings.protocols import EmbeddingResult


logger = structlog.get_logger()

try:
    from fastembed import TextEmbedding

    _FASTEMBED_AVAILABLE = True
except ImportError:
    _FASTEMBED_AVAILABLE = False

# Lightweight model: 384 dimensions, ~50 MB ONNX
DEFAULT_MODEL = "BAAI/bge-small-en-v1.5"


def is_available() -> bool:
    """Check if fastembed is installed and usable."""
    return _FASTEMBED_AVAILABLE


class FastEmbedProvider:
    """Embeds text with a local fastembed model.

    Content items and statements are embedded as passages so they live in
    the same space. Token usage is not reported.
    """

    def __init__(self, model: str = DEFAULT_MODEL) -> None:
        """Load the model.

        Args:
            model: fastembed model identifier.

        Raises:
            RuntimeError: If fastembed is not installed.
        """
        if not _FASTEMBED_AVAILABLE:
            msg = (
                "fastembed is required for local embeddings. "
                "Install with: pip install 'hybridrank[semantic]'"
            )
            raise RuntimeError(msg)

        self.model = model
        self._model = TextEmbedding(model_name=model)
        logger.info(
            "fastembed_provider_initialized",
            component="embeddings",
            subcomponent="fastembed",
            model=model,
        )

    def embed(self, text: str) -> EmbeddingResult:
        """Embed ``text`` as a passage.

        Raises:
            EmbeddingProviderError: If the model returns nothing.
        """
        vectors = list(self._model.passage_embed([text]))
        if not vectors:
            msg = "fastembed returned no embedding"
            raise EmbeddingProviderError(msg)
        return EmbeddingResult(
            vector=np.asarray(vectors[0], dtype=np.float32), model=self.model
        )
