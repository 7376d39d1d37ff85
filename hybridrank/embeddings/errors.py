"""Domain-specific error types for the embeddings module."""


class EmbeddingError(Exception):
    """Base class for embedding failures."""


class EmbeddingProviderUnavailable(EmbeddingError):
    """No usable provider: missing credentials or missing optional package."""


class EmbeddingProviderError(EmbeddingError):
    """Provider call failure.

    Attributes:
        status_code: HTTP status code from the API response, 0 if none.
    """

    def __init__(self, message: str, status_code: int = 0) -> None:
        super().__init__(message)
        self.status_code = status_code
