"""OpenAI embeddings client using API key authentication."""

from http import HTTPStatus

import httpx
import numpy as np
import structlog

from hybridrank.embeddings.errors import EmbeddingProviderError
from hybridrank.embeddings.protocols import EmbeddingResult


logger = structlog.get_logger()

DEFAULT_MODEL = "text-embedding-3-small"
_DEFAULT_BASE_URL = "https://api.openai.com/v1"


class OpenAIEmbeddingProvider:
    """Client for the OpenAI ``/embeddings`` endpoint.

    Sends one text per request and reports the billed token count. Failed
    requests are not retried here; the orchestrator skips the item and a
    later run picks it up again.
    """

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        *,
        base_url: str = _DEFAULT_BASE_URL,
        timeout: float = 30.0,
        client: httpx.Client | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            api_key: OpenAI API key.
            model: Embedding model identifier.
            base_url: API root, overridable for compatible gateways.
            timeout: Request timeout in seconds.
            client: Optional preconfigured httpx client.
        """
        self._api_key = api_key
        self.model = model
        self._url = f"{base_url.rstrip('/')}/embeddings"
        self._timeout = timeout
        self._client = client or httpx.Client(timeout=timeout)
        self._log = logger.bind(component="embeddings", subcomponent="openai")

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._client.close()

    def embed(self, text: str) -> EmbeddingResult:
        """Request an embedding for ``text``.

        Raises:
            EmbeddingProviderError: On transport errors, non-200 responses
                or malformed payloads.
        """
        try:
            response = self._client.post(
                self._url,
                headers={
                    "Authorization": f"Bearer {self._api_key}",
                    "Content-Type": "application/json",
                },
                json={"model": self.model, "input": text},
                timeout=self._timeout,
            )
        except httpx.HTTPError as exc:
            msg = f"OpenAI embeddings request failed: {exc}"
            raise EmbeddingProviderError(msg) from exc

        if response.status_code != HTTPStatus.OK:
            self._log.warning(
                "openai_embeddings_error",
                status=response.status_code,
                model=self.model,
            )
            msg = f"OpenAI embeddings returned {response.status_code}"
            raise EmbeddingProviderError(msg, status_code=response.status_code)

        try:
            data = response.json()
            values = data["data"][0]["embedding"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            msg = "Malformed OpenAI embeddings response"
            raise EmbeddingProviderError(msg) from exc

        vector = np.asarray(values, dtype=np.float32)
        if vector.ndim != 1 or vector.size == 0:
            msg = "Empty embedding in OpenAI response"
            raise EmbeddingProviderError(msg)

        usage = data.get("usage") or {}
        tokens = int(usage.get("total_tokens") or usage.get("prompt_tokens") or 0)
        return EmbeddingResult(
            vector=vector, tokens=tokens, model=data.get("model", self.model)
        )
