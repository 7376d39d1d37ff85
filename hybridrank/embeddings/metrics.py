"""Metrics collection for embedding requests."""

from dataclasses import dataclass
from typing import ClassVar


@dataclass
class EmbeddingMetrics:
    """Metrics for embedding provider calls.

    Attributes:
        embedding_requests_total: Provider calls attempted.
        embedding_failures_total: Provider calls that raised.
        embedding_skipped_total: Items skipped for lack of text.
        embedding_tokens_total: Tokens reported by the provider.
        embedding_duration_ms: Cumulative provider call time.
    """

    embedding_requests_total: int = 0
    embedding_failures_total: int = 0
    embedding_skipped_total: int = 0
    embedding_tokens_total: int = 0
    embedding_duration_ms: float = 0.0

    _instance: ClassVar["EmbeddingMetrics | None"] = None

    @classmethod
    def get_instance(cls) -> "EmbeddingMetrics":
        """Get singleton metrics instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset metrics (primarily for testing)."""
        cls._instance = None

    def record_request(self, duration_ms: float, tokens: int) -> None:
        """Record a successful provider call."""
        self.embedding_requests_total += 1
        self.embedding_duration_ms += duration_ms
        self.embedding_tokens_total += tokens

    def record_failure(self, duration_ms: float) -> None:
        """Record a failed provider call."""
        self.embedding_requests_total += 1
        self.embedding_failures_total += 1
        self.embedding_duration_ms += duration_ms

    def record_skipped(self) -> None:
        """Record an item with no embeddable text."""
        self.embedding_skipped_total += 1

    def to_dict(self) -> dict[str, float | int]:
        """Convert metrics to dictionary."""
        return {
            "embedding_requests_total": self.embedding_requests_total,
            "embedding_failures_total": self.embedding_failures_total,
            "embedding_skipped_total": self.embedding_skipped_total,
            "embedding_tokens_total": self.embedding_tokens_total,
            "embedding_duration_ms": self.embedding_duration_ms,
        }
