"""Metrics collection for the feature store."""

from dataclasses import dataclass, field
from typing import ClassVar


@dataclass
class StoreMetrics:
    """Metrics for feature store operations.

    Attributes:
        db_tx_duration_ms: Cumulative transaction duration in milliseconds.
        db_tx_count: Number of committed transactions.
        db_tx_failed_total: Number of rolled back transactions.
        embeddings_upserted_total: Item embeddings written.
        scores_written_total: Single-row score updates written.
        batch_rows_completed_total: Rows updated by batch operations.
        batch_rows_failed_total: Rows a batch operation did not match.
        rows_reset_total: Feature rows cleared by reset operations.
    """

    db_tx_duration_ms: float = 0.0
    db_tx_count: int = 0
    db_tx_failed_total: int = 0
    embeddings_upserted_total: int = 0
    scores_written_total: int = 0
    batch_rows_completed_total: int = 0
    batch_rows_failed_total: int = 0
    rows_reset_total: int = 0

    _instance: ClassVar["StoreMetrics | None"] = None

    @classmethod
    def get_instance(cls) -> "StoreMetrics":
        """Get singleton metrics instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset metrics (primarily for testing)."""
        cls._instance = None

    def record_tx_duration(self, duration_ms: float) -> None:
        """Record a committed transaction.

        Args:
            duration_ms: Duration in milliseconds.
        """
        self.db_tx_duration_ms += duration_ms
        self.db_tx_count += 1

    def record_tx_failed(self) -> None:
        """Record a rolled back transaction."""
        self.db_tx_failed_total += 1

    def record_embedding_upsert(self) -> None:
        """Record an item embedding write."""
        self.embeddings_upserted_total += 1

    def record_score_written(self, rows: int) -> None:
        """Record single-row score writes."""
        self.scores_written_total += rows

    def record_batch(self, completed: int, failed: int) -> None:
        """Record the outcome of a batch update.

        Args:
            completed: Rows updated.
            failed: Rows not matched.
        """
        self.batch_rows_completed_total += completed
        self.batch_rows_failed_total += failed

    def record_reset(self, rows: int) -> None:
        """Record rows cleared by a reset."""
        self.rows_reset_total += rows

    def to_dict(self) -> dict[str, float | int]:
        """Convert metrics to dictionary.

        Returns:
            Dictionary of metric name to value.
        """
        return {
            "db_tx_duration_ms": self.db_tx_duration_ms,
            "db_tx_count": self.db_tx_count,
            "db_tx_failed_total": self.db_tx_failed_total,
            "embeddings_upserted_total": self.embeddings_upserted_total,
            "scores_written_total": self.scores_written_total,
            "batch_rows_completed_total": self.batch_rows_completed_total,
            "batch_rows_failed_total": self.batch_rows_failed_total,
            "rows_reset_total": self.rows_reset_total,
        }

    @property
    def avg_tx_duration_ms(self) -> float:
        """Average committed transaction duration in milliseconds."""
        if self.db_tx_count == 0:
            return 0.0
        return self.db_tx_duration_ms / self.db_tx_count


@dataclass
class TransactionContext:
    """Context for a single transaction with timing.

    Attributes:
        tx_id: Unique transaction identifier.
        start_time_ns: Start time in nanoseconds.
        operation: The operation being performed.
        affected_rows: Rows touched so far.
    """

    tx_id: str
    start_time_ns: int
    operation: str
    affected_rows: int = field(default=0)

    def add_affected_rows(self, rows: int) -> None:
        """Add to the affected row count."""
        self.affected_rows += rows
