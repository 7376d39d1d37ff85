"""Metrics collection for enrichment runs."""

from dataclasses import dataclass, field
from typing import ClassVar


@dataclass
class EnrichmentMetrics:
    """Metrics for enrichment runs.

    Phase counters are keyed by phase name (``similarity``, ``hybrid`` ...).

    Attributes:
        runs_started_total: Runs accepted.
        runs_succeeded_total: Runs that reached ``done``.
        runs_failed_total: Runs that ended in ``error``.
        runs_rejected_total: Requests refused because a run was in flight.
        batch_fallbacks_total: Hybrid batches retried row by row.
        phase_processed: Rows fetched per phase.
        phase_updated: Rows written per phase.
        phase_failed: Rows skipped per phase.
        phase_duration_ms: Cumulative time per phase.
    """

    runs_started_total: int = 0
    runs_succeeded_total: int = 0
    runs_failed_total: int = 0
    runs_rejected_total: int = 0
    batch_fallbacks_total: int = 0
    phase_processed: dict[str, int] = field(default_factory=dict)
    phase_updated: dict[str, int] = field(default_factory=dict)
    phase_failed: dict[str, int] = field(default_factory=dict)
    phase_duration_ms: dict[str, float] = field(default_factory=dict)

    _instance: ClassVar["EnrichmentMetrics | None"] = None

    @classmethod
    def get_instance(cls) -> "EnrichmentMetrics":
        """Get singleton metrics instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset metrics (primarily for testing)."""
        cls._instance = None

    def record_run_started(self) -> None:
        self.runs_started_total += 1

    def record_run_finished(self, success: bool) -> None:
        """Record the terminal state of a run."""
        if success:
            self.runs_succeeded_total += 1
        else:
            self.runs_failed_total += 1

    def record_run_rejected(self) -> None:
        self.runs_rejected_total += 1

    def record_batch_fallback(self) -> None:
        self.batch_fallbacks_total += 1

    def record_phase(
        self,
        phase: str,
        processed: int,
        updated: int,
        failed: int,
        duration_ms: float,
    ) -> None:
        """Accumulate the counters of one completed phase.

        Args:
            phase: Phase name.
            processed: Rows fetched.
            updated: Rows written.
            failed: Rows skipped.
            duration_ms: Phase duration.
        """
        self.phase_processed[phase] = self.phase_processed.get(phase, 0) + processed
        self.phase_updated[phase] = self.phase_updated.get(phase, 0) + updated
        self.phase_failed[phase] = self.phase_failed.get(phase, 0) + failed
        self.phase_duration_ms[phase] = (
            self.phase_duration_ms.get(phase, 0.0) + duration_ms
        )

    def to_dict(self) -> dict[str, object]:
        """Convert metrics to dictionary."""
        return {
            "runs_started_total": self.runs_started_total,
            "runs_succeeded_total": self.runs_succeeded_total,
            "runs_failed_total": self.runs_failed_total,
            "runs_rejected_total": self.runs_rejected_total,
            "batch_fallbacks_total": self.batch_fallbacks_total,
            "phase_processed": dict(self.phase_processed),
            "phase_updated": dict(self.phase_updated),
            "phase_failed": dict(self.phase_failed),
            "phase_duration_ms": dict(self.phase_duration_ms),
        }
