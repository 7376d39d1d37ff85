"""Enrichment orchestration: runs every scorer over stored features."""

from hybridrank.enrichment.errors import EnrichmentError, NoActiveStatementsError
from hybridrank.enrichment.metrics import EnrichmentMetrics
from hybridrank.enrichment.models import (
    ALREADY_RUNNING,
    EnrichmentStatus,
    RunRequest,
    RunResult,
)
from hybridrank.enrichment.orchestrator import EnrichmentOrchestrator
from hybridrank.enrichment.state_machine import (
    EnrichmentPhase,
    EnrichmentStateError,
    EnrichmentStateMachine,
)


__all__ = [
    "ALREADY_RUNNING",
    "EnrichmentError",
    "EnrichmentMetrics",
    "EnrichmentOrchestrator",
    "EnrichmentPhase",
    "EnrichmentStateError",
    "EnrichmentStateMachine",
    "EnrichmentStatus",
    "NoActiveStatementsError",
    "RunRequest",
    "RunResult",
]
