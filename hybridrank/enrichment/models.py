"""Request, result and status models for enrichment runs."""

from datetime import datetime
from typing import Annotated

from pydantic import Field

from hybridrank.data_model import StrictBaseModel
from hybridrank.enrichment.state_machine import EnrichmentPhase


ALREADY_RUNNING = "already running"


class RunRequest(StrictBaseModel):
    """Parameters of one enrichment run.

    Attributes:
        statement_id: Restrict the run to this active statement.
        force: Clear similarity, final score and tier before scoring.
        reset_feedback: With ``force``, also clear feedback scores.
        batch_size: Rows fetched per page.
    """

    statement_id: int | None = None
    force: bool = False
    reset_feedback: bool = True
    batch_size: Annotated[int, Field(ge=1, le=1000)] = 100


class RunResult(StrictBaseModel):
    """Outcome of a run request."""

    ok: bool
    error: str | None = None
    run_id: str | None = None


class EnrichmentStatus(StrictBaseModel):
    """Point-in-time snapshot of the orchestrator.

    Counters accumulate over every statement and phase of the current (or
    last) run. ``total`` is the feature row count of the statement being
    processed.
    """

    running: bool = False
    run_id: str | None = None
    statement_id: int | None = None
    phase: EnrichmentPhase = EnrichmentPhase.IDLE
    processed: int = 0
    updated: int = 0
    failed: int = 0
    total: int = 0
    started_at: datetime | None = None
    finished_at: datetime | None = None
    error: str | None = None
