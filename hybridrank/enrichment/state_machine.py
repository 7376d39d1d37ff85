"""Enrichment run phase state machine."""

from enum import Enum
from typing import ClassVar

import structlog

from hybridrank.enrichment.errors import EnrichmentError


logger = structlog.get_logger()


class EnrichmentPhase(str, Enum):
    """Phases of an enrichment run.

    Phase transitions:
        IDLE -> STARTING: A run was accepted
        STARTING -> RESET: Forced run clears derived scores
        STARTING/RESET -> EMBEDDING: Embed items (only with a gateway)
        STARTING/RESET/EMBEDDING -> SIMILARITY: Score against the statement
        SIMILARITY -> KEYWORD -> FEEDBACK -> HYBRID: Remaining scorers
        HYBRID -> RESET/EMBEDDING/SIMILARITY: Next statement
        HYBRID -> DONE: All statements processed
        any non-terminal phase -> ERROR: Fatal failure
    """

    IDLE = "idle"
    STARTING = "starting"
    RESET = "reset"
    EMBEDDING = "embedding"
    SIMILARITY = "similarity"
    KEYWORD = "keyword"
    FEEDBACK = "feedback"
    HYBRID = "hybrid"
    DONE = "done"
    ERROR = "error"


class EnrichmentStateError(EnrichmentError):
    """Raised when an invalid phase transition is attempted."""

    def __init__(self, from_phase: EnrichmentPhase, to_phase: EnrichmentPhase) -> None:
        """Initialize the error.

        Args:
            from_phase: The current phase.
            to_phase: The attempted target phase.
        """
        self.from_phase = from_phase
        self.to_phase = to_phase
        super().__init__(
            f"Invalid enrichment phase transition: {from_phase.value} -> {to_phase.value}"
        )


_STATEMENT_ENTRY = {
    EnrichmentPhase.RESET,
    EnrichmentPhase.EMBEDDING,
    EnrichmentPhase.SIMILARITY,
}


class EnrichmentStateMachine:
    """State machine for a single enrichment run.

    Enforces the phase order and logs invariant violations when an
    invalid transition is attempted.
    """

    VALID_TRANSITIONS: ClassVar[dict[EnrichmentPhase, set[EnrichmentPhase]]] = {
        EnrichmentPhase.IDLE: {EnrichmentPhase.STARTING},
        EnrichmentPhase.STARTING: _STATEMENT_ENTRY | {EnrichmentPhase.ERROR},
        EnrichmentPhase.RESET: {
            EnrichmentPhase.EMBEDDING,
            EnrichmentPhase.SIMILARITY,
            EnrichmentPhase.ERROR,
        },
        EnrichmentPhase.EMBEDDING: {EnrichmentPhase.SIMILARITY, EnrichmentPhase.ERROR},
        EnrichmentPhase.SIMILARITY: {EnrichmentPhase.KEYWORD, EnrichmentPhase.ERROR},
        EnrichmentPhase.KEYWORD: {EnrichmentPhase.FEEDBACK, EnrichmentPhase.ERROR},
        EnrichmentPhase.FEEDBACK: {EnrichmentPhase.HYBRID, EnrichmentPhase.ERROR},
        EnrichmentPhase.HYBRID: _STATEMENT_ENTRY
        | {EnrichmentPhase.DONE, EnrichmentPhase.ERROR},
        EnrichmentPhase.DONE: set(),  # Terminal state
        EnrichmentPhase.ERROR: set(),  # Terminal state
    }

    def __init__(self, run_id: str) -> None:
        """Initialize the state machine in IDLE.

        Args:
            run_id: Unique run identifier for logging.
        """
        self._run_id = run_id
        self._phase = EnrichmentPhase.IDLE
        self._log = logger.bind(run_id=run_id, component="enrichment")

    @property
    def phase(self) -> EnrichmentPhase:
        """Get the current phase."""
        return self._phase

    @property
    def run_id(self) -> str:
        """Get the run ID."""
        return self._run_id

    def can_transition(self, to_phase: EnrichmentPhase) -> bool:
        """Check if a transition to the given phase is valid."""
        return to_phase in self.VALID_TRANSITIONS.get(self._phase, set())

    def transition(self, to_phase: EnrichmentPhase) -> None:
        """Transition to a new phase.

        Args:
            to_phase: The target phase.

        Raises:
            EnrichmentStateError: If the transition is invalid.
        """
        if not self.can_transition(to_phase):
            self._log.error(
                "invariant_violation",
                error_type="illegal_phase_transition",
                from_phase=self._phase.value,
                to_phase=to_phase.value,
            )
            raise EnrichmentStateError(self._phase, to_phase)

        old_phase = self._phase
        self._phase = to_phase
        self._log.debug(
            "enrichment_phase_transition",
            from_phase=old_phase.value,
            to_phase=to_phase.value,
        )

    def is_terminal(self) -> bool:
        """Check if the current phase is terminal."""
        return self._phase in (EnrichmentPhase.DONE, EnrichmentPhase.ERROR)

    def is_success(self) -> bool:
        """Check if the run finished successfully."""
        return self._phase == EnrichmentPhase.DONE
