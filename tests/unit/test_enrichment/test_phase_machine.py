"""Unit tests for the enrichment phase state machine."""

import pytest

from hybridrank.enrichment.state_machine import (
    EnrichmentPhase,
    EnrichmentStateError,
    EnrichmentStateMachine,
)


_FULL_STATEMENT = [
    EnrichmentPhase.RESET,
    EnrichmentPhase.EMBEDDING,
    EnrichmentPhase.SIMILARITY,
    EnrichmentPhase.KEYWORD,
    EnrichmentPhase.FEEDBACK,
    EnrichmentPhase.HYBRID,
]


class TestEnrichmentPhase:
    """Tests for EnrichmentPhase enum."""

    @pytest.mark.unit
    def test_all_phases_defined(self) -> None:
        """Test that all expected phases are defined."""
        expected = {
            "idle",
            "starting",
            "reset",
            "embedding",
            "similarity",
            "keyword",
            "feedback",
            "hybrid",
            "done",
            "error",
        }
        assert {phase.value for phase in EnrichmentPhase} == expected


class TestEnrichmentStateMachine:
    """Tests for EnrichmentStateMachine."""

    @pytest.mark.unit
    def test_initial_phase(self) -> None:
        """Test that the machine starts idle."""
        machine = EnrichmentStateMachine("run-1")
        assert machine.phase == EnrichmentPhase.IDLE
        assert machine.run_id == "run-1"
        assert not machine.is_terminal()

    @pytest.mark.unit
    def test_full_forced_run(self) -> None:
        """Test a forced run with embedding over two statements."""
        machine = EnrichmentStateMachine("run-1")
        machine.transition(EnrichmentPhase.STARTING)
        for phase in _FULL_STATEMENT + _FULL_STATEMENT:
            machine.transition(phase)
        machine.transition(EnrichmentPhase.DONE)

        assert machine.is_terminal()
        assert machine.is_success()

    @pytest.mark.unit
    def test_minimal_run(self) -> None:
        """Test a run without reset or embedding."""
        machine = EnrichmentStateMachine("run-1")
        for phase in (
            EnrichmentPhase.STARTING,
            EnrichmentPhase.SIMILARITY,
            EnrichmentPhase.KEYWORD,
            EnrichmentPhase.FEEDBACK,
            EnrichmentPhase.HYBRID,
            EnrichmentPhase.DONE,
        ):
            machine.transition(phase)
        assert machine.is_success()

    @pytest.mark.unit
    def test_skipping_a_scorer_is_invalid(self) -> None:
        """Test that scorers cannot be skipped."""
        machine = EnrichmentStateMachine("run-1")
        machine.transition(EnrichmentPhase.STARTING)
        machine.transition(EnrichmentPhase.SIMILARITY)

        with pytest.raises(EnrichmentStateError) as exc_info:
            machine.transition(EnrichmentPhase.HYBRID)

        assert exc_info.value.from_phase == EnrichmentPhase.SIMILARITY
        assert exc_info.value.to_phase == EnrichmentPhase.HYBRID
        assert machine.phase == EnrichmentPhase.SIMILARITY

    @pytest.mark.unit
    def test_done_requires_hybrid(self) -> None:
        """Test that a run cannot finish mid-statement."""
        machine = EnrichmentStateMachine("run-1")
        machine.transition(EnrichmentPhase.STARTING)
        assert not machine.can_transition(EnrichmentPhase.DONE)

    @pytest.mark.unit
    def test_error_from_any_active_phase(self) -> None:
        """Test that every non-terminal phase except idle can fail."""
        path = [EnrichmentPhase.STARTING, *_FULL_STATEMENT]
        for depth in range(1, len(path) + 1):
            machine = EnrichmentStateMachine("run-1")
            for phase in path[:depth]:
                machine.transition(phase)
            machine.transition(EnrichmentPhase.ERROR)
            assert machine.is_terminal()
            assert not machine.is_success()

    @pytest.mark.unit
    def test_terminal_phases_are_final(self) -> None:
        """Test that nothing follows done or error."""
        machine = EnrichmentStateMachine("run-1")
        machine.transition(EnrichmentPhase.STARTING)
        machine.transition(EnrichmentPhase.ERROR)

        for phase in EnrichmentPhase:
            assert not machine.can_transition(phase)
