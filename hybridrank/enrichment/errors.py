"""Exceptions raised by the enrichment orchestrator."""


class EnrichmentError(Exception):
    """Base class for orchestration failures that abort a run."""


class NoActiveStatementsError(EnrichmentError):
    """Raised when a run has no active research statement to process."""

    def __init__(self, statement_id: int | None = None) -> None:
        """Initialize the error.

        Args:
            statement_id: The requested statement, if the run targeted one.
        """
        self.statement_id = statement_id
        if statement_id is None:
            message = "No active research statements found"
        else:
            message = f"Research statement {statement_id} not found or not active"
        super().__init__(message)

