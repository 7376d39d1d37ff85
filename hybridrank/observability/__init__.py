"""Observability helpers for structured logging."""

from hybridrank.observability.logging import (
    bind_run_context,
    bind_statement_context,
    clear_run_context,
    configure_logging,
    get_logger,
)


__all__ = [
    "bind_run_context",
    "bind_statement_context",
    "clear_run_context",
    "configure_logging",
    "get_logger",
]
