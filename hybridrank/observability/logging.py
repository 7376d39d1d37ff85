"""Structured logging configuration for enrichment runs."""

import logging
import sys
from typing import TextIO

import structlog


_RUN_CONTEXT_KEYS = ("run_id", "statement_id")


def configure_logging(
    level: int = logging.INFO,
    output: TextIO = sys.stderr,
    json_format: bool = True,
) -> None:
    """Configure structlog for the scoring pipeline.

    JSON output is the default so that enrichment runs triggered by an
    external scheduler can be shipped straight into a log collector. The
    console renderer is meant for interactive CLI use.

    Args:
        level: Logging level (default: INFO).
        output: Output stream (default: stderr).
        json_format: Whether to render JSON lines (default: True).
    """
    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_format:
        processors.append(structlog.processors.JSONRenderer(sort_keys=True))
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=output.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=output),
        cache_logger_on_first_use=False,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=output,
        level=level,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a bound logger instance.

    Args:
        name: Optional logger name.

    Returns:
        Bound logger instance.
    """
    logger: structlog.stdlib.BoundLogger = structlog.get_logger(name)
    return logger


def bind_run_context(run_id: str) -> None:
    """Attach the enrichment run id to every subsequent log line.

    Args:
        run_id: Unique run identifier.
    """
    structlog.contextvars.bind_contextvars(run_id=run_id)


def bind_statement_context(statement_id: int | None) -> None:
    """Attach the research statement currently being processed.

    Args:
        statement_id: Statement id, or None to drop the binding.
    """
    if statement_id is None:
        structlog.contextvars.unbind_contextvars("statement_id")
        return
    structlog.contextvars.bind_contextvars(statement_id=statement_id)


def clear_run_context() -> None:
    """Remove run and statement bindings from the log context."""
    structlog.contextvars.unbind_contextvars(*_RUN_CONTEXT_KEYS)
