"""Console logging for pyw.

Diagnostics go to stderr through structlog so they never mix with the report
on stdout. Configuration problems are warnings; skipped sessions are only
visible with ``--debug``.
"""

from __future__ import annotations

import logging
import sys

import structlog


def configure(level: int = logging.WARNING) -> None:
    """Configure structlog to write human-readable lines to stderr.

    Args:
        level: Minimum stdlib log level to emit (default WARNING)
    """
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
        cache_logger_on_first_use=False,
    )


def get_structlog() -> structlog.typing.FilteringBoundLogger:
    """Get a structlog logger instance."""
    return structlog.get_logger()


def length_ignored(variable: str, low: int, high: int, default: int) -> None:
    """Log an out-of-range column width from the environment."""
    get_structlog().warning(
        f"{variable} must be between {low} and {high}, ignoring",
        variable=variable,
        default=default,
    )


def stale_session(username: str, tty: str, leader_pid: int) -> None:
    """Log a session skipped because its login process is gone."""
    get_structlog().debug("stale session skipped", user=username, tty=tty, leader=leader_pid)


def fatal(message: str) -> None:
    """Log an error that ends the run."""
    get_structlog().error(message)
