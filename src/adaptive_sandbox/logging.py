"""Structured logging configuration for the command sandbox.

Uses structlog for structured, context-rich logging that supports
both human-readable console output and machine-readable JSON format.
"""

import logging
import sys
from typing import TYPE_CHECKING

import structlog
from structlog.types import Processor

if TYPE_CHECKING:
    from adaptive_sandbox.config import SandboxSettings


def configure_logging(settings: "SandboxSettings | None" = None) -> None:
    """Configure structured logging based on settings.

    Args:
        settings: Sandbox settings. If None, uses defaults.
    """
    log_level = logging.WARNING
    log_format = "console"

    if settings is not None:
        log_level = getattr(logging, settings.log_level.upper(), logging.INFO)
        log_format = settings.log_format

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if log_format == "json":
        # JSON format for log aggregation
        processors: list[Processor] = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(
                colors=True,
                exception_formatter=structlog.dev.plain_traceback,
            ),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        level=log_level,
        handlers=[logging.StreamHandler(sys.stderr)],
    )

    logging.getLogger("asyncio").setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a logger instance.

    Args:
        name: Optional logger name (typically __name__)

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name) if name else structlog.get_logger()


def bind_context(**kwargs: object) -> None:
    """Bind context variables to all subsequent log calls in the current context.

    Example:
        bind_context(workspace="/repo", session_id="abc123")
        logger.info("command_executed")  # Will include workspace and session_id

    Args:
        **kwargs: Key-value pairs to bind to logging context
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    """Remove specific keys from the logging context.

    Args:
        *keys: Keys to remove from context
    """
    structlog.contextvars.unbind_contextvars(*keys)


class Loggers:
    """Pre-configured logger instances for sandbox components."""

    @staticmethod
    def sandbox() -> structlog.stdlib.BoundLogger:
        """Logger for the sandbox facade and policy resolution."""
        return get_logger("adaptive_sandbox.sandbox")

    @staticmethod
    def trust() -> structlog.stdlib.BoundLogger:
        """Logger for consent and learned-command state."""
        return get_logger("adaptive_sandbox.trust")

    @staticmethod
    def runner() -> structlog.stdlib.BoundLogger:
        """Logger for process execution."""
        return get_logger("adaptive_sandbox.runner")

    @staticmethod
    def audit() -> structlog.stdlib.BoundLogger:
        """Logger for the audit trail."""
        return get_logger("adaptive_sandbox.audit")

    @staticmethod
    def tools() -> structlog.stdlib.BoundLogger:
        """Logger for tool surfaces."""
        return get_logger("adaptive_sandbox.tools")
