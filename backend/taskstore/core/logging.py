"""Structured logging configuration for the task store.

This module configures structlog for consistent, machine-readable logging
across all components with proper context management.
"""

import logging
import sys
import time
from typing import Any

import structlog
from structlog.typing import EventDict


def add_app_context(
    _logger: Any, _method_name: str, event_dict: EventDict
) -> EventDict:
    """Add application-specific context to log events."""
    event_dict["service"] = "taskstore"
    event_dict["component"] = event_dict.get("logger", "unknown")
    return event_dict


def add_correlation_id(
    _logger: Any, _method_name: str, event_dict: EventDict
) -> EventDict:
    """Add correlation ID for request tracing."""
    context_vars = structlog.contextvars.get_contextvars()
    correlation_id = context_vars.get("correlation_id")
    if correlation_id:
        event_dict["correlation_id"] = correlation_id
    return event_dict


def configure_logging(
    environment: str = "development", log_level: str = "INFO", json_logs: bool = False
) -> None:
    """Configure structured logging for the application.

    Args:
        environment: Application environment (development/testing/production)
        log_level: Logging level (DEBUG/INFO/WARNING/ERROR)
        json_logs: Whether to output JSON format logs
    """
    # Configure stdlib logging to work with structlog
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, log_level.upper()),
    )

    # Determine output format based on environment
    if json_logs or environment == "production":
        renderer: Any = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.contextvars.merge_contextvars,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        add_app_context,
        add_correlation_id,
        structlog.processors.format_exc_info,
        renderer,
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a configured structured logger.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger instance
    """
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind context variables for tracing (e.g., correlation_id)."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear all bound context variables."""
    structlog.contextvars.clear_contextvars()


class StorageOperationLogger:
    """Helper for logging storage operation performance and context."""

    def __init__(
        self, logger: structlog.stdlib.BoundLogger, operation: str, **context: Any
    ):
        self.logger = logger
        self.operation = operation
        self.context = context
        self.start_time: float | None = None

    def __enter__(self) -> "StorageOperationLogger":
        self.start_time = time.perf_counter()
        self.logger.debug(
            "Storage operation started",
            operation=self.operation,
            **self.context,
        )
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self.start_time is None:
            return

        duration = time.perf_counter() - self.start_time

        if exc_type is None:
            self.logger.debug(
                "Storage operation completed",
                operation=self.operation,
                duration_ms=round(duration * 1000, 2),
                **self.context,
            )
        else:
            self.logger.warning(
                "Storage operation failed",
                operation=self.operation,
                duration_ms=round(duration * 1000, 2),
                error=str(exc_val),
                error_type=exc_type.__name__,
                **self.context,
            )

    def log_progress(self, message: str, **kwargs: Any) -> None:
        """Log operation progress with context."""
        self.logger.debug(
            message,
            operation=self.operation,
            **self.context,
            **kwargs,
        )
