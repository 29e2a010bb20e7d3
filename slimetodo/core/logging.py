"""Logging and observability configuration using Pydantic Logfire.

All modules use Python's standard logging library (logging.getLogger(__name__));
Logfire captures those records and adds spans around service operations.

Standard usage:
    import logging
    logger = logging.getLogger(__name__)
    logger.info("Message", extra={"key": "value"})

Structured logging utilities:
    log_with_context(logger, "info", "Saved data", task_count=12, backup_created=True)
"""

import logging

import logfire

from slimetodo.core.config import Settings


def configure_logfire(settings: Settings) -> None:
    """Configure Pydantic Logfire and route standard logging through it.

    Nothing leaves the machine unless a token is configured.
    """
    logfire.configure(
        token=settings.logfire_token,
        service_name="slimetodo",
        service_version="0.1.0",
        send_to_logfire="if-token-present",
        console=False,
    )

    root = logging.getLogger()
    root.setLevel(settings.log_level.upper())
    if not any(isinstance(h, logfire.LogfireLoggingHandler) for h in root.handlers):
        root.addHandler(logfire.LogfireLoggingHandler())

    logger = logging.getLogger(__name__)
    logger.info("Logfire configured successfully")


def span(name: str, **attributes: object) -> logfire.LogfireSpan:
    """Create a custom span for service layer functions.

    Usage:
        with span("task_service.add_task"):
            # Your service logic here
            pass
    """
    return logfire.span(name, **attributes)


def log_with_context(
    logger: logging.Logger,
    level: str,
    message: str,
    **context: object,
) -> None:
    """Log a message with structured context fields.

    Args:
        logger: Logger instance to use
        level: Log level ("debug", "info", "warning", "error", "critical")
        message: Log message
        **context: Additional context fields (task_id, path, error, etc.)
    """
    log_method = getattr(logger, level.lower())
    log_method(message, extra=context)
