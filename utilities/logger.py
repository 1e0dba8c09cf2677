"""
Structured logging for the watcher using structlog.
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Union

import structlog
from structlog.stdlib import LoggerFactory


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "console",
    log_file: Optional[Union[str, Path]] = None,
    debug: bool = False
) -> None:
    """
    Set up structured logging with configurable output formats.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Output format (json or console)
        log_file: Optional log file path, always written as plain lines
        debug: Add call site information to every event
    """
    level = getattr(logging, log_level.upper())

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
    )

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if debug:
        processors.append(structlog.processors.CallsiteParameterAdder())

    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter("%(message)s"))
        logging.getLogger().addHandler(file_handler)

    structlog.get_logger(__name__).info(
        "Logging system initialized",
        level=log_level,
        format=log_format,
        file=str(log_file) if log_file else None,
        debug=debug
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


class CheckLogger:
    """
    Logger for one source's check cycle.
    Every event carries the bound context (source id, mode).
    """

    def __init__(self, name: str = "watcher"):
        self.logger = structlog.get_logger(name)
        self.context = {}

    def bind_context(self, **kwargs) -> 'CheckLogger':
        """Bind context variables to the logger."""
        self.context.update(kwargs)
        return self

    def clear_context(self) -> 'CheckLogger':
        """Clear all context variables."""
        self.context.clear()
        return self

    def log_check_start(self, subject: str, attempt: int) -> None:
        self.logger.info(
            "Checking source",
            subject=subject,
            attempt=attempt,
            **self.context
        )

    def log_retry(self, reason: str, attempt: int, max_attempts: int, delay: float) -> None:
        """Log a scheduled re-attempt of the check."""
        self.logger.warning(
            "Check failed, trying again",
            reason=reason,
            attempt=attempt,
            max_attempts=max_attempts,
            delay_seconds=delay,
            **self.context
        )

    def log_give_up(self, reason: str, attempts: int) -> None:
        """Log that the retry limit was hit. Emitted once per cycle."""
        self.logger.error(
            "Hit the request limit, giving up until next time",
            reason=reason,
            attempts=attempts,
            **self.context
        )

    def log_unchanged(self) -> None:
        self.logger.info("No updates detected, checking next time", **self.context)

    def log_changed(self, new_items: int) -> None:
        self.logger.info(
            "Updates detected, sending notification and updating store",
            new_items=new_items,
            **self.context
        )

    def log_no_new_items(self) -> None:
        """Page differs from the snapshot only by order; nothing to mail."""
        self.logger.warning(
            "Updates detected but no new items to show, skipping notification",
            **self.context
        )

    def log_notification(self, sent: bool) -> None:
        level = "info" if sent else "error"
        getattr(self.logger, level)(
            "Notification dispatched" if sent else "Notification failed",
            sent=sent,
            **self.context
        )

    def log_snapshot_saved(self, success: bool, error: Optional[str] = None) -> None:
        level = "info" if success else "error"
        getattr(self.logger, level)(
            "Snapshot store operation",
            operation="write",
            success=success,
            error=error,
            **self.context
        )
