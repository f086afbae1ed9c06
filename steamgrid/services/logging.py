"""Logging setup: structlog events rendered by standard library handlers.

Every module logs through ``structlog.stdlib.get_logger()``. The event
dictionary is handed to the stdlib handlers unrendered, and each handler
renders it with its own ``ProcessorFormatter``: the terminal gets readable
lines in development, log files always get one JSON object per line.
"""

import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Any

import structlog

APP_LOG_NAME = "steamgrid.log"
ERROR_LOG_NAME = "error.log"

APP_LOG_MAX_BYTES = 5 * 1024 * 1024
ERROR_LOG_MAX_BYTES = 1024 * 1024

# Run for structlog events and for records from plain stdlib loggers (httpx, PIL).
SHARED_PROCESSORS: list[Any] = [
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.processors.TimeStamper(fmt="iso"),
]


def _json_formatter() -> logging.Formatter:
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=SHARED_PROCESSORS,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
    )


def _console_formatter(colors: bool) -> logging.Formatter:
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=SHARED_PROCESSORS,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.dev.ConsoleRenderer(colors=colors),
        ],
    )


class LoggingService:
    """Installs the root handlers and points structlog at them."""

    def __init__(
        self,
        log_level: str = "INFO",
        log_dir: Path | None = None,
        console: bool = True,
    ) -> None:
        """Initialize the logging service.

        Args:
            log_level: The minimum log level to capture
            log_dir: Directory for rotating log files (None for no files)
            console: Whether to log to stderr
        """
        self.log_level = log_level.upper()
        self.log_dir = log_dir
        self.console = console
        self.is_development = os.getenv("ENVIRONMENT", "development") == "development"

    @property
    def level(self) -> int:
        return getattr(logging, self.log_level, logging.INFO)

    def configure(self) -> None:
        root_logger = logging.getLogger()
        for handler in root_logger.handlers:
            handler.close()
        root_logger.handlers.clear()
        root_logger.setLevel(self.level)

        handlers = self._build_handlers()
        if not handlers:
            # Keeps logging.lastResort from printing warnings to stderr.
            handlers.append(logging.NullHandler())
        for handler in handlers:
            root_logger.addHandler(handler)

        # httpx logs every request at INFO; the artwork resolver already does.
        logging.getLogger("httpx").setLevel(max(self.level, logging.WARNING))

        structlog.configure(
            processors=[
                structlog.stdlib.filter_by_level,
                *SHARED_PROCESSORS,
                structlog.stdlib.PositionalArgumentsFormatter(),
                structlog.processors.StackInfoRenderer(),
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ],
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )

    def _build_handlers(self) -> list[logging.Handler]:
        handlers: list[logging.Handler] = []

        if self.console:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setLevel(self.level)
            if self.is_development:
                console_handler.setFormatter(_console_formatter(colors=sys.stderr.isatty()))
            else:
                console_handler.setFormatter(_json_formatter())
            handlers.append(console_handler)

        if self.log_dir:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            handlers.append(self._rotating_handler(APP_LOG_NAME, APP_LOG_MAX_BYTES, 3, self.level))
            handlers.append(self._rotating_handler(ERROR_LOG_NAME, ERROR_LOG_MAX_BYTES, 2, logging.ERROR))

        return handlers

    def _rotating_handler(self, name: str, max_bytes: int, backup_count: int, level: int) -> logging.Handler:
        assert self.log_dir is not None
        handler = logging.handlers.RotatingFileHandler(
            filename=self.log_dir / name,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        handler.setLevel(level)
        handler.setFormatter(_json_formatter())
        return handler


def setup_logging(
    log_level: str = "INFO",
    log_dir: Path | None = None,
    console: bool = True,
) -> LoggingService:
    """Configure application logging.

    The terminal renderer is chosen from the ENVIRONMENT variable.

    Args:
        log_level: Minimum log level to capture
        log_dir: Directory for log files (None for console only)
        console: Whether to log to stderr

    Returns:
        Configured LoggingService instance
    """
    service = LoggingService(log_level=log_level, log_dir=log_dir, console=console)
    service.configure()
    return service
