# logging_utils.py
"""Structured logging utilities for the lead discovery service."""

import json
import logging
import os
import sys
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from typing import Any, Dict, Optional

ROOT_LOGGER_NAME = "lead_discovery"

# Attributes every LogRecord carries; anything else came in through `extra`.
_STANDARD_ATTRS = {
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "pathname", "process", "processName", "relativeCreated",
    "stack_info", "exc_info", "exc_text", "thread", "threadName",
    "message", "taskName",
}


class StructuredFormatter(logging.Formatter):
    """Formatter that renders each record as one JSON object per line."""

    def __init__(self, service_name: str = "lead-discovery"):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "service": self.service_name,
            "source": {
                "file": record.filename,
                "line": record.lineno,
                "function": record.funcName,
            },
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        extra_fields = {}
        for key, value in record.__dict__.items():
            if key in _STANDARD_ATTRS or key.startswith("_"):
                continue
            try:
                json.dumps(value)
                extra_fields[key] = value
            except (TypeError, ValueError):
                extra_fields[key] = str(value)

        if extra_fields:
            log_data["extra"] = extra_fields

        return json.dumps(log_data, default=str)


class HumanReadableFormatter(logging.Formatter):
    """Human-readable formatter for development environments."""

    COLORS = {
        "DEBUG": "\033[36m",     # Cyan
        "INFO": "\033[32m",      # Green
        "WARNING": "\033[33m",   # Yellow
        "ERROR": "\033[31m",     # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True):
        super().__init__()
        self.use_colors = use_colors and sys.stdout.isatty()

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
        level = record.levelname

        if self.use_colors:
            level_str = f"{self.COLORS.get(level, '')}{level:8}{self.RESET}"
        else:
            level_str = f"{level:8}"

        formatted = f"[{timestamp}] {level_str} [{record.name}] {record.getMessage()}"

        context = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _STANDARD_ATTRS and not key.startswith("_")
        }
        if context:
            pairs = " ".join(f"{key}={value}" for key, value in context.items())
            formatted += f" ({pairs})"

        if record.exc_info:
            formatted += f"\n{self.formatException(record.exc_info)}"

        return formatted


def setup_logging(
    level: Optional[str] = None,
    structured: Optional[bool] = None,
    service_name: str = "lead-discovery",
) -> logging.Logger:
    """Set up logging configuration for the lead discovery service.

    Configures the root logger with a single stdout handler and returns the
    package logger. Structured JSON output is used outside development.

    Args:
        level: Log level name. Defaults to LOG_LEVEL env var or INFO.
        structured: Whether to emit JSON. Defaults to True unless APP_ENV is 'dev'.
        service_name: Service name included in structured logs.

    Returns:
        Logger instance for lead_discovery

    Example:
        >>> logger = setup_logging(level="DEBUG", structured=False)
        >>> logger.info("Polling list", extra={"list_id": "4821"})
    """
    if level is None:
        level = os.environ.get("LOG_LEVEL", "INFO").upper()

    log_level = getattr(logging, level, logging.INFO)

    if structured is None:
        structured = os.environ.get("APP_ENV", "prod") != "dev"

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    if structured:
        console_handler.setFormatter(StructuredFormatter(service_name=service_name))
    else:
        console_handler.setFormatter(HumanReadableFormatter(use_colors=True))
    root_logger.addHandler(console_handler)

    _configure_third_party_loggers(log_level)

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.debug(
        "Logging initialized",
        extra={"log_level": level, "structured": structured},
    )
    return logger


def _configure_third_party_loggers(log_level: int) -> None:
    """Quiet HTTP client and server loggers unless running at DEBUG."""
    noisy_loggers = [
        "urllib3",
        "requests",
        "httpx",
        "httpcore",
        "uvicorn.access",
    ]

    third_party_level = logging.WARNING if log_level > logging.DEBUG else log_level

    for logger_name in noisy_loggers:
        logging.getLogger(logger_name).setLevel(third_party_level)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance under the lead_discovery namespace.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("Translating prompt")
    """
    if not name.startswith(ROOT_LOGGER_NAME):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


class LogContext:
    """Context manager for adding extra fields to log messages.

    Fields live in a ContextVar, so each request thread or task sees only
    the fields it set.

    Example:
        >>> with LogContext(request_id="a1b2c3"):
        ...     logger.info("Running pipeline")  # includes request_id
    """

    _context: ContextVar[Dict[str, Any]] = ContextVar("lead_discovery_log_context", default={})

    def __init__(self, **kwargs: Any):
        self.new_context = kwargs
        self._token: Optional[Token] = None

    def __enter__(self) -> "LogContext":
        merged = {**LogContext._context.get(), **self.new_context}
        self._token = LogContext._context.set(merged)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._token is not None:
            LogContext._context.reset(self._token)
            self._token = None

    @classmethod
    def get_context(cls) -> Dict[str, Any]:
        """Get a copy of the current log context."""
        return dict(cls._context.get())


class ContextAdapter(logging.LoggerAdapter):
    """Logger adapter that automatically includes LogContext fields."""

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        extra = dict(LogContext.get_context())
        extra.update(kwargs.get("extra") or {})
        kwargs["extra"] = extra
        return msg, kwargs
