"""Structured logging configuration for casegraph."""

import json
import logging
import sys
import threading
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Optional, TextIO

import structlog

# Thread-local storage for context
_context = threading.local()

_RESERVED_ATTRS = {
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "pathname", "process", "processName", "relativeCreated",
    "thread", "threadName", "getMessage", "exc_info", "exc_text",
    "stack_info", "taskName",
}


class StructuredFormatter(logging.Formatter):
    """Formatter that outputs one JSON object per record."""

    SENSITIVE_FIELDS = {
        "api_key", "password", "token", "secret", "authorization",
        "access_token", "private_key",
    }

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "message": record.getMessage(),
        }

        if hasattr(_context, "data"):
            log_data.update(_context.data)

        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS or key.startswith("_"):
                continue
            if self._is_sensitive_field(key):
                log_data[key] = "[REDACTED]"
            elif isinstance(value, dict) and key == "headers":
                log_data[key] = self._redact_headers(value)
            else:
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)

    def _is_sensitive_field(self, field_name: str) -> bool:
        field_lower = field_name.lower()
        return any(sensitive in field_lower for sensitive in self.SENSITIVE_FIELDS)

    def _redact_headers(self, headers: Dict[str, Any]) -> Dict[str, Any]:
        return {
            key: "[REDACTED]" if self._is_sensitive_field(key) else value
            for key, value in headers.items()
        }


def setup_logging(
    format: str = "json",
    level: str = "INFO",
    log_file: Optional[str] = None,
    stream: Optional[TextIO] = None,
) -> None:
    """Configure stdlib and structlog logging for the application.

    Args:
        format: Log format ("json" or "text")
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path to write logs to
        stream: Console stream for log lines, stdout by default
    """
    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    log_level = getattr(logging, level.upper(), logging.INFO)
    root_logger.setLevel(log_level)

    if format == "json":
        formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

    console_handler = logging.StreamHandler(stream or sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    # HTTP layer loggers render through the same stdlib handlers
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer() if format == "json" else structlog.dev.ConsoleRenderer(colors=False),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    for logger_name in ["uvicorn.access", "httpx"]:
        logging.getLogger(logger_name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance."""
    return logging.getLogger(name)


def log_event(logger_name: str, event: str, **kwargs) -> None:
    """Log a structured event with ``kwargs`` as extra fields."""
    get_logger(logger_name).info(event, extra=kwargs)


def log_error(logger_name: str, event: str, error: Exception, **kwargs) -> None:
    """Log an exception with its type as an extra field."""
    kwargs["error_type"] = type(error).__name__
    get_logger(logger_name).error(f"{event}: {error}", exc_info=True, extra=kwargs)


@contextmanager
def log_performance(logger_name: str, operation: str, **kwargs):
    """Time the enclosed block and log its duration.

    Example:
        with log_performance(__name__, "layout", nodes=12):
            calculate_graph_layout(...)
    """
    timer = Timer()
    with timer:
        yield timer
    kwargs["duration_ms"] = round(timer.duration_ms, 3)
    get_logger(logger_name).info(
        f"{operation} completed in {kwargs['duration_ms']}ms", extra=kwargs
    )


@contextmanager
def log_context(**kwargs):
    """Add fields to every JSON log record emitted within the block.

    Example:
        with log_context(request_id="123"):
            logger.info("Processing request")
    """
    if not hasattr(_context, "data"):
        _context.data = {}

    old_context = _context.data.copy()
    _context.data.update(kwargs)
    try:
        yield
    finally:
        _context.data = old_context


class Timer:
    """Context manager for timing operations."""

    def __init__(self):
        self.start_time: Optional[float] = None
        self.end_time: Optional[float] = None
        self.duration_ms: Optional[float] = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.end_time = time.perf_counter()
        self.duration_ms = (self.end_time - self.start_time) * 1000
