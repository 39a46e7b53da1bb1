"""Logging utilities for the Markdown Docs converter."""

import logging
import sys
import time
import uuid
from contextvars import ContextVar
from typing import Any

# Request or batch job id, propagated into every log line
request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)


class ContextLogger:
    """Logger wrapper that adds structured data to log records."""

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def _format_extra_data(self, extra_data: dict[str, Any] | None) -> str:
        """Format extra data as key=value pairs."""
        if not extra_data:
            return ""
        parts = [f"{k}={v}" for k, v in extra_data.items()]
        return " [" + ", ".join(parts) + "]"

    def _log(self, level: int, msg: str, extra_data: dict[str, Any] | None = None, **kwargs):
        request_id = request_id_var.get()
        if request_id:
            extra_data = {**(extra_data or {}), "request_id": request_id}
        self.logger.log(level, msg + self._format_extra_data(extra_data), **kwargs)

    def debug(self, msg: str, extra_data: dict[str, Any] | None = None, **kwargs):
        self._log(logging.DEBUG, msg, extra_data, **kwargs)

    def info(self, msg: str, extra_data: dict[str, Any] | None = None, **kwargs):
        self._log(logging.INFO, msg, extra_data, **kwargs)

    def warning(self, msg: str, extra_data: dict[str, Any] | None = None, **kwargs):
        self._log(logging.WARNING, msg, extra_data, **kwargs)

    def error(self, msg: str, extra_data: dict[str, Any] | None = None, **kwargs):
        self._log(logging.ERROR, msg, extra_data, **kwargs)


def setup_logging(log_level: str = "INFO", log_format: str | None = None) -> None:
    """Configure application logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Optional ``logging.Formatter`` format string
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(
        logging.Formatter(
            log_format or "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    # googleapiclient logs every discovery fetch at INFO
    logging.getLogger("googleapiclient.discovery_cache").setLevel(logging.ERROR)


def get_logger(name: str) -> ContextLogger:
    """Get a context-aware logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        ContextLogger instance
    """
    return ContextLogger(logging.getLogger(name))


def set_request_id(request_id: str | None = None) -> str:
    """Set request ID for the current context.

    Args:
        request_id: Optional request ID. If not provided, a new UUID hex is generated.

    Returns:
        The request ID that was set
    """
    if request_id is None:
        request_id = uuid.uuid4().hex
    request_id_var.set(request_id)
    return request_id


class Timer:
    """Context manager for timing operations."""

    def __init__(self, name: str):
        self.name = name
        self.start_time: float | None = None
        self.elapsed_ms: int | None = None

    def __enter__(self) -> "Timer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, *args):
        if self.start_time is not None:
            self.elapsed_ms = int((time.perf_counter() - self.start_time) * 1000)

    def get_elapsed_ms(self) -> int:
        """Get elapsed time in milliseconds."""
        if self.elapsed_ms is not None:
            return self.elapsed_ms
        if self.start_time is not None:
            return int((time.perf_counter() - self.start_time) * 1000)
        return 0
