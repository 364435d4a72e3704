"""
Logging configuration for the PDB Analysis toolkit.

Console output always goes to stderr: when the MCP server runs over stdio,
stdout carries the protocol stream and must stay clean.
"""

import logging
import logging.handlers
import json
import os
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import List, Optional, TextIO

import psutil

from .config import LoggingConfig


# Filled in by PerformanceFilter; formatters fall back to these when absent
_PERFORMANCE_DEFAULTS = {
    "cpu_percent": 0.0,
    "memory_mb": 0.0,
    "uptime_seconds": 0.0,
    "process_id": 0,
}

# Attributes every LogRecord carries; anything else came in through ``extra``
_RESERVED_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message", "asctime", "iso_timestamp", "thread_id",
} | frozenset(_PERFORMANCE_DEFAULTS)


def _iso_time(record: logging.LogRecord) -> str:
    return datetime.fromtimestamp(record.created).isoformat()


class PerformanceFilter(logging.Filter):
    """Attach process id, uptime, CPU and memory usage to each record."""

    def __init__(self):
        super().__init__()
        self._process = psutil.Process()
        self._started = time.monotonic()

    def _usage(self):
        try:
            with self._process.oneshot():
                return self._process.cpu_percent(), self._process.memory_info().rss / (1024 * 1024)
        except psutil.Error:
            return 0.0, 0.0

    def filter(self, record):
        record.iso_timestamp = _iso_time(record)
        record.process_id = os.getpid()
        record.thread_id = record.thread
        record.uptime_seconds = time.monotonic() - self._started
        record.cpu_percent, record.memory_mb = self._usage()
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per line; ``extra`` fields are nested under "extra"."""

    def __init__(self, include_performance=True):
        super().__init__()
        self.include_performance = include_performance

    def format(self, record):
        entry = dict(
            timestamp=_iso_time(record),
            level=record.levelname,
            logger=record.name,
            message=record.getMessage(),
            module=record.module,
            function=record.funcName,
            line=record.lineno,
        )
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        extra = {k: v for k, v in vars(record).items() if k not in _RESERVED_ATTRS}
        if extra:
            entry["extra"] = extra

        # Only records that went through PerformanceFilter carry metrics
        if self.include_performance and hasattr(record, "cpu_percent"):
            entry["performance"] = {
                name: getattr(record, name, default) for name, default in _PERFORMANCE_DEFAULTS.items()
            }

        return json.dumps(entry, default=str)


class ContextualFormatter(logging.Formatter):
    """Plain text lines: ``<time> [LEVEL] logger - message``."""

    BASE_FORMAT = "%(iso_timestamp)s [%(levelname)s] %(name)s - %(message)s"
    PERFORMANCE_SUFFIX = " [CPU: %(cpu_percent).1f%% MEM: %(memory_mb).1fMB]"

    def __init__(self, include_performance=False):
        fmt = self.BASE_FORMAT + (self.PERFORMANCE_SUFFIX if include_performance else "")
        super().__init__(fmt)
        self.include_performance = include_performance

    def format(self, record):
        if not hasattr(record, "iso_timestamp"):
            record.iso_timestamp = _iso_time(record)
        for name, default in _PERFORMANCE_DEFAULTS.items():
            if not hasattr(record, name):
                setattr(record, name, default)
        return super().format(record)


def _build_formatter(config: LoggingConfig) -> logging.Formatter:
    if config.format.lower() == 'json' and config.structured:
        return JSONFormatter(include_performance=True)
    return ContextualFormatter()


def setup_logging(config: LoggingConfig, stream: Optional[TextIO] = None) -> None:
    """
    Replace the root logger's handlers according to ``config``.

    Args:
        config: Logging configuration object
        stream: Console stream, stderr unless given
    """
    level = getattr(logging, config.level.upper(), logging.INFO)

    handlers: List[logging.Handler] = [logging.StreamHandler(stream or sys.stderr)]
    if config.log_file:
        Path(config.log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.handlers.RotatingFileHandler(
            config.log_file,
            maxBytes=config.max_file_size_mb * 1024 * 1024,
            backupCount=config.backup_count,
            encoding='utf-8'
        ))

    perf_filter = PerformanceFilter()
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(level)
    for handler in handlers:
        handler.setLevel(level)
        handler.addFilter(perf_filter)
        handler.setFormatter(_build_formatter(config))
        root_logger.addHandler(handler)

    for name, library_level in LIBRARY_LOG_LEVELS.items():
        logging.getLogger(name).setLevel(library_level)

    logging.getLogger(__name__).debug(
        "Logging configured",
        extra={
            "log_level": config.level,
            "log_format": config.format,
            "log_file": config.log_file,
        }
    )


# Third-party loggers that are too chatty at our levels
LIBRARY_LOG_LEVELS = {
    'httpx': logging.WARNING,
    'httpcore': logging.WARNING,
    'mcp': logging.WARNING,
    'uvicorn': logging.INFO,
    'fastapi': logging.INFO,
}


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the specified name."""
    return logging.getLogger(name)


def log_api_call(logger: logging.Logger, api_name: str, endpoint: str,
                 method: str, status_code: int, duration: float, **kwargs):
    """
    Log API call metrics.

    Args:
        logger: Logger instance
        api_name: API name (e.g., 'rcsb_data', 'uniprot')
        endpoint: Requested URL
        method: HTTP method
        status_code: HTTP status code
        duration: Request duration in seconds
        **kwargs: Additional context
    """
    success = 200 <= status_code < 300
    logger.log(
        logging.DEBUG if success else logging.WARNING,
        "API call: %s %s %s -> %d",
        api_name,
        method,
        endpoint,
        status_code,
        extra={
            "api_name": api_name,
            "endpoint": endpoint,
            "method": method,
            "status_code": status_code,
            "duration_ms": duration * 1000,
            "success": success,
            **kwargs
        }
    )


def log_error_with_context(logger: logging.Logger, error: Exception,
                           operation: str, **context):
    """
    Log error with full context information.

    Args:
        logger: Logger instance
        error: Exception that occurred
        operation: Operation that failed
        **context: Additional context information
    """
    logger.error(
        "Error in %s: %s",
        operation,
        error,
        exc_info=True,
        extra={
            "operation": operation,
            "error_type": type(error).__name__,
            **context
        }
    )
