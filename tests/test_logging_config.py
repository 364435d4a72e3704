"""
Unit tests for the logging configuration system.
"""

import io
import json
import logging
import os
import sys
import tempfile

import pytest

from pdb_analysis.config import LoggingConfig
from pdb_analysis.logging_config import (
    JSONFormatter, PerformanceFilter, ContextualFormatter, setup_logging, get_logger,
    log_api_call, log_error_with_context
)


def make_record(msg="Test message", level=logging.INFO, exc_info=None):
    record = logging.LogRecord(
        name="test_logger",
        level=level,
        pathname="/test/path.py",
        lineno=42,
        msg=msg,
        args=(),
        exc_info=exc_info
    )
    record.module = "test_module"
    record.funcName = "test_function"
    return record


@pytest.fixture
def restore_root_logger():
    """Undo handler and level changes made by setup_logging."""
    root_logger = logging.getLogger()
    handlers, level = root_logger.handlers[:], root_logger.level
    yield root_logger
    for handler in root_logger.handlers:
        if handler not in handlers:
            handler.close()
    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)


class TestJSONFormatter:
    """Test JSON log formatter functionality."""

    def test_basic_formatting(self):
        log_data = json.loads(JSONFormatter().format(make_record()))

        assert log_data["level"] == "INFO"
        assert log_data["logger"] == "test_logger"
        assert log_data["message"] == "Test message"
        assert log_data["module"] == "test_module"
        assert log_data["function"] == "test_function"
        assert log_data["line"] == 42
        assert "timestamp" in log_data
        assert "extra" not in log_data

    def test_formatting_with_extra_fields(self):
        record = make_record()
        record.url = "https://data.rcsb.org/rest/v1/core/entry/6LU7"
        record.status_code = 404

        log_data = json.loads(JSONFormatter().format(record))

        assert log_data["extra"] == {
            "url": "https://data.rcsb.org/rest/v1/core/entry/6LU7",
            "status_code": 404
        }

    def test_formatting_with_exception(self):
        try:
            raise ValueError("Test exception")
        except ValueError:
            exc_info = sys.exc_info()

        log_data = json.loads(JSONFormatter().format(make_record("Error occurred", logging.ERROR, exc_info)))

        assert "ValueError: Test exception" in log_data["exception"]

    def test_performance_block(self):
        record = make_record()
        PerformanceFilter().filter(record)

        log_data = json.loads(JSONFormatter(include_performance=True).format(record))
        without = json.loads(JSONFormatter(include_performance=False).format(record))

        assert set(log_data["performance"]) == {"cpu_percent", "memory_mb", "uptime_seconds", "process_id"}
        assert "performance" not in without
        # Filter attributes are not reported as extras
        assert "extra" not in log_data

    def test_unserialisable_extra(self):
        record = make_record()
        record.payload = {1, 2}
        log_data = json.loads(JSONFormatter().format(record))
        assert "payload" in log_data["extra"]


class TestPerformanceFilter:
    """Test performance filter functionality."""

    def test_performance_metrics_addition(self):
        record = make_record()

        assert PerformanceFilter().filter(record) is True
        assert record.process_id == os.getpid()
        assert record.memory_mb >= 0
        assert hasattr(record, 'cpu_percent')
        assert hasattr(record, 'uptime_seconds')
        assert hasattr(record, 'iso_timestamp')


class TestContextualFormatter:
    """Test the human-readable formatter."""

    def test_without_filter(self):
        text = ContextualFormatter().format(make_record())
        assert "[INFO] test_logger - Test message" in text

    def test_with_performance(self):
        record = make_record()
        PerformanceFilter().filter(record)
        text = ContextualFormatter(include_performance=True).format(record)
        assert "CPU:" in text and "MEM:" in text


class TestLoggingSetup:
    """Test logging system setup."""

    def test_setup_logging_basic(self, restore_root_logger):
        stream = io.StringIO()
        setup_logging(LoggingConfig(level="DEBUG", format="json"), stream=stream)

        assert restore_root_logger.level == logging.DEBUG
        logging.getLogger("pdb_analysis.test").info("hello", extra={"pdb_id": "6LU7"})

        lines = [json.loads(line) for line in stream.getvalue().splitlines()]
        assert lines[-1]["message"] == "hello"
        assert lines[-1]["extra"]["pdb_id"] == "6LU7"

    def test_console_defaults_to_stderr(self, restore_root_logger):
        setup_logging(LoggingConfig(level="INFO"))

        stream_handlers = [h for h in restore_root_logger.handlers if isinstance(h, logging.StreamHandler)]
        assert len(stream_handlers) == 1
        assert stream_handlers[0].stream is sys.stderr

    def test_library_loggers_quietened(self, restore_root_logger):
        setup_logging(LoggingConfig(level="DEBUG"), stream=io.StringIO())
        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("httpcore").level == logging.WARNING

    def test_setup_logging_with_file(self, restore_root_logger):
        with tempfile.TemporaryDirectory() as tmp:
            log_file = os.path.join(tmp, "logs", "pdb.log")
            setup_logging(
                LoggingConfig(level="INFO", format="json", log_file=log_file, max_file_size_mb=1, backup_count=3),
                stream=io.StringIO()
            )

            assert len(restore_root_logger.handlers) == 2
            logging.getLogger("test").info("Test message")
            for handler in restore_root_logger.handlers:
                handler.flush()

            with open(log_file, 'r') as f:
                assert "Test message" in f.read()

    def test_unknown_level_falls_back_to_info(self, restore_root_logger):
        setup_logging(LoggingConfig(level="CHATTY"), stream=io.StringIO())
        assert restore_root_logger.level == logging.INFO

    def test_get_logger_basic(self):
        logger = get_logger("test_logger")
        assert logger.name == "test_logger"
        assert isinstance(logger, logging.Logger)


class TestLoggingUtilities:
    """Test logging utility functions."""

    def test_log_api_call_success(self, caplog):
        logger = logging.getLogger("test_api")

        with caplog.at_level(logging.DEBUG):
            log_api_call(
                logger=logger,
                api_name="data.rcsb.org",
                endpoint="https://data.rcsb.org/rest/v1/core/entry/6LU7",
                method="GET",
                status_code=200,
                duration=0.5
            )

        record = caplog.records[0]
        assert record.levelno == logging.DEBUG
        assert "API call: data.rcsb.org GET" in record.message
        assert record.duration_ms == 500
        assert record.success is True

    def test_log_api_call_error(self, caplog):
        logger = logging.getLogger("test_api")

        with caplog.at_level(logging.DEBUG):
            log_api_call(
                logger=logger,
                api_name="data.rcsb.org",
                endpoint="https://data.rcsb.org/graphql",
                method="POST",
                status_code=500,
                duration=1.0
            )

        record = caplog.records[0]
        assert record.levelno == logging.WARNING
        assert record.success is False
        assert record.status_code == 500

    def test_log_error_with_context(self, caplog):
        logger = logging.getLogger("test_errors")

        try:
            raise RuntimeError("boom")
        except RuntimeError as e:
            with caplog.at_level(logging.ERROR):
                log_error_with_context(logger, e, "fetch", url="https://data.test/x")

        record = caplog.records[0]
        assert record.operation == "fetch"
        assert record.error_type == "RuntimeError"
        assert record.url == "https://data.test/x"
        assert record.exc_info is not None
