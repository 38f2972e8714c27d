"""Tests for structured logging system."""

import json
import logging
import sys
from io import StringIO

import pytest

from fsblobstore.domain import BlobBuilder
from fsblobstore.logging_config import (
    ContextFilter,
    JSONFormatter,
    configure_logging,
    get_logger,
    log_context,
)
from fsblobstore.storage_strategy import FilesystemStorageStrategy


def make_record(msg="Test message", level=logging.INFO, exc_info=None):
    return logging.LogRecord(
        name="test",
        level=level,
        pathname="test.py",
        lineno=42,
        msg=msg,
        args=(),
        exc_info=exc_info,
    )


@pytest.fixture
def captured():
    """Attach a JSON handler to a throwaway logger and yield (logger, stream)."""
    logger = logging.getLogger("fsblobstore_test_capture")
    logger.setLevel(logging.DEBUG)
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(JSONFormatter())
    handler.addFilter(ContextFilter())
    logger.addHandler(handler)
    yield logger, stream
    logger.removeHandler(handler)


def read_lines(stream):
    return [json.loads(line) for line in stream.getvalue().splitlines() if line]


class TestJSONFormatter:
    """Test suite for JSON log formatter."""

    def test_format_basic_log_message(self):
        """Test that basic log message is formatted as JSON."""
        log_data = json.loads(JSONFormatter().format(make_record()))

        assert log_data["message"] == "Test message"
        assert log_data["level"] == "INFO"
        assert log_data["logger"] == "test"
        assert "timestamp" in log_data
        assert log_data["filename"] == "test.py"
        assert log_data["lineno"] == 42

    def test_format_includes_exception_info(self):
        """Test that exception info is included in JSON logs."""
        try:
            raise OSError("No space left on device")
        except OSError:
            exc_info = sys.exc_info()

        log_data = json.loads(
            JSONFormatter().format(make_record("put_blob failed", logging.WARNING, exc_info))
        )

        assert log_data["level"] == "WARNING"
        assert "OSError" in log_data["exception"]
        assert "No space left on device" in log_data["exception"]

    def test_format_includes_extra_fields(self):
        """Test that extra fields are included in JSON logs."""
        record = make_record("Stored blob")
        record.container = "photos"
        record.key = "2026/10/cat.jpg"
        record.etag = "d41d8cd98f00b204e9800998ecf8427e"

        log_data = json.loads(JSONFormatter().format(record))

        assert log_data["container"] == "photos"
        assert log_data["key"] == "2026/10/cat.jpg"
        assert log_data["etag"] == "d41d8cd98f00b204e9800998ecf8427e"

    def test_format_handles_non_json_serializable_extra_fields(self):
        """Test that non-JSON-serializable fields are converted to strings."""

        class CustomObject:
            def __repr__(self):
                return "<CustomObject>"

        record = make_record()
        record.custom_obj = CustomObject()

        log_data = json.loads(JSONFormatter().format(record))

        assert log_data["custom_obj"] == "<CustomObject>"

    def test_format_skips_private_attributes(self):
        """Test that underscore attributes are not emitted."""
        record = make_record()
        record._internal = "hidden"

        log_data = json.loads(JSONFormatter().format(record))

        assert "_internal" not in log_data


class TestContextFilter:
    """Test suite for context filter."""

    def test_filter_adds_context_to_record(self):
        """Test that context filter adds context fields to log record."""
        record = make_record()

        ContextFilter({"request_id": "abc123", "container": "photos"}).filter(record)

        assert record.request_id == "abc123"
        assert record.container == "photos"

    def test_filter_allows_all_records(self):
        """Test that context filter doesn't block any records."""
        assert ContextFilter({}).filter(make_record()) is True


class TestLogContext:
    """Test suite for log context manager."""

    def test_context_manager_adds_fields_to_logs(self, captured):
        """Test that context manager adds fields to all logs within context."""
        logger, stream = captured

        with log_context(container="photos", operation="put_blob"):
            logger.info("Writing")
            logger.info("Written")

        for log_data in read_lines(stream):
            assert log_data["container"] == "photos"
            assert log_data["operation"] == "put_blob"

    def test_context_manager_cleans_up_after_exit(self, captured):
        """Test that context is removed after exiting context manager."""
        logger, stream = captured

        with log_context(temp_field="value"):
            logger.info("Inside context")
        logger.info("Outside context")

        inside, outside = read_lines(stream)
        assert inside["temp_field"] == "value"
        assert "temp_field" not in outside

    def test_context_restored_after_exception(self, captured):
        """Test that an exception inside the block still restores the context."""
        logger, stream = captured

        with pytest.raises(RuntimeError):
            with log_context(temp_field="value"):
                raise RuntimeError("boom")
        logger.info("After")

        assert "temp_field" not in read_lines(stream)[0]

    def test_nested_contexts_merge_fields(self, captured):
        """Test that nested contexts merge their fields."""
        logger, stream = captured

        with log_context(level1="outer"):
            with log_context(level2="inner"):
                logger.info("Nested log")
            logger.info("Outer log")

        nested, outer = read_lines(stream)
        assert nested["level1"] == "outer"
        assert nested["level2"] == "inner"
        assert outer["level1"] == "outer"
        assert "level2" not in outer


class TestConfigureLogging:
    """Test suite for logging configuration."""

    def test_configure_logging_sets_log_level(self):
        """Test that configure_logging sets the correct log level."""
        assert configure_logging(level="DEBUG", json_format=False).level == logging.DEBUG
        assert configure_logging(level="warning", json_format=False).level == logging.WARNING

    def test_configure_logging_json_format(self):
        """Test that configure_logging can enable JSON formatting."""
        logger = configure_logging(level="INFO", json_format=True)

        assert any(isinstance(h.formatter, JSONFormatter) for h in logger.handlers)

    def test_configure_logging_plain_format(self):
        """Test that configure_logging can use plain text formatting."""
        logger = configure_logging(level="INFO", json_format=False)

        for handler in logger.handlers:
            assert not isinstance(handler.formatter, JSONFormatter)

    def test_configure_logging_replaces_handlers(self):
        """Test that repeated configuration does not stack handlers."""
        configure_logging(level="INFO")
        logger = configure_logging(level="INFO")

        assert len(logger.handlers) == 1
        assert logger.propagate is False

    def test_configure_logging_json_to_file(self, tmp_path):
        """Test that JSON logs can be written to file."""
        log_file = tmp_path / "store.json"
        logger = configure_logging(level="INFO", log_file=str(log_file), json_format=True)

        logger.info("Test message", extra={"operation": "list"})

        log_data = json.loads(log_file.read_text().strip())
        assert log_data["message"] == "Test message"
        assert log_data["operation"] == "list"


class TestGetLogger:
    """Test suite for get_logger utility."""

    def test_get_logger_returns_logger_with_name(self):
        """Test that get_logger returns a child of the fsblobstore logger."""
        assert get_logger("test_module").name == "fsblobstore.test_module"

    def test_get_logger_inherits_root_configuration(self):
        """Test that loggers inherit from root fsblobstore logger."""
        root_logger = configure_logging(level="DEBUG", json_format=True)

        child_logger = get_logger("child")

        assert child_logger.level == logging.NOTSET
        assert child_logger.parent == root_logger


class TestStoreLogging:
    """Test that store operations log through the fsblobstore tree."""

    def test_put_blob_logs_container_and_key(self, tmp_path):
        """Test that a stored blob is logged with its container, key and ETag."""
        log_file = tmp_path / "store.log"
        configure_logging(level="DEBUG", log_file=str(log_file), json_format=True)
        store = FilesystemStorageStrategy(tmp_path / "data")

        with log_context(request_id="r-42"):
            etag = store.put_blob("photos", BlobBuilder().name("cat.jpg").payload(b"meow").build())

        logs = [json.loads(line) for line in log_file.read_text().splitlines() if line]
        stored = [log for log in logs if log["message"] == "Stored blob"]
        assert len(stored) == 1
        assert stored[0]["logger"] == "fsblobstore.storage_strategy"
        assert stored[0]["container"] == "photos"
        assert stored[0]["key"] == "cat.jpg"
        assert stored[0]["etag"] == etag
        assert stored[0]["request_id"] == "r-42"
