"""Tests for structured logging."""

import io
import json
import logging
from unittest.mock import patch

import pytest

from diffreview.utils.logging import (
    HumanFormatter,
    JSONFormatter,
    get_logger,
    log_operation,
    setup_logging,
)


def _record(msg="Test message", level=logging.INFO, **extra):
    record = logging.LogRecord(
        name="diffreview.test",
        level=level,
        pathname="test.py",
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestLogging:
    """Tests for structured logging."""

    def test_setup_logging_returns_logger(self):
        logger = setup_logging(level="DEBUG", stream=io.StringIO())
        assert isinstance(logger, logging.Logger)
        assert logger.name == "diffreview"
        assert logger.level == logging.DEBUG

    def test_setup_logging_replaces_handlers(self):
        setup_logging(stream=io.StringIO())
        logger = setup_logging(stream=io.StringIO())
        assert len(logger.handlers) == 1

    def test_get_logger_with_name(self):
        assert get_logger("review.diff").name == "diffreview.review.diff"

    def test_get_logger_already_prefixed(self):
        assert get_logger("diffreview.llm").name == "diffreview.llm"

    def test_get_logger_root(self):
        assert get_logger().name == "diffreview"

    def test_json_formatter_output(self):
        data = json.loads(JSONFormatter().format(_record(duration_ms=12.5)))

        assert data["level"] == "INFO"
        assert data["message"] == "Test message"
        assert data["logger"] == "diffreview.test"
        assert data["duration_ms"] == 12.5
        assert "timestamp" in data

    def test_human_formatter_output(self):
        output = HumanFormatter(use_colors=False).format(_record())

        assert "INFO" in output
        assert "Test message" in output
        assert "\033[" not in output

    def test_json_logging_end_to_end(self):
        stream = io.StringIO()
        setup_logging(level="INFO", json_format=True, stream=stream)

        get_logger("test").info("hello")

        data = json.loads(stream.getvalue().strip())
        assert data["message"] == "hello"
        assert data["logger"] == "diffreview.test"

    def test_level_filters_messages(self):
        stream = io.StringIO()
        setup_logging(level="WARNING", stream=stream)

        get_logger("test").info("quiet")
        get_logger("test").warning("loud")

        assert "quiet" not in stream.getvalue()
        assert "loud" in stream.getvalue()


class TestLogOperation:
    def test_logs_start_and_completion(self):
        logger = get_logger("test")

        with patch.object(logger, "log") as mock_log:
            with log_operation(logger, "test operation") as timing:
                pass

        assert mock_log.call_count == 2
        assert "Starting test operation" in mock_log.call_args_list[0][0][1]
        assert "Completed test operation" in mock_log.call_args_list[1][0][1]
        assert timing["duration_ms"] >= 0

    def test_failure_is_logged_and_reraised(self):
        logger = get_logger("test")

        with patch.object(logger, "log") as mock_log:
            with pytest.raises(RuntimeError):
                with log_operation(logger, "doomed") as timing:
                    raise RuntimeError("boom")

        assert "Failed doomed" in mock_log.call_args_list[-1][0][1]
        assert "duration_ms" in timing
