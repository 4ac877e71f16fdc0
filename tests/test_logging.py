"""Tests for reactloop structured logging."""

import json
import logging

from reactloop.logging import ReactLoopFormatter, configure_logging, get_logger


def make_record(name: str = "reactloop", level: int = logging.INFO, msg: str = "message") -> logging.LogRecord:
    return logging.LogRecord(
        name=name,
        level=level,
        pathname="test.py",
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )


class TestReactLoopFormatter:
    def test_human_readable_format(self):
        output = ReactLoopFormatter(json_output=False).format(make_record("reactloop.engine", msg="Turn started"))
        assert "reactloop.engine" in output
        assert "Turn started" in output
        assert "INFO" in output

    def test_json_format(self):
        record = make_record("reactloop.safety", logging.WARNING, "Approval timed out")
        data = json.loads(ReactLoopFormatter(json_output=True).format(record))
        assert data["logger"] == "reactloop.safety"
        assert data["message"] == "Approval timed out"
        assert data["level"] == "WARNING"
        assert "timestamp" in data

    def test_context_fields_in_human_format(self):
        record = make_record(msg="Tool failed")
        record.tool_name = "fs_read"  # type: ignore[attr-defined]
        record.task_id = "t-1"  # type: ignore[attr-defined]
        output = ReactLoopFormatter(json_output=False).format(record)
        assert "tool_name=fs_read" in output
        assert "task_id=t-1" in output

    def test_context_fields_in_json(self):
        record = make_record(msg="Sending")
        record.provider = "openai"  # type: ignore[attr-defined]
        record.turn = 2  # type: ignore[attr-defined]
        data = json.loads(ReactLoopFormatter(json_output=True).format(record))
        assert data["provider"] == "openai"
        assert data["turn"] == 2

    def test_none_context_omitted(self):
        record = make_record()
        record.task_id = None  # type: ignore[attr-defined]
        data = json.loads(ReactLoopFormatter(json_output=True).format(record))
        assert "task_id" not in data


class TestGetLogger:
    def test_returns_logger(self):
        logger = get_logger("reactloop.test")
        assert isinstance(logger, logging.Logger)
        assert logger.name == "reactloop.test"

    def test_default_name(self):
        assert get_logger().name == "reactloop"


class TestConfigureLogging:
    def test_configure_level(self):
        configure_logging(level="DEBUG")
        assert get_logger("reactloop").level == logging.DEBUG
        configure_logging(level="INFO")
        assert get_logger("reactloop").level == logging.INFO

    def test_single_handler(self):
        configure_logging()
        configure_logging()
        assert len(get_logger("reactloop").handlers) == 1

    def test_does_not_propagate(self):
        configure_logging(json_output=True)
        assert get_logger("reactloop").propagate is False
        configure_logging()
