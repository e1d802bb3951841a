"""Tests for structured logging and log context."""

from __future__ import annotations

import json
import logging
from io import StringIO

from protoguard import ProtocolChecker, configure_logging, log_context
from protoguard.observability import HumanReadableFormatter, StructuredFormatter, get_log_context


class TestLogContext:
    def test_nested_context_merges_and_restores(self) -> None:
        with log_context(session="sess_1"):
            with log_context(operation="open"):
                assert get_log_context() == {"session": "sess_1", "operation": "open"}
            assert get_log_context() == {"session": "sess_1"}
        assert get_log_context() == {}


class TestFormatters:
    def _record(self, message: str = "hello") -> logging.LogRecord:
        return logging.LogRecord("protoguard.test", logging.INFO, __file__, 1, message, None, None)

    def test_structured_formatter(self) -> None:
        formatter = StructuredFormatter(extra_fields={"service": "demo"})

        with log_context(resource="File#1"):
            data = json.loads(formatter.format(self._record()))

        assert data["message"] == "hello"
        assert data["level"] == "info"
        assert data["context"] == {"resource": "File#1"}
        assert data["service"] == "demo"
        assert "location" not in data

    def test_structured_formatter_location(self) -> None:
        data = json.loads(StructuredFormatter(include_location=True).format(self._record()))

        assert data["location"]["line"] == 1

    def test_human_formatter(self, monkeypatch) -> None:
        monkeypatch.setenv("NO_COLOR", "1")
        formatter = HumanReadableFormatter()

        with log_context(operation="close"):
            line = formatter.format(self._record("closed"))

        assert "INFO" in line
        assert "[protoguard.test] closed" in line
        assert 'context={"operation": "close"}' in line
        assert "\033[" not in line


class TestConfigureLogging:
    def test_json_logs_carry_invocation_context(self, checker: ProtocolChecker) -> None:
        stream = StringIO()
        configure_logging(level="DEBUG", json_format=True, stream=stream)
        door = checker.create("Door")

        checker.invoke(door, "open", lambda: True)

        records = [json.loads(line) for line in stream.getvalue().splitlines()]
        committed = [r for r in records if "--open" in r["message"]]
        assert committed
        assert committed[0]["context"] == {"resource": door.id, "operation": "open"}

    def test_level_filters(self) -> None:
        stream = StringIO()
        logger = configure_logging(level="WARNING", stream=stream)

        logging.getLogger("protoguard.core").info("quiet")
        logging.getLogger("protoguard.core").warning("loud")

        assert logger.name == "protoguard"
        assert "quiet" not in stream.getvalue()
        assert "loud" in stream.getvalue()

    def test_reconfigure_replaces_handler(self) -> None:
        configure_logging(stream=StringIO())
        logger = configure_logging(stream=StringIO())

        assert len(logger.handlers) == 1
