"""Tests for logging configuration, formatters and context propagation."""

import json
import logging
import threading

import pytest

from vacancy_scanner.logging import ComponentLoggerAdapter, get_logger
from vacancy_scanner.logging.config import (
    ContextualFilter,
    JSONFormatter,
    KeyValueFormatter,
    configure_logging,
)
from vacancy_scanner.logging.context import (
    get_log_context,
    log_context,
    pop_log_context,
    push_log_context,
)


@pytest.fixture
def logger():
    """Create a test logger with no handlers."""
    test_logger = logging.getLogger("test_logger")
    test_logger.setLevel(logging.DEBUG)
    test_logger.handlers.clear()

    yield test_logger

    test_logger.handlers.clear()


def _record(logger, message="Test message", **extra):
    return logger.makeRecord(
        "test", logging.INFO, "test.py", 1, message, (), None, extra=extra or None
    )


class TestLogContext:
    """Tests for scoped log context."""

    def test_context_starts_empty(self):
        assert get_log_context() == {}

    def test_nested_push_and_pop(self):
        """Nested pushes merge and pops restore the previous layer."""
        token1 = push_log_context(tick_id=1)
        token2 = push_log_context(user_id=42)
        assert get_log_context() == {"tick_id": 1, "user_id": 42}

        pop_log_context(token2)
        assert get_log_context() == {"tick_id": 1}

        pop_log_context(token1)
        assert get_log_context() == {}

    def test_context_manager_restores_on_exception(self):
        with pytest.raises(RuntimeError):
            with log_context(user_id=42):
                raise RuntimeError("boom")

        assert get_log_context() == {}

    def test_get_log_context_returns_copy(self):
        with log_context(user_id=42):
            context = get_log_context()
            context["user_id"] = 7

            assert get_log_context() == {"user_id": 42}

    def test_context_is_isolated_per_thread(self):
        """A worker thread does not see context pushed by another thread."""
        seen = {}

        def worker():
            seen["context"] = get_log_context()

        with log_context(worker="vacancy-worker-1"):
            thread = threading.Thread(target=worker)
            thread.start()
            thread.join()

        assert seen["context"] == {}


class TestFormatters:
    """Tests for the JSON and key-value formatters."""

    def test_json_formatter_basic(self, logger):
        """JSONFormatter produces valid JSON with the mandatory fields."""
        log_obj = json.loads(JSONFormatter().format(_record(logger)))

        assert log_obj["level"] == "INFO"
        assert log_obj["message"] == "Test message"
        assert log_obj["timestamp"].endswith("Z")
        assert "thread" in log_obj

    def test_json_formatter_with_extra_fields(self, logger):
        record = _record(logger, event="dispatcher.tick.completed", due=3, flag=True)

        log_obj = json.loads(JSONFormatter().format(record))

        assert log_obj["event"] == "dispatcher.tick.completed"
        assert log_obj["due"] == 3
        assert log_obj["flag"] is True

    def test_json_formatter_with_context(self, logger):
        """Context fields reach the JSON output through the filter."""
        contextual = ContextualFilter(service="vacancy-scanner", environment="test")

        with log_context(tick_id=7, user_id=42):
            record = _record(logger)
            contextual.filter(record)

        log_obj = json.loads(JSONFormatter().format(record))

        assert log_obj["tick_id"] == 7
        assert log_obj["user_id"] == 42
        assert log_obj["service"] == "vacancy-scanner"
        assert log_obj["environment"] == "test"

    def test_explicit_extra_wins_over_context(self, logger):
        contextual = ContextualFilter()

        with log_context(user_id=42):
            record = _record(logger, user_id=7)
            contextual.filter(record)

        assert record.user_id == 7

    def test_key_value_formatter_with_extras(self, logger):
        formatter = KeyValueFormatter("%(levelname)s %(message)s")
        record = _record(logger, event="store.persisted", inserted=2, reason="no token", flag=False)

        output = formatter.format(record)

        assert output.startswith("INFO Test message")
        assert "event=store.persisted" in output
        assert "inserted=2" in output
        assert 'reason="no token"' in output
        assert "flag=false" in output


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_invalid_level(self):
        with pytest.raises(ValueError, match="Invalid log level"):
            configure_logging(level="INVALID")

    def test_invalid_format(self):
        with pytest.raises(ValueError, match="Invalid log format"):
            configure_logging(format_type="invalid")

    def test_json_format(self):
        configure_logging(level="DEBUG", format_type="json", environment="test")

        root_logger = logging.getLogger()
        handler = root_logger.handlers[0]

        assert isinstance(handler.formatter, JSONFormatter)
        assert root_logger.level == logging.DEBUG
        assert logging.getLogger("apscheduler").level == logging.WARNING

    def test_key_value_format(self):
        configure_logging(level="INFO", format_type="key-value", environment="test")

        handler = logging.getLogger().handlers[0]

        assert isinstance(handler.formatter, KeyValueFormatter)


class TestGetLogger:
    """Tests for component-tagged loggers."""

    def test_plain_logger_without_component(self):
        assert isinstance(get_logger("vacancy_scanner.test"), logging.Logger)

    def test_component_adapter_merges_extra(self):
        adapter = get_logger("vacancy_scanner.test", component="dispatcher")

        assert isinstance(adapter, ComponentLoggerAdapter)
        _, kwargs = adapter.process("msg", {"extra": {"event": "x"}})
        assert kwargs["extra"] == {"component": "dispatcher", "event": "x"}
