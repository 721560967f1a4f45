import json
import logging

from autoquote.telemetry.logger import JsonFormatter, get_logger


def test_json_formatter():
    formatter = JsonFormatter()
    record = logging.LogRecord(
        name="test",
        level=logging.INFO,
        pathname="test.py",
        lineno=1,
        msg="Test message",
        args=(),
        exc_info=None,
    )
    output = formatter.format(record)
    data = json.loads(output)
    assert data["level"] == "INFO"
    assert data["msg"] == "Test message"
    assert data["logger"] == "test"


def test_json_formatter_includes_extra_fields():
    formatter = JsonFormatter()
    record = logging.makeLogRecord(
        {"name": "test", "levelname": "WARNING", "msg": "Cache miss", "cache_key": "san_jose", "operation": "cache_miss"}
    )
    data = json.loads(formatter.format(record))
    assert data["cache_key"] == "san_jose"
    assert data["operation"] == "cache_miss"
    assert "pathname" not in data


def test_get_logger(monkeypatch):
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    logger = get_logger("test_app")
    assert logger.name == "test_app"
    assert logger.level == logging.INFO
    assert len(logger.handlers) == 1
    assert isinstance(logger.handlers[0].formatter, JsonFormatter)


def test_get_logger_is_idempotent():
    first = get_logger("test_app_twice")
    second = get_logger("test_app_twice")
    assert first is second
    assert len(second.handlers) == 1
