"""Tests for sensitive data filtering and identifier masking in logs."""

from __future__ import annotations

import json
import logging
from io import StringIO
from logging.handlers import RotatingFileHandler

import pytest

from abuse_guard.core.config import LogSettings
from abuse_guard.core.logging import JsonFormatter, SensitiveDataFilter, configure_logging, mask_identifier


@pytest.fixture
def captured():
    logger = logging.getLogger("test_redaction")
    logger.setLevel(logging.INFO)
    logger.handlers.clear()
    logger.propagate = False

    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.addFilter(SensitiveDataFilter())
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)

    yield logger, stream

    logger.handlers.clear()


def test_sensitive_filter_redacts_credentials(captured):
    logger, stream = captured

    logger.info(
        "test_event",
        extra={"api_key": "sk-secret-123", "password": "hunter2", "safe_field": "visible"},
    )

    output = stream.getvalue()
    assert "sk-secret-123" not in output
    assert "hunter2" not in output
    assert "[REDACTED]" in output
    assert "visible" in output


def test_sensitive_filter_redacts_raw_email(captured):
    logger, stream = captured

    logger.info("login_event", extra={"email": "jane@example.com", "endpoint": "login"})

    record = json.loads(stream.getvalue())
    assert record["email"] == "[REDACTED]"
    assert record["endpoint"] == "login"


def test_sensitive_filter_redacts_nested_dicts(captured):
    logger, stream = captured

    logger.info(
        "nested_event",
        extra={"headers": {"x-api-key": "secret-key", "user-agent": "pytest"}},
    )

    output = stream.getvalue()
    assert "secret-key" not in output
    assert "pytest" in output


def test_json_formatter_shape(captured):
    logger, stream = captured

    logger.warning("rate_limit.blocked", extra={"endpoint": "login", "violation_count": 2})

    record = json.loads(stream.getvalue())
    assert record["level"] == "warning"
    assert record["logger"] == "test_redaction"
    assert record["message"] == "rate_limit.blocked"
    assert record["violation_count"] == 2
    assert "timestamp" in record


@pytest.mark.parametrize(
    ("identifier", "expected"),
    [
        ("anonymous", "anonymous"),
        ("user-1234567890abcdef", "user-12345***"),
        ("short", "short***"),
        ("email_98765432109876", "email_9876***"),
    ],
)
def test_mask_identifier(identifier: str, expected: str):
    assert mask_identifier(identifier) == expected


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    level = root.level
    yield root
    for handler in root.handlers:
        if isinstance(handler, logging.FileHandler):
            handler.close()
    root.handlers.clear()
    root.setLevel(level)


def test_configure_logging_writes_redacted_json_to_rotating_file(tmp_path, restore_root_logger):
    log_file = tmp_path / "logs" / "abuse_guard.log"

    configure_logging(LogSettings(output="file", file_path=str(log_file), max_bytes=1024, level="INFO"))

    [handler] = restore_root_logger.handlers
    assert isinstance(handler, RotatingFileHandler)
    assert restore_root_logger.level == logging.INFO

    logging.getLogger("abuse_guard.test").info("rate_limit.reset", extra={"email": "jane@example.com"})
    handler.flush()

    record = json.loads(log_file.read_text(encoding="utf-8").strip())
    assert record["message"] == "rate_limit.reset"
    assert record["email"] == "[REDACTED]"


def test_configure_logging_without_rotation_uses_plain_file_handler(tmp_path, restore_root_logger):
    configure_logging(LogSettings(output="file", file_path=str(tmp_path / "app.log"), max_bytes=0))

    [handler] = restore_root_logger.handlers
    assert type(handler) is logging.FileHandler


def test_configure_logging_plain_format(restore_root_logger):
    configure_logging(LogSettings(format="plain", level="debug"))

    [handler] = restore_root_logger.handlers
    assert not isinstance(handler.formatter, JsonFormatter)
    assert restore_root_logger.level == logging.DEBUG
