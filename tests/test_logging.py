"""Tests for rbaccore.logging module."""

from __future__ import annotations

import json
import logging
import os
from unittest.mock import patch

import pytest
from rbaccore import (
    LogLevel,
    RbacConfig,
    RbacLogFormatter,
    get_rbac_logger,
    redact_secrets,
    safe_log_value,
    safe_preview,
    setup_logging,
)


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def _record(msg: str, **extra) -> logging.LogRecord:
    record = logging.LogRecord("rbaccore.test", logging.INFO, __file__, 1, msg, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestSafePreview:
    """Tests for safe_preview function."""

    def test_none_value(self) -> None:
        assert safe_preview(None) == ""

    def test_string_with_whitespace(self) -> None:
        """Whitespace is collapsed to single spaces."""
        assert safe_preview("reports.view\n\treports.export") == "reports.view reports.export"

    def test_string_truncation(self) -> None:
        result = safe_preview("a" * 300, limit=100)
        assert len(result) == 100
        assert result.endswith("…")

    def test_permission_set_is_sorted(self) -> None:
        """Sets render deterministically."""
        assert safe_preview(frozenset({"reports.view", "claims.view", "*"})) == '["*", "claims.view", "reports.view"]'

    def test_dict_value(self) -> None:
        result = safe_preview({"tenant_id": "acme", "version": 3})
        assert json.loads(result) == {"tenant_id": "acme", "version": 3}


class TestRedactSecrets:
    """Tests for redact_secrets function."""

    def test_password_pattern(self) -> None:
        result = redact_secrets('password: "hunter2"')
        assert "[REDACTED]" in result
        assert "hunter2" not in result

    def test_bearer_token(self) -> None:
        result = redact_secrets("Authorization: Bearer abc123def456")
        assert "abc123def456" not in result

    def test_session_id(self) -> None:
        result = redact_secrets("cookie sid=s%3Aabcdef.0123 loaded")
        assert "s%3Aabcdef.0123" not in result
        assert "[REDACTED]" in result

    def test_password_hash(self) -> None:
        text = "hash=$argon2id$v=19$m=65536,t=3,p=4$c2FsdA$aGFzaA for alice"
        result = redact_secrets(text)
        assert "$argon2id$" not in result
        assert result.endswith("for alice")

    def test_no_secrets(self) -> None:
        text = "Role Analyst attached to group Analysts"
        assert redact_secrets(text) == text

    def test_custom_replacement(self) -> None:
        assert "[HIDDEN]" in redact_secrets("password: secret123", replacement="[HIDDEN]")


class TestSafeLogValue:
    def test_with_redaction(self) -> None:
        assert "[REDACTED]" in safe_log_value("csrf_token=abc123", redact=True)

    def test_without_redaction(self) -> None:
        assert "abc123" in safe_log_value("csrf_token=abc123", redact=False)

    def test_truncation(self) -> None:
        assert len(safe_log_value("a" * 500, limit=100)) <= 100


class TestRbacLogFormatter:
    def test_json_includes_tenant_and_user(self) -> None:
        formatter = RbacLogFormatter(json_format=True)
        data = json.loads(formatter.format(_record("Role created", tenant_id="acme", user_id="u-1")))

        assert data["message"] == "Role created"
        assert data["tenant_id"] == "acme"
        assert data["user_id"] == "u-1"
        assert data["level"] == "INFO"

    def test_extra_fields_are_rendered_safely(self) -> None:
        formatter = RbacLogFormatter(json_format=True)
        data = json.loads(formatter.format(_record("Denied", error_code="PERMISSION_DENIED", token="token=abc")))

        assert data["error_code"] == "PERMISSION_DENIED"
        assert "abc" not in data["token"]

    def test_plain_text(self) -> None:
        formatter = RbacLogFormatter(json_format=False)
        line = formatter.format(_record("Tenant bumped", tenant_id="acme"))

        assert "INFO" in line
        assert "tenant_id=acme" in line
        assert line.endswith(": Tenant bumped")

    def test_context_can_be_omitted(self) -> None:
        formatter = RbacLogFormatter(include_context=False, json_format=True)
        data = json.loads(formatter.format(_record("x", tenant_id="acme")))
        assert "tenant_id" not in data

    def test_message_is_redacted(self) -> None:
        formatter = RbacLogFormatter(json_format=True)
        data = json.loads(formatter.format(_record("login with password=hunter2")))
        assert "hunter2" not in data["message"]


class TestSetupLogging:
    """Tests for setup_logging function."""

    def test_setup_with_config(self) -> None:
        setup_logging(config=RbacConfig(log_level=LogLevel.DEBUG), json_format=False)
        assert logging.getLogger().level == logging.DEBUG

    def test_setup_with_env(self) -> None:
        with patch.dict(os.environ, {"LOG_LEVEL": "WARNING"}, clear=True):
            setup_logging(json_format=False)
        assert logging.getLogger().level == logging.WARNING

    def test_json_format_from_config(self, capsys: pytest.CaptureFixture) -> None:
        setup_logging(config=RbacConfig(log_json=True))

        logging.getLogger("rbaccore.test").info("Version bumped", extra={"tenant_id": "acme"})

        data = json.loads(capsys.readouterr().err.strip())
        assert data["message"] == "Version bumped"
        assert data["tenant_id"] == "acme"

    def test_plain_format(self, capsys: pytest.CaptureFixture) -> None:
        setup_logging(config=RbacConfig(), json_format=False)

        logging.getLogger("rbaccore.test").info("Test message")

        output = capsys.readouterr().err.strip()
        assert "Test message" in output
        assert not output.startswith("{")


class TestRbacLoggerAdapter:
    def test_bound_context(self, caplog: pytest.LogCaptureFixture) -> None:
        logger = get_rbac_logger("rbaccore.test", tenant_id="acme", user_id="u-1")

        with caplog.at_level(logging.INFO):
            logger.info("Group created")

        record = caplog.records[-1]
        assert record.tenant_id == "acme"
        assert record.user_id == "u-1"

    def test_per_call_override(self, caplog: pytest.LogCaptureFixture) -> None:
        logger = get_rbac_logger("rbaccore.test", tenant_id="acme")

        with caplog.at_level(logging.INFO):
            logger.info("Group created", user_id="u-2")

        record = caplog.records[-1]
        assert record.tenant_id == "acme"
        assert record.user_id == "u-2"
