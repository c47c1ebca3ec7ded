"""Logging utilities for the rbaccore engine.

This module provides:
- Logging configuration from RbacConfig
- Safe preview utilities for untrusted values
- Secret redaction
- Structured logging with tenant/user context
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Optional

from .config import LogLevel, RbacConfig

# Patterns for detecting secrets (common patterns to redact)
SECRET_PATTERNS = [
    r'(?i)(?:password|passwd|pwd|secret|token|api[_-]?key|auth[_-]?token|csrf[_-]?token)\s*[:=]\s*["\']?([^"\'\s]+)',
    r"(?i)(?:bearer|basic)\s+([a-zA-Z0-9+/=._-]+)",
    r"(?i)(?:sid|session[_-]?id)\s*[:=]\s*[\"']?([^\"'\s]+)",
    r"\$argon2[a-z]*\$[^\s\"']+",
]

# Record attributes that are part of LogRecord itself, never "extra" fields
_RESERVED_ATTRS = frozenset(
    {
        "name", "msg", "args", "created", "filename", "funcName",
        "levelname", "levelno", "lineno", "module", "msecs",
        "message", "pathname", "process", "processName", "relativeCreated",
        "thread", "threadName", "exc_info", "exc_text", "stack_info",
        "taskName", "tenant_id", "user_id",
    }
)


def safe_preview(value: Any, limit: int = 240) -> str:
    """Create a safe, length-bounded, single-line preview of a value.

    Args:
        value: The value to preview (any type)
        limit: Maximum length of the preview (default: 240)

    Returns:
        A truncated string representation
    """
    if value is None:
        return ""

    if isinstance(value, str):
        s = value
    elif isinstance(value, (dict, list, tuple, set, frozenset)):
        if isinstance(value, (set, frozenset)):
            value = sorted(value, key=str)
        try:
            s = json.dumps(value, default=str, ensure_ascii=False)
        except (TypeError, ValueError):
            s = str(value)
    else:
        s = str(value)

    s = " ".join(s.split())

    if len(s) > limit:
        return s[: limit - 1] + "…"

    return s


def redact_secrets(text: str, replacement: str = "[REDACTED]") -> str:
    """Redact secret patterns (passwords, bearer tokens, session ids, hashes) from text."""
    if not isinstance(text, str):
        return text

    result = text
    for pattern in SECRET_PATTERNS:
        result = re.sub(pattern, replacement, result, flags=re.IGNORECASE | re.DOTALL)

    return result


def safe_log_value(value: Any, limit: int = 240, redact: bool = True) -> str:
    """Combine :func:`safe_preview` and :func:`redact_secrets`."""
    preview = safe_preview(value, limit=limit)
    if redact:
        preview = redact_secrets(preview)
    return preview


class RbacLogFormatter(logging.Formatter):
    """Formatter that includes tenant/user context and optionally emits JSON.

    Extra fields attached to the record are rendered through
    :func:`safe_log_value`, so permission sets and ids stay bounded.
    """

    def __init__(
        self,
        include_context: bool = True,
        json_format: bool = True,
        redact_secrets: bool = True,
        *args: Any,
        **kwargs: Any,
    ):
        super().__init__(*args, **kwargs)
        self.include_context = include_context
        self.json_format = json_format
        self.redact_secrets = redact_secrets

    def format(self, record: logging.LogRecord) -> str:
        tenant_id = getattr(record, "tenant_id", None)
        user_id = getattr(record, "user_id", None)

        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if self.include_context:
            if tenant_id:
                log_data["tenant_id"] = str(tenant_id)
            if user_id:
                log_data["user_id"] = str(user_id)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_data[key] = safe_log_value(value, redact=self.redact_secrets)

        if self.redact_secrets:
            log_data["message"] = redact_secrets(log_data["message"])

        if self.json_format:
            return json.dumps(log_data, default=str, ensure_ascii=False)

        parts = [
            f"[{log_data['timestamp']}]",
            f"{log_data['level']}",
            f"{log_data['logger']}",
        ]
        if "tenant_id" in log_data:
            parts.append(f"tenant_id={log_data['tenant_id']}")
        if "user_id" in log_data:
            parts.append(f"user_id={log_data['user_id']}")
        parts.append(f": {log_data['message']}")
        return " ".join(parts)


class RbacLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that adds tenant_id and user_id to log records.

    Usage:
        logger = get_rbac_logger(__name__, tenant_id=tenant_id)
        logger.info("Role created", user_id=actor_id)
    """

    def __init__(
        self,
        logger: logging.Logger,
        tenant_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ):
        super().__init__(logger, {})
        self.tenant_id = tenant_id
        self.user_id = user_id

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        tenant_id = kwargs.pop("tenant_id", self.tenant_id)
        user_id = kwargs.pop("user_id", self.user_id)

        extra = kwargs.get("extra", {})
        if tenant_id:
            extra["tenant_id"] = tenant_id
        if user_id:
            extra["user_id"] = user_id
        kwargs["extra"] = extra

        return msg, kwargs


def setup_logging(
    config: Optional[RbacConfig] = None,
    json_format: Optional[bool] = None,
    redact_secrets: bool = True,
) -> None:
    """Configure the root logger for a service embedding the engine.

    Args:
        config: RbacConfig instance (if None, loads from environment)
        json_format: Force JSON output; defaults to ``config.log_json``
        redact_secrets: Whether to redact secrets (default: True)
    """
    if config is None:
        from .config import load_config_from_env

        config = load_config_from_env()

    level_map = {
        LogLevel.DEBUG: logging.DEBUG,
        LogLevel.INFO: logging.INFO,
        LogLevel.WARNING: logging.WARNING,
        LogLevel.ERROR: logging.ERROR,
        LogLevel.CRITICAL: logging.CRITICAL,
    }
    log_level = level_map.get(config.log_level, logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(
        RbacLogFormatter(
            include_context=True,
            json_format=config.log_json if json_format is None else json_format,
            redact_secrets=redact_secrets,
        )
    )
    root_logger.addHandler(console_handler)

    if config.service_name:
        logging.getLogger(config.service_name).setLevel(log_level)


def get_rbac_logger(
    name: str,
    tenant_id: Optional[str] = None,
    user_id: Optional[str] = None,
) -> RbacLoggerAdapter:
    """Get a logger adapter bound to an optional tenant and user."""
    return RbacLoggerAdapter(logging.getLogger(name), tenant_id=tenant_id, user_id=user_id)


__all__ = [
    "safe_preview",
    "redact_secrets",
    "safe_log_value",
    "RbacLogFormatter",
    "RbacLoggerAdapter",
    "setup_logging",
    "get_rbac_logger",
]
