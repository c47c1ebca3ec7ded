"""Configuration contract for the rbaccore authorization engine.

This module provides a Pydantic-validated configuration model for the
engine (log settings, the optional Redis version backend, bootstrap names).

Services embedding the engine SHOULD build it from :class:`RbacConfig`
rather than reading environment variables themselves. The only direct
environment read lives in :func:`load_config_from_env`.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

_TRUTHY = ("true", "1", "yes", "on")


class LogLevel(str, Enum):
    """Standard log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class RbacConfig(BaseModel):
    """Configuration for an :class:`~rbaccore.engine.RbacEngine`.

    Tenant versions are kept in the graph store unless ``redis_url`` is set,
    in which case they live in Redis and are bumped with ``INCR``.
    """

    # Logging
    log_level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Logging level for the engine",
    )
    log_json: bool = Field(
        default=False,
        description="Use JSON log format (default: plain text)",
    )

    # Version counter backend
    redis_url: Optional[str] = Field(
        default=None,
        description="Redis URL for tenant version counters (e.g., redis://localhost:6379/0)",
    )
    version_key_prefix: str = Field(
        default="rbac:tenant-version",
        description="Redis key prefix for tenant version counters",
    )

    service_name: Optional[str] = Field(
        default=None,
        description="Service name used for logger identification",
    )

    # Mutation behaviour
    bump_on_noop_set: bool = Field(
        default=True,
        description="Bump the tenant version even when a bulk set changed no links",
    )

    # Tenant bootstrap
    superadmin_role: str = Field(
        default="SUPER_ADMIN",
        description="Name of the role holding the wildcard permission",
    )
    superadmin_group: str = Field(
        default="Super Admins",
        description="Name of the group holding the superadmin role",
    )

    @field_validator("redis_url")
    @classmethod
    def validate_redis_url(cls, v: Optional[str]) -> Optional[str]:
        """Validate Redis URL format."""
        if v is None:
            return v
        if not v.startswith(("redis://", "rediss://", "unix://")):
            raise ValueError("Redis URL must start with redis://, rediss://, or unix://")
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: str | LogLevel) -> LogLevel:
        """Convert string to LogLevel enum."""
        if isinstance(v, LogLevel):
            return v
        if isinstance(v, str):
            try:
                return LogLevel[v.upper()]
            except KeyError:
                raise ValueError(f"Invalid log level: {v}. Must be one of {[e.value for e in LogLevel]}")
        raise ValueError(f"Log level must be string or LogLevel enum, got {type(v)}")

    model_config = {
        "use_enum_values": True,
        "extra": "forbid",
    }


def load_config_from_env() -> RbacConfig:
    """Load engine configuration from environment variables.

    Environment variables:
    - LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    - LOG_JSON: Use JSON log format (true/false, default: false)
    - REDIS_URL: Redis URL for tenant version counters
    - RBAC_VERSION_KEY_PREFIX: Redis key prefix for version counters
    - SERVICE_NAME: Service name for logger identification
    - RBAC_BUMP_ON_NOOP_SET: Bump version on empty bulk-set diffs (default: true)
    - RBAC_SUPERADMIN_ROLE: Superadmin role name used by tenant bootstrap
    - RBAC_SUPERADMIN_GROUP: Superadmin group name used by tenant bootstrap

    Returns:
        RbacConfig instance with values from environment or defaults.
    """
    import os

    return RbacConfig(
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        log_json=os.getenv("LOG_JSON", "false").lower() in _TRUTHY,
        redis_url=os.getenv("REDIS_URL") or None,
        version_key_prefix=os.getenv("RBAC_VERSION_KEY_PREFIX", "rbac:tenant-version"),
        service_name=os.getenv("SERVICE_NAME"),
        bump_on_noop_set=os.getenv("RBAC_BUMP_ON_NOOP_SET", "true").lower() in _TRUTHY,
        superadmin_role=os.getenv("RBAC_SUPERADMIN_ROLE", "SUPER_ADMIN"),
        superadmin_group=os.getenv("RBAC_SUPERADMIN_GROUP", "Super Admins"),
    )


__all__ = [
    "LogLevel",
    "RbacConfig",
    "load_config_from_env",
]
