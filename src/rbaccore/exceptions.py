"""Exception hierarchy for the rbaccore engine.

All errors inherit from RbacError. This module provides:
- Base exception hierarchy with stable error codes
- ErrorRegistry for protocol mapping
- gRPC status mapping and an error handler decorator for async servicers

Usage in services:
    from rbaccore.exceptions import NotFoundError, grpc_error_handler
"""

from __future__ import annotations

import functools
import logging
from typing import Any, Callable, TypeVar, cast

__all__ = [
    # Base hierarchy
    "RbacError",
    "ConfigurationError",
    "UnauthenticatedError",
    "InsufficientPermissionsError",
    "NotFoundError",
    "ConflictError",
    "VersionBumpFailedError",
    "StorageError",
    # Registry
    "ErrorRegistry",
    "error_registry",
    "register_error",
    # gRPC helpers
    "get_grpc_status_code",
    "grpc_error_handler",
]

logger = logging.getLogger(__name__)


# ---- Exception Hierarchy ----------------------------------------------------


class RbacError(Exception):
    """Base exception for the authorization engine.

    Attributes:
        code: Stable error code string for protocol mapping (e.g. "NOT_FOUND").
        message: Human-readable error description.
        details: Additional context as keyword arguments.
    """

    code: str = "INTERNAL_ERROR"
    message: str = "An internal error occurred"

    def __init__(self, message: str | None = None, code: str | None = None, **kwargs: Any) -> None:
        self.message = message or self.message
        self.code = code or self.code
        self.details = kwargs
        super().__init__(self.message)


class ConfigurationError(RbacError):
    """Invalid or missing configuration."""

    code: str = "CONFIGURATION_ERROR"
    message: str = "Invalid configuration"


class UnauthenticatedError(RbacError):
    """The session carries no bound user/tenant."""

    code: str = "UNAUTHENTICATED"
    message: str = "Missing session"


class InsufficientPermissionsError(RbacError):
    """The resolved permission set does not satisfy the requirement.

    The message never names the missing key.
    """

    code: str = "PERMISSION_DENIED"
    message: str = "Insufficient permissions"


class NotFoundError(RbacError):
    """Entity missing, or owned by another tenant."""

    code: str = "NOT_FOUND"
    message: str = "Not found"


class ConflictError(RbacError):
    """A per-tenant uniqueness invariant would be violated."""

    code: str = "CONFLICT"
    message: str = "Already exists"


class VersionBumpFailedError(RbacError):
    """The data write committed but the tenant version increment failed.

    Sessions cached before the write cannot be trusted to observe it.
    """

    code: str = "VERSION_BUMP_FAILED"
    message: str = "Tenant version bump failed after write"


class StorageError(RbacError):
    """Graph store or version backend failure."""

    code: str = "STORAGE_ERROR"
    message: str = "Storage failure"


# ---- Error Registry for Protocol Mapping ------------------------------------

_E = TypeVar("_E", bound=type[RbacError])


class ErrorRegistry:
    """Registry for mapping internal errors to external protocol codes."""

    def __init__(self) -> None:
        self._errors: dict[str, type[RbacError]] = {}

    def register(self, code: str, error_cls: type[RbacError]) -> None:
        self._errors[code] = error_cls

    def get(self, code: str) -> type[RbacError] | None:
        return self._errors.get(code)

    def all(self) -> dict[str, type[RbacError]]:
        return dict(self._errors)


error_registry = ErrorRegistry()


def register_error(code: str) -> Callable[[_E], _E]:
    """Decorator to register a custom error type.

    Usage:
        @register_error("TENANT_SUSPENDED")
        class TenantSuspendedError(RbacError):
            code = "TENANT_SUSPENDED"
    """

    def decorator(cls: _E) -> _E:
        error_registry.register(code, cls)
        return cls

    return cast(Callable[[_E], _E], decorator)


error_registry.register("INTERNAL_ERROR", RbacError)
error_registry.register("CONFIGURATION_ERROR", ConfigurationError)
error_registry.register("UNAUTHENTICATED", UnauthenticatedError)
error_registry.register("PERMISSION_DENIED", InsufficientPermissionsError)
error_registry.register("NOT_FOUND", NotFoundError)
error_registry.register("CONFLICT", ConflictError)
error_registry.register("VERSION_BUMP_FAILED", VersionBumpFailedError)
error_registry.register("STORAGE_ERROR", StorageError)


# ---- gRPC Error Handling Utilities ------------------------------------------


def get_grpc_status_code(error: RbacError) -> Any:
    """Map an RbacError to its grpc.StatusCode.

    Codes without a direct mapping are resolved through the class registered
    for them: the nearest base class with a mapped code decides the status.
    """
    import grpc

    error_to_status = {
        "UNAUTHENTICATED": grpc.StatusCode.UNAUTHENTICATED,
        "PERMISSION_DENIED": grpc.StatusCode.PERMISSION_DENIED,
        "NOT_FOUND": grpc.StatusCode.NOT_FOUND,
        "CONFLICT": grpc.StatusCode.ALREADY_EXISTS,
        "CONFIGURATION_ERROR": grpc.StatusCode.FAILED_PRECONDITION,
        "VERSION_BUMP_FAILED": grpc.StatusCode.INTERNAL,
        "STORAGE_ERROR": grpc.StatusCode.UNAVAILABLE,
    }
    if error.code in error_to_status:
        return error_to_status[error.code]

    error_cls = error_registry.get(error.code) or type(error)
    for cls in error_cls.__mro__:
        code = getattr(cls, "code", None)
        if code in error_to_status:
            return error_to_status[code]
    return grpc.StatusCode.INTERNAL


def grpc_error_handler(method):
    """Decorator for unary async gRPC servicer methods.

    Catches RbacError and aborts with the mapped status code.

    Usage:
        @grpc_error_handler
        async def AttachRoleToGroup(self, request, context):
            ...
    """

    @functools.wraps(method)
    async def wrapper(self, request, context):
        try:
            return await method(self, request, context)
        except RbacError as e:
            status_code = get_grpc_status_code(e)
            error_message = f"[{e.code}] {e.message}"

            logger.error(
                "%s failed: %s",
                method.__name__,
                error_message,
                extra={
                    "error_code": e.code,
                    "error_details": e.details,
                },
            )

            context.set_trailing_metadata([("error-code", e.code)])
            await context.abort(status_code, error_message)
            return

        except Exception as e:
            import grpc

            logger.exception("%s unexpected error: %s", method.__name__, e)
            await context.abort(
                grpc.StatusCode.INTERNAL,
                f"Unexpected {type(e).__name__}",
            )
            return

    return wrapper
