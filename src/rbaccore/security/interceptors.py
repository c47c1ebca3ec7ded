"""gRPC interceptor enforcing session-based RBAC before dispatch.

Provides:
- ``SessionPermissionInterceptor`` — maps each RPC to its required keys and
  asks the authorization gate before the handler runs.
- ``_extract_rpc_name``, ``_should_skip`` — helper utilities.
"""

from __future__ import annotations

import logging
from collections.abc import MutableMapping
from typing import Any, Awaitable, Callable, Optional, Protocol

import grpc

from ..gate import AccessDecision, DenyReason

logger = logging.getLogger(__name__)

SessionLoader = Callable[[dict[str, Any]], Awaitable[Optional[MutableMapping[str, Any]]]]


class SupportsAuthorize(Protocol):
    async def authorize(self, session: MutableMapping[str, Any], required_permissions: Any) -> AccessDecision: ...


# Method prefixes that bypass permission checks
_SKIP_PREFIXES = (
    "grpc.health.v1",
    "grpc.reflection.v1",
)

_DENY_STATUS = {
    DenyReason.UNAUTHENTICATED: grpc.StatusCode.UNAUTHENTICATED,
    DenyReason.INSUFFICIENT_PERMISSIONS: grpc.StatusCode.PERMISSION_DENIED,
}


# ── Helpers ──────────────────────────────────────────────────────


def _extract_rpc_name(full_method: str) -> str:
    """``/rbac.AdminService/AttachRoleToGroup`` → ``AttachRoleToGroup``"""
    return full_method.rsplit("/", 1)[-1] if "/" in full_method else full_method


def _should_skip(method: str) -> bool:
    return any(prefix in method for prefix in _SKIP_PREFIXES)


def _denied_handler(status: grpc.StatusCode, message: str) -> grpc.RpcMethodHandler:
    async def _denied(request, context):
        await context.abort(status, message)

    return grpc.unary_unary_rpc_method_handler(_denied)


# ── Interceptor ─────────────────────────────────────────────────


class SessionPermissionInterceptor(grpc.aio.ServerInterceptor):
    """Server interceptor that authorizes each RPC against the caller's session.

    Sits before all handlers and:
    1. Maps the RPC method to its required keys via ``rpc_permission_map``
    2. Loads the caller's session bag from the invocation metadata
    3. Asks the gate; on denial, returns a handler that aborts with
       ``UNAUTHENTICATED`` or ``PERMISSION_DENIED``

    Unmapped RPCs are denied. An RPC mapped to ``()`` needs no permission.
    Denial messages never name the missing key.

    Args:
        rpc_permission_map: RPC name → required permission keys.
        session_loader: Async callable taking the metadata dict and returning
            the session bag, or ``None`` for an anonymous caller.
        gate: Anything exposing ``authorize(session, required)``, usually an
            :class:`~rbaccore.gate.AuthorizationGate` or ``RbacEngine``.
        service_name: Human-readable service name for log messages.

    Usage::

        interceptor = SessionPermissionInterceptor(
            rpc_permission_map={"ListUsers": ("users.manage",), "Ping": ()},
            session_loader=load_session_from_cookie,
            gate=engine,
            service_name="Admin",
        )
        server = grpc.aio.server(interceptors=[interceptor])
    """

    def __init__(
        self,
        rpc_permission_map: dict[str, tuple[str, ...]],
        session_loader: SessionLoader,
        gate: SupportsAuthorize,
        *,
        service_name: str = "Service",
    ) -> None:
        self._rpc_map = {name: tuple(keys) for name, keys in rpc_permission_map.items()}
        self._session_loader = session_loader
        self._gate = gate
        self._service_name = service_name

    async def _load_session(self, metadata: dict[str, Any]) -> MutableMapping[str, Any]:
        try:
            session = await self._session_loader(metadata)
        except Exception:
            logger.warning("%s session loader failed; treating caller as anonymous", self._service_name, exc_info=True)
            return {}
        return session if session is not None else {}

    async def intercept_service(
        self,
        continuation: Any,
        handler_call_details: grpc.HandlerCallDetails,
    ) -> grpc.RpcMethodHandler:
        method = handler_call_details.method or ""

        if _should_skip(method):
            return await continuation(handler_call_details)

        rpc_name = _extract_rpc_name(method)
        required = self._rpc_map.get(rpc_name)

        if required is None:
            logger.warning("%s DENIED '%s': RPC not mapped to permissions", self._service_name, rpc_name)
            return _denied_handler(grpc.StatusCode.PERMISSION_DENIED, f"{self._service_name}: {rpc_name} denied")

        if not required:
            return await continuation(handler_call_details)

        metadata = dict(handler_call_details.invocation_metadata or [])
        session = await self._load_session(metadata)
        decision = await self._gate.authorize(session, required)

        if decision.denied:
            status = _DENY_STATUS.get(decision.reason, grpc.StatusCode.PERMISSION_DENIED)
            logger.info("%s DENIED '%s': %s", self._service_name, rpc_name, decision.reason.value)
            return _denied_handler(status, f"{self._service_name}: {rpc_name} denied")

        logger.debug("%s ALLOWED '%s'", self._service_name, rpc_name)
        return await continuation(handler_call_details)


__all__ = [
    "SessionLoader",
    "SessionPermissionInterceptor",
    "_extract_rpc_name",
    "_should_skip",
]
