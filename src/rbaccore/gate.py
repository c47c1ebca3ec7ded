"""Authorization gate: the request-time allow/deny decision.

Provides:
- ``DenyReason`` — why a request was denied.
- ``AccessDecision`` — allow/deny result returned by the gate.
- ``AuthorizationGate`` — version-checked session caching plus the
  all-of decision rule with a global wildcard bypass.
"""

from __future__ import annotations

import logging
from collections.abc import MutableMapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Optional

from .exceptions import InsufficientPermissionsError, UnauthenticatedError
from .permissions import has_all_permissions
from .resolver import PermissionResolver
from .session import SessionPermissionCache
from .versions import TenantVersionCounter

logger = logging.getLogger(__name__)


class DenyReason(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    INSUFFICIENT_PERMISSIONS = "insufficient_permissions"


@dataclass(frozen=True)
class AccessDecision:
    """Result of :meth:`AuthorizationGate.authorize`.

    A denial never says which key was missing.
    """

    allowed: bool
    reason: Optional[DenyReason] = None

    @property
    def denied(self) -> bool:
        return not self.allowed

    @classmethod
    def allow(cls) -> AccessDecision:
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: DenyReason) -> AccessDecision:
        return cls(allowed=False, reason=reason)

    def raise_for_denial(self) -> None:
        """Raise the exception matching a denial; no-op when allowed."""
        if self.allowed:
            return
        if self.reason == DenyReason.UNAUTHENTICATED:
            raise UnauthenticatedError()
        raise InsufficientPermissionsError()


class AuthorizationGate:
    """Decide whether a session satisfies a permission requirement.

    The session's cached ``{permissions, perms_version}`` pair is owned by
    that session and only rewritten here, for the session's own request.
    """

    def __init__(self, resolver: PermissionResolver, versions: TenantVersionCounter) -> None:
        self._resolver = resolver
        self._versions = versions

    async def _refresh(self, cache: SessionPermissionCache) -> frozenset[str]:
        tenant_id = cache.tenant_id
        user_id = cache.user_id
        current = await self._versions.current_version(tenant_id)

        if cache.is_fresh(current):
            return cache.permissions

        logger.debug(
            "Recomputing permissions for user %s (cached_version=%s, current=%s)",
            user_id,
            cache.cached_version,
            current,
            extra={"tenant_id": tenant_id},
        )
        permissions = await self._resolver.compute_user_permissions(user_id, tenant_id)
        cache.store(permissions, current)
        return permissions

    async def session_permissions(self, session: MutableMapping[str, Any]) -> frozenset[str]:
        """Version-checked permission set for a bound session.

        Raises:
            UnauthenticatedError: the session has no bound user/tenant.
        """
        cache = SessionPermissionCache(session)
        if not cache.is_authenticated:
            raise UnauthenticatedError()
        return await self._refresh(cache)

    async def authorize(
        self,
        session: MutableMapping[str, Any],
        required_permissions: Iterable[str],
    ) -> AccessDecision:
        """Allow iff every required key is held, or the wildcard is held.

        An empty requirement is allowed without touching the session.
        """
        required = list(required_permissions)
        if not required:
            return AccessDecision.allow()

        cache = SessionPermissionCache(session)
        if not cache.is_authenticated:
            logger.info("Access denied: session is not bound to a user/tenant")
            return AccessDecision.deny(DenyReason.UNAUTHENTICATED)

        permissions = await self._refresh(cache)
        if has_all_permissions(permissions, required):
            return AccessDecision.allow()

        logger.info(
            "Access denied: insufficient permissions for user %s",
            cache.user_id,
            extra={"tenant_id": cache.tenant_id},
        )
        return AccessDecision.deny(DenyReason.INSUFFICIENT_PERMISSIONS)

    async def require(
        self,
        session: MutableMapping[str, Any],
        required_permissions: Iterable[str],
    ) -> None:
        """Like :meth:`authorize`, but raise on denial."""
        decision = await self.authorize(session, required_permissions)
        decision.raise_for_denial()


__all__ = [
    "AccessDecision",
    "AuthorizationGate",
    "DenyReason",
]
