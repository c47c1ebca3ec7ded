"""Engine facade wiring store, version counter, resolver, gate and menu filter.

Usage::

    engine = RbacEngine.from_config(load_config_from_env(), store=my_store)

    decision = await engine.authorize(request.session, ["reports.view"])
    if decision.denied:
        ...

    menu = await engine.session_menu(request.session)
"""

from __future__ import annotations

import logging
from collections.abc import MutableMapping
from typing import Any, Iterable, Optional

from .admin import GraphAdmin, MenuAdmin
from .config import RbacConfig
from .exceptions import NotFoundError, UnauthenticatedError
from .gate import AccessDecision, AuthorizationGate
from .models import AccessSummary, MenuSection, Role
from .menu import MenuVisibilityFilter
from .resolver import PermissionResolver
from .session import SessionPermissionCache
from .store.base import GraphStore, VersionStore
from .store.memory import InMemoryGraphStore
from .versions import TenantVersionCounter

logger = logging.getLogger(__name__)


class RbacEngine:
    """Single entry point exposed to transport and session layers.

    Args:
        store: Graph store holding the tenant role graph.
        config: Engine configuration.
        version_store: Where tenant versions live; defaults to ``store``.
    """

    def __init__(
        self,
        store: GraphStore,
        config: Optional[RbacConfig] = None,
        *,
        version_store: Optional[VersionStore] = None,
    ) -> None:
        self.config = config or RbacConfig()
        self.store = store
        self.versions = TenantVersionCounter(version_store or store)
        self.resolver = PermissionResolver(store)
        self.gate = AuthorizationGate(self.resolver, self.versions)
        self.menu = MenuVisibilityFilter(store, self.resolver)
        self.graph_admin = GraphAdmin(store, self.versions, self.config)
        self.menu_admin = MenuAdmin(store, self.versions, self.config)

    @classmethod
    def from_config(cls, config: RbacConfig, store: Optional[GraphStore] = None) -> RbacEngine:
        """Build an engine; tenant versions go to Redis when ``redis_url`` is set."""
        store = store or InMemoryGraphStore()
        version_store: Optional[VersionStore] = None
        if config.redis_url:
            from .store.redis_versions import RedisVersionStore

            version_store = RedisVersionStore.from_url(config.redis_url, prefix=config.version_key_prefix)
            logger.info("Tenant versions stored in Redis (prefix=%s)", config.version_key_prefix)
        return cls(store, config, version_store=version_store)

    # ── Exposed operations ──────────────────────────────

    async def compute_user_permissions(self, user_id: str, tenant_id: str) -> frozenset[str]:
        return await self.resolver.compute_user_permissions(user_id, tenant_id)

    async def authorize(
        self,
        session: MutableMapping[str, Any],
        required_permissions: Iterable[str],
    ) -> AccessDecision:
        return await self.gate.authorize(session, required_permissions)

    async def require(
        self,
        session: MutableMapping[str, Any],
        required_permissions: Iterable[str],
    ) -> None:
        await self.gate.require(session, required_permissions)

    async def menu_for_user(self, tenant_id: str, user_id: str, permissions: Iterable[str]) -> list[MenuSection]:
        return await self.menu.menu_for_user(tenant_id, user_id, permissions)

    async def session_menu(self, session: MutableMapping[str, Any]) -> list[MenuSection]:
        """Menu for the session's user, using its version-checked cached set.

        An unbound session gets an empty menu.
        """
        try:
            permissions = await self.gate.session_permissions(session)
        except UnauthenticatedError:
            return []
        cache = SessionPermissionCache(session)
        return await self.menu.menu_for_user(cache.tenant_id, cache.user_id, permissions)

    async def user_access_summary(self, tenant_id: str, user_id: str) -> AccessSummary:
        """Groups, roles, effective permissions and visible menu for a user."""
        user = await self.store.get_user(tenant_id, user_id)
        if user is None:
            raise NotFoundError("User not found", tenant_id=tenant_id, user_id=user_id)

        groups = []
        for group_id in dict.fromkeys(await self.store.group_ids_for_user(user_id)):
            group = await self.store.get_group(tenant_id, group_id)
            if group is not None:
                groups.append(group)
        groups.sort(key=lambda g: g.name)

        roles: list[Role] = []
        for role_id in await self.resolver.role_ids_for_user(user_id):
            role = await self.store.get_role(tenant_id, role_id)
            if role is not None:
                roles.append(role)
        roles.sort(key=lambda r: r.name)

        permissions = await self.resolver.compute_user_permissions(user_id, tenant_id)
        menu = await self.menu.menu_for_user(tenant_id, user_id, permissions)

        return AccessSummary(
            user=user,
            groups=groups,
            roles=roles,
            permissions=sorted(permissions),
            menu=menu,
        )


__all__ = [
    "RbacEngine",
]
