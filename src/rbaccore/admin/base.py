"""Shared plumbing for administrative graph writers.

Every public mutation follows the same shape::

    async with self._store.transaction():
        ...validate both endpoints belong to tenant_id...
        ...write...
    await self._bump(tenant_id)

The bump runs after the transaction has committed. Endpoint lookups are
tenant-scoped, so an id from another tenant is indistinguishable from a
missing one and both surface as :class:`NotFoundError`.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..config import RbacConfig
from ..exceptions import NotFoundError
from ..models import Group, MenuFunction, MenuGroup, Permission, Role, Tenant, User
from ..store.base import GraphStore
from ..versions import TenantVersionCounter

logger = logging.getLogger(__name__)


class AdminBase:
    def __init__(
        self,
        store: GraphStore,
        versions: TenantVersionCounter,
        config: Optional[RbacConfig] = None,
    ) -> None:
        self._store = store
        self._versions = versions
        self._config = config or RbacConfig()

    async def _bump(self, tenant_id: str) -> None:
        await self._versions.bump_version(tenant_id)

    async def _bump_after_set(self, tenant_id: str, changed: bool) -> None:
        if changed or self._config.bump_on_noop_set:
            await self._bump(tenant_id)
        else:
            logger.debug("Bulk set changed no links; version bump skipped", extra={"tenant_id": tenant_id})

    # ── Tenant-scoped lookups ───────────────────────────

    async def _require_tenant(self, tenant_id: str) -> Tenant:
        tenant = await self._store.get_tenant(tenant_id)
        if tenant is None:
            raise NotFoundError("Tenant not found", tenant_id=tenant_id)
        return tenant

    async def _require_user(self, tenant_id: str, user_id: str) -> User:
        user = await self._store.get_user(tenant_id, user_id)
        if user is None:
            raise NotFoundError("User not found", tenant_id=tenant_id, user_id=user_id)
        return user

    async def _require_group(self, tenant_id: str, group_id: str) -> Group:
        group = await self._store.get_group(tenant_id, group_id)
        if group is None:
            raise NotFoundError("Group not found", tenant_id=tenant_id, group_id=group_id)
        return group

    async def _require_role(self, tenant_id: str, role_id: str) -> Role:
        role = await self._store.get_role(tenant_id, role_id)
        if role is None:
            raise NotFoundError("Role not found", tenant_id=tenant_id, role_id=role_id)
        return role

    async def _require_permission(self, tenant_id: str, permission_id: str) -> Permission:
        permission = await self._store.get_permission(tenant_id, permission_id)
        if permission is None:
            raise NotFoundError("Permission not found", tenant_id=tenant_id, permission_id=permission_id)
        return permission

    async def _require_menu_group(self, tenant_id: str, menu_group_id: str) -> MenuGroup:
        menu_group = await self._store.get_menu_group(tenant_id, menu_group_id)
        if menu_group is None:
            raise NotFoundError("MenuGroup not found", tenant_id=tenant_id, menu_group_id=menu_group_id)
        return menu_group

    async def _require_menu_function(self, tenant_id: str, menu_function_id: str) -> MenuFunction:
        menu_function = await self._store.get_menu_function(tenant_id, menu_function_id)
        if menu_function is None:
            raise NotFoundError(
                "MenuFunction not found",
                tenant_id=tenant_id,
                menu_function_id=menu_function_id,
            )
        return menu_function
