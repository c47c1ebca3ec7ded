"""Administrative writes to the menu tree and its role links.

Attaching menu nodes keeps two facts aligned: "a role can see this menu
item" and "a role holds the permission that gates this menu item".
Whenever a gated function becomes reachable from a role, through either
attach direction, the role is granted the function's permission key,
creating the Permission row if the tenant lacks it. Each attach call
bumps the tenant version exactly once.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from ..exceptions import NotFoundError
from ..models import MenuFunction, MenuGroup, MenuGroupFunction, Permission, RoleMenuGroup
from .base import AdminBase

logger = logging.getLogger(__name__)


def _seq(value: Optional[int]) -> tuple[int, int]:
    return (1, 0) if value is None else (0, value)


class MenuAdmin(AdminBase):
    """Menu groups, menu functions, and their links."""

    # ── Entities ────────────────────────────────────────

    async def create_menu_group(
        self,
        tenant_id: str,
        code: str,
        name: str,
        *,
        sequence: Optional[int] = None,
        icon: Optional[str] = None,
    ) -> MenuGroup:
        async with self._store.transaction():
            await self._require_tenant(tenant_id)
            menu_group = await self._store.create_menu_group(
                MenuGroup(tenant_id=tenant_id, code=code, name=name, sequence=sequence, icon=icon)
            )
        logger.info("MenuGroup created: %s", code, extra={"tenant_id": tenant_id})
        return menu_group

    async def create_menu_function(
        self,
        tenant_id: str,
        code: str,
        name: str,
        type: str = "",
        *,
        path: Optional[str] = None,
        required_permission_key: Optional[str] = None,
    ) -> MenuFunction:
        async with self._store.transaction():
            await self._require_tenant(tenant_id)
            menu_function = await self._store.create_menu_function(
                MenuFunction(
                    tenant_id=tenant_id,
                    code=code,
                    name=name,
                    type=type,
                    path=path,
                    required_permission_key=required_permission_key or None,
                )
            )
        logger.info("MenuFunction created: %s", code, extra={"tenant_id": tenant_id})
        return menu_function

    # ── Permission propagation ──────────────────────────

    async def _grant_key_to_roles(self, tenant_id: str, key: str, role_ids: Iterable[str]) -> None:
        """Ensure ``key`` exists for the tenant and every role holds it.

        Must run inside the caller's transaction.
        """
        role_ids = list(dict.fromkeys(role_ids))
        if not role_ids:
            return

        permission = await self._store.find_permission_by_key(tenant_id, key)
        if permission is None:
            permission = await self._store.create_permission(Permission(tenant_id=tenant_id, key=key))
            logger.info("Permission auto-created for menu key: %s", key, extra={"tenant_id": tenant_id})

        for role_id in role_ids:
            await self._store.add_role_permission(role_id, permission.id)

    # ── MenuGroup ↔ MenuFunction ────────────────────────

    async def attach_function_to_group(
        self,
        tenant_id: str,
        menu_group_id: str,
        menu_function_id: str,
        sequence: Optional[int] = None,
    ) -> MenuGroupFunction:
        """Attach (or re-sequence) a function in a group.

        If the function is gated and the group is already linked to roles,
        those roles are granted the function's permission key.
        """
        async with self._store.transaction():
            await self._require_menu_group(tenant_id, menu_group_id)
            menu_function = await self._require_menu_function(tenant_id, menu_function_id)
            link = await self._store.upsert_menu_group_function(menu_group_id, menu_function_id, sequence)

            if menu_function.required_permission_key:
                role_ids = await self._store.role_ids_for_menu_group(menu_group_id)
                await self._grant_key_to_roles(tenant_id, menu_function.required_permission_key, role_ids)

        await self._bump(tenant_id)
        logger.info(
            "MenuFunction %s attached to group %s (sequence=%s)",
            menu_function_id,
            menu_group_id,
            sequence,
            extra={"tenant_id": tenant_id},
        )
        return link

    async def detach_function_from_group(self, tenant_id: str, menu_group_id: str, menu_function_id: str) -> None:
        """Remove a function from a group. Granted permissions are left in place."""
        async with self._store.transaction():
            await self._require_menu_group(tenant_id, menu_group_id)
            await self._require_menu_function(tenant_id, menu_function_id)
            if not await self._store.remove_menu_group_function(menu_group_id, menu_function_id):
                raise NotFoundError(
                    "MenuGroupFunction link not found",
                    menu_group_id=menu_group_id,
                    menu_function_id=menu_function_id,
                )
        await self._bump(tenant_id)
        logger.info(
            "MenuFunction %s detached from group %s", menu_function_id, menu_group_id, extra={"tenant_id": tenant_id}
        )

    # ── Role ↔ MenuGroup ────────────────────────────────

    async def attach_menu_group_to_role(self, tenant_id: str, role_id: str, menu_group_id: str) -> RoleMenuGroup:
        """Link a menu group to a role and grant the role every gating key in the group."""
        async with self._store.transaction():
            await self._require_role(tenant_id, role_id)
            await self._require_menu_group(tenant_id, menu_group_id)
            link = await self._store.add_role_menu_group(role_id, menu_group_id)

            keys = []
            for _, fn in await self._store.functions_for_menu_groups([menu_group_id]):
                if fn.tenant_id == tenant_id and fn.required_permission_key:
                    keys.append(fn.required_permission_key)
            for key in dict.fromkeys(keys):
                await self._grant_key_to_roles(tenant_id, key, [role_id])

        await self._bump(tenant_id)
        logger.info("MenuGroup %s attached to role %s", menu_group_id, role_id, extra={"tenant_id": tenant_id})
        return link

    async def detach_menu_group_from_role(self, tenant_id: str, role_id: str, menu_group_id: str) -> None:
        async with self._store.transaction():
            await self._require_role(tenant_id, role_id)
            await self._require_menu_group(tenant_id, menu_group_id)
            if not await self._store.remove_role_menu_group(role_id, menu_group_id):
                raise NotFoundError("RoleMenuGroup link not found", role_id=role_id, menu_group_id=menu_group_id)
        await self._bump(tenant_id)
        logger.info("MenuGroup %s detached from role %s", menu_group_id, role_id, extra={"tenant_id": tenant_id})

    # ── Listings ────────────────────────────────────────

    async def list_menu_groups(self, tenant_id: str) -> list[MenuGroup]:
        groups = await self._store.list_menu_groups(tenant_id)
        return sorted(groups, key=lambda g: (_seq(g.sequence), g.name))

    async def list_menu_functions(self, tenant_id: str) -> list[MenuFunction]:
        return sorted(await self._store.list_menu_functions(tenant_id), key=lambda f: f.code)

    async def list_group_functions(self, tenant_id: str) -> list[tuple[MenuGroup, MenuGroupFunction, MenuFunction]]:
        """All group↔function links, ordered by group then link sequence."""
        groups = await self.list_menu_groups(tenant_id)
        order = {g.id: idx for idx, g in enumerate(groups)}
        by_id = {g.id: g for g in groups}

        rows = [
            (by_id[link.menu_group_id], link, fn)
            for link, fn in await self._store.functions_for_menu_groups(list(by_id))
        ]
        rows.sort(key=lambda row: (order[row[0].id], _seq(row[1].sequence)))
        return rows

    async def list_role_menu_groups(self, tenant_id: str) -> list[RoleMenuGroup]:
        links = await self._store.list_role_menu_groups(tenant_id)
        return sorted(links, key=lambda link: (link.role_id, link.menu_group_id))


__all__ = [
    "MenuAdmin",
]
