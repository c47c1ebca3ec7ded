"""In-process graph store.

Used by tests, local development and single-process deployments. All
state lives in dicts and sets; every method body runs without awaiting,
so each call (and in particular :meth:`increment_version`) is atomic with
respect to other coroutines on the same event loop.

Transactions hold an :class:`asyncio.Lock` and snapshot the state on
entry; an exception inside the block restores the snapshot.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Iterable, Optional, Sequence

from ..exceptions import ConflictError, NotFoundError
from ..models import (
    Group,
    GroupRole,
    MenuFunction,
    MenuGroup,
    MenuGroupFunction,
    Permission,
    Role,
    RoleMenuGroup,
    RolePermission,
    Tenant,
    User,
    UserGroup,
)
from .base import GraphStore

logger = logging.getLogger(__name__)

# Containers copied on transaction entry
_STATE_ATTRS = (
    "_tenants",
    "_users",
    "_groups",
    "_roles",
    "_permissions",
    "_menu_groups",
    "_menu_functions",
    "_user_groups",
    "_group_roles",
    "_role_permissions",
    "_role_menu_groups",
    "_menu_group_functions",
)


class InMemoryGraphStore(GraphStore):
    """Dict-backed :class:`GraphStore` with snapshot transactions."""

    def __init__(self) -> None:
        self._tenants: dict[str, Tenant] = {}
        self._users: dict[str, User] = {}
        self._groups: dict[str, Group] = {}
        self._roles: dict[str, Role] = {}
        self._permissions: dict[str, Permission] = {}
        self._menu_groups: dict[str, MenuGroup] = {}
        self._menu_functions: dict[str, MenuFunction] = {}

        self._user_groups: set[tuple[str, str]] = set()
        self._group_roles: set[tuple[str, str]] = set()
        self._role_permissions: set[tuple[str, str]] = set()
        self._role_menu_groups: set[tuple[str, str]] = set()
        self._menu_group_functions: dict[tuple[str, str], Optional[int]] = {}

        self._lock = asyncio.Lock()
        self._tx_owner: asyncio.Task | None = None

    # ── Transactions ────────────────────────────────────

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        current = asyncio.current_task()
        if self._tx_owner is not None and self._tx_owner is current:
            # Nested block joins the outer transaction
            yield
            return

        async with self._lock:
            self._tx_owner = current
            snapshot = {attr: getattr(self, attr).copy() for attr in _STATE_ATTRS}
            try:
                yield
            except BaseException:
                for attr, value in snapshot.items():
                    setattr(self, attr, value)
                logger.debug("Transaction rolled back")
                raise
            finally:
                self._tx_owner = None

    # ── Versions ────────────────────────────────────────

    async def get_version(self, tenant_id: str) -> Optional[int]:
        tenant = self._tenants.get(tenant_id)
        return tenant.rbac_version if tenant else None

    async def increment_version(self, tenant_id: str) -> int:
        tenant = self._tenants.get(tenant_id)
        if tenant is None:
            raise NotFoundError("Tenant not found", tenant_id=tenant_id)
        tenant.rbac_version += 1
        return tenant.rbac_version

    # ── Helpers ─────────────────────────────────────────

    @staticmethod
    def _scoped(entity, tenant_id: str):
        if entity is None or entity.tenant_id != tenant_id:
            return None
        return entity

    @staticmethod
    def _ensure_unique(existing: Iterable, tenant_id: str, attr: str, value: str, label: str) -> None:
        for item in existing:
            if item.tenant_id == tenant_id and getattr(item, attr) == value:
                raise ConflictError(
                    f"{label} {attr} already exists for this tenant",
                    tenant_id=tenant_id,
                    field=attr,
                    value=value,
                )

    # ── Entities ────────────────────────────────────────

    async def create_tenant(self, tenant: Tenant) -> Tenant:
        if tenant.id in self._tenants:
            raise ConflictError("Tenant already exists", tenant_id=tenant.id)
        self._tenants[tenant.id] = tenant
        return tenant

    async def get_tenant(self, tenant_id: str) -> Optional[Tenant]:
        return self._tenants.get(tenant_id)

    async def create_user(self, user: User) -> User:
        self._ensure_unique(self._users.values(), user.tenant_id, "username", user.username, "User")
        self._users[user.id] = user
        return user

    async def get_user(self, tenant_id: str, user_id: str) -> Optional[User]:
        return self._scoped(self._users.get(user_id), tenant_id)

    async def list_users(self, tenant_id: str) -> list[User]:
        return [u for u in self._users.values() if u.tenant_id == tenant_id]

    async def create_group(self, group: Group) -> Group:
        self._ensure_unique(self._groups.values(), group.tenant_id, "name", group.name, "Group")
        self._groups[group.id] = group
        return group

    async def get_group(self, tenant_id: str, group_id: str) -> Optional[Group]:
        return self._scoped(self._groups.get(group_id), tenant_id)

    async def list_groups(self, tenant_id: str) -> list[Group]:
        return [g for g in self._groups.values() if g.tenant_id == tenant_id]

    async def create_role(self, role: Role) -> Role:
        self._ensure_unique(self._roles.values(), role.tenant_id, "name", role.name, "Role")
        self._roles[role.id] = role
        return role

    async def get_role(self, tenant_id: str, role_id: str) -> Optional[Role]:
        return self._scoped(self._roles.get(role_id), tenant_id)

    async def list_roles(self, tenant_id: str) -> list[Role]:
        return [r for r in self._roles.values() if r.tenant_id == tenant_id]

    async def create_permission(self, permission: Permission) -> Permission:
        self._ensure_unique(self._permissions.values(), permission.tenant_id, "key", permission.key, "Permission")
        self._permissions[permission.id] = permission
        return permission

    async def get_permission(self, tenant_id: str, permission_id: str) -> Optional[Permission]:
        return self._scoped(self._permissions.get(permission_id), tenant_id)

    async def find_permission_by_key(self, tenant_id: str, key: str) -> Optional[Permission]:
        for p in self._permissions.values():
            if p.tenant_id == tenant_id and p.key == key:
                return p
        return None

    async def list_permissions(self, tenant_id: str) -> list[Permission]:
        return [p for p in self._permissions.values() if p.tenant_id == tenant_id]

    async def create_menu_group(self, menu_group: MenuGroup) -> MenuGroup:
        self._ensure_unique(self._menu_groups.values(), menu_group.tenant_id, "code", menu_group.code, "MenuGroup")
        self._menu_groups[menu_group.id] = menu_group
        return menu_group

    async def get_menu_group(self, tenant_id: str, menu_group_id: str) -> Optional[MenuGroup]:
        return self._scoped(self._menu_groups.get(menu_group_id), tenant_id)

    async def list_menu_groups(
        self,
        tenant_id: str,
        ids: Optional[Iterable[str]] = None,
    ) -> list[MenuGroup]:
        wanted = set(ids) if ids is not None else None
        return [
            mg
            for mg in self._menu_groups.values()
            if mg.tenant_id == tenant_id and (wanted is None or mg.id in wanted)
        ]

    async def create_menu_function(self, menu_function: MenuFunction) -> MenuFunction:
        self._ensure_unique(
            self._menu_functions.values(), menu_function.tenant_id, "code", menu_function.code, "MenuFunction"
        )
        self._menu_functions[menu_function.id] = menu_function
        return menu_function

    async def get_menu_function(self, tenant_id: str, menu_function_id: str) -> Optional[MenuFunction]:
        return self._scoped(self._menu_functions.get(menu_function_id), tenant_id)

    async def list_menu_functions(self, tenant_id: str) -> list[MenuFunction]:
        return [f for f in self._menu_functions.values() if f.tenant_id == tenant_id]

    # ── Set-membership queries ──────────────────────────

    async def group_ids_for_user(self, user_id: str) -> list[str]:
        return [g for (u, g) in self._user_groups if u == user_id]

    async def role_ids_for_groups(self, group_ids: Sequence[str]) -> list[str]:
        wanted = set(group_ids)
        return [r for (g, r) in self._group_roles if g in wanted]

    async def group_ids_for_role(self, role_id: str) -> list[str]:
        return [g for (g, r) in self._group_roles if r == role_id]

    async def permissions_for_roles(self, role_ids: Sequence[str]) -> list[Permission]:
        wanted = set(role_ids)
        return [
            self._permissions[p]
            for (r, p) in self._role_permissions
            if r in wanted and p in self._permissions
        ]

    async def permission_ids_for_role(self, role_id: str) -> list[str]:
        return [p for (r, p) in self._role_permissions if r == role_id]

    async def menu_group_ids_for_roles(self, role_ids: Sequence[str]) -> list[str]:
        wanted = set(role_ids)
        return [mg for (r, mg) in self._role_menu_groups if r in wanted]

    async def role_ids_for_menu_group(self, menu_group_id: str) -> list[str]:
        return [r for (r, mg) in self._role_menu_groups if mg == menu_group_id]

    async def functions_for_menu_groups(
        self,
        menu_group_ids: Sequence[str],
    ) -> list[tuple[MenuGroupFunction, MenuFunction]]:
        wanted = set(menu_group_ids)
        out: list[tuple[MenuGroupFunction, MenuFunction]] = []
        for (mg, fn), sequence in self._menu_group_functions.items():
            if mg in wanted and fn in self._menu_functions:
                link = MenuGroupFunction(menu_group_id=mg, menu_function_id=fn, sequence=sequence)
                out.append((link, self._menu_functions[fn]))
        return out

    async def list_role_menu_groups(self, tenant_id: str) -> list[RoleMenuGroup]:
        return [
            RoleMenuGroup(role_id=r, menu_group_id=mg)
            for (r, mg) in self._role_menu_groups
            if r in self._roles and self._roles[r].tenant_id == tenant_id
        ]

    # ── Link writes ─────────────────────────────────────

    async def add_user_group(self, user_id: str, group_id: str) -> UserGroup:
        self._user_groups.add((user_id, group_id))
        return UserGroup(user_id=user_id, group_id=group_id)

    async def remove_user_group(self, user_id: str, group_id: str) -> bool:
        return self._discard(self._user_groups, (user_id, group_id))

    async def add_group_role(self, group_id: str, role_id: str) -> GroupRole:
        self._group_roles.add((group_id, role_id))
        return GroupRole(group_id=group_id, role_id=role_id)

    async def remove_group_role(self, group_id: str, role_id: str) -> bool:
        return self._discard(self._group_roles, (group_id, role_id))

    async def add_role_permission(self, role_id: str, permission_id: str) -> RolePermission:
        self._role_permissions.add((role_id, permission_id))
        return RolePermission(role_id=role_id, permission_id=permission_id)

    async def remove_role_permission(self, role_id: str, permission_id: str) -> bool:
        return self._discard(self._role_permissions, (role_id, permission_id))

    async def add_role_menu_group(self, role_id: str, menu_group_id: str) -> RoleMenuGroup:
        self._role_menu_groups.add((role_id, menu_group_id))
        return RoleMenuGroup(role_id=role_id, menu_group_id=menu_group_id)

    async def remove_role_menu_group(self, role_id: str, menu_group_id: str) -> bool:
        return self._discard(self._role_menu_groups, (role_id, menu_group_id))

    async def upsert_menu_group_function(
        self,
        menu_group_id: str,
        menu_function_id: str,
        sequence: Optional[int] = None,
    ) -> MenuGroupFunction:
        self._menu_group_functions[(menu_group_id, menu_function_id)] = sequence
        return MenuGroupFunction(
            menu_group_id=menu_group_id,
            menu_function_id=menu_function_id,
            sequence=sequence,
        )

    async def remove_menu_group_function(self, menu_group_id: str, menu_function_id: str) -> bool:
        return self._menu_group_functions.pop((menu_group_id, menu_function_id), _MISSING) is not _MISSING

    @staticmethod
    def _discard(links: set[tuple[str, str]], key: tuple[str, str]) -> bool:
        if key in links:
            links.discard(key)
            return True
        return False


_MISSING = object()


__all__ = [
    "InMemoryGraphStore",
]
