"""Storage interfaces consumed by the engine.

The persistence engine is an external collaborator. The engine only needs
the relations below and an atomic per-tenant version increment; anything
that implements :class:`GraphStore` (SQL, document store, the bundled
in-memory store) can back it.

Tenant scoping rules every implementation must honour:
- ``get_*`` lookups take the tenant id and return ``None`` for an entity
  that exists under another tenant.
- ``create_*`` raises :class:`~rbaccore.exceptions.ConflictError` on a
  duplicate per-tenant name/key/username/code.
- ``add_*`` link writes are idempotent and return the link row.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import AsyncContextManager, Iterable, Optional, Sequence

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


class VersionStore(ABC):
    """Holds one monotonically increasing counter per tenant."""

    @abstractmethod
    async def get_version(self, tenant_id: str) -> Optional[int]:
        """Return the recorded version, or None if nothing is recorded."""

    @abstractmethod
    async def increment_version(self, tenant_id: str) -> int:
        """Atomically increment and return the new version."""


class GraphStore(VersionStore):
    """Tenant role graph: entities, links and set-membership queries."""

    # ── Transactions ────────────────────────────────────

    @abstractmethod
    def transaction(self) -> AsyncContextManager[None]:
        """Group writes into one logical transaction.

        Readers must never observe a partially applied transaction; an
        exception inside the block rolls every write back.
        """

    # ── Entities ────────────────────────────────────────

    @abstractmethod
    async def create_tenant(self, tenant: Tenant) -> Tenant: ...

    @abstractmethod
    async def get_tenant(self, tenant_id: str) -> Optional[Tenant]: ...

    @abstractmethod
    async def create_user(self, user: User) -> User: ...

    @abstractmethod
    async def get_user(self, tenant_id: str, user_id: str) -> Optional[User]: ...

    @abstractmethod
    async def list_users(self, tenant_id: str) -> list[User]: ...

    @abstractmethod
    async def create_group(self, group: Group) -> Group: ...

    @abstractmethod
    async def get_group(self, tenant_id: str, group_id: str) -> Optional[Group]: ...

    @abstractmethod
    async def list_groups(self, tenant_id: str) -> list[Group]: ...

    @abstractmethod
    async def create_role(self, role: Role) -> Role: ...

    @abstractmethod
    async def get_role(self, tenant_id: str, role_id: str) -> Optional[Role]: ...

    @abstractmethod
    async def list_roles(self, tenant_id: str) -> list[Role]: ...

    @abstractmethod
    async def create_permission(self, permission: Permission) -> Permission: ...

    @abstractmethod
    async def get_permission(self, tenant_id: str, permission_id: str) -> Optional[Permission]: ...

    @abstractmethod
    async def find_permission_by_key(self, tenant_id: str, key: str) -> Optional[Permission]: ...

    @abstractmethod
    async def list_permissions(self, tenant_id: str) -> list[Permission]: ...

    @abstractmethod
    async def create_menu_group(self, menu_group: MenuGroup) -> MenuGroup: ...

    @abstractmethod
    async def get_menu_group(self, tenant_id: str, menu_group_id: str) -> Optional[MenuGroup]: ...

    @abstractmethod
    async def list_menu_groups(
        self,
        tenant_id: str,
        ids: Optional[Iterable[str]] = None,
    ) -> list[MenuGroup]:
        """Tenant menu groups, optionally restricted to ``ids``. Order is unspecified."""

    @abstractmethod
    async def create_menu_function(self, menu_function: MenuFunction) -> MenuFunction: ...

    @abstractmethod
    async def get_menu_function(self, tenant_id: str, menu_function_id: str) -> Optional[MenuFunction]: ...

    @abstractmethod
    async def list_menu_functions(self, tenant_id: str) -> list[MenuFunction]: ...

    # ── Set-membership queries ──────────────────────────

    @abstractmethod
    async def group_ids_for_user(self, user_id: str) -> list[str]: ...

    @abstractmethod
    async def role_ids_for_groups(self, group_ids: Sequence[str]) -> list[str]: ...

    @abstractmethod
    async def group_ids_for_role(self, role_id: str) -> list[str]: ...

    @abstractmethod
    async def permissions_for_roles(self, role_ids: Sequence[str]) -> list[Permission]:
        """Permission rows granted to any of ``role_ids`` (may repeat)."""

    @abstractmethod
    async def permission_ids_for_role(self, role_id: str) -> list[str]: ...

    @abstractmethod
    async def menu_group_ids_for_roles(self, role_ids: Sequence[str]) -> list[str]: ...

    @abstractmethod
    async def role_ids_for_menu_group(self, menu_group_id: str) -> list[str]: ...

    @abstractmethod
    async def functions_for_menu_groups(
        self,
        menu_group_ids: Sequence[str],
    ) -> list[tuple[MenuGroupFunction, MenuFunction]]:
        """Group↔function links with their function rows. Order is unspecified."""

    @abstractmethod
    async def list_role_menu_groups(self, tenant_id: str) -> list[RoleMenuGroup]: ...

    # ── Link writes ─────────────────────────────────────

    @abstractmethod
    async def add_user_group(self, user_id: str, group_id: str) -> UserGroup: ...

    @abstractmethod
    async def remove_user_group(self, user_id: str, group_id: str) -> bool:
        """Return False when the link did not exist."""

    @abstractmethod
    async def add_group_role(self, group_id: str, role_id: str) -> GroupRole: ...

    @abstractmethod
    async def remove_group_role(self, group_id: str, role_id: str) -> bool: ...

    @abstractmethod
    async def add_role_permission(self, role_id: str, permission_id: str) -> RolePermission: ...

    @abstractmethod
    async def remove_role_permission(self, role_id: str, permission_id: str) -> bool: ...

    @abstractmethod
    async def add_role_menu_group(self, role_id: str, menu_group_id: str) -> RoleMenuGroup: ...

    @abstractmethod
    async def remove_role_menu_group(self, role_id: str, menu_group_id: str) -> bool: ...

    @abstractmethod
    async def upsert_menu_group_function(
        self,
        menu_group_id: str,
        menu_function_id: str,
        sequence: Optional[int] = None,
    ) -> MenuGroupFunction: ...

    @abstractmethod
    async def remove_menu_group_function(self, menu_group_id: str, menu_function_id: str) -> bool: ...


__all__ = [
    "GraphStore",
    "VersionStore",
]
