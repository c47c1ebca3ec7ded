"""Administrative writes to the User/Group/Role/Permission graph."""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Sequence

from ..exceptions import NotFoundError
from ..models import Group, GroupRole, Permission, Role, RolePermission, Tenant, User, UserGroup
from ..permissions import Permissions
from .base import AdminBase

logger = logging.getLogger(__name__)


def _dedupe(ids: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(ids))


class GraphAdmin(AdminBase):
    """Create entities and attach/detach/set their links.

    Every method that writes the graph ends with a version bump for the
    tenant, so cached sessions recompute on their next check.
    """

    # ── Tenants ─────────────────────────────────────────

    async def create_tenant(self, name: str, tenant_id: Optional[str] = None) -> Tenant:
        tenant = Tenant(name=name) if tenant_id is None else Tenant(id=tenant_id, name=name)
        async with self._store.transaction():
            tenant = await self._store.create_tenant(tenant)
        logger.info("Tenant created: %s", tenant.name, extra={"tenant_id": tenant.id})
        return tenant

    async def bootstrap_tenant(
        self,
        name: str,
        admin_username: str = "admin",
        *,
        tenant_id: Optional[str] = None,
        admin_email: Optional[str] = None,
    ) -> tuple[Tenant, User]:
        """Create a tenant with default permissions and a superadmin user.

        The superadmin role holds ``"*"``; the superadmin group holds that
        role; the admin user is a member of the group.
        """
        tenant = Tenant(name=name) if tenant_id is None else Tenant(id=tenant_id, name=name)
        async with self._store.transaction():
            tenant = await self._store.create_tenant(tenant)
            wildcard = None
            for key in Permissions.DEFAULTS:
                permission = await self._store.create_permission(Permission(tenant_id=tenant.id, key=key))
                if key == Permissions.WILDCARD:
                    wildcard = permission

            role = await self._store.create_role(Role(tenant_id=tenant.id, name=self._config.superadmin_role))
            group = await self._store.create_group(Group(tenant_id=tenant.id, name=self._config.superadmin_group))
            admin = await self._store.create_user(
                User(tenant_id=tenant.id, username=admin_username, email=admin_email)
            )

            await self._store.add_group_role(group.id, role.id)
            await self._store.add_role_permission(role.id, wildcard.id)
            await self._store.add_user_group(admin.id, group.id)

        await self._bump(tenant.id)
        logger.info("Tenant bootstrapped: %s (admin=%s)", tenant.name, admin_username, extra={"tenant_id": tenant.id})
        return tenant, admin

    # ── Entities ────────────────────────────────────────

    async def create_user(
        self,
        tenant_id: str,
        username: str,
        *,
        email: Optional[str] = None,
        group_ids: Sequence[str] = (),
    ) -> User:
        async with self._store.transaction():
            await self._require_tenant(tenant_id)
            groups = _dedupe(group_ids)
            for group_id in groups:
                await self._require_group(tenant_id, group_id)
            user = await self._store.create_user(User(tenant_id=tenant_id, username=username, email=email))
            for group_id in groups:
                await self._store.add_user_group(user.id, group_id)
        await self._bump(tenant_id)
        logger.info("User created: %s", username, extra={"tenant_id": tenant_id})
        return user

    async def create_group(self, tenant_id: str, name: str) -> Group:
        async with self._store.transaction():
            await self._require_tenant(tenant_id)
            group = await self._store.create_group(Group(tenant_id=tenant_id, name=name))
        await self._bump(tenant_id)
        logger.info("Group created: %s", name, extra={"tenant_id": tenant_id})
        return group

    async def create_role(self, tenant_id: str, name: str) -> Role:
        async with self._store.transaction():
            await self._require_tenant(tenant_id)
            role = await self._store.create_role(Role(tenant_id=tenant_id, name=name))
        await self._bump(tenant_id)
        logger.info("Role created: %s", name, extra={"tenant_id": tenant_id})
        return role

    async def create_permission(self, tenant_id: str, key: str, description: Optional[str] = None) -> Permission:
        async with self._store.transaction():
            await self._require_tenant(tenant_id)
            permission = await self._store.create_permission(
                Permission(tenant_id=tenant_id, key=key, description=description)
            )
        await self._bump(tenant_id)
        logger.info("Permission created: %s", key, extra={"tenant_id": tenant_id})
        return permission

    # ── User ↔ Group ────────────────────────────────────

    async def attach_user_to_group(self, tenant_id: str, user_id: str, group_id: str) -> UserGroup:
        async with self._store.transaction():
            await self._require_user(tenant_id, user_id)
            await self._require_group(tenant_id, group_id)
            link = await self._store.add_user_group(user_id, group_id)
        await self._bump(tenant_id)
        logger.info("User %s attached to group %s", user_id, group_id, extra={"tenant_id": tenant_id})
        return link

    async def detach_user_from_group(self, tenant_id: str, user_id: str, group_id: str) -> None:
        async with self._store.transaction():
            await self._require_user(tenant_id, user_id)
            await self._require_group(tenant_id, group_id)
            if not await self._store.remove_user_group(user_id, group_id):
                raise NotFoundError("UserGroup link not found", user_id=user_id, group_id=group_id)
        await self._bump(tenant_id)
        logger.info("User %s detached from group %s", user_id, group_id, extra={"tenant_id": tenant_id})

    async def set_user_groups(self, tenant_id: str, user_id: str, group_ids: Iterable[str]) -> list[UserGroup]:
        """Replace the user's full group list (diff-applied in one transaction)."""
        desired = _dedupe(group_ids)
        async with self._store.transaction():
            await self._require_user(tenant_id, user_id)
            for group_id in desired:
                await self._require_group(tenant_id, group_id)

            current = set(await self._store.group_ids_for_user(user_id))
            to_remove = current.difference(desired)
            to_add = [g for g in desired if g not in current]
            for group_id in to_remove:
                await self._store.remove_user_group(user_id, group_id)
            for group_id in to_add:
                await self._store.add_user_group(user_id, group_id)

        await self._bump_after_set(tenant_id, bool(to_add or to_remove))
        logger.info(
            "User %s groups set (+%d/-%d)", user_id, len(to_add), len(to_remove), extra={"tenant_id": tenant_id}
        )
        return [UserGroup(user_id=user_id, group_id=g) for g in desired]

    # ── Group ↔ Role ────────────────────────────────────

    async def attach_role_to_group(self, tenant_id: str, group_id: str, role_id: str) -> GroupRole:
        async with self._store.transaction():
            await self._require_group(tenant_id, group_id)
            await self._require_role(tenant_id, role_id)
            link = await self._store.add_group_role(group_id, role_id)
        await self._bump(tenant_id)
        logger.info("Role %s attached to group %s", role_id, group_id, extra={"tenant_id": tenant_id})
        return link

    async def detach_role_from_group(self, tenant_id: str, group_id: str, role_id: str) -> None:
        async with self._store.transaction():
            await self._require_group(tenant_id, group_id)
            await self._require_role(tenant_id, role_id)
            if not await self._store.remove_group_role(group_id, role_id):
                raise NotFoundError("GroupRole link not found", group_id=group_id, role_id=role_id)
        await self._bump(tenant_id)
        logger.info("Role %s detached from group %s", role_id, group_id, extra={"tenant_id": tenant_id})

    async def set_role_groups(self, tenant_id: str, role_id: str, group_ids: Iterable[str]) -> list[GroupRole]:
        """Replace the full list of groups holding a role."""
        desired = _dedupe(group_ids)
        async with self._store.transaction():
            await self._require_role(tenant_id, role_id)
            for group_id in desired:
                await self._require_group(tenant_id, group_id)

            current = set(await self._store.group_ids_for_role(role_id))
            to_remove = current.difference(desired)
            to_add = [g for g in desired if g not in current]
            for group_id in to_remove:
                await self._store.remove_group_role(group_id, role_id)
            for group_id in to_add:
                await self._store.add_group_role(group_id, role_id)

        await self._bump_after_set(tenant_id, bool(to_add or to_remove))
        logger.info(
            "Role %s groups set (+%d/-%d)", role_id, len(to_add), len(to_remove), extra={"tenant_id": tenant_id}
        )
        return [GroupRole(group_id=g, role_id=role_id) for g in desired]

    # ── Role ↔ Permission ───────────────────────────────

    async def attach_permission_to_role(self, tenant_id: str, role_id: str, permission_id: str) -> RolePermission:
        async with self._store.transaction():
            await self._require_role(tenant_id, role_id)
            await self._require_permission(tenant_id, permission_id)
            link = await self._store.add_role_permission(role_id, permission_id)
        await self._bump(tenant_id)
        logger.info("Permission %s attached to role %s", permission_id, role_id, extra={"tenant_id": tenant_id})
        return link

    async def detach_permission_from_role(self, tenant_id: str, role_id: str, permission_id: str) -> None:
        async with self._store.transaction():
            await self._require_role(tenant_id, role_id)
            await self._require_permission(tenant_id, permission_id)
            if not await self._store.remove_role_permission(role_id, permission_id):
                raise NotFoundError("RolePermission link not found", role_id=role_id, permission_id=permission_id)
        await self._bump(tenant_id)
        logger.info("Permission %s detached from role %s", permission_id, role_id, extra={"tenant_id": tenant_id})

    async def set_role_permissions(
        self,
        tenant_id: str,
        role_id: str,
        permission_ids: Iterable[str],
    ) -> list[RolePermission]:
        """Replace the role's full permission list."""
        desired = _dedupe(permission_ids)
        async with self._store.transaction():
            await self._require_role(tenant_id, role_id)
            for permission_id in desired:
                await self._require_permission(tenant_id, permission_id)

            current = set(await self._store.permission_ids_for_role(role_id))
            to_remove = current.difference(desired)
            to_add = [p for p in desired if p not in current]
            for permission_id in to_remove:
                await self._store.remove_role_permission(role_id, permission_id)
            for permission_id in to_add:
                await self._store.add_role_permission(role_id, permission_id)

        await self._bump_after_set(tenant_id, bool(to_add or to_remove))
        logger.info(
            "Role %s permissions set (+%d/-%d)", role_id, len(to_add), len(to_remove), extra={"tenant_id": tenant_id}
        )
        return [RolePermission(role_id=role_id, permission_id=p) for p in desired]

    # ── Listings ────────────────────────────────────────

    async def list_users(self, tenant_id: str) -> list[User]:
        return sorted(await self._store.list_users(tenant_id), key=lambda u: u.created_at, reverse=True)

    async def list_groups(self, tenant_id: str) -> list[Group]:
        return sorted(await self._store.list_groups(tenant_id), key=lambda g: g.name)

    async def list_roles(self, tenant_id: str) -> list[Role]:
        return sorted(await self._store.list_roles(tenant_id), key=lambda r: r.name)

    async def list_permissions(self, tenant_id: str) -> list[Permission]:
        return sorted(await self._store.list_permissions(tenant_id), key=lambda p: p.key)


__all__ = [
    "GraphAdmin",
]
