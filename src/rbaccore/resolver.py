"""Permission resolver: User → Group → Role → Permission traversal.

The resolver is read-only. Its cost is bounded by the user's group/role
fan-out: each hop is one set-membership query over the previous hop's
ids, and an empty hop short-circuits the rest of the walk.

The same role walk feeds both permission resolution and menu-group
visibility, so the two never drift apart.
"""

from __future__ import annotations

import logging

from .store.base import GraphStore

logger = logging.getLogger(__name__)


def _distinct(ids: list[str]) -> list[str]:
    return list(dict.fromkeys(ids))


class PermissionResolver:
    """Compute effective permission sets and reachable menu groups."""

    def __init__(self, store: GraphStore) -> None:
        self._store = store

    async def role_ids_for_user(self, user_id: str) -> list[str]:
        """Distinct role ids reachable from the user through any group."""
        group_ids = _distinct(await self._store.group_ids_for_user(user_id))
        if not group_ids:
            return []
        return _distinct(await self._store.role_ids_for_groups(group_ids))

    async def compute_user_permissions(self, user_id: str, tenant_id: str) -> frozenset[str]:
        """Effective permission keys for ``(user_id, tenant_id)``.

        Permission rows from another tenant are dropped even though the
        mutation layer never links them. ``"*"`` is carried through as an
        ordinary key.
        """
        role_ids = await self.role_ids_for_user(user_id)
        if not role_ids:
            return frozenset()

        permissions = await self._store.permissions_for_roles(role_ids)
        keys = frozenset(p.key for p in permissions if p.tenant_id == tenant_id)

        dropped = sum(1 for p in permissions if p.tenant_id != tenant_id)
        if dropped:
            logger.warning(
                "Dropped %d cross-tenant permission rows while resolving user %s",
                dropped,
                user_id,
                extra={"tenant_id": tenant_id},
            )
        return keys

    async def menu_group_ids_for_user(self, user_id: str) -> list[str]:
        """Distinct menu-group ids linked to any role the user holds."""
        role_ids = await self.role_ids_for_user(user_id)
        if not role_ids:
            return []
        return _distinct(await self._store.menu_group_ids_for_roles(role_ids))


__all__ = [
    "PermissionResolver",
]
