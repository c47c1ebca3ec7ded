"""Menu visibility filter.

Renders a tenant's menu-group/menu-function tree for one user:

1. Pick the candidate groups. Superadmins (wildcard holders) get every
   tenant group without walking the role graph; everyone else gets the
   groups linked to a role they hold.
2. Load each group's functions and keep those passing :func:`has_perm`.
3. Drop groups left with no items.
4. Order groups by ``(sequence, name)`` and items by ``sequence``; a
   missing sequence sorts last.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Iterable, Optional

from .models import MenuFunction, MenuGroup, MenuGroupFunction, MenuItem, MenuSection
from .permissions import has_perm, is_superadmin
from .resolver import PermissionResolver
from .store.base import GraphStore

logger = logging.getLogger(__name__)


def _sequence_key(sequence: Optional[int]) -> tuple[int, int]:
    return (1, 0) if sequence is None else (0, sequence)


def _group_order(group: MenuGroup) -> tuple:
    return (_sequence_key(group.sequence), group.name)


def _to_item(link: MenuGroupFunction, fn: MenuFunction) -> MenuItem:
    return MenuItem(
        id=fn.id,
        code=fn.code,
        name=fn.name,
        type=fn.type,
        path=fn.path,
        sequence=link.sequence,
        required_permission_key=fn.required_permission_key,
    )


class MenuVisibilityFilter:
    """Filter a tenant's menu tree down to what a permission set may see."""

    def __init__(self, store: GraphStore, resolver: PermissionResolver) -> None:
        self._store = store
        self._resolver = resolver

    async def _candidate_groups(self, tenant_id: str, user_id: str, superadmin: bool) -> list[MenuGroup]:
        if superadmin:
            return await self._store.list_menu_groups(tenant_id)

        group_ids = await self._resolver.menu_group_ids_for_user(user_id)
        if not group_ids:
            return []
        return await self._store.list_menu_groups(tenant_id, group_ids)

    async def menu_for_user(
        self,
        tenant_id: str,
        user_id: str,
        permissions: Iterable[str],
    ) -> list[MenuSection]:
        """Ordered, permission-filtered menu sections for a user."""
        perm_set = frozenset(permissions or ())
        superadmin = is_superadmin(perm_set)

        groups = await self._candidate_groups(tenant_id, user_id, superadmin)
        if not groups:
            return []

        by_group: dict[str, list[MenuItem]] = defaultdict(list)
        for link, fn in await self._store.functions_for_menu_groups([g.id for g in groups]):
            if fn.tenant_id != tenant_id:
                continue
            if has_perm(perm_set, fn.required_permission_key):
                by_group[link.menu_group_id].append(_to_item(link, fn))

        sections: list[MenuSection] = []
        for group in sorted(groups, key=_group_order):
            items = by_group.get(group.id)
            if not items:
                continue
            items.sort(key=lambda it: _sequence_key(it.sequence))
            sections.append(
                MenuSection(
                    id=group.id,
                    code=group.code,
                    name=group.name,
                    icon=group.icon,
                    sequence=group.sequence,
                    items=items,
                )
            )

        logger.debug(
            "Menu for user %s: %d sections (superadmin=%s)",
            user_id,
            len(sections),
            superadmin,
            extra={"tenant_id": tenant_id},
        )
        return sections


__all__ = [
    "MenuVisibilityFilter",
]
