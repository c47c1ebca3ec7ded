"""Access-check helpers over resolved permission sets.

These are the only places that give the wildcard key its meaning: the
resolver never expands it.
"""

from __future__ import annotations

from typing import Iterable, Optional

from .constants import Permissions


def is_superadmin(permissions: Iterable[str] | None) -> bool:
    """True if the set holds the tenant-wide wildcard."""
    return bool(permissions) and Permissions.WILDCARD in permissions


def has_perm(permissions: Iterable[str] | None, key: Optional[str]) -> bool:
    """Check a single menu/function requirement.

    A missing key means the item is unconditionally visible. Otherwise the
    set must hold the wildcard or the exact key.

    Example::

        has_perm({"claims.view"}, None)            # True
        has_perm({"claims.view"}, "claims.view")   # True
        has_perm({"*"}, "claims.approve")          # True
        has_perm(set(), "claims.view")             # False
    """
    if not key:
        return True
    if not permissions:
        return False
    perm_set = permissions if isinstance(permissions, (set, frozenset)) else set(permissions)
    return Permissions.WILDCARD in perm_set or key in perm_set


def has_all_permissions(permissions: Iterable[str] | None, required: Iterable[str]) -> bool:
    """All-of check with a global wildcard bypass.

    The wildcard is checked once, independent of which keys were required.
    An empty requirement is always satisfied.
    """
    required = list(required)
    if not required:
        return True
    perm_set = set(permissions or ())
    if Permissions.WILDCARD in perm_set:
        return True
    return all(key in perm_set for key in required)


__all__ = [
    "has_all_permissions",
    "has_perm",
    "is_superadmin",
]
