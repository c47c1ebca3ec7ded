"""Per-session permission cache.

The session layer (an external collaborator) supplies a mutable key-value
bag per authenticated session. This module owns the keys the engine
stores in it and nothing else; persisting the bag is the session layer's
job. Permission sets are stored as sorted lists so the bag stays
JSON-serialisable.
"""

from __future__ import annotations

from collections.abc import MutableMapping
from typing import Any, Iterable, Optional

# Keys written by the session/credential layer
USER_ID_KEY = "user_id"
TENANT_ID_KEY = "tenant_id"

# Keys owned by the engine
PERMISSIONS_KEY = "permissions"
VERSION_KEY = "perms_version"


class SessionPermissionCache:
    """View over a session bag holding ``{permissions, perms_version}``."""

    __slots__ = ("_session",)

    def __init__(self, session: MutableMapping[str, Any]) -> None:
        self._session = session

    @property
    def user_id(self) -> Optional[str]:
        return self._session.get(USER_ID_KEY) or None

    @property
    def tenant_id(self) -> Optional[str]:
        return self._session.get(TENANT_ID_KEY) or None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.user_id and self.tenant_id)

    @property
    def permissions(self) -> Optional[frozenset[str]]:
        raw = self._session.get(PERMISSIONS_KEY)
        if raw is None:
            return None
        return frozenset(raw)

    @property
    def cached_version(self) -> Optional[int]:
        return self._session.get(VERSION_KEY)

    def is_fresh(self, current_version: int) -> bool:
        """True if a set is cached and was computed at ``current_version``."""
        return self.permissions is not None and self.cached_version == current_version

    def store(self, permissions: Iterable[str], version: int) -> None:
        self._session[PERMISSIONS_KEY] = sorted(set(permissions))
        self._session[VERSION_KEY] = version

    def clear(self) -> None:
        self._session.pop(PERMISSIONS_KEY, None)
        self._session.pop(VERSION_KEY, None)

    def __repr__(self) -> str:
        return (
            f"SessionPermissionCache(user_id={self.user_id!r}, tenant_id={self.tenant_id!r}, "
            f"cached_version={self.cached_version!r})"
        )


__all__ = [
    "PERMISSIONS_KEY",
    "SessionPermissionCache",
    "TENANT_ID_KEY",
    "USER_ID_KEY",
    "VERSION_KEY",
]
