"""Tenant version counter: the sole cache-coherence signal.

Every administrative mutation ends with :meth:`TenantVersionCounter.bump_version`
for the owning tenant. Session caches compare their stored version with
:meth:`TenantVersionCounter.current_version` and recompute on any
difference; no particular numeric value is ever expected.
"""

from __future__ import annotations

import logging

from .exceptions import VersionBumpFailedError
from .store.base import VersionStore

logger = logging.getLogger(__name__)

# A tenant with no recorded version reads as 1, never 0
DEFAULT_VERSION = 1


class TenantVersionCounter:
    """Read and bump per-tenant ``rbac_version`` values.

    Args:
        store: Backend providing an atomic increment (the graph store
            itself, or :class:`~rbaccore.store.RedisVersionStore`).
    """

    def __init__(self, store: VersionStore) -> None:
        self._store = store

    async def current_version(self, tenant_id: str) -> int:
        """Current version, ``DEFAULT_VERSION`` if none is recorded."""
        version = await self._store.get_version(tenant_id)
        return version or DEFAULT_VERSION

    async def bump_version(self, tenant_id: str) -> None:
        """Atomically increment the tenant version.

        Called after the data write has committed. A failure here is
        reported as :class:`VersionBumpFailedError`: the write stands, but
        sessions cached before it may keep serving the old permission set.
        """
        try:
            version = await self._store.increment_version(tenant_id)
        except Exception as e:
            logger.error(
                "Version bump failed for tenant %s after committed write: %s",
                tenant_id,
                e,
                extra={"tenant_id": tenant_id},
            )
            raise VersionBumpFailedError(tenant_id=tenant_id) from e
        logger.debug("Tenant %s rbac_version -> %s", tenant_id, version)


__all__ = [
    "DEFAULT_VERSION",
    "TenantVersionCounter",
]
