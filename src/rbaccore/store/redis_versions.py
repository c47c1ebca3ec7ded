"""Tenant version counters kept in Redis.

Used when the graph store cannot increment atomically itself, or when
several services share one role graph and want a cheap version read.
Each tenant gets one integer key ``{prefix}:{tenant_id}``.

The first bump seeds the key with ``1`` (``SET NX``) before ``INCR`` in
one MULTI block, so a fresh tenant moves from the implicit default ``1``
to ``2`` and never back to a value a session may already hold.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from ..exceptions import StorageError
from .base import VersionStore

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "rbac:tenant-version"


class RedisVersionStore(VersionStore):
    """:class:`VersionStore` over ``redis.asyncio``.

    Args:
        client: A ``redis.asyncio.Redis`` client created with
            ``decode_responses=True``.
        prefix: Key prefix for version counters.
    """

    def __init__(self, client: Any, *, prefix: str = DEFAULT_PREFIX) -> None:
        self._redis = client
        self._prefix = prefix

    @classmethod
    def from_url(cls, url: str, *, prefix: str = DEFAULT_PREFIX) -> RedisVersionStore:
        import redis.asyncio as aioredis

        return cls(aioredis.from_url(url, decode_responses=True), prefix=prefix)

    def _key(self, tenant_id: str) -> str:
        return f"{self._prefix}:{tenant_id}"

    async def get_version(self, tenant_id: str) -> Optional[int]:
        raw = await self._redis.get(self._key(tenant_id))
        if raw is None:
            return None
        try:
            return int(raw)
        except (TypeError, ValueError) as exc:
            raise StorageError("Corrupt tenant version value", tenant_id=tenant_id, value=raw) from exc

    async def increment_version(self, tenant_id: str) -> int:
        key = self._key(tenant_id)
        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.set(key, 1, nx=True)
            pipe.incr(key)
            _, version = await pipe.execute()
        logger.debug("Redis version bump: %s -> %s", key, version)
        return int(version)

    async def aclose(self) -> None:
        await self._redis.aclose()


__all__ = [
    "DEFAULT_PREFIX",
    "RedisVersionStore",
]
