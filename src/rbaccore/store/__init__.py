"""Storage backends for the role graph and tenant version counters.

- ``GraphStore`` / ``VersionStore`` — interfaces the engine consumes.
- ``InMemoryGraphStore`` — in-process implementation of both.
- ``RedisVersionStore`` — version counters on Redis ``INCR``.
"""

from .base import GraphStore, VersionStore
from .memory import InMemoryGraphStore
from .redis_versions import RedisVersionStore

__all__ = [
    "GraphStore",
    "InMemoryGraphStore",
    "RedisVersionStore",
    "VersionStore",
]
