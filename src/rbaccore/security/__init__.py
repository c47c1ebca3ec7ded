"""Transport integration for the authorization engine.

Usage::

    from rbaccore.security import SessionPermissionInterceptor

    server = grpc.aio.server(
        interceptors=[SessionPermissionInterceptor(RPC_MAP, load_session, engine)]
    )
"""

from __future__ import annotations

from .interceptors import (
    SessionLoader,
    SessionPermissionInterceptor,
    _extract_rpc_name,
    _should_skip,
)

__all__ = [
    "SessionLoader",
    "SessionPermissionInterceptor",
    "_extract_rpc_name",
    "_should_skip",
]
