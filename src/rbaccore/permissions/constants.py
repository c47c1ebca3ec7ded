"""Permission key constants.

Provides ``Permissions``: the reserved wildcard, the default keys created
by tenant bootstrap, and a builder for ``{domain}.{action}`` keys.
"""

from __future__ import annotations


class Permissions:
    """Well-known permission keys.

    Format: ``{domain}.{action}`` (e.g. ``"reports.view"``, ``"claims.approve"``).

    ``WILDCARD`` is reserved: a role granted the ``"*"`` permission row holds
    every permission of its tenant. The resolver carries it through
    unchanged; consumers check it explicitly.

    Example::

        Permissions.key("reports", "export")  → "reports.export"
    """

    WILDCARD = "*"

    # ── Administration ──────────────────────────────────
    RBAC_MANAGE = "rbac.manage"
    USERS_MANAGE = "users.manage"
    AUDIT_READ = "audit.read"

    # Created for every tenant by ``GraphAdmin.bootstrap_tenant``
    DEFAULTS = (WILDCARD, RBAC_MANAGE, USERS_MANAGE, AUDIT_READ)

    @staticmethod
    def key(domain: str, action: str) -> str:
        """Build a permission key from domain and action."""
        return f"{domain}.{action}"


__all__ = [
    "Permissions",
]
