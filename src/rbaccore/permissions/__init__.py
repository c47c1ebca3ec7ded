"""Permission keys and the access checks that interpret them.

Defines:
- Permissions: wildcard, default keys and the ``domain.action`` builder
- has_perm(): single-key check used by menu filtering
- has_all_permissions(): all-of check used by the authorization gate
- is_superadmin(): wildcard detection
"""

from .access import has_all_permissions, has_perm, is_superadmin
from .constants import Permissions

__all__ = [
    "Permissions",
    "has_all_permissions",
    "has_perm",
    "is_superadmin",
]
