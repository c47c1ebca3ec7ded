from .config import RbacConfig, LogLevel, load_config_from_env
from .engine import RbacEngine
from .gate import AccessDecision, AuthorizationGate, DenyReason
from .menu import MenuVisibilityFilter
from .resolver import PermissionResolver
from .session import SessionPermissionCache
from .versions import TenantVersionCounter
from .admin import GraphAdmin, MenuAdmin
from .permissions import Permissions, has_perm, has_all_permissions, is_superadmin
from .store import GraphStore, VersionStore, InMemoryGraphStore, RedisVersionStore
from .models import (
    AccessSummary,
    Group,
    GroupRole,
    MenuFunction,
    MenuGroup,
    MenuGroupFunction,
    MenuItem,
    MenuSection,
    Permission,
    Role,
    RoleMenuGroup,
    RolePermission,
    Tenant,
    User,
    UserGroup,
)
from .exceptions import (
    RbacError,
    ConfigurationError,
    UnauthenticatedError,
    InsufficientPermissionsError,
    NotFoundError,
    ConflictError,
    VersionBumpFailedError,
    StorageError,
)
from .logging import (
    safe_preview,
    redact_secrets,
    safe_log_value,
    RbacLogFormatter,
    RbacLoggerAdapter,
    setup_logging,
    get_rbac_logger,
)

__all__ = [
    'RbacConfig',
    'LogLevel',
    'load_config_from_env',
    'RbacEngine',
    'AccessDecision',
    'AuthorizationGate',
    'DenyReason',
    'MenuVisibilityFilter',
    'PermissionResolver',
    'SessionPermissionCache',
    'TenantVersionCounter',
    'GraphAdmin',
    'MenuAdmin',
    'Permissions',
    'has_perm',
    'has_all_permissions',
    'is_superadmin',
    'GraphStore',
    'VersionStore',
    'InMemoryGraphStore',
    'RedisVersionStore',
    'AccessSummary',
    'Group',
    'GroupRole',
    'MenuFunction',
    'MenuGroup',
    'MenuGroupFunction',
    'MenuItem',
    'MenuSection',
    'Permission',
    'Role',
    'RoleMenuGroup',
    'RolePermission',
    'Tenant',
    'User',
    'UserGroup',
    'RbacError',
    'ConfigurationError',
    'UnauthenticatedError',
    'InsufficientPermissionsError',
    'NotFoundError',
    'ConflictError',
    'VersionBumpFailedError',
    'StorageError',
    'safe_preview',
    'redact_secrets',
    'safe_log_value',
    'RbacLogFormatter',
    'RbacLoggerAdapter',
    'setup_logging',
    'get_rbac_logger',
]
