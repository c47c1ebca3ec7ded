"""Data models for the tenant role graph and the rendered menu.

These are Pydantic models shared by the graph store, the resolver and the
administrative operations. Every entity is tenant-scoped; link rows carry
only the two endpoint ids and inherit the tenant of their endpoints.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, Field


def _new_id() -> str:
    return str(uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ── Entities ────────────────────────────────────────────


class Tenant(BaseModel):
    """Isolation boundary. ``rbac_version`` is only ever incremented."""

    id: str = Field(default_factory=_new_id)
    name: str = ""
    rbac_version: int = Field(default=1, ge=1)


class User(BaseModel):
    id: str = Field(default_factory=_new_id)
    tenant_id: str
    username: str
    email: Optional[str] = None
    is_active: bool = True
    created_at: datetime = Field(default_factory=_now)


class Group(BaseModel):
    id: str = Field(default_factory=_new_id)
    tenant_id: str
    name: str


class Role(BaseModel):
    id: str = Field(default_factory=_new_id)
    tenant_id: str
    name: str


class Permission(BaseModel):
    """A permission key. ``"*"`` is the tenant-wide wildcard."""

    id: str = Field(default_factory=_new_id)
    tenant_id: str
    key: str
    description: Optional[str] = None


class MenuGroup(BaseModel):
    id: str = Field(default_factory=_new_id)
    tenant_id: str
    code: str
    name: str
    sequence: Optional[int] = None
    icon: Optional[str] = None


class MenuFunction(BaseModel):
    """Menu leaf. No ``required_permission_key`` means always visible."""

    id: str = Field(default_factory=_new_id)
    tenant_id: str
    code: str
    name: str
    type: str = ""
    path: Optional[str] = None
    required_permission_key: Optional[str] = None


# ── Links ───────────────────────────────────────────────


class UserGroup(BaseModel):
    user_id: str
    group_id: str


class GroupRole(BaseModel):
    group_id: str
    role_id: str


class RolePermission(BaseModel):
    role_id: str
    permission_id: str


class RoleMenuGroup(BaseModel):
    role_id: str
    menu_group_id: str


class MenuGroupFunction(BaseModel):
    """Ordered link between a menu group and a menu function."""

    menu_group_id: str
    menu_function_id: str
    sequence: Optional[int] = None


# ── Rendered menu ───────────────────────────────────────


class MenuItem(BaseModel):
    id: str
    code: str
    name: str
    type: str = ""
    path: Optional[str] = None
    sequence: Optional[int] = None
    required_permission_key: Optional[str] = None


class MenuSection(BaseModel):
    """A visible menu group with its filtered, ordered items."""

    id: str
    code: str
    name: str
    icon: Optional[str] = None
    sequence: Optional[int] = None
    items: list[MenuItem] = Field(default_factory=list)


class AccessSummary(BaseModel):
    """Everything an administrator needs to explain a user's access."""

    user: User
    groups: list[Group] = Field(default_factory=list)
    roles: list[Role] = Field(default_factory=list)
    permissions: list[str] = Field(default_factory=list)
    menu: list[MenuSection] = Field(default_factory=list)


__all__ = [
    "AccessSummary",
    "Group",
    "GroupRole",
    "MenuFunction",
    "MenuGroup",
    "MenuGroupFunction",
    "MenuItem",
    "MenuSection",
    "Permission",
    "Role",
    "RoleMenuGroup",
    "RolePermission",
    "Tenant",
    "User",
    "UserGroup",
]
