"""Shared fixtures: an in-memory engine and a small seeded tenant."""

from __future__ import annotations

from types import SimpleNamespace

import pytest
import pytest_asyncio
from rbaccore import InMemoryGraphStore, RbacConfig, RbacEngine


@pytest.fixture
def store() -> InMemoryGraphStore:
    return InMemoryGraphStore()


@pytest.fixture
def engine(store: InMemoryGraphStore) -> RbacEngine:
    return RbacEngine(store, RbacConfig())


@pytest_asyncio.fixture
async def seeded(engine: RbacEngine) -> SimpleNamespace:
    """Tenant "acme": alice is an Analyst (reports.view), bob has no groups.

    A second tenant "globex" exists with its own role and permission so
    cross-tenant lookups can be exercised.
    """
    admin = engine.graph_admin
    tenant = await admin.create_tenant("Acme", tenant_id="acme")
    other = await admin.create_tenant("Globex", tenant_id="globex")

    reports_view = await admin.create_permission(tenant.id, "reports.view")
    reports_export = await admin.create_permission(tenant.id, "reports.export")
    claims_view = await admin.create_permission(tenant.id, "claims.view")

    analyst = await admin.create_role(tenant.id, "Analyst")
    analysts = await admin.create_group(tenant.id, "Analysts")
    await admin.attach_permission_to_role(tenant.id, analyst.id, reports_view.id)
    await admin.attach_role_to_group(tenant.id, analysts.id, analyst.id)

    alice = await admin.create_user(tenant.id, "alice", group_ids=[analysts.id])
    bob = await admin.create_user(tenant.id, "bob")

    other_role = await admin.create_role(other.id, "Auditor")
    other_group = await admin.create_group(other.id, "Auditors")
    other_perm = await admin.create_permission(other.id, "audit.read")

    return SimpleNamespace(
        tenant=tenant,
        other=other,
        reports_view=reports_view,
        reports_export=reports_export,
        claims_view=claims_view,
        analyst=analyst,
        analysts=analysts,
        alice=alice,
        bob=bob,
        other_role=other_role,
        other_group=other_group,
        other_perm=other_perm,
    )


@pytest.fixture
def session_for():
    """Build a session bag as the session layer would bind it after login."""

    def _make(user) -> dict:
        return {"user_id": user.id, "tenant_id": user.tenant_id}

    return _make
