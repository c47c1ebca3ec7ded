"""Tests for rbaccore.gate: authorization decisions and session caching."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest
from rbaccore import (
    AccessDecision,
    DenyReason,
    InsufficientPermissionsError,
    UnauthenticatedError,
)
from rbaccore.session import PERMISSIONS_KEY, VERSION_KEY


class TestAccessDecision:
    """AccessDecision tests."""

    def test_allow(self):
        decision = AccessDecision.allow()
        assert decision.allowed is True
        assert decision.denied is False
        assert decision.reason is None

    def test_outcome_is_required(self):
        with pytest.raises(TypeError):
            AccessDecision()

    def test_deny_carries_reason(self):
        decision = AccessDecision.deny(DenyReason.INSUFFICIENT_PERMISSIONS)
        assert decision.denied is True
        assert decision.reason == DenyReason.INSUFFICIENT_PERMISSIONS

    def test_raise_for_denial(self):
        AccessDecision.allow().raise_for_denial()

        with pytest.raises(UnauthenticatedError):
            AccessDecision.deny(DenyReason.UNAUTHENTICATED).raise_for_denial()
        with pytest.raises(InsufficientPermissionsError) as exc_info:
            AccessDecision.deny(DenyReason.INSUFFICIENT_PERMISSIONS).raise_for_denial()
        assert exc_info.value.code == "PERMISSION_DENIED"


class TestAuthorize:
    """authorize() decision rule."""

    @pytest.mark.asyncio
    async def test_scenario_reports_view(self, engine, seeded, session_for):
        session = session_for(seeded.alice)

        assert (await engine.authorize(session, ["reports.view"])).allowed
        denied = await engine.authorize(session, ["reports.export"])
        assert denied.denied
        assert denied.reason == DenyReason.INSUFFICIENT_PERMISSIONS

    @pytest.mark.asyncio
    async def test_empty_requirement_allows_without_touching_session(self, engine):
        session: dict = {}
        decision = await engine.authorize(session, [])
        assert decision.allowed
        assert session == {}

    @pytest.mark.asyncio
    async def test_unbound_session_is_unauthenticated(self, engine, seeded):
        for session in ({}, {"user_id": seeded.alice.id}, {"tenant_id": seeded.tenant.id}):
            decision = await engine.authorize(session, ["reports.view"])
            assert decision.denied
            assert decision.reason == DenyReason.UNAUTHENTICATED

    @pytest.mark.asyncio
    async def test_requirement_is_all_of(self, engine, seeded, session_for):
        session = session_for(seeded.alice)
        decision = await engine.authorize(session, ["reports.view", "reports.export"])
        assert decision.reason == DenyReason.INSUFFICIENT_PERMISSIONS

    @pytest.mark.asyncio
    async def test_wildcard_allows_any_requirement(self, engine):
        tenant, admin_user = await engine.graph_admin.bootstrap_tenant("Initech")
        session = {"user_id": admin_user.id, "tenant_id": tenant.id}

        for required in (["reports.view"], ["anything.at.all", "x.y"], ["*"]):
            assert (await engine.authorize(session, required)).allowed

    @pytest.mark.asyncio
    async def test_require_raises_on_denial(self, engine, seeded, session_for):
        await engine.require(session_for(seeded.alice), ["reports.view"])

        with pytest.raises(InsufficientPermissionsError):
            await engine.require(session_for(seeded.alice), ["reports.export"])
        with pytest.raises(UnauthenticatedError):
            await engine.require({}, ["reports.view"])


class TestSessionCache:
    """Version-checked caching of the permission set on the session."""

    @pytest.mark.asyncio
    async def test_first_check_stores_sorted_list_and_version(self, engine, seeded, session_for):
        session = session_for(seeded.alice)
        await engine.authorize(session, ["reports.view"])

        version = await engine.versions.current_version(seeded.tenant.id)
        assert session[PERMISSIONS_KEY] == ["reports.view"]
        assert session[VERSION_KEY] == version

    @pytest.mark.asyncio
    async def test_fresh_cache_is_not_recomputed(self, engine, seeded, session_for):
        session = session_for(seeded.alice)
        await engine.authorize(session, ["reports.view"])

        with patch.object(
            engine.resolver,
            "compute_user_permissions",
            new=AsyncMock(return_value=frozenset()),
        ) as compute:
            decision = await engine.authorize(session, ["reports.view"])

        compute.assert_not_called()
        assert decision.allowed

    @pytest.mark.asyncio
    async def test_grant_is_visible_on_next_check(self, engine, seeded, session_for):
        tid = seeded.tenant.id
        session = session_for(seeded.alice)
        assert (await engine.authorize(session, ["reports.export"])).denied
        cached_version = session[VERSION_KEY]

        await engine.graph_admin.attach_permission_to_role(tid, seeded.analyst.id, seeded.reports_export.id)

        assert (await engine.authorize(session, ["reports.export"])).allowed
        assert session[VERSION_KEY] != cached_version
        assert session[PERMISSIONS_KEY] == ["reports.export", "reports.view"]

    @pytest.mark.asyncio
    async def test_revocation_is_visible_on_next_check(self, engine, seeded, session_for):
        tid = seeded.tenant.id
        session = session_for(seeded.alice)
        assert (await engine.authorize(session, ["reports.view"])).allowed

        await engine.graph_admin.detach_user_from_group(tid, seeded.alice.id, seeded.analysts.id)

        assert (await engine.authorize(session, ["reports.view"])).denied

    @pytest.mark.asyncio
    async def test_any_version_change_triggers_recompute(self, engine, seeded, session_for):
        """Staleness is inequality, not a particular expected value."""
        session = session_for(seeded.alice)
        session[PERMISSIONS_KEY] = ["reports.export"]
        session[VERSION_KEY] = 10_000

        decision = await engine.authorize(session, ["reports.export"])
        assert decision.denied
        assert session[PERMISSIONS_KEY] == ["reports.view"]

    @pytest.mark.asyncio
    async def test_session_permissions_requires_binding(self, engine, seeded, session_for):
        perms = await engine.gate.session_permissions(session_for(seeded.alice))
        assert perms == frozenset({"reports.view"})

        with pytest.raises(UnauthenticatedError):
            await engine.gate.session_permissions({})
