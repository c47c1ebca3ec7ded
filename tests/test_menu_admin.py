"""Tests for rbaccore.admin.menu.MenuAdmin: menu writes and permission propagation."""

from __future__ import annotations

import pytest
from rbaccore import ConflictError, NotFoundError


async def _version(engine, tenant_id):
    return await engine.versions.current_version(tenant_id)


async def _role_keys(engine, role_id):
    return {p.key for p in await engine.store.permissions_for_roles([role_id])}


class TestMenuEntities:
    @pytest.mark.asyncio
    async def test_create_menu_nodes_does_not_bump(self, engine, seeded):
        tid = seeded.tenant.id
        before = await _version(engine, tid)

        group = await engine.menu_admin.create_menu_group(tid, "claims", "Claims", sequence=3, icon="inbox")
        fn = await engine.menu_admin.create_menu_function(
            tid, "claims.list", "Claims", "page", path="/claims", required_permission_key="claims.view"
        )

        assert group.icon == "inbox"
        assert fn.required_permission_key == "claims.view"
        assert await _version(engine, tid) == before

    @pytest.mark.asyncio
    async def test_duplicate_code_conflicts(self, engine, seeded):
        tid = seeded.tenant.id
        await engine.menu_admin.create_menu_group(tid, "claims", "Claims")
        await engine.menu_admin.create_menu_function(tid, "claims.list", "Claims")

        with pytest.raises(ConflictError):
            await engine.menu_admin.create_menu_group(tid, "claims", "Claims again")
        with pytest.raises(ConflictError):
            await engine.menu_admin.create_menu_function(tid, "claims.list", "Claims again")

        # Codes are unique per tenant only
        await engine.menu_admin.create_menu_group(seeded.other.id, "claims", "Claims")

    @pytest.mark.asyncio
    async def test_blank_permission_key_means_ungated(self, engine, seeded):
        fn = await engine.menu_admin.create_menu_function(
            seeded.tenant.id, "home", "Home", required_permission_key=""
        )
        assert fn.required_permission_key is None

    @pytest.mark.asyncio
    async def test_unknown_tenant_is_not_found(self, engine):
        with pytest.raises(NotFoundError):
            await engine.menu_admin.create_menu_group("ghost", "claims", "Claims")
        with pytest.raises(NotFoundError):
            await engine.menu_admin.create_menu_function("ghost", "claims.list", "Claims")

        assert await engine.store.list_menu_groups("ghost") == []
        assert await engine.store.list_menu_functions("ghost") == []


class TestAttachFunctionToGroup:
    @pytest.mark.asyncio
    async def test_scenario_claims_view_propagates_with_one_bump(self, engine, seeded):
        tid = seeded.tenant.id
        menu = engine.menu_admin
        reviewer = await engine.graph_admin.create_role(tid, "Reviewer")
        group = await menu.create_menu_group(tid, "claims", "Claims")
        await menu.attach_menu_group_to_role(tid, reviewer.id, group.id)
        fn = await menu.create_menu_function(tid, "claims.list", "Claims", required_permission_key="claims.view")
        before = await _version(engine, tid)

        link = await menu.attach_function_to_group(tid, group.id, fn.id, sequence=10)

        assert link.sequence == 10
        assert "claims.view" in await _role_keys(engine, reviewer.id)
        assert await _version(engine, tid) == before + 1

    @pytest.mark.asyncio
    async def test_missing_permission_row_is_created(self, engine, seeded):
        tid = seeded.tenant.id
        menu = engine.menu_admin
        group = await menu.create_menu_group(tid, "claims", "Claims")
        await menu.attach_menu_group_to_role(tid, seeded.analyst.id, group.id)
        fn = await menu.create_menu_function(tid, "claims.approve", "Approve", required_permission_key="claims.approve")

        await menu.attach_function_to_group(tid, group.id, fn.id)

        created = await engine.store.find_permission_by_key(tid, "claims.approve")
        assert created is not None
        assert await engine.compute_user_permissions(seeded.alice.id, tid) == frozenset(
            {"reports.view", "claims.approve"}
        )

    @pytest.mark.asyncio
    async def test_existing_permission_row_is_reused(self, engine, seeded):
        tid = seeded.tenant.id
        menu = engine.menu_admin
        group = await menu.create_menu_group(tid, "claims", "Claims")
        await menu.attach_menu_group_to_role(tid, seeded.analyst.id, group.id)
        fn = await menu.create_menu_function(tid, "claims.list", "Claims", required_permission_key="claims.view")
        permission_count = len(await engine.graph_admin.list_permissions(tid))

        await menu.attach_function_to_group(tid, group.id, fn.id)
        await menu.attach_function_to_group(tid, group.id, fn.id, sequence=2)

        assert len(await engine.graph_admin.list_permissions(tid)) == permission_count
        assert seeded.claims_view.id in await engine.store.permission_ids_for_role(seeded.analyst.id)

    @pytest.mark.asyncio
    async def test_reattach_updates_sequence(self, engine, seeded):
        tid = seeded.tenant.id
        menu = engine.menu_admin
        group = await menu.create_menu_group(tid, "claims", "Claims")
        fn = await menu.create_menu_function(tid, "claims.list", "Claims")

        await menu.attach_function_to_group(tid, group.id, fn.id, sequence=1)
        await menu.attach_function_to_group(tid, group.id, fn.id, sequence=5)

        rows = await menu.list_group_functions(tid)
        assert [(g.code, link.sequence, f.code) for g, link, f in rows] == [("claims", 5, "claims.list")]

    @pytest.mark.asyncio
    async def test_group_without_roles_grants_nothing(self, engine, seeded):
        tid = seeded.tenant.id
        menu = engine.menu_admin
        group = await menu.create_menu_group(tid, "orphans", "Orphans")
        fn = await menu.create_menu_function(tid, "orphans.list", "List", required_permission_key="orphans.view")

        await menu.attach_function_to_group(tid, group.id, fn.id)

        assert await engine.store.find_permission_by_key(tid, "orphans.view") is None

    @pytest.mark.asyncio
    async def test_cross_tenant_function_is_not_found(self, engine, seeded):
        menu = engine.menu_admin
        group = await menu.create_menu_group(seeded.tenant.id, "claims", "Claims")
        foreign = await menu.create_menu_function(seeded.other.id, "claims.list", "Claims")

        with pytest.raises(NotFoundError):
            await menu.attach_function_to_group(seeded.tenant.id, group.id, foreign.id)

    @pytest.mark.asyncio
    async def test_detach_function(self, engine, seeded):
        tid = seeded.tenant.id
        menu = engine.menu_admin
        group = await menu.create_menu_group(tid, "claims", "Claims")
        fn = await menu.create_menu_function(tid, "claims.list", "Claims")
        await menu.attach_function_to_group(tid, group.id, fn.id)

        await menu.detach_function_from_group(tid, group.id, fn.id)
        assert await menu.list_group_functions(tid) == []

        with pytest.raises(NotFoundError):
            await menu.detach_function_from_group(tid, group.id, fn.id)


class TestAttachMenuGroupToRole:
    @pytest.mark.asyncio
    async def test_every_gated_function_propagates(self, engine, seeded):
        tid = seeded.tenant.id
        menu = engine.menu_admin
        group = await menu.create_menu_group(tid, "claims", "Claims")
        for code, key in (("claims.list", "claims.view"), ("claims.approve", "claims.approve"), ("claims.help", None)):
            fn = await menu.create_menu_function(tid, code, code, required_permission_key=key)
            await menu.attach_function_to_group(tid, group.id, fn.id)
        before = await _version(engine, tid)

        link = await menu.attach_menu_group_to_role(tid, seeded.analyst.id, group.id)

        assert link.role_id == seeded.analyst.id
        assert await _role_keys(engine, seeded.analyst.id) == {"reports.view", "claims.view", "claims.approve"}
        assert await _version(engine, tid) == before + 1

    @pytest.mark.asyncio
    async def test_propagated_grant_reaches_cached_session(self, engine, seeded, session_for):
        tid = seeded.tenant.id
        menu = engine.menu_admin
        session = session_for(seeded.alice)
        assert (await engine.authorize(session, ["claims.view"])).denied

        group = await menu.create_menu_group(tid, "claims", "Claims")
        fn = await menu.create_menu_function(tid, "claims.list", "Claims", required_permission_key="claims.view")
        await menu.attach_function_to_group(tid, group.id, fn.id)
        await menu.attach_menu_group_to_role(tid, seeded.analyst.id, group.id)

        assert (await engine.authorize(session, ["claims.view"])).allowed
        sections = await engine.session_menu(session)
        assert [s.code for s in sections] == ["claims"]

    @pytest.mark.asyncio
    async def test_detach_menu_group(self, engine, seeded):
        tid = seeded.tenant.id
        menu = engine.menu_admin
        group = await menu.create_menu_group(tid, "claims", "Claims")
        await menu.attach_menu_group_to_role(tid, seeded.analyst.id, group.id)
        assert len(await menu.list_role_menu_groups(tid)) == 1

        await menu.detach_menu_group_from_role(tid, seeded.analyst.id, group.id)
        assert await menu.list_role_menu_groups(tid) == []

        with pytest.raises(NotFoundError):
            await menu.detach_menu_group_from_role(tid, seeded.analyst.id, group.id)


class TestMenuListings:
    @pytest.mark.asyncio
    async def test_groups_by_sequence_then_name(self, engine, seeded):
        tid = seeded.tenant.id
        menu = engine.menu_admin
        await menu.create_menu_group(tid, "zeta", "Zeta", sequence=1)
        await menu.create_menu_group(tid, "alpha", "Alpha", sequence=1)
        await menu.create_menu_group(tid, "last", "Anything")
        await menu.create_menu_group(tid, "first", "First", sequence=0)

        assert [g.code for g in await menu.list_menu_groups(tid)] == ["first", "alpha", "zeta", "last"]
