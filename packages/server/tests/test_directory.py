"""
Integration tests for the public directory endpoints.

Tests cover:
- Branch listing: only public branches, ordered by region then name
- Member listing: visibility filter, level downgrade, field redaction
- Failed reads degrade to an empty list plus an error message
- Map view: defaults, focus on a marker, unknown focus
"""

from __future__ import annotations

import uuid
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import OperationalError

from app.core.auth import SESSION_COOKIE, decode_jwt
from app.core.config import get_settings
from app.services import branches as branch_service
from app.services import members as member_service
from app.services.directory import BRANCHES_UNAVAILABLE, MEMBERS_UNAVAILABLE

settings = get_settings()


async def _seed_members(seed):
    return {
        "pin": await seed.member(
            "Pin", visible=True, general_public=True, public_level=1, company_name="PinCo"
        ),
        "members_only": await seed.member(
            "MembersOnly", visible=True, public_level=2, company_name="MidCo",
            want_to_introduce="Investors",
        ),
        "full_only": await seed.member("FullOnly", visible=True, public_level=3),
        "hidden": await seed.member("Hidden", visible=False, public_level=1, general_public=True),
    }


def _raise_store_error(*args, **kwargs):
    raise OperationalError("SELECT", {}, Exception("connection refused"))


# ---------------------------------------------------------------------------
# Branches
# ---------------------------------------------------------------------------


class TestBranches:
    async def test_only_public_branches(self, client, seed):
        b1 = await seed.branch("b1", public=True)
        await seed.branch("b2", public=False)

        resp = await client.get("/api/v1/directory/branches")
        assert resp.status_code == 200
        body = resp.json()
        assert [b["id"] for b in body["data"]] == [str(b1.id)]
        assert body["error"] is None

    async def test_ordered_by_region_then_name(self, client, seed):
        await seed.branch("Zeta", region="Aomori")
        await seed.branch("Beta", region="Hokkaido")
        await seed.branch("Alpha", region="Hokkaido")

        body = (await client.get("/api/v1/directory/branches")).json()
        assert [b["name"] for b in body["data"]] == ["Zeta", "Alpha", "Beta"]

    async def test_store_failure_returns_empty_list(self, client, seed, monkeypatch):
        await seed.branch("b1")
        monkeypatch.setattr(branch_service, "list_public_branches", _raise_store_error)

        resp = await client.get("/api/v1/directory/branches")
        assert resp.status_code == 200
        assert resp.json() == {"data": [], "error": BRANCHES_UNAVAILABLE}

    async def test_member_count_is_recomputed(self, seed, db):
        branch = await seed.branch("Counted")
        await seed.member("one", branch_id=branch.id, visible=True)
        await seed.member("two", branch_id=branch.id, visible=True)
        await seed.member("hidden", branch_id=branch.id, visible=False)

        changed = await branch_service.recount_members(db)
        await db.commit()

        assert changed == 1
        rows = await branch_service.list_public_branches(db)
        assert rows[0].member_count == 2

    async def test_recount_one_branch(self, seed, db):
        counted = await seed.branch("Counted")
        untouched = await seed.branch("Untouched", member_count=7)
        await seed.member("one", branch_id=counted.id, visible=True)

        changed = await branch_service.recount_members(db, counted.id)
        await db.commit()

        assert changed == 1
        counts = {b.name: b.member_count for b in await branch_service.list_all_branches(db)}
        assert counts == {"Counted": 1, "Untouched": 7}

    async def test_store_failure_restores_row_context(self, client, seed, monkeypatch):
        restore = AsyncMock()
        monkeypatch.setattr(branch_service, "list_public_branches", _raise_store_error)
        monkeypatch.setattr("app.services.directory.restore_row_context", restore)

        body = (await client.get("/api/v1/directory/map")).json()
        assert body["errors"] == [BRANCHES_UNAVAILABLE]
        restore.assert_awaited_once()


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------


class TestMembers:
    async def test_anonymous_gets_no_members_by_default(self, client, seed):
        await _seed_members(seed)
        body = (await client.get("/api/v1/directory/members?level=3")).json()
        assert body["level"] == 1
        assert body["data"] == []

    async def test_anonymous_pins_when_enabled(self, client, seed, monkeypatch):
        monkeypatch.setattr(settings, "anonymous_member_pins", True)
        await _seed_members(seed)

        body = (await client.get("/api/v1/directory/members?level=3")).json()
        assert body["level"] == 1
        assert [m["display_name"] for m in body["data"]] == ["Pin"]
        # Level-1 fields only
        assert set(body["data"][0]) == {"id", "display_name", "latitude", "longitude"}

    async def test_signed_in_member_is_capped_at_two(self, client, seed, sign_in):
        await seed.user_with_member("member@example.com", payment_status="inactive")
        rows = await _seed_members(seed)
        await sign_in(client, "member@example.com")

        body = (await client.get("/api/v1/directory/members?level=3")).json()
        assert body["level"] == 2
        names = {m["display_name"] for m in body["data"]}
        assert names == {"Pin", "MembersOnly"}
        assert "Hidden" not in names
        members_only = next(m for m in body["data"] if m["id"] == str(rows["members_only"].id))
        assert members_only["company_name"] == "MidCo"
        assert "want_to_introduce" not in members_only

    async def test_paid_member_sees_full_level(self, client, seed, sign_in):
        await seed.user_with_member("paid@example.com", payment_status="active", visible=False)
        await _seed_members(seed)
        await sign_in(client, "paid@example.com")

        body = (await client.get("/api/v1/directory/members")).json()
        assert body["level"] == 3
        names = {m["display_name"] for m in body["data"]}
        assert names == {"Pin", "MembersOnly", "FullOnly"}
        members_only = next(m for m in body["data"] if m["display_name"] == "MembersOnly")
        assert members_only["want_to_introduce"] == "Investors"

    @pytest.mark.parametrize("level", [1, 2, 3])
    async def test_rows_satisfy_visibility_rule(self, client, seed, sign_in, level):
        await seed.user_with_member("admin@example.com", role="admin")
        rows = await _seed_members(seed)
        await sign_in(client, "admin@example.com")

        body = (await client.get(f"/api/v1/directory/members?level={level}")).json()
        by_id = {str(m.id): m for m in rows.values()}
        for item in body["data"]:
            row = by_id[item["id"]]
            assert row.visible is True
            assert row.public_level <= level

    async def test_admin_directory_never_includes_hidden(self, client, seed, sign_in):
        await seed.user_with_member("admin@example.com", role="admin")
        await _seed_members(seed)
        await sign_in(client, "admin@example.com")

        body = (await client.get("/api/v1/directory/members?level=3")).json()
        assert "Hidden" not in {m["display_name"] for m in body["data"]}

    async def test_out_of_range_level_rejected(self, client):
        resp = await client.get("/api/v1/directory/members?level=4")
        assert resp.status_code == 422

    async def test_store_failure_returns_empty_list(self, client, seed, sign_in, monkeypatch):
        await seed.user_with_member("member@example.com")
        await _seed_members(seed)
        await sign_in(client, "member@example.com")
        monkeypatch.setattr(member_service, "list_directory_members", _raise_store_error)

        resp = await client.get("/api/v1/directory/members?level=2")
        assert resp.status_code == 200
        assert resp.json() == {"data": [], "level": 2, "error": MEMBERS_UNAVAILABLE}


# ---------------------------------------------------------------------------
# Map view
# ---------------------------------------------------------------------------


class TestMapView:
    async def test_defaults(self, client, seed):
        await seed.branch("b1")
        body = (await client.get("/api/v1/directory/map")).json()
        assert body["center"] == [settings.map_center_lat, settings.map_center_lng]
        assert body["zoom"] == settings.map_zoom
        assert body["tile_url"] == settings.tile_url
        assert body["level"] == 1
        assert [m["kind"] for m in body["markers"]] == ["branch"]
        assert body["selected"] is None

    async def test_focus_on_branch(self, client, seed):
        branch = await seed.branch("b1", latitude=42.5, longitude=140.5)
        body = (
            await client.get(f"/api/v1/directory/map?focus_kind=branch&focus_id={branch.id}")
        ).json()
        assert body["center"] == [42.5, 140.5]
        assert body["zoom"] == settings.map_focus_zoom
        assert body["selected"]["id"] == str(branch.id)

    async def test_unknown_focus_keeps_default_view(self, client, seed):
        await seed.branch("b1")
        body = (
            await client.get(f"/api/v1/directory/map?focus_kind=member&focus_id={uuid.uuid4()}")
        ).json()
        assert body["zoom"] == settings.map_zoom
        assert body["selected"] is None

    async def test_member_markers_for_signed_in_viewer(self, client, seed, sign_in):
        await seed.user_with_member("member@example.com")
        rows = await _seed_members(seed)
        await sign_in(client, "member@example.com")

        body = (
            await client.get(
                f"/api/v1/directory/map?focus_kind=member&focus_id={rows['pin'].id}"
            )
        ).json()
        assert body["level"] == 2
        assert {m["label"] for m in body["markers"] if m["kind"] == "member"} == {
            "Pin",
            "MembersOnly",
        }
        assert body["selected"]["label"] == "Pin"


# ---------------------------------------------------------------------------
# Stale sessions on public reads
# ---------------------------------------------------------------------------


class TestStaleSession:
    async def test_garbage_cookie_reads_as_anonymous(self, client, seed):
        await seed.branch("b1")
        await _seed_members(seed)
        client.cookies.set(SESSION_COOKIE, "garbage")

        members = await client.get("/api/v1/directory/members?level=3")
        assert members.status_code == 200
        assert members.json() == {"data": [], "level": 1}

        view = await client.get("/api/v1/directory/map")
        assert view.status_code == 200
        assert [m["label"] for m in view.json()["markers"]] == ["b1"]

    async def test_revoked_session_reads_as_anonymous(self, client, seed, sign_in, fake_redis):
        await seed.user_with_member("paid@example.com", payment_status="active")
        await _seed_members(seed)
        await sign_in(client, "paid@example.com")
        jti = decode_jwt(client.cookies.get(SESSION_COOKIE))["jti"]
        fake_redis.store[f"jwt:revoked:{jti}"] = "1"

        body = (await client.get("/api/v1/directory/members?level=3")).json()
        assert body["level"] == 1
        assert body["data"] == []

    async def test_protected_routes_still_reject_the_cookie(self, client):
        client.cookies.set(SESSION_COOKIE, "garbage")
        resp = await client.get("/api/v1/profile")
        assert resp.status_code == 401
        assert resp.json()["error"]["message"] == "Invalid or expired session"
