"""
Integration tests for the admin console endpoints.

Tests cover:
- Role gate: anonymous 401, non-admin 403 (and logged), admin allowed
- Unfiltered member listing with pagination
- Branch cards and dashboard metrics
- Visibility toggle
"""

from __future__ import annotations

import uuid

from structlog.testing import capture_logs


async def _admin_client(client, seed, sign_in):
    await seed.user_with_member("admin@example.com", role="admin", visible=False)
    await sign_in(client, "admin@example.com")
    return client


class TestAdminGate:
    async def test_anonymous_is_401(self, client):
        resp = await client.get("/api/v1/admin/metrics")
        assert resp.status_code == 401

    async def test_member_is_403_and_logged(self, client, seed, sign_in):
        await seed.user_with_member("member@example.com", payment_status="active")
        await sign_in(client, "member@example.com")

        with capture_logs() as logs:
            resp = await client.get("/api/v1/admin/members")
        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "ACCESS_DENIED"
        denied = [e for e in logs if e["event"] == "authz.denied"]
        assert denied and denied[0]["log_level"] == "warning"
        assert denied[0]["path"] == "/api/v1/admin/members"

    async def test_user_without_profile_is_403(self, client, seed, sign_in):
        await seed.user("nobody@example.com")
        await sign_in(client, "nobody@example.com")
        resp = await client.get("/api/v1/admin/branches")
        assert resp.status_code == 403


class TestAdminListings:
    async def test_list_all_includes_hidden(self, client, seed, sign_in):
        await _admin_client(client, seed, sign_in)
        hidden = await seed.member("Hidden", visible=False, public_level=3)
        await seed.member("Shown", visible=True, public_level=1)

        body = (await client.get("/api/v1/admin/members")).json()
        ids = {m["id"] for m in body["data"]}
        assert str(hidden.id) in ids
        assert body["pagination"]["total"] == 3  # includes the admin's own row

        # The same hidden row never reaches the directory
        directory = (await client.get("/api/v1/directory/members?level=3")).json()
        assert str(hidden.id) not in {m["id"] for m in directory["data"]}

    async def test_pagination(self, client, seed, sign_in):
        await _admin_client(client, seed, sign_in)
        for i in range(4):
            await seed.member(f"m{i}")

        page1 = (await client.get("/api/v1/admin/members?page=1&per_page=2")).json()
        page3 = (await client.get("/api/v1/admin/members?page=3&per_page=2")).json()
        assert len(page1["data"]) == 2
        assert page1["pagination"] == {"page": 1, "per_page": 2, "total": 5, "total_pages": 3}
        assert len(page3["data"]) == 1

    async def test_page_size_is_capped(self, client, seed, sign_in):
        await _admin_client(client, seed, sign_in)
        body = (await client.get("/api/v1/admin/members?per_page=500")).json()
        assert body["pagination"]["per_page"] == 100

    async def test_branches_include_private(self, client, seed, sign_in):
        await _admin_client(client, seed, sign_in)
        await seed.branch("b1", public=True)
        await seed.branch("b2", public=False)

        body = (await client.get("/api/v1/admin/branches")).json()
        assert {b["name"]: b["public"] for b in body["data"]} == {"b1": True, "b2": False}

    async def test_metrics(self, client, seed, sign_in):
        await _admin_client(client, seed, sign_in)
        await seed.branch("b1")
        await seed.member("a", visible=True, payment_status="active")
        await seed.member("b", visible=True)
        await seed.member("c", visible=False)

        body = (await client.get("/api/v1/admin/metrics")).json()
        assert body == {
            "total_members": 4,
            "visible_members": 2,
            "active_members": 1,
            "branch_count": 1,
        }


class TestToggleVisibility:
    async def test_toggle_flips_and_marks_admin(self, client, seed, sign_in, csrf):
        await _admin_client(client, seed, sign_in)
        member = await seed.member("Target", visible=False, last_updated_by="self")

        resp = await client.post(
            f"/api/v1/admin/members/{member.id}/toggle-visibility", headers=csrf(client)
        )
        assert resp.status_code == 200
        row = resp.json()["member"]
        assert row["visible"] is True
        assert row["last_updated_by"] == "admin"

        stored = await seed.get_member(member.id)
        assert stored.visible is True

    async def test_toggle_twice_restores(self, client, seed, sign_in, csrf):
        await _admin_client(client, seed, sign_in)
        member = await seed.member("Target", visible=True)
        url = f"/api/v1/admin/members/{member.id}/toggle-visibility"

        await client.post(url, headers=csrf(client))
        await client.post(url, headers=csrf(client))

        stored = await seed.get_member(member.id)
        assert stored.visible is True

    async def test_toggle_updates_branch_count(self, client, seed, sign_in, csrf):
        await _admin_client(client, seed, sign_in)
        branch = await seed.branch("b1", member_count=1)
        member = await seed.member("Only", branch_id=branch.id, visible=True)
        url = f"/api/v1/admin/members/{member.id}/toggle-visibility"

        await client.post(url, headers=csrf(client))
        public = (await client.get("/api/v1/directory/branches")).json()
        assert public["data"][0]["member_count"] == 0

        await client.post(url, headers=csrf(client))
        cards = (await client.get("/api/v1/admin/branches")).json()
        assert cards["data"][0]["member_count"] == 1

    async def test_toggle_unknown_member(self, client, seed, sign_in, csrf):
        await _admin_client(client, seed, sign_in)
        resp = await client.post(
            f"/api/v1/admin/members/{uuid.uuid4()}/toggle-visibility", headers=csrf(client)
        )
        assert resp.status_code == 404

    async def test_toggle_forbidden_for_member(self, client, seed, sign_in, csrf):
        _, member = await seed.user_with_member("member@example.com", visible=True)
        await sign_in(client, "member@example.com")
        resp = await client.post(
            f"/api/v1/admin/members/{member.id}/toggle-visibility", headers=csrf(client)
        )
        assert resp.status_code == 403
        assert (await seed.get_member(member.id)).visible is True
