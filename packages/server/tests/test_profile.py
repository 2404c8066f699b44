"""
Integration tests for profile self-service.

Tests cover:
- Loading the caller's own row, and the "no profile" state
- Saving editable fields; admin-only fields are rejected
- Claiming an admin-entered row by email
"""

from __future__ import annotations

import pytest

from app.services.profiles import NO_PROFILE_MESSAGE


class TestLoadProfile:
    async def test_requires_session(self, client):
        resp = await client.get("/api/v1/profile")
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "AUTHENTICATION_REQUIRED"

    async def test_own_profile(self, client, seed, sign_in):
        _, member = await seed.user_with_member(
            "me@example.com", display_name="Me", company_name="MyCo", public_level=3
        )
        await seed.member("Someone else")
        await sign_in(client, "me@example.com")

        body = (await client.get("/api/v1/profile")).json()
        assert body["profile"]["id"] == str(member.id)
        assert body["profile"]["company_name"] == "MyCo"
        assert body["profile"]["public_level"] == 3

    async def test_no_profile_is_not_an_error(self, client, seed, sign_in):
        await seed.user("lonely@example.com")
        await sign_in(client, "lonely@example.com")

        resp = await client.get("/api/v1/profile")
        assert resp.status_code == 200
        assert resp.json() == {"profile": None, "message": NO_PROFILE_MESSAGE}


class TestSaveProfile:
    async def test_save_editable_fields(self, client, seed, sign_in, csrf):
        _, member = await seed.user_with_member(
            "me@example.com", last_updated_by="admin", visible=False
        )
        await sign_in(client, "me@example.com")

        resp = await client.patch(
            "/api/v1/profile",
            json={"company_name": "NewCo", "visible": True, "can_introduce": "Bankers"},
            headers=csrf(client),
        )
        assert resp.status_code == 200
        profile = resp.json()["profile"]
        assert profile["company_name"] == "NewCo"
        assert profile["visible"] is True
        assert profile["last_updated_by"] == "self"

        stored = await seed.get_member(member.id)
        assert stored.can_introduce == "Bankers"
        assert stored.last_updated_by == "self"

    async def test_hiding_self_updates_branch_count(self, client, seed, sign_in, csrf):
        branch = await seed.branch("b1", member_count=2)
        await seed.member("Neighbour", branch_id=branch.id, visible=True)
        await seed.user_with_member("me@example.com", branch_id=branch.id, visible=True)
        await sign_in(client, "me@example.com")

        resp = await client.patch(
            "/api/v1/profile", json={"visible": False}, headers=csrf(client)
        )
        assert resp.status_code == 200
        body = (await client.get("/api/v1/directory/branches")).json()
        assert body["data"][0]["member_count"] == 1

    @pytest.mark.parametrize(
        "field,value",
        [
            ("payment_status", "active"),
            ("public_level", 1),
            ("last_updated_by", "admin"),
            ("role", "admin"),
            ("user_id", "00000000-0000-0000-0000-000000000001"),
            ("latitude", 10.0),
        ],
    )
    async def test_admin_only_fields_rejected(self, client, seed, sign_in, csrf, field, value):
        _, member = await seed.user_with_member("me@example.com", payment_status="inactive")
        await sign_in(client, "me@example.com")

        resp = await client.patch(
            "/api/v1/profile",
            json={"display_name": "Changed", field: value},
            headers=csrf(client),
        )
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "VALIDATION_FAILED"

        stored = await seed.get_member(member.id)
        assert stored.display_name == "me"
        assert stored.payment_status == "inactive"
        assert stored.role == "member"

    async def test_empty_display_name_rejected(self, client, seed, sign_in, csrf):
        await seed.user_with_member("me@example.com")
        await sign_in(client, "me@example.com")
        resp = await client.patch(
            "/api/v1/profile", json={"display_name": ""}, headers=csrf(client)
        )
        assert resp.status_code == 422

    async def test_save_without_profile(self, client, seed, sign_in, csrf):
        await seed.user("lonely@example.com")
        await sign_in(client, "lonely@example.com")
        resp = await client.patch(
            "/api/v1/profile", json={"company_name": "X"}, headers=csrf(client)
        )
        assert resp.status_code == 404

    async def test_save_requires_csrf(self, client, seed, sign_in):
        await seed.user_with_member("me@example.com")
        await sign_in(client, "me@example.com")
        resp = await client.patch("/api/v1/profile", json={"company_name": "X"})
        assert resp.status_code == 403


class TestClaimProfile:
    async def test_claim_matching_row(self, client, seed, sign_in, csrf):
        row = await seed.member("Entered by admin", claim_email="Claimer@Example.com")
        await seed.user("claimer@example.com")
        await sign_in(client, "claimer@example.com")

        resp = await client.post("/api/v1/profile/claim", headers=csrf(client))
        assert resp.status_code == 200
        assert resp.json()["profile"]["id"] == str(row.id)

        stored = await seed.get_member(row.id)
        assert stored.user_id is not None
        me = (await client.get("/auth/me")).json()
        assert me["has_profile"] is True

    async def test_claim_without_match(self, client, seed, sign_in, csrf):
        await seed.member("Unrelated", claim_email="other@example.com")
        await seed.user("claimer@example.com")
        await sign_in(client, "claimer@example.com")

        resp = await client.post("/api/v1/profile/claim", headers=csrf(client))
        assert resp.status_code == 404

    async def test_claim_when_already_linked(self, client, seed, sign_in, csrf):
        await seed.user_with_member("me@example.com")
        await seed.member("Spare", claim_email="me@example.com")
        await sign_in(client, "me@example.com")

        resp = await client.post("/api/v1/profile/claim", headers=csrf(client))
        assert resp.status_code == 409
