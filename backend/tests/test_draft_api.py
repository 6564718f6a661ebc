"""HTTP tests for /api/custom/draft: session scoping, resume lookups, identity."""

import pytest

from app.auth.jwt import create_identity_token
from app.config import settings

DRAFT_URL = "/api/custom/draft"


@pytest.mark.api
@pytest.mark.asyncio
class TestSessionDraft:

    async def test_no_draft_yet(self, client):
        """A fresh session has no draft and no identity."""
        resp = await client.get(DRAFT_URL)
        assert resp.status_code == 200
        assert resp.json() == {"draft": None, "user": None}

    async def test_session_cookie_issued(self, make_client):
        c = make_client()
        resp = await c.get("/health")
        cookie = resp.cookies.get(settings.session_cookie_name)
        assert cookie
        assert "httponly" in resp.headers["set-cookie"].lower()

        # A known cookie is not re-issued
        again = await c.get("/health")
        assert settings.session_cookie_name not in again.cookies

    async def test_save_then_fetch(self, client):
        resp = await client.post(DRAFT_URL, json={"step": 2, "project_type": "figurine"})
        assert resp.status_code == 200
        saved = resp.json()
        assert saved["applied"] is True
        assert saved["current_step"] == 2

        resp = await client.get(DRAFT_URL)
        draft = resp.json()["draft"]
        assert draft["id"] == saved["draft_id"]
        assert draft["project_type"] == "figurine"
        assert draft["current_step"] == 2

    async def test_stale_save_reported(self, client):
        await client.post(DRAFT_URL, json={"step": 4, "project_type": "figurine", "material": "pla"})
        resp = await client.post(DRAFT_URL, json={"step": 2, "project_type": "decorative"})
        body = resp.json()
        assert body["applied"] is False
        assert body["current_step"] == 4

        draft = (await client.get(DRAFT_URL)).json()["draft"]
        assert draft["project_type"] == "figurine"

    async def test_unknown_option_rejected(self, client):
        resp = await client.post(DRAFT_URL, json={"step": 4, "material": "gold"})
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "VALIDATION_ERROR"

    async def test_sessions_do_not_see_each_other(self, make_client):
        alice, bob = make_client(), make_client()
        await alice.post(DRAFT_URL, json={"step": 2, "project_type": "figurine"})

        resp = await bob.get(DRAFT_URL)
        assert resp.json()["draft"] is None

    async def test_delete_is_idempotent(self, client):
        await client.post(DRAFT_URL, json={"step": 3, "project_type": "custom"})

        first = await client.delete(DRAFT_URL)
        assert first.json() == {"deleted": True}
        second = await client.delete(DRAFT_URL)
        assert second.status_code == 200
        assert second.json() == {"deleted": False}
        assert (await client.get(DRAFT_URL)).json()["draft"] is None

    async def test_no_store_cache_header(self, client):
        resp = await client.get(DRAFT_URL)
        assert resp.headers["cache-control"] == "no-store"


@pytest.mark.api
@pytest.mark.asyncio
class TestResumeById:

    async def test_found(self, make_client):
        laptop = make_client()
        saved = (await laptop.post(DRAFT_URL, json={"step": 4, "project_type": "prototype"})).json()

        phone = make_client()
        resp = await phone.get(f"{DRAFT_URL}/{saved['draft_id']}")
        assert resp.status_code == 200
        assert resp.json()["draft"]["project_type"] == "prototype"

    async def test_unknown_is_404(self, client):
        resp = await client.get(f"{DRAFT_URL}/does-not-exist")
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "RESOURCE_NOT_FOUND"

    async def test_completed_is_410(self, client):
        saved = (await client.post(DRAFT_URL, json={"step": 5, "project_type": "figurine"})).json()
        draft_id = saved["draft_id"]

        resp = await client.post(f"{DRAFT_URL}/{draft_id}/complete")
        assert resp.json() == {"completed": True}

        for _ in range(2):
            resp = await client.get(f"{DRAFT_URL}/{draft_id}")
            assert resp.status_code == 410
            assert resp.json()["error"]["code"] == "DRAFT_COMPLETED"

        # completing again is not an error
        resp = await client.post(f"{DRAFT_URL}/{draft_id}/complete")
        assert resp.status_code == 200
        assert resp.json() == {"completed": False}

    async def test_complete_unknown_is_404(self, client):
        resp = await client.post(f"{DRAFT_URL}/nope/complete")
        assert resp.status_code == 404

    async def test_resumed_draft_adopted_on_save(self, make_client):
        laptop, phone = make_client(), make_client()
        saved = (await laptop.post(DRAFT_URL, json={"step": 3, "project_type": "figurine"})).json()

        resp = await phone.post(DRAFT_URL, json={
            "step": 4, "project_type": "figurine", "material": "pla", "size": "small",
            "draft_id": saved["draft_id"],
        })
        assert resp.json()["draft_id"] == saved["draft_id"]

        assert (await phone.get(DRAFT_URL)).json()["draft"]["id"] == saved["draft_id"]
        assert (await laptop.get(DRAFT_URL)).json()["draft"] is None


@pytest.mark.api
@pytest.mark.asyncio
class TestIdentityPrefill:

    async def test_identity_token_returned(self, client):
        token = create_identity_token("u-1", name="Grace Hopper", email="grace@example.com")
        resp = await client.get(DRAFT_URL, headers={"Authorization": f"Bearer {token}"})
        assert resp.json()["user"] == {"name": "Grace Hopper", "email": "grace@example.com"}

    async def test_bad_token_ignored(self, client):
        resp = await client.get(DRAFT_URL, headers={"Authorization": "Bearer not-a-jwt"})
        assert resp.status_code == 200
        assert resp.json()["user"] is None
