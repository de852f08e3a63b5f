"""Tests for the /v1/sessions admin read endpoints."""

import pytest
import pytest_asyncio
from httpx import AsyncClient


def _auth(api_key: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {api_key}"}


async def _track(client: AsyncClient, visitor_id: str, session_id: str, path: str, timestamp: str):
    resp = await client.post(
        "/v1/track/pageview",
        json={
            "visitorId": visitor_id,
            "sessionId": session_id,
            "path": path,
            "timestamp": timestamp,
            "title": f"Title of {path}",
        },
    )
    assert resp.status_code == 201
    return resp.json()


@pytest_asyncio.fixture
async def tracked(client: AsyncClient):
    """Three sessions from two visitors; s-old is explicitly ended."""
    await _track(client, "v1", "s-old", "/", "2026-02-20T09:00:00Z")
    await _track(client, "v1", "s-old", "/about", "2026-02-20T09:01:00Z")
    await client.post(
        "/v1/track/session-end",
        json={"sessionId": "s-old", "timestamp": "2026-02-20T09:02:00Z"},
    )
    await _track(client, "v1", "s-new", "/blog", "2026-02-21T09:00:00Z")
    await _track(client, "v2", "s-other", "/", "2026-02-21T11:00:00Z")


# ---------------------------------------------------------------------------
# GET /v1/sessions
# ---------------------------------------------------------------------------


class TestListSessions:
    @pytest.mark.asyncio
    async def test_lists_newest_first(self, client: AsyncClient, admin_key: str, tracked):
        resp = await client.get("/v1/sessions", headers=_auth(admin_key))

        assert resp.status_code == 200
        data = resp.json()
        assert data["total"] == 3
        assert data["limit"] == 50
        assert data["offset"] == 0
        assert [s["sessionId"] for s in data["sessions"]] == ["s-other", "s-new", "s-old"]

    @pytest.mark.asyncio
    async def test_filter_by_visitor(self, client: AsyncClient, admin_key: str, tracked):
        resp = await client.get(
            "/v1/sessions", params={"visitorId": "v1"}, headers=_auth(admin_key)
        )

        data = resp.json()
        assert data["total"] == 2
        assert {s["sessionId"] for s in data["sessions"]} == {"s-new", "s-old"}
        returning = next(s for s in data["sessions"] if s["sessionId"] == "s-new")
        assert returning["isNewVisitor"] is False

    @pytest.mark.asyncio
    async def test_filter_by_active(self, client: AsyncClient, admin_key: str, tracked):
        resp = await client.get(
            "/v1/sessions", params={"active": "false"}, headers=_auth(admin_key)
        )

        data = resp.json()
        assert data["total"] == 1
        assert data["sessions"][0]["sessionId"] == "s-old"
        assert data["sessions"][0]["isActive"] is False

    @pytest.mark.asyncio
    async def test_pagination(self, client: AsyncClient, admin_key: str, tracked):
        resp = await client.get(
            "/v1/sessions", params={"limit": 1, "offset": 1}, headers=_auth(admin_key)
        )

        data = resp.json()
        assert data["total"] == 3
        assert [s["sessionId"] for s in data["sessions"]] == ["s-new"]

    @pytest.mark.asyncio
    async def test_limit_out_of_range_rejected(self, client: AsyncClient, admin_key: str):
        resp = await client.get("/v1/sessions", params={"limit": 500}, headers=_auth(admin_key))
        assert resp.status_code == 400


# ---------------------------------------------------------------------------
# GET /v1/sessions/{session_id}
# ---------------------------------------------------------------------------


class TestSessionDetail:
    @pytest.mark.asyncio
    async def test_detail_includes_views_in_order(
        self, client: AsyncClient, admin_key: str, tracked
    ):
        resp = await client.get("/v1/sessions/s-old", headers=_auth(admin_key))

        assert resp.status_code == 200
        data = resp.json()
        assert data["sessionId"] == "s-old"
        assert data["pageViews"] == 2
        assert data["entryPage"] == "/"
        assert data["exitPage"] == "/about"
        assert [v["path"] for v in data["views"]] == ["/", "/about"]
        assert [v["exitPage"] for v in data["views"]] == [False, True]
        assert data["views"][1]["title"] == "Title of /about"

    @pytest.mark.asyncio
    async def test_unknown_session_is_404(self, client: AsyncClient, admin_key: str):
        resp = await client.get("/v1/sessions/nope", headers=_auth(admin_key))
        assert resp.status_code == 404
        assert resp.json() == {"success": False, "error": "not_found", "detail": "Session not found"}

    @pytest.mark.asyncio
    async def test_requires_admin(self, client: AsyncClient, editor_key: str, tracked):
        resp = await client.get("/v1/sessions/s-old", headers=_auth(editor_key))
        assert resp.status_code == 403
