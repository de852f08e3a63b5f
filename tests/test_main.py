"""Tests for application-level middleware and configuration in blogstats.main."""

import json
import uuid

import pytest
from httpx import AsyncClient


def _pageview(**overrides) -> dict:
    payload = {
        "visitorId": f"v-{uuid.uuid4().hex[:10]}",
        "sessionId": f"s-{uuid.uuid4().hex[:10]}",
        "path": "/",
        "timestamp": "2026-02-21T10:00:00Z",
    }
    payload.update(overrides)
    return payload


# ---------------------------------------------------------------------------
# Security headers
# ---------------------------------------------------------------------------


class TestSecurityHeaders:
    @pytest.mark.asyncio
    async def test_x_content_type_options_present(self, client: AsyncClient):
        resp = await client.get("/health")
        assert resp.headers.get("x-content-type-options") == "nosniff"

    @pytest.mark.asyncio
    async def test_x_frame_options_present(self, client: AsyncClient):
        resp = await client.get("/health")
        assert resp.headers.get("x-frame-options") == "DENY"

    @pytest.mark.asyncio
    async def test_cache_control_present(self, client: AsyncClient):
        resp = await client.get("/health")
        assert resp.headers.get("cache-control") == "no-store"

    @pytest.mark.asyncio
    async def test_security_headers_on_error_response(self, client: AsyncClient):
        """Security headers should be present on all responses, including 4xx."""
        resp = await client.post("/v1/track/pageview", json={"path": "/"})
        assert resp.status_code == 400
        assert "x-content-type-options" in resp.headers
        assert "x-frame-options" in resp.headers
        assert "cache-control" in resp.headers


# ---------------------------------------------------------------------------
# CORS headers
# ---------------------------------------------------------------------------


class TestCORSHeaders:
    @pytest.mark.asyncio
    async def test_cors_preflight_on_track_endpoint(self, client: AsyncClient):
        resp = await client.options(
            "/v1/track/pageview",
            headers={
                "Origin": "https://blog.example.com",
                "Access-Control-Request-Method": "POST",
            },
        )
        assert resp.status_code in (200, 204)
        assert resp.headers["access-control-allow-origin"] == "https://blog.example.com"

    @pytest.mark.asyncio
    async def test_cors_allows_credentials(self, client: AsyncClient):
        """Tracking cookies need credentialed requests, so the origin is echoed."""
        resp = await client.get("/health", headers={"Origin": "https://blog.example.com"})
        assert resp.headers["access-control-allow-origin"] == "https://blog.example.com"
        assert resp.headers["access-control-allow-credentials"] == "true"


# ---------------------------------------------------------------------------
# text/plain middleware
# ---------------------------------------------------------------------------


class TestTextPlainMiddleware:
    @pytest.mark.asyncio
    async def test_beacon_pageview_with_text_plain_is_parsed(self, client: AsyncClient):
        """sendBeacon bodies arrive as text/plain and must still be parsed as JSON."""
        resp = await client.post(
            "/v1/track/pageview",
            content=json.dumps(_pageview()).encode(),
            headers={"Content-Type": "text/plain;charset=UTF-8"},
        )
        assert resp.status_code == 201

    @pytest.mark.asyncio
    async def test_beacon_session_end_with_text_plain_is_parsed(self, client: AsyncClient):
        """Unknown session yields 404 from the tracker, not 400 from body parsing."""
        resp = await client.post(
            "/v1/track/session-end",
            content=json.dumps({"sessionId": "never-started"}).encode(),
            headers={"Content-Type": "text/plain"},
        )
        assert resp.status_code == 404
        assert resp.json()["error"] == "not_found"


# ---------------------------------------------------------------------------
# Error payloads
# ---------------------------------------------------------------------------


class TestErrorPayloads:
    @pytest.mark.asyncio
    async def test_unknown_route_uses_error_payload(self, client: AsyncClient):
        resp = await client.get("/v1/nope")
        assert resp.status_code == 404
        assert resp.json() == {"success": False, "error": "not_found", "detail": "Not Found"}

    @pytest.mark.asyncio
    async def test_wrong_method_uses_error_payload(self, client: AsyncClient):
        resp = await client.get("/v1/track/pageview")
        assert resp.status_code == 405
        assert resp.json()["error"] == "method_not_allowed"

    @pytest.mark.asyncio
    async def test_malformed_json_is_validation_error(self, client: AsyncClient):
        resp = await client.post(
            "/v1/track/pageview",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )
        assert resp.status_code == 400
        body = resp.json()
        assert body["success"] is False
        assert body["error"] == "validation_error"


# ---------------------------------------------------------------------------
# OpenAPI docs (development mode)
# ---------------------------------------------------------------------------


class TestOpenAPIDocs:
    @pytest.mark.asyncio
    async def test_openapi_json_available(self, client: AsyncClient):
        """In development mode, /openapi.json must return the schema."""
        resp = await client.get("/openapi.json")
        assert resp.status_code == 200

    @pytest.mark.asyncio
    async def test_docs_available(self, client: AsyncClient):
        resp = await client.get("/docs")
        assert resp.status_code == 200

    @pytest.mark.asyncio
    async def test_openapi_schema_contains_paths(self, client: AsyncClient):
        resp = await client.get("/openapi.json")
        paths = resp.json()["paths"]
        for path in (
            "/v1/track/pageview",
            "/v1/track/exit",
            "/v1/track/session-end",
            "/v1/track/status",
            "/v1/sessions",
            "/v1/sessions/{session_id}",
            "/v1/stats",
            "/v1/admin/sessions/close-idle",
            "/health",
        ):
            assert path in paths
