"""CORS Gate — tests for the request-level allow/deny behaviour.

Tests cover:
    - allowed origins get echoed credentials-enabled CORS headers
    - denied origins reach the app but get no CORS headers
    - OPTIONS is always 204, with preflight headers only when allowed
    - requests without Origin pass untouched
"""

import logging


# ─── Simple requests ─────────────────────────────────────────────

async def test_allowed_origin_gets_cors_headers(client):
    response = await client.get("/", headers={"Origin": "http://localhost:3000"})
    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "http://localhost:3000"
    assert response.headers["access-control-allow-credentials"] == "true"
    assert response.headers["access-control-expose-headers"] == "Authorization"
    assert "Origin" in response.headers["vary"]


async def test_pattern_origin_is_echoed(client):
    origin = "https://restaurant-test-frontend-abc123.vercel.app"
    response = await client.get("/", headers={"Origin": origin})
    assert response.headers["access-control-allow-origin"] == origin


async def test_denied_origin_gets_no_cors_headers(client):
    response = await client.get("/", headers={"Origin": "https://evil.example.com"})
    assert response.status_code == 200
    assert "access-control-allow-origin" not in response.headers
    assert "access-control-allow-credentials" not in response.headers


async def test_no_origin_gets_no_cors_headers(client):
    response = await client.get("/")
    assert response.status_code == 200
    assert "access-control-allow-origin" not in response.headers


async def test_configured_origin_list(make_client):
    async with make_client(allowed_origins="https://a.example.com, https://b.example.com") as c:
        ok = await c.get("/", headers={"Origin": "https://b.example.com"})
        denied = await c.get("/", headers={"Origin": "http://localhost:3000x"})
    assert ok.headers["access-control-allow-origin"] == "https://b.example.com"
    assert "access-control-allow-origin" not in denied.headers


# ─── Preflight ───────────────────────────────────────────────────

async def test_preflight_allowed(client):
    response = await client.options("/anything/at/all", headers={
        "Origin": "http://localhost:5173",
        "Access-Control-Request-Method": "PATCH",
    })
    assert response.status_code == 204
    assert response.content == b""
    assert response.headers["access-control-allow-origin"] == "http://localhost:5173"
    assert "PATCH" in response.headers["access-control-allow-methods"]
    assert "Authorization" in response.headers["access-control-allow-headers"]
    assert response.headers["access-control-max-age"] == "86400"


async def test_preflight_denied_is_still_204_without_headers(client):
    response = await client.options("/", headers={"Origin": "https://evil.example.com"})
    assert response.status_code == 204
    assert "access-control-allow-origin" not in response.headers


async def test_preflight_is_never_rate_limited(make_client):
    async with make_client(rate_limit_global_max=1) as c:
        statuses = [(await c.options("/")).status_code for _ in range(3)]
    assert statuses == [204, 204, 204]


# ─── Logging ─────────────────────────────────────────────────────

async def test_every_decision_is_logged(client, caplog):
    caplog.set_level(logging.INFO, logger="restaurant_api.core.cors_policy")
    await client.get("/", headers={"Origin": "https://evil.example.com"})
    await client.get("/", headers={"Origin": "http://localhost:3000"})
    decisions = [r.decision for r in caplog.records if hasattr(r, "decision")]
    assert decisions == ["denied", "exact"]
