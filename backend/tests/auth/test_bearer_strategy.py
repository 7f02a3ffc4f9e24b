"""Bearer Token Strategy — tests for JWT issue/verify and the /test-auth round trip.

Tests cover:
    - tokens issued by the strategy authenticate on /test-auth
    - missing, malformed, expired and foreign-signed tokens → 401
    - debug request logging never contains the token
"""

import logging
from datetime import datetime, timedelta, timezone

import pytest
from fastapi import APIRouter, Depends
from jose import jwt

from restaurant_api.auth.dependencies import require_role
from restaurant_api.auth.strategies import JWT_ALGORITHM, BearerTokenStrategy
from restaurant_api.core.domain_types import AuthUser
from restaurant_api.core.errors import AuthenticationError

SECRET = "test-jwt-secret"


@pytest.fixture
def strategy():
    return BearerTokenStrategy(SECRET, expires_hours=1)


def _bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


# ─── Token handling ──────────────────────────────────────────────

def test_issue_and_decode(strategy):
    user = AuthUser(id="42", email="chef@example.com", role="admin")
    assert strategy.decode_token(strategy.issue_token(user)) == user


def test_expired_token(strategy):
    past = datetime.now(timezone.utc) - timedelta(hours=2)
    token = jwt.encode(
        {"userId": "1", "iat": past, "exp": past + timedelta(hours=1)},
        SECRET, algorithm=JWT_ALGORITHM,
    )
    with pytest.raises(AuthenticationError, match="Token expired"):
        strategy.decode_token(token)


def test_foreign_signature(strategy):
    token = jwt.encode({"userId": "1"}, "another-secret", algorithm=JWT_ALGORITHM)
    with pytest.raises(AuthenticationError, match="Invalid token"):
        strategy.decode_token(token)


def test_token_without_user_id(strategy):
    token = jwt.encode({"email": "a@b.c"}, SECRET, algorithm=JWT_ALGORITHM)
    with pytest.raises(AuthenticationError, match="missing user id"):
        strategy.decode_token(token)


def test_legacy_id_claim_is_accepted(strategy):
    token = jwt.encode({"id": 7, "role": "user"}, SECRET, algorithm=JWT_ALGORITHM)
    assert strategy.decode_token(token) == AuthUser(id="7", role="user")


# ─── Through the app ─────────────────────────────────────────────

async def test_test_auth_with_valid_token(client, strategy):
    token = strategy.issue_token(AuthUser(id="42", email="chef@example.com", role="admin"))
    response = await client.get("/test-auth", headers=_bearer(token))
    assert response.status_code == 200
    assert response.json() == {
        "message": "Authenticated",
        "user": {"id": "42", "email": "chef@example.com", "role": "admin"},
    }


@pytest.mark.parametrize("headers", [
    {},
    {"Authorization": "Bearer"},
    {"Authorization": "Basic dXNlcjpwYXNz"},
])
async def test_test_auth_without_bearer_token(client, headers):
    response = await client.get("/test-auth", headers=headers)
    assert response.status_code == 401
    assert response.json() == {"error": "Authentication required"}


async def test_test_auth_with_garbage_token(client):
    response = await client.get("/test-auth", headers=_bearer("not.a.jwt"))
    assert response.status_code == 401
    assert response.json() == {"error": "Invalid token"}


async def test_health_snapshot_reflects_token(client, strategy):
    token = strategy.issue_token(AuthUser(id="1"))
    response = await client.get("/health", headers=_bearer(token))
    assert response.json()["session"] == {"strategy": "jwt", "authenticated": True}


async def test_request_log_redacts_token(make_client, strategy, caplog):
    caplog.set_level(logging.DEBUG, logger="restaurant_api.api.middleware.request_logging")
    token = strategy.issue_token(AuthUser(id="1"))
    async with make_client() as c:
        await c.get("/", headers=_bearer(token))
    auth_fields = [r.auth for r in caplog.records if hasattr(r, "auth")]
    assert auth_fields == ["Bearer ***"]
    assert token not in caplog.text


# ─── Role guard ──────────────────────────────────────────────────

async def test_require_role(make_client, strategy):
    router = APIRouter()

    @router.get("/admin-only")
    async def admin_only(user: AuthUser = Depends(require_role("admin"))):
        return {"id": user.id}

    admin = strategy.issue_token(AuthUser(id="1", role="admin"))
    guest = strategy.issue_token(AuthUser(id="2", role="user"))
    async with make_client(route_groups={"dashboard": router}) as c:
        allowed = await c.get("/dashboard/admin-only", headers=_bearer(admin))
        forbidden = await c.get("/dashboard/admin-only", headers=_bearer(guest))
        anonymous = await c.get("/dashboard/admin-only")

    assert allowed.json() == {"id": "1"}
    assert forbidden.status_code == 403
    assert forbidden.json() == {"error": "Role 'user' is not allowed here"}
    assert anonymous.status_code == 401
