"""Authentication Strategies — bearer JWT or server-side cookie session, one per process.

Invariants:
    - Exactly one AuthStrategy is active; build_auth_strategy() picks it from settings
    - authenticate() returns None when no credentials are presented and raises
      AuthenticationError when credentials are presented but invalid
    - describe_request() never exposes a token or a full session id
    - Production refuses to start with the development secrets
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone

from fastapi import Request
from jose import ExpiredSignatureError, JWTError, jwt
from starlette.middleware import Middleware

from restaurant_api.api.middleware.session import DatabaseSessionMiddleware
from restaurant_api.config import DEV_JWT_SECRET, DEV_SESSION_SECRET, ServerPolicy, Settings
from restaurant_api.core.domain_types import AuthStrategyName, AuthUser
from restaurant_api.core.errors import AuthenticationError, ConfigurationError

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"


class AuthStrategy(ABC):
    """How a request proves who it comes from."""

    name: AuthStrategyName
    label: str

    def middleware(self) -> list[Middleware]:
        """Middleware this strategy needs in the request chain (session stage)."""
        return []

    @abstractmethod
    async def authenticate(self, request: Request) -> AuthUser | None:
        ...

    @abstractmethod
    def describe_request(self, request: Request) -> dict:
        """Redacted auth facts for debug logging."""
        ...

    async def snapshot(self, request: Request) -> dict:
        """Auth status block for the health endpoint."""
        try:
            user = await self.authenticate(request)
        except AuthenticationError:
            user = None
        return {"strategy": self.name.value, "authenticated": user is not None}


# ─── Bearer Token ────────────────────────────────────────────────

class BearerTokenStrategy(AuthStrategy):
    """Stateless: every request carries `Authorization: Bearer <jwt>`."""

    name = AuthStrategyName.JWT
    label = "JWT"

    def __init__(self, secret: str, expires_hours: int = 24):
        self._secret = secret
        self.expires_hours = expires_hours

    @staticmethod
    def extract_token(request: Request) -> str | None:
        header = request.headers.get("authorization", "")
        scheme, _, token = header.partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            return None
        return token.strip()

    def issue_token(self, user: AuthUser) -> str:
        """Mint a signed token for the auth collaborator to hand out at login."""
        now = datetime.now(timezone.utc)
        claims = {
            "sub": str(user.id),
            "userId": user.id,
            "email": user.email,
            "role": user.role,
            "iat": now,
            "exp": now + timedelta(hours=self.expires_hours),
        }
        return jwt.encode(claims, self._secret, algorithm=JWT_ALGORITHM)

    def decode_token(self, token: str) -> AuthUser:
        try:
            payload = jwt.decode(token, self._secret, algorithms=[JWT_ALGORITHM])
        except ExpiredSignatureError:
            logger.info("Rejected expired token")
            raise AuthenticationError("Token expired")
        except JWTError as e:
            logger.warning(f"Rejected invalid token: {e}")
            raise AuthenticationError("Invalid token")

        user_id = payload.get("userId") or payload.get("id") or payload.get("sub")
        if not user_id:
            logger.warning("Token missing user id claim")
            raise AuthenticationError("Invalid token: missing user id")
        return AuthUser(id=str(user_id), email=payload.get("email"), role=payload.get("role"))

    async def authenticate(self, request: Request) -> AuthUser | None:
        token = self.extract_token(request)
        if token is None:
            return None
        return self.decode_token(token)

    def describe_request(self, request: Request) -> dict:
        present = self.extract_token(request) is not None
        return {"auth": "Bearer ***" if present else "none"}


# ─── Cookie Session ──────────────────────────────────────────────

class CookieSessionStrategy(AuthStrategy):
    """Stateful: signed session cookie, payload in the user_sessions table."""

    name = AuthStrategyName.SESSION
    label = "Session"

    def __init__(
        self,
        store,
        secret: str,
        cookie_name: str,
        max_age_seconds: int,
        policy: ServerPolicy,
    ):
        self.store = store
        self._secret = secret
        self.cookie_name = cookie_name
        self.max_age_seconds = max_age_seconds
        self.policy = policy

    def middleware(self) -> list[Middleware]:
        return [
            Middleware(
                DatabaseSessionMiddleware,
                store=self.store,
                secret_key=self._secret,
                cookie_name=self.cookie_name,
                max_age=self.max_age_seconds,
                same_site=self.policy.same_site,
                https_only=self.policy.secure_cookies,
            ),
        ]

    @staticmethod
    def _session(request: Request) -> dict:
        return request.scope.get("session") or {}

    async def authenticate(self, request: Request) -> AuthUser | None:
        session = self._session(request)
        user_id = session.get("user_id")
        if user_id is None:
            return None
        return AuthUser(id=str(user_id), email=session.get("email"), role=session.get("role"))

    def login(self, request: Request, user: AuthUser) -> None:
        """Bind the session to a user; the middleware rotates the sid on commit."""
        session = request.scope["session"]
        session.clear()
        session.update({"user_id": user.id, "email": user.email, "role": user.role})

    def logout(self, request: Request) -> None:
        request.scope["session"].clear()

    def describe_request(self, request: Request) -> dict:
        sid = request.scope.get("session_id")
        return {
            "session_id": sid[:8] if sid else "none",
            "user_id": self._session(request).get("user_id"),
        }

    async def snapshot(self, request: Request) -> dict:
        session = self._session(request)
        return {
            "strategy": self.name.value,
            "authenticated": session.get("user_id") is not None,
            "session_active": request.scope.get("session_id") is not None,
            "user_id": session.get("user_id"),
            "role": session.get("role"),
        }


def build_auth_strategy(settings: Settings, policy: ServerPolicy, store=None) -> AuthStrategy:
    """Select the single authentication model for this process."""
    if settings.auth_strategy is AuthStrategyName.SESSION:
        if settings.is_production and settings.session_secret == DEV_SESSION_SECRET:
            raise ConfigurationError("SESSION_SECRET must be set in production")
        if store is None:
            raise ConfigurationError("Session strategy requires a session store")
        return CookieSessionStrategy(
            store=store,
            secret=settings.session_secret,
            cookie_name=settings.session_cookie_name,
            max_age_seconds=settings.session_max_age_hours * 3600,
            policy=policy,
        )
    if settings.is_production and settings.jwt_secret == DEV_JWT_SECRET:
        raise ConfigurationError("JWT_SECRET must be set in production")
    return BearerTokenStrategy(settings.jwt_secret, settings.jwt_expires_hours)
