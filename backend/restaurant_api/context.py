"""Application Context — every long-lived resource, built once per app and passed by handle.

Invariants:
    - Exactly one AppContext per FastAPI app, stored on app.state.context
    - The connection pool, limiters and shutdown coordinator are owned here; handlers borrow them
    - No module-level mutable state anywhere else in the package
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone

from fastapi import Request

from restaurant_api.auth.strategies import AuthStrategy, build_auth_strategy
from restaurant_api.config import ServerPolicy, Settings
from restaurant_api.core.cors_policy import CorsPolicy
from restaurant_api.core.domain_types import AuthStrategyName
from restaurant_api.core.shutdown import ShutdownCoordinator
from restaurant_api.infrastructure.database import DatabaseSessionManager
from restaurant_api.infrastructure.rate_limiting import ClientRateLimiter
from restaurant_api.infrastructure.session_store import PostgresSessionStore


@dataclass
class AppContext:
    settings: Settings
    policy: ServerPolicy
    cors: CorsPolicy
    db: DatabaseSessionManager
    auth: AuthStrategy
    global_limiter: ClientRateLimiter
    auth_limiter: ClientRateLimiter
    shutdown: ShutdownCoordinator
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def build_context(
    settings: Settings,
    *,
    db: DatabaseSessionManager | None = None,
    session_store=None,
    shutdown: ShutdownCoordinator | None = None,
) -> AppContext:
    """Resolve policy, create the (lazy) pool, and select the auth strategy."""
    policy = ServerPolicy.from_settings(settings)
    if db is None:
        db = DatabaseSessionManager.from_settings(settings)
    if session_store is None and settings.auth_strategy is AuthStrategyName.SESSION:
        session_store = PostgresSessionStore(db)
    return AppContext(
        settings=settings,
        policy=policy,
        cors=CorsPolicy(policy.cors_allowlist, policy.cors_patterns),
        db=db,
        auth=build_auth_strategy(settings, policy, session_store),
        global_limiter=ClientRateLimiter("global", policy.global_limit),
        auth_limiter=ClientRateLimiter("auth", policy.auth_limit),
        shutdown=shutdown or ShutdownCoordinator(settings.shutdown_timeout_seconds),
    )


def get_app_context(request: Request) -> AppContext:
    """FastAPI dependency for the app-wide context."""
    return request.app.state.context
