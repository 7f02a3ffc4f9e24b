"""Restaurant API — FastAPI application factory and entry point.

Invariants:
    - Middleware order is fixed (outermost first): proxy headers → CORS → security headers →
      global limiter → auth limiter → body cap → session (cookie strategy) → request log →
      error translation
    - Routes registered explicitly; collaborator groups mounted under the API prefix
    - Global error handlers map every failure to the {"error": ...} envelope
    - The database pool is probed on startup (never fatal) and closed on shutdown,
      after uvicorn has stopped accepting connections and drained in-flight requests

Usage:
    uvicorn --factory restaurant_api.main:create_app
    restaurant-api            # graceful-shutdown runner, see server.py
"""

import logging
from contextlib import asynccontextmanager
from typing import Mapping

from fastapi import APIRouter, FastAPI
from starlette.middleware import Middleware
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from restaurant_api.api.error_handlers import register_error_handlers
from restaurant_api.api.middleware.body_limit import BodySizeLimitMiddleware
from restaurant_api.api.middleware.cors import CorsGateMiddleware
from restaurant_api.api.middleware.error_translation import ErrorTranslationMiddleware
from restaurant_api.api.middleware.rate_limit import (
    AuthRateLimitMiddleware, GlobalRateLimitMiddleware,
)
from restaurant_api.api.middleware.request_logging import RequestLoggingMiddleware
from restaurant_api.api.middleware.security_headers import SecurityHeadersMiddleware
from restaurant_api.api.routes import health, service_info
from restaurant_api.api.routes.collaborators import load_route_groups, mount_route_groups
from restaurant_api.api.routes.service_info import API_VERSION
from restaurant_api.config import Settings, get_settings
from restaurant_api.context import AppContext, build_context
from restaurant_api.core.shutdown import ShutdownCoordinator
from restaurant_api.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    context: AppContext = app.state.context
    settings = context.settings
    setup_logging(settings.log_level, settings.log_format)
    logger.info(
        f"Restaurant API starting on port {settings.port} "
        f"({settings.environment.value}, auth={context.auth.label})",
    )
    logger.info(f"CORS origins: {sorted(context.policy.cors_allowlist)}")
    logger.info(f"CORS patterns: {[p.pattern for p in context.policy.cors_patterns]}")

    if await context.db.health_check():
        logger.info("Connected to PostgreSQL")
    else:
        logger.error("PostgreSQL unreachable at startup, continuing without it")

    yield

    logger.info("HTTP server closed, closing database pool")
    await context.db.close()
    logger.info("Database pool closed")
    context.shutdown.mark_closed()


def build_middleware(context: AppContext) -> list[Middleware]:
    """The request pipeline, outermost first."""
    settings = context.settings
    return [
        Middleware(ProxyHeadersMiddleware, trusted_hosts=settings.forwarded_allow_ips),
        Middleware(CorsGateMiddleware, policy=context.cors),
        Middleware(SecurityHeadersMiddleware),
        Middleware(GlobalRateLimitMiddleware, limiter=context.global_limiter),
        Middleware(
            AuthRateLimitMiddleware,
            limiter=context.auth_limiter,
            path_prefix=f"{settings.api_prefix}/auth",
        ),
        Middleware(BodySizeLimitMiddleware, max_bytes=settings.max_body_bytes),
        *context.auth.middleware(),
        Middleware(RequestLoggingMiddleware, auth_strategy=context.auth),
        Middleware(ErrorTranslationMiddleware, policy=context.policy),
    ]


def create_app(
    settings: Settings | None = None,
    *,
    db=None,
    session_store=None,
    shutdown: ShutdownCoordinator | None = None,
    route_groups: Mapping[str, APIRouter] | None = None,
) -> FastAPI:
    """Build the application: context, middleware chain, routes, error handlers."""
    if settings is None:
        settings = get_settings()
    context = build_context(settings, db=db, session_store=session_store, shutdown=shutdown)

    app = FastAPI(
        title="Restaurant API",
        description="API for restaurant management",
        version=API_VERSION,
        lifespan=lifespan,
        middleware=build_middleware(context),
    )
    app.state.context = context

    prefix = settings.api_prefix
    app.include_router(service_info.router, prefix=prefix)
    app.include_router(health.router, prefix=prefix)
    if route_groups is None:
        route_groups = load_route_groups(settings.routes_package)
    mount_route_groups(app, route_groups, prefix)

    register_error_handlers(app, context.policy)
    return app

