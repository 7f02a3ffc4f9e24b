"""Service Banner and auth self-check."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from restaurant_api.auth.dependencies import require_auth
from restaurant_api.context import AppContext, get_app_context
from restaurant_api.core.domain_types import AuthUser

API_VERSION = "2.0.0"

router = APIRouter(tags=["service"])


@router.get("/")
async def service_banner(context: AppContext = Depends(get_app_context)):
    return {
        "status": "OK",
        "message": f"Restaurant API - {context.auth.label} Auth",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": context.settings.environment.value,
        "auth": context.auth.label,
        "version": API_VERSION,
    }


@router.get("/test-auth")
async def test_auth(user: AuthUser = Depends(require_auth)):
    """Echo the authenticated caller — quick check that credentials are accepted."""
    return {"message": "Authenticated", "user": user.to_dict()}
