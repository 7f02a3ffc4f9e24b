"""Authentication — one strategy per process, selected at startup.

Usage:
    from restaurant_api.auth.dependencies import require_auth
    from restaurant_api.core.domain_types import AuthUser

    @router.get("/protected")
    async def protected(user: AuthUser = Depends(require_auth)):
        return {"user_id": user.id}
"""
