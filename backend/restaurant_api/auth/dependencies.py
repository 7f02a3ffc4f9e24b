"""FastAPI Auth Dependencies — resolve the caller through the active strategy."""

from fastapi import Depends, Request

from restaurant_api.context import AppContext, get_app_context
from restaurant_api.core.domain_types import AuthUser
from restaurant_api.core.errors import AuthenticationError, ForbiddenError


async def optional_user(
    request: Request, context: AppContext = Depends(get_app_context),
) -> AuthUser | None:
    """The caller if credentials were presented, else None. Invalid credentials still raise 401."""
    return await context.auth.authenticate(request)


async def require_auth(
    request: Request, user: AuthUser | None = Depends(optional_user),
) -> AuthUser:
    """Reject unauthenticated requests with 401; expose the user on request.state."""
    if user is None:
        raise AuthenticationError()
    request.state.user = user
    return user


def require_role(*roles: str):
    """Dependency factory: 403 unless the caller's role is one of `roles`."""

    async def _check(user: AuthUser = Depends(require_auth)) -> AuthUser:
        if user.role not in roles:
            raise ForbiddenError(f"Role '{user.role}' is not allowed here")
        return user

    return _check
