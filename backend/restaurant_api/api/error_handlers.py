"""Error Handlers — global exception handlers producing the {"error": ...} envelope.

Invariants:
    - RestaurantAPIError → its declared status and message (5xx redacted in production)
    - HTTPException → its status and detail; an unmatched route, or a known path with an
      unsupported method, → 404 with path and method
    - RequestValidationError → 400 with field details outside production
    - Exception → declared status/status_code attribute if any, else 500; rendered inside the
      middleware chain by ErrorTranslationMiddleware, the app-level handler is a last resort
    - Stack traces appear only in development; production 5xx bodies use a fixed message
"""

import logging
import traceback

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from restaurant_api.config import ServerPolicy
from restaurant_api.core.errors import RestaurantAPIError

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Internal server error"
ROUTE_NOT_FOUND_MESSAGE = "Route not found"


def register_error_handlers(app: FastAPI, policy: ServerPolicy) -> None:
    """Register all global error handlers on the FastAPI app."""
    _register_domain_error_handler(app, policy)
    _register_http_error_handler(app, policy)
    _register_validation_error_handler(app, policy)
    _register_generic_error_handler(app, policy)


def build_error_body(
    exc: BaseException, status_code: int, message: str, policy: ServerPolicy,
) -> dict:
    """{"error": message} plus stack/details in development."""
    if status_code >= 500 and not policy.expose_error_details:
        message = GENERIC_ERROR_MESSAGE
    body: dict = {"error": message}
    if policy.include_stack:
        body["stack"] = "".join(
            traceback.format_exception(type(exc), exc, exc.__traceback__),
        )
        body["details"] = f"{type(exc).__name__}: {exc}"
    return body


def declared_status(exc: BaseException) -> int:
    """Status carried by an arbitrary exception (`status_code` or `status`), else 500."""
    for attr in ("status_code", "status"):
        value = getattr(exc, attr, None)
        if isinstance(value, int) and 400 <= value <= 599:
            return value
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def not_found_body(request: Request) -> dict:
    return {
        "error": ROUTE_NOT_FOUND_MESSAGE,
        "path": request.url.path,
        "method": request.method,
    }


def is_unrouted(request: Request, exc: StarletteHTTPException) -> bool:
    """True for the router's own 404/405: no route takes this method on this path."""
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        return request.scope.get("endpoint") is None
    if exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
        allow = (exc.headers or {}).get("Allow", "")
        allowed = {m.strip().upper() for m in allow.split(",") if m.strip()}
        return bool(allowed) and request.method not in allowed
    return False


def unhandled_error_response(request: Request, exc: Exception, policy: ServerPolicy) -> JSONResponse:
    status_code = declared_status(exc)
    logger.error(
        f"Unhandled exception on {request.url.path}: {exc}",
        exc_info=(type(exc), exc, exc.__traceback__),
        extra={"path": request.url.path, "status_code": status_code},
    )
    return JSONResponse(
        status_code=status_code,
        content=build_error_body(exc, status_code, str(exc) or type(exc).__name__, policy),
    )


def _register_domain_error_handler(app: FastAPI, policy: ServerPolicy) -> None:

    @app.exception_handler(RestaurantAPIError)
    async def domain_error_handler(request: Request, exc: RestaurantAPIError):
        log = logger.warning if exc.is_client_error else logger.error
        log(
            f"{type(exc).__name__}: {exc.message}",
            extra={"error_code": exc.code, "path": request.url.path, "status_code": exc.http_status},
        )
        return JSONResponse(
            status_code=exc.http_status,
            content=build_error_body(exc, exc.http_status, exc.message, policy),
            headers=exc.headers or None,
        )


def _register_http_error_handler(app: FastAPI, policy: ServerPolicy) -> None:

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if is_unrouted(request, exc):
            logger.info(
                f"Route not found: {request.method} {request.url.path}",
                extra={"path": request.url.path, "method": request.method, "status_code": 404},
            )
            return JSONResponse(status_code=404, content=not_found_body(request))
        return JSONResponse(
            status_code=exc.status_code,
            content=build_error_body(exc, exc.status_code, str(exc.detail), policy),
            headers=getattr(exc, "headers", None),
        )


def _register_validation_error_handler(app: FastAPI, policy: ServerPolicy) -> None:

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"Validation error on {request.url.path}: {exc.errors()}")
        body: dict = {"error": "Invalid request data"}
        if policy.expose_error_details:
            body["fields"] = [
                {
                    "field": ".".join(str(loc) for loc in e["loc"]),
                    "message": e["msg"],
                    "type": e["type"],
                }
                for e in exc.errors()
            ]
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=body)


def _register_generic_error_handler(app: FastAPI, policy: ServerPolicy) -> None:

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        return unhandled_error_response(request, exc, policy)
