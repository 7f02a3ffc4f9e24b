"""CORS Gate — allow/deny by Origin before any route logic runs.

Invariants:
    - Every request is classified once by CorsPolicy.evaluate (logged)
    - Allowed origins are echoed back explicitly (credentials require no wildcard)
    - Denied requests still reach the app, but the response carries no CORS headers
    - OPTIONS is always answered here with 204; the chain below never sees it
"""

from starlette.datastructures import Headers, MutableHeaders
from starlette.responses import Response
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from restaurant_api.core.cors_policy import CorsPolicy

ALLOW_METHODS = "GET, POST, PUT, DELETE, OPTIONS, PATCH"
ALLOW_HEADERS = "Content-Type, Authorization, X-Requested-With, Accept"
EXPOSE_HEADERS = "Authorization"
PREFLIGHT_MAX_AGE = 86400


class CorsGateMiddleware:
    def __init__(self, app: ASGIApp, policy: CorsPolicy) -> None:
        self.app = app
        self.policy = policy

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        origin = Headers(scope=scope).get("origin")
        decision = self.policy.evaluate(origin)

        if scope["method"] == "OPTIONS":
            response = Response(status_code=204)
            if decision.allowed:
                response.headers.update({
                    "Access-Control-Allow-Origin": origin or "*",
                    "Access-Control-Allow-Methods": ALLOW_METHODS,
                    "Access-Control-Allow-Headers": ALLOW_HEADERS,
                    "Access-Control-Allow-Credentials": "true",
                    "Access-Control-Max-Age": str(PREFLIGHT_MAX_AGE),
                })
                if origin:
                    response.headers["Vary"] = "Origin"
            await response(scope, receive, send)
            return

        if origin is None or not decision.allowed:
            await self.app(scope, receive, send)
            return

        async def send_with_cors(message: Message) -> None:
            if message["type"] == "http.response.start":
                message.setdefault("headers", [])
                headers = MutableHeaders(scope=message)
                headers["Access-Control-Allow-Origin"] = origin
                headers["Access-Control-Allow-Credentials"] = "true"
                headers["Access-Control-Expose-Headers"] = EXPOSE_HEADERS
                headers.add_vary_header("Origin")
            await send(message)

        await self.app(scope, receive, send_with_cors)
