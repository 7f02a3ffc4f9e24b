"""Error Translation — innermost stage turning unhandled exceptions into error envelopes.

Invariants:
    - Sits inside the chain, so CORS, security and rate-limit stages see a normal response
    - Only exceptions raised before the response started are translated; later ones propagate
"""

from fastapi import Request
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from restaurant_api.api.error_handlers import unhandled_error_response
from restaurant_api.config import ServerPolicy


class ErrorTranslationMiddleware:
    def __init__(self, app: ASGIApp, policy: ServerPolicy) -> None:
        self.app = app
        self.policy = policy

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def send_tracking(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, receive, send_tracking)
        except Exception as exc:
            if response_started:
                raise
            response = unhandled_error_response(Request(scope), exc, self.policy)
            await response(scope, receive, send)
