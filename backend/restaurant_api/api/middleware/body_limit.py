"""Body Size Cap — rejects JSON and form-encoded bodies above max_bytes.

Invariants:
    - Declared Content-Length above the cap → 413 before the app runs
    - Chunked/undeclared bodies are counted while streamed; on overflow the app is told the
      client went away, its output is discarded and this stage answers 413 itself
    - Other content types (file uploads) are left to their handlers
"""

import logging

from fastapi.responses import JSONResponse
from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from restaurant_api.core.errors import PayloadTooLargeError

logger = logging.getLogger(__name__)

CAPPED_CONTENT_TYPES = ("application/json", "application/x-www-form-urlencoded")


def _is_capped(content_type: str) -> bool:
    media_type = content_type.split(";", 1)[0].strip().lower()
    return media_type in CAPPED_CONTENT_TYPES or media_type.endswith("+json")


class BodySizeLimitMiddleware:
    def __init__(self, app: ASGIApp, max_bytes: int) -> None:
        self.app = app
        self.max_bytes = max_bytes

    def _too_large(self) -> JSONResponse:
        error = PayloadTooLargeError(self.max_bytes)
        return JSONResponse(status_code=error.http_status, content=error.to_response())

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = Headers(scope=scope)
        if not _is_capped(headers.get("content-type", "")):
            await self.app(scope, receive, send)
            return

        declared = headers.get("content-length")
        if declared is not None and declared.isdigit() and int(declared) > self.max_bytes:
            await self._too_large()(scope, receive, send)
            return

        received = 0
        exceeded = False
        response_started = False

        async def limited_receive() -> Message:
            nonlocal received, exceeded
            if exceeded:
                return {"type": "http.disconnect"}
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_bytes:
                    exceeded = True
                    return {"type": "http.disconnect"}
            return message

        async def guarded_send(message: Message) -> None:
            nonlocal response_started
            if exceeded and not response_started:
                return
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, limited_receive, guarded_send)
        except Exception:
            if not exceeded or response_started:
                raise
            logger.debug("App aborted on oversized body", exc_info=True)

        if exceeded and not response_started:
            logger.warning(
                f"Request body over {self.max_bytes} bytes rejected",
                extra={"path": scope.get("path"), "status_code": 413},
            )
            await self._too_large()(scope, receive, send)
