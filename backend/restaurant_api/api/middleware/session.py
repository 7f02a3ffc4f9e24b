"""Database Session Middleware — signed session-id cookie, payload in user_sessions.

Invariants:
    - The cookie only carries a signed sid; the payload never leaves the server
    - A bad signature, an expired signature or an unknown sid all mean "no session"
    - Rolling: every response to a request with a live session refreshes the row
      expiry and re-issues the cookie with a fresh Max-Age
    - Empty sessions are never persisted (no cookie until something is stored)
    - A changed user_id gets a new sid; the old row is destroyed
    - Clearing the session destroys the row and expires the cookie
"""

import logging
import secrets
from datetime import datetime, timedelta, timezone

from itsdangerous import BadSignature, TimestampSigner
from starlette.datastructures import MutableHeaders
from starlette.requests import HTTPConnection
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from restaurant_api.core.domain_types import SameSite

logger = logging.getLogger(__name__)


class DatabaseSessionMiddleware:
    def __init__(
        self,
        app: ASGIApp,
        store,
        secret_key: str,
        cookie_name: str = "restaurant.sid",
        max_age: int = 24 * 60 * 60,
        same_site: SameSite = SameSite.LAX,
        https_only: bool = False,
        path: str = "/",
    ) -> None:
        self.app = app
        self.store = store
        self.signer = TimestampSigner(str(secret_key))
        self.cookie_name = cookie_name
        self.max_age = max_age
        self.path = path
        self.security_flags = f"httponly; samesite={same_site.value}"
        if https_only:
            self.security_flags += "; secure"

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] not in ("http", "websocket"):
            await self.app(scope, receive, send)
            return

        connection = HTTPConnection(scope)
        initial_sid = self._unsign(connection.cookies.get(self.cookie_name))
        initial_data: dict = {}
        if initial_sid is not None:
            loaded = await self.store.get(initial_sid)
            if loaded is None:
                initial_sid = None
            else:
                initial_data = loaded

        scope["session"] = dict(initial_data)
        scope["session_id"] = initial_sid

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                cookie = await self._commit(initial_sid, initial_data, scope["session"])
                if cookie is not None:
                    message.setdefault("headers", [])
                    MutableHeaders(scope=message).append("Set-Cookie", cookie)
            await send(message)

        await self.app(scope, receive, send_wrapper)

    async def _commit(self, sid: str | None, before: dict, after: dict) -> str | None:
        """Persist the session and return the Set-Cookie value, if any."""
        if not after:
            if sid is None:
                return None
            await self.store.destroy(sid)
            logger.debug("Session destroyed", extra={"session_id": sid[:8]})
            return self._cookie("null", max_age=0)

        expire = datetime.now(timezone.utc) + timedelta(seconds=self.max_age)
        if sid is not None and before.get("user_id") != after.get("user_id"):
            await self.store.destroy(sid)
            sid = None
        if sid is None:
            sid = secrets.token_urlsafe(32)
            await self.store.set(sid, after, expire)
        elif after != before:
            await self.store.set(sid, after, expire)
        else:
            await self.store.touch(sid, expire)
        signed = self.signer.sign(sid.encode("utf-8")).decode("utf-8")
        return self._cookie(signed, max_age=self.max_age)

    def _unsign(self, value: str | None) -> str | None:
        if not value:
            return None
        try:
            return self.signer.unsign(value.encode("utf-8"), max_age=self.max_age).decode("utf-8")
        except BadSignature:
            return None

    def _cookie(self, value: str, max_age: int) -> str:
        expires = "expires=Thu, 01 Jan 1970 00:00:00 GMT; " if max_age == 0 else ""
        return (
            f"{self.cookie_name}={value}; path={self.path}; {expires}"
            f"Max-Age={max_age}; {self.security_flags}"
        )
