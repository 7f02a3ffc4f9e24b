"""Session Store — server-side session payloads in the user_sessions table.

Invariants:
    - get() never returns a row whose expire has passed
    - set() is an upsert: the same sid always maps to exactly one row
    - touch() only moves expire; the payload is untouched
    - Expiry comparisons happen in SQL against UTC timestamps
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import delete, select, update

from restaurant_api.models.user_session import UserSession

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PostgresSessionStore:
    """Session persistence on the shared connection pool."""

    def __init__(self, db):
        self._db = db

    async def get(self, sid: str) -> dict | None:
        async with self._db.session() as session:
            result = await session.execute(
                select(UserSession.sess).where(
                    UserSession.sid == sid, UserSession.expire > utcnow(),
                ),
            )
            return result.scalar_one_or_none()

    async def set(self, sid: str, data: dict, expire: datetime) -> None:
        async with self._db.session() as session:
            await session.merge(UserSession(sid=sid, sess=data, expire=expire))
            await session.commit()

    async def touch(self, sid: str, expire: datetime) -> None:
        async with self._db.session() as session:
            await session.execute(
                update(UserSession).where(UserSession.sid == sid).values(expire=expire),
            )
            await session.commit()

    async def destroy(self, sid: str) -> None:
        async with self._db.session() as session:
            await session.execute(delete(UserSession).where(UserSession.sid == sid))
            await session.commit()

    async def prune_expired(self) -> int:
        """Bulk-delete expired rows; returns how many were removed."""
        async with self._db.session() as session:
            result = await session.execute(
                delete(UserSession).where(UserSession.expire <= utcnow()),
            )
            await session.commit()
        if result.rowcount:
            logger.info(f"Pruned {result.rowcount} expired sessions")
        return result.rowcount or 0
