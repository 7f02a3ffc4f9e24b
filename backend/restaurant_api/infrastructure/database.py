"""Database Pool Manager — async PostgreSQL connection pool with rollback and health checks.

Invariants:
    - One DatabaseSessionManager per process, owned by AppContext; route collaborators borrow it
    - Pool bounds: 20 connections, no overflow, 30s idle recycle, 2s connect timeout
    - TLS is used without certificate verification when enabled (managed Postgres hosts)
    - Pool-level faults are logged and never propagate out of the pool
    - Every session auto-rolls-back on exception; SQLAlchemy errors map to DatabaseError
"""

import logging
import ssl
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy import event, text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import (
    IntegrityError, OperationalError, DBAPIError, SQLAlchemyError,
)
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)

from restaurant_api.core.errors import DatabaseError

logger = logging.getLogger(__name__)


def build_engine_options(
    database_url: str,
    *,
    pool_size: int = 20,
    idle_timeout_seconds: int = 30,
    connect_timeout_seconds: float = 2.0,
    use_ssl: bool = True,
) -> dict:
    """Engine kwargs for the given URL. Pool bounds only apply to server databases."""
    url = make_url(database_url)
    if url.get_backend_name() != "postgresql":
        return {}
    connect_args: dict = {"timeout": connect_timeout_seconds}
    if use_ssl:
        ctx = ssl.create_default_context()
        ctx.check_hostname = False
        ctx.verify_mode = ssl.CERT_NONE
        connect_args["ssl"] = ctx
    return {
        "pool_size": pool_size,
        "max_overflow": 0,
        "pool_recycle": idle_timeout_seconds,
        "pool_timeout": connect_timeout_seconds,
        "pool_pre_ping": True,
        "connect_args": connect_args,
    }


class DatabaseSessionManager:
    """Manages the async engine, its sessions, and its lifecycle."""

    def __init__(self, database_url: str, **engine_options):
        self.engine = create_async_engine(database_url, **engine_options)
        self._session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        event.listen(self.engine.sync_engine, "handle_error", _log_engine_error)
        event.listen(self.engine.sync_engine, "invalidate", _log_invalidated_connection)

    @classmethod
    def from_settings(cls, settings) -> "DatabaseSessionManager":
        return cls(
            settings.database_url,
            **build_engine_options(
                settings.database_url,
                pool_size=settings.database_pool_size,
                idle_timeout_seconds=settings.database_idle_timeout_seconds,
                connect_timeout_seconds=settings.database_connect_timeout_seconds,
                use_ssl=settings.database_ssl,
            ),
        )

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Provide session with auto-rollback on exception."""
        session = self._session_factory()
        try:
            yield session
        except IntegrityError as e:
            await session.rollback()
            logger.error(f"DB integrity error: {e}")
            raise DatabaseError("Integrity constraint violated", "commit")
        except OperationalError as e:
            await session.rollback()
            logger.error(f"DB operational error: {e}")
            raise DatabaseError("Connection or operational error", "execute")
        except DBAPIError as e:
            await session.rollback()
            logger.error(f"DB driver error: {e}")
            raise DatabaseError("Database driver error", "query")
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(f"SQLAlchemy error: {e}")
            raise DatabaseError("Database operation failed", "unknown")
        finally:
            await session.close()

    async def health_check(self) -> bool:
        """Acquire and release one connection (startup probe, readiness)."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error(f"DB health check failed: {e}")
            return False

    async def close(self) -> None:
        await self.engine.dispose()


def _log_engine_error(exception_context) -> None:
    logger.error(
        f"PostgreSQL pool error: {exception_context.original_exception}",
        extra={"error_code": "DATABASE_ERROR"},
    )


def _log_invalidated_connection(dbapi_connection, connection_record, exception) -> None:
    if exception is not None:
        logger.error(f"PostgreSQL connection invalidated: {exception}")


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency for database sessions, borrowed from the app-wide pool."""
    async with request.app.state.context.db.session() as session:
        yield session
