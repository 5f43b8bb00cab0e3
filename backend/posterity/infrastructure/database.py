"""Database Session Manager - async pool, per-request community sessions and readiness checks.

Invariants:
    - Every session auto-rolls-back on exception (no partial commits leak)
    - SQLAlchemy failures leave as PosterityError carrying the community the
      request addressed:
        unique-key race on a community's rows  -> WriteConflictError (409)
        ck_* ledger constraint                  -> DatabaseError (503)
        anything else from the driver           -> DatabaseError (503)
    - Readiness means connectivity AND the communities table being queryable

Design Decisions:
    - Singleton db_manager initialized on startup: FastAPI lifespan manages lifecycle
    - get_db reads community_id from the path so route handlers stay unaware
      of error context plumbing
    - expire_on_commit=False: prevents lazy-load issues in async context
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy import select, func, text
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)

from posterity.core.errors import (
    DatabaseError, ErrorContext, PosterityError, WriteConflictError,
)
from posterity.models.community import Community

logger = logging.getLogger(__name__)

LEDGER_CONSTRAINT_PREFIX = "ck_"


def translate_error(
    exc: SQLAlchemyError, community_id: str | None = None,
) -> PosterityError:
    """Map a SQLAlchemy failure to the error the API reports."""
    context = ErrorContext(community_id=community_id)
    if isinstance(exc, IntegrityError):
        if LEDGER_CONSTRAINT_PREFIX in str(exc.orig):
            return DatabaseError("ledger constraint violated", "commit", context)
        return WriteConflictError(context)
    if isinstance(exc, OperationalError):
        return DatabaseError("connection lost", "execute", context)
    return DatabaseError("driver error", "query", context)


class DatabaseSessionManager:
    """Owns the engine and hands out community-scoped sessions."""

    def __init__(
        self, database_url: str, pool_size: int = 20, max_overflow: int = 10,
    ):
        self.engine = create_async_engine(
            database_url,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=True,
            pool_recycle=3600,
        )
        self._session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @asynccontextmanager
    async def session(
        self, community_id: str | None = None,
    ) -> AsyncGenerator[AsyncSession, None]:
        """Session whose failures are reported against community_id."""
        session = self._session_factory()
        try:
            yield session
        except SQLAlchemyError as e:
            await session.rollback()
            error = translate_error(e, community_id)
            log = logger.warning if isinstance(error, WriteConflictError) else logger.error
            log(
                f"DB failure: {e}",
                extra={"community_id": community_id, "error_code": error.code},
            )
            raise error from e
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def health_check(self) -> dict[str, bool]:
        """Connectivity and schema checks for the readiness probe."""
        checks = {"database": False, "schema": False}
        try:
            async with self.session() as db:
                await db.execute(text("SELECT 1"))
                checks["database"] = True
                await db.execute(select(func.count()).select_from(Community))
                checks["schema"] = True
        except (PosterityError, OSError) as e:
            logger.error(f"Readiness check failed: {e}", extra={"checks": checks})
        return checks


# Singleton (initialized on startup)
db_manager: DatabaseSessionManager | None = None


def init_db(database_url: str, **kwargs):
    global db_manager
    db_manager = DatabaseSessionManager(database_url, **kwargs)


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one session per request, scoped to the path's community."""
    if not db_manager:
        raise RuntimeError("Database not initialized")
    async with db_manager.session(request.path_params.get("community_id")) as session:
        yield session
