"""Session manager tests - SQLAlchemy failure translation and readiness checks.

Tests cover:
    - Unique-key races surface as WriteConflictError for the addressed community
    - Ledger check constraints and lost connections surface as DatabaseError
    - Non-database exceptions pass through untouched
    - Readiness distinguishes an unmigrated schema from a dead database
"""

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import (
    AsyncSession, async_sessionmaker, create_async_engine,
)

from posterity.core.errors import DatabaseError, WriteConflictError
from posterity.infrastructure.database import (
    DatabaseSessionManager, translate_error,
)


def _manager(engine) -> DatabaseSessionManager:
    manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    manager.engine = engine
    manager._session_factory = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False,
    )
    return manager


@pytest.fixture
def manager(test_engine):
    return _manager(test_engine)


# --- Translation ----------------------------------------------------------

async def test_unique_race_is_write_conflict(manager):
    with pytest.raises(WriteConflictError) as exc:
        async with manager.session("c-1"):
            raise IntegrityError(
                "INSERT INTO community_events", {},
                Exception("UNIQUE constraint failed: community_events.sequence"),
            )
    assert exc.value.context.community_id == "c-1"
    assert exc.value.http_status == 409


async def test_negative_balance_constraint_is_database_error(manager):
    with pytest.raises(DatabaseError) as exc:
        async with manager.session("c-1"):
            raise IntegrityError(
                "UPDATE balances", {},
                Exception("CHECK constraint failed: ck_balances_non_negative"),
            )
    assert exc.value.operation == "commit"
    assert exc.value.http_status == 503


def test_lost_connection_is_database_error():
    error = translate_error(
        OperationalError("SELECT 1", {}, Exception("server closed")), "c-2",
    )
    assert isinstance(error, DatabaseError)
    assert error.operation == "execute"
    assert error.context.community_id == "c-2"


async def test_other_exceptions_pass_through(manager):
    with pytest.raises(KeyError):
        async with manager.session("c-1"):
            raise KeyError("missing")


# --- Readiness --------------------------------------------------------------

async def test_ready_when_schema_migrated(manager):
    assert await manager.health_check() == {"database": True, "schema": True}


async def test_unmigrated_schema_not_ready():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    try:
        checks = await _manager(engine).health_check()
    finally:
        await engine.dispose()
    assert checks == {"database": True, "schema": False}
