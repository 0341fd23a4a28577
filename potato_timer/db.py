"""
Potato Timer Database Layer
Async SQLAlchemy engine, session factory and the unit-of-work helper every
multi-step write goes through.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from potato_timer.config import settings
from potato_timer.errors import StoreError

logger = logging.getLogger("potato_timer")


def _get_connect_args(db_url: str) -> dict:
    """Get database-specific connection arguments."""
    if "sqlite" in db_url:
        return {"check_same_thread": False}
    # PostgreSQL via asyncpg needs no special connect_args
    return {}


def _get_pool_args(db_url: str) -> dict:
    """Bounded pool for real databases; in-memory SQLite keeps its static pool."""
    if ":memory:" in db_url:
        return {}
    return {
        "pool_size": settings.db_pool_size,
        "max_overflow": 0,
        "pool_timeout": settings.db_pool_timeout,
    }


def build_engine(db_url: str, **kwargs) -> AsyncEngine:
    options = {
        "echo": settings.db_echo,
        "pool_pre_ping": True,  # Verify connections before use
        "connect_args": _get_connect_args(db_url),
    }
    options.update(_get_pool_args(db_url))
    options.update(kwargs)
    return create_async_engine(db_url, **options)


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


engine = build_engine(settings.db_url)
async_session = build_session_factory(engine)


async def create_db_and_tables(bind: AsyncEngine = engine) -> None:
    """Initialize the relational schema."""
    # Register every table on SQLModel.metadata before create_all
    from potato_timer import models  # noqa: F401

    async with bind.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    logger.info("db_tables_created", extra={"db_url": str(bind.url)})


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency for FastAPI endpoints.
    One session per request; operations own their commits.
    """
    async with async_session() as session:
        yield session


async def insert_ignore(db: AsyncSession, model, values: dict) -> int:
    """
    INSERT that silently skips a row whose key already exists.
    Returns the number of rows actually inserted (0 or 1).
    Native ON CONFLICT DO NOTHING on Postgres/SQLite, savepoint elsewhere.
    """
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        from sqlalchemy import insert
        from sqlalchemy.exc import IntegrityError

        try:
            async with db.begin_nested():
                result = await db.execute(insert(model).values(**values))
        except IntegrityError:
            return 0
        return result.rowcount

    stmt = insert(model).values(**values).on_conflict_do_nothing()
    result = await db.execute(stmt)
    return result.rowcount


@asynccontextmanager
async def atomic(db: AsyncSession) -> AsyncGenerator[AsyncSession, None]:
    """
    Run a block as one all-or-nothing unit.

    Usage:
        async with atomic(db):
            db.add(goal)
            await db.flush()
            db.add_all(links)

    Commits on success, rolls back on any exception. SQLAlchemy failures
    leave as ``StoreError``; typed core errors pass through untouched.

    A rollback, typed failures included, expires every instance in the
    session. Callers that keep ORM objects across a failed unit must read
    what they need first or detach them.
    """
    try:
        yield db
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.warning("store_error", extra={"error": repr(exc)})
        raise StoreError.from_exception(exc) from exc
    except BaseException:
        await db.rollback()
        raise
