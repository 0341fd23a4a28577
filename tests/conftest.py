import os

os.environ.setdefault("JWT_SECRET", "test-secret")

from datetime import datetime, timezone
from typing import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.pool import StaticPool

from potato_timer.clock import FixedClock, get_clock
from potato_timer.db import build_engine, build_session_factory, create_db_and_tables, get_db
from potato_timer.main import app
from potato_timer.services.identity import resolve_user

# in-memory test db, one per test
TEST_DB_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def engine():
    engine = build_engine(TEST_DB_URL, poolclass=StaticPool)
    await create_db_and_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db(engine) -> AsyncGenerator[AsyncSession, None]:
    async with build_session_factory(engine)() as session:
        yield session


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2024, 3, 1, 8, 30, tzinfo=timezone.utc))


async def detached_user(db: AsyncSession, phone_number: str):
    user = await resolve_user(db, phone_number)
    # stays readable after a failed unit rolls the session back
    db.expunge(user)
    return user


@pytest.fixture
async def user(db: AsyncSession):
    return await detached_user(db, "13800001111")


@pytest.fixture
async def other_user(db: AsyncSession):
    return await detached_user(db, "13900002222")


@pytest.fixture
async def client(engine, clock) -> AsyncGenerator[AsyncClient, None]:
    factory = build_session_factory(engine)

    async def override_db():
        async with factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_clock] = lambda: clock
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
