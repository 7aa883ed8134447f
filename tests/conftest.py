"""
Shared test fixtures for the Reels API.
"""
import asyncio
import os

# Set test environment before importing app modules
os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["OPENAI_API_KEY"] = ""
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from csrf import new_csrf_token
from db import get_db, get_session_factory
from main import app
from models import Base
from session import get_current_user_id


async def _create_schema(engine):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def db_engine(tmp_path):
    """A throwaway on-disk SQLite database with the full schema."""
    # NullPool: every session opens its own connection on whatever loop is running
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'reels.db'}", poolclass=NullPool)
    asyncio.run(_create_schema(engine))
    yield engine
    asyncio.run(engine.dispose())


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(
        bind=db_engine, class_=AsyncSession, autoflush=False, expire_on_commit=False
    )


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def csrf_token():
    return new_csrf_token()


@pytest.fixture
def client(session_factory, csrf_token):
    """Test client wired to the SQLite database, carrying a valid CSRF cookie and header."""

    async def _get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    yield TestClient(
        app,
        cookies={"csrf": csrf_token},
        headers={"x-csrf-token": csrf_token},
    )
    app.dependency_overrides.clear()


@pytest.fixture
def login():
    """Authenticate subsequent requests as the given user id."""

    def _login(user_id: str) -> None:
        app.dependency_overrides[get_current_user_id] = lambda: user_id

    return _login
