"""Test fixtures and configuration."""

import secrets
from collections.abc import AsyncGenerator

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from blogstats.config import Settings
from blogstats.dependencies import get_db, hash_key
from blogstats.main import create_app
from blogstats.models import ApiKey, Base
from blogstats.services.tracker import SessionTracker


@pytest_asyncio.fixture
async def db_engine():
    """Create an in-memory SQLite engine for tests."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Yield an async session bound to the test engine."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def tracker(db_session: AsyncSession) -> SessionTracker:
    """A session tracker on the test session with deterministic settings."""
    settings = Settings(api_secret_key="test-secret-key", session_conflict_retries=2)
    return SessionTracker(db_session, settings)


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client with overridden DB dependency."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app = create_app()
    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def _create_key(session_factory, role: str) -> str:
    raw_key = f"bs_sk_{secrets.token_hex(20)}"
    async with session_factory() as session:
        session.add(
            ApiKey(
                name=f"test-{role}",
                key_hash=hash_key(raw_key),
                prefix=raw_key[:11],
                role=role,
            )
        )
        await session.commit()
    return raw_key


@pytest_asyncio.fixture
async def admin_key(session_factory) -> str:
    """Raw Bearer key with the admin role."""
    return await _create_key(session_factory, "admin")


@pytest_asyncio.fixture
async def editor_key(session_factory) -> str:
    """Raw Bearer key with the editor role."""
    return await _create_key(session_factory, "editor")
