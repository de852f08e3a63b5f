"""FastAPI dependency injection functions."""

import hashlib
import hmac
from collections.abc import AsyncGenerator

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from blogstats.config import Settings, get_settings
from blogstats.models.api_key import ApiKey
from blogstats.services.tracker import SessionTracker


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session from the application's Database handle."""
    async for session in request.app.state.database.session():
        yield session


def get_app_settings() -> Settings:
    """Return application settings."""
    return get_settings()


def get_tracker(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> SessionTracker:
    """Return a session tracker bound to the request's database session."""
    return SessionTracker(db, settings)


def hash_key(raw_key: str) -> str:
    """Hash an API key with SHA-256."""
    return hashlib.sha256(raw_key.encode()).hexdigest()


async def verify_api_key(
    authorization: str = Header(..., description="Bearer <api_key>"),
    db: AsyncSession = Depends(get_db),
) -> ApiKey:
    """Verify Bearer token auth for analytics read endpoints.

    Extracts the API key from the Authorization header, hashes it,
    and looks up the matching active key in the database.
    """
    if not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header must use Bearer scheme",
        )

    raw_key = authorization[7:].strip()
    if not raw_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="API key is required",
        )

    key_hash = hash_key(raw_key)
    stmt = (
        select(ApiKey)
        .where(ApiKey.key_hash == key_hash)
        .where(ApiKey.is_active.is_(True))
    )
    result = await db.execute(stmt)
    api_key = result.scalar_one_or_none()

    # Timing-safe comparison to prevent timing side-channel attacks
    if api_key is None or not hmac.compare_digest(api_key.key_hash, key_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or inactive API key",
        )

    return api_key


def require_role(*roles: str):
    """Build a dependency that only admits API keys holding one of ``roles``."""

    async def _check(api_key: ApiKey = Depends(verify_api_key)) -> ApiKey:
        if api_key.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="API key does not have access to this resource",
            )
        return api_key

    return _check


require_admin = require_role("admin")
require_stats_reader = require_role("admin", "editor")
