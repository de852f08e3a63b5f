"""VisitorSession repository."""

from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from blogstats.models.visitor_session import VisitorSession


class VisitorSessionRepository:
    """Repository for VisitorSession rows."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_session_id(
        self, session_id: str, for_update: bool = False
    ) -> VisitorSession | None:
        """Get a session by its client session ID.

        Args:
            session_id: Session ID reported by the tracking script.
            for_update: Lock the row until the transaction ends. SQLite has no row
                locks; ``Database`` serializes its writers with BEGIN IMMEDIATE.

        Returns:
            VisitorSession or None if not found.
        """
        stmt = select(VisitorSession).where(VisitorSession.session_id == session_id)
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def visitor_seen_before(self, visitor_id: str, exclude_session_id: str) -> bool:
        """Return True if any other session exists for this visitor."""
        stmt = (
            select(VisitorSession.id)
            .where(VisitorSession.visitor_id == visitor_id)
            .where(VisitorSession.session_id != exclude_session_id)
            .limit(1)
        )
        result = await self.db.execute(stmt)
        return result.first() is not None

    async def add(self, session: VisitorSession) -> VisitorSession:
        """Insert a new session. Raises IntegrityError if the session ID exists."""
        self.db.add(session)
        await self.db.flush()
        return session

    async def list_sessions(
        self,
        active: bool | None = None,
        visitor_id: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Sequence[VisitorSession]:
        stmt = select(VisitorSession)
        if active is not None:
            stmt = stmt.where(VisitorSession.is_active.is_(active))
        if visitor_id is not None:
            stmt = stmt.where(VisitorSession.visitor_id == visitor_id)
        stmt = stmt.order_by(VisitorSession.start_time.desc()).limit(limit).offset(offset)
        result = await self.db.execute(stmt)
        return result.scalars().all()

    async def count(self, active: bool | None = None, visitor_id: str | None = None) -> int:
        stmt = select(func.count(VisitorSession.id))
        if active is not None:
            stmt = stmt.where(VisitorSession.is_active.is_(active))
        if visitor_id is not None:
            stmt = stmt.where(VisitorSession.visitor_id == visitor_id)
        result = await self.db.execute(stmt)
        return result.scalar_one()

    async def list_idle(self, cutoff: datetime) -> Sequence[VisitorSession]:
        """Active sessions whose last activity is older than ``cutoff``."""
        last_activity = func.coalesce(VisitorSession.end_time, VisitorSession.start_time)
        stmt = (
            select(VisitorSession)
            .where(VisitorSession.is_active.is_(True))
            .where(last_activity < cutoff)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalars().all()
