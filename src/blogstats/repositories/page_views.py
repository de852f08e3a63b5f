"""PageView repository."""

from collections.abc import Sequence

from sqlalchemy import case, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from blogstats.models.page_view import PageView


class PageViewRepository:
    """Repository for PageView rows."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def add(self, view: PageView) -> PageView:
        self.db.add(view)
        await self.db.flush()
        return view

    async def get(self, view_id: str) -> PageView | None:
        result = await self.db.execute(select(PageView).where(PageView.id == view_id))
        return result.scalar_one_or_none()

    async def get_latest(self, session_id: str, path: str | None = None) -> PageView | None:
        """Most recent view of the session, optionally restricted to one path."""
        stmt = select(PageView).where(PageView.session_id == session_id)
        if path is not None:
            stmt = stmt.where(PageView.path == path)
        stmt = stmt.order_by(PageView.timestamp.desc(), PageView.created_at.desc()).limit(1)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def list_for_session(self, session_id: str) -> Sequence[PageView]:
        stmt = (
            select(PageView)
            .where(PageView.session_id == session_id)
            .order_by(PageView.timestamp, PageView.created_at)
        )
        result = await self.db.execute(stmt)
        return result.scalars().all()

    async def count_for_session(self, session_id: str) -> int:
        stmt = select(func.count(PageView.id)).where(PageView.session_id == session_id)
        result = await self.db.execute(stmt)
        return result.scalar_one()

    async def mark_exit(self, session_id: str, view_id: str) -> None:
        """Flag ``view_id`` as the session's exit page and clear the flag elsewhere."""
        stmt = (
            update(PageView)
            .where(PageView.session_id == session_id)
            .values(exit_page=case((PageView.id == view_id, True), else_=False))
            .execution_options(synchronize_session="fetch")
        )
        await self.db.execute(stmt)
