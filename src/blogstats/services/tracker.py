"""Session tracker: session continuity and aggregates for page-view events.

Every public operation is one unit of work on the injected ``AsyncSession``:
either all of its writes commit or none do. The unique index on
``visitor_sessions.session_id`` is the only guard against two requests
creating the same session; the loser of that race rolls back and retries
the event as an update.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from blogstats.config import Settings, get_settings
from blogstats.db.types import utcnow
from blogstats.errors import (
    ConflictError,
    NotFoundError,
    StorageError,
    TrackingError,
    ValidationError,
)
from blogstats.models.page_view import PageView
from blogstats.models.visitor_session import VisitorSession
from blogstats.repositories import PageViewRepository, VisitorSessionRepository
from blogstats.schemas.tracking import PageExitEvent, PageViewEvent
from blogstats.services.user_agent import (
    RequestContext,
    classify_source,
    detect_browser,
    detect_device,
    detect_os,
    hash_ip,
)

logger = logging.getLogger(__name__)


@dataclass
class TrackResult:
    session: VisitorSession
    page_view: PageView
    is_new_session: bool


def elapsed_seconds(start: datetime, end: datetime) -> int:
    """Whole seconds from ``start`` to ``end``, never negative."""
    return max(0, int((end - start).total_seconds()))


class SessionTracker:
    """Creates, extends and closes visitor sessions."""

    def __init__(self, db: AsyncSession, settings: Settings | None = None):
        self.db = db
        self.settings = settings or get_settings()
        self.sessions = VisitorSessionRepository(db)
        self.page_views = PageViewRepository(db)

    @asynccontextmanager
    async def _transaction(self, action: str) -> AsyncIterator[None]:
        try:
            yield
            await self.db.commit()
        except TrackingError:
            await self.db.rollback()
            raise
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.exception("Storage failure while trying to %s", action)
            raise StorageError(f"Failed to {action}") from exc

    # ── Page views ───────────────────────────────────────────────────

    async def record_page_view(
        self, event: PageViewEvent, context: RequestContext | None = None
    ) -> TrackResult:
        """Record one page view, creating or extending its session."""
        context = context or RequestContext()
        attempts = self.settings.session_conflict_retries + 1

        for attempt in range(1, attempts + 1):
            try:
                async with self._transaction("record page view"):
                    result = await self._record(event, context)
                return result
            except ConflictError:
                if attempt >= attempts:
                    raise
                logger.info(
                    "Session %s was created concurrently; retrying as update (attempt %d)",
                    event.session_id,
                    attempt,
                )

        raise ConflictError(f"Session {event.session_id} could not be recorded")

    async def _record(self, event: PageViewEvent, context: RequestContext) -> TrackResult:
        session = await self.sessions.get_by_session_id(event.session_id, for_update=True)
        is_new_session = session is None

        if session is None:
            session = self._new_session(event, context)
            session.is_new_visitor = not await self.sessions.visitor_seen_before(
                event.visitor_id, exclude_session_id=event.session_id
            )
            try:
                await self.sessions.add(session)
            except IntegrityError as exc:
                raise ConflictError(f"Session {event.session_id} already exists") from exc
            logger.debug("Created session %s for visitor %s", session.session_id, session.visitor_id)
        else:
            self._extend_session(session, event)

        view = PageView(
            visitor_id=event.visitor_id,
            session_id=event.session_id,
            visitor_session_id=session.id,
            user_id=event.user_id,
            path=event.path,
            title=event.title,
            post_id=event.post_id,
            category_id=event.category_id,
            referrer=event.internal_referrer,
            time_on_page=event.time_on_page,
            scroll_depth=event.scroll_depth,
            exit_page=False,
            timestamp=event.timestamp,
        )
        await self.page_views.add(view)

        return TrackResult(session=session, page_view=view, is_new_session=is_new_session)

    def _new_session(self, event: PageViewEvent, context: RequestContext) -> VisitorSession:
        user_agent = context.user_agent
        return VisitorSession(
            visitor_id=event.visitor_id,
            session_id=event.session_id,
            user_id=event.user_id,
            start_time=event.timestamp,
            end_time=None,
            duration=0,
            page_views=1,
            bounced=True,
            is_active=True,
            source=classify_source(event.referrer, event.utm_source),
            referrer=event.referrer,
            utm_source=event.utm_source,
            utm_medium=event.utm_medium,
            utm_campaign=event.utm_campaign,
            entry_page=event.path,
            exit_page=event.path,
            country=event.country or context.country,
            city=event.city,
            region=event.region,
            device=event.device or detect_device(user_agent),
            browser=event.browser or detect_browser(user_agent),
            os=event.os or detect_os(user_agent),
            user_agent=user_agent,
            ip_hash=hash_ip(context.ip, self.settings.api_secret_key) if context.ip else None,
        )

    def _extend_session(self, session: VisitorSession, event: PageViewEvent) -> None:
        previous_end = session.last_activity
        latest = max(previous_end, event.timestamp)

        session.page_views += 1
        session.bounced = session.page_views == 1
        session.end_time = latest
        session.duration = max(session.duration or 0, elapsed_seconds(session.start_time, latest))
        # A replayed older event must not move the exit page backwards.
        if event.timestamp >= previous_end:
            session.exit_page = event.path
        if event.user_id and not session.user_id:
            session.user_id = event.user_id
        session.is_active = True

    # ── Engagement updates ───────────────────────────────────────────

    async def record_page_exit(self, event: PageExitEvent) -> PageView:
        """Apply late time-on-page / scroll-depth data to an existing view."""
        if not event.page_view_id and not event.path:
            raise ValidationError("Either pageViewId or path is required")

        async with self._transaction("record page exit"):
            if event.page_view_id:
                view = await self.page_views.get(event.page_view_id)
            else:
                view = await self.page_views.get_latest(event.session_id, path=event.path)

            if view is None or view.session_id != event.session_id:
                raise NotFoundError("Page view not found")

            if event.time_on_page is not None:
                view.time_on_page = event.time_on_page
            if event.scroll_depth is not None:
                view.scroll_depth = max(view.scroll_depth or 0, event.scroll_depth)

        return view

    # ── Closing ──────────────────────────────────────────────────────

    async def end_session(
        self, session_id: str, ended_at: datetime | None = None
    ) -> VisitorSession:
        """Close a session on an explicit leave signal."""
        async with self._transaction("end session"):
            session = await self.sessions.get_by_session_id(session_id, for_update=True)
            if session is None:
                raise NotFoundError(f"Session {session_id} not found")
            await self._finalize(session, ended_at or utcnow())

        logger.debug("Ended session %s after %ds", session.session_id, session.duration)
        return session

    async def close_idle_sessions(
        self, idle_minutes: int | None = None, now: datetime | None = None
    ) -> int:
        """Close active sessions idle for longer than the timeout. Returns count closed."""
        timeout = idle_minutes if idle_minutes is not None else self.settings.session_timeout_minutes
        cutoff = (now or utcnow()) - timedelta(minutes=timeout)

        async with self._transaction("close idle sessions"):
            idle = await self.sessions.list_idle(cutoff)
            for session in idle:
                await self._finalize(session, session.last_activity)

        if idle:
            logger.info("Closed %d idle sessions (timeout %d min)", len(idle), timeout)
        return len(idle)

    async def _finalize(self, session: VisitorSession, ended_at: datetime) -> None:
        end = max(session.last_activity, ended_at)
        session.end_time = end
        session.duration = max(session.duration or 0, elapsed_seconds(session.start_time, end))
        session.is_active = False

        # Counters are re-derived from the stored rows so replays cannot skew them.
        session.page_views = await self.page_views.count_for_session(session.session_id)
        session.bounced = session.page_views == 1

        latest = await self.page_views.get_latest(session.session_id)
        if latest is not None:
            await self.page_views.mark_exit(session.session_id, latest.id)
            session.exit_page = latest.path
