"""Session read endpoints for administrators."""

from fastapi import APIRouter, Depends, Query
from pydantic import Field
from sqlalchemy.ext.asyncio import AsyncSession

from blogstats.dependencies import get_db, require_admin
from blogstats.errors import NotFoundError
from blogstats.repositories import PageViewRepository, VisitorSessionRepository
from blogstats.schemas.tracking import (
    CamelModel,
    PageViewResponse,
    SessionDetailResponse,
    SessionResponse,
)

router = APIRouter(prefix="/v1/sessions", tags=["sessions"])


class SessionListResponse(CamelModel):
    total: int
    limit: int
    offset: int
    sessions: list[SessionResponse] = Field(default_factory=list)


@router.get("", response_model=SessionListResponse)
async def list_sessions(
    active: bool | None = Query(default=None),
    visitor_id: str | None = Query(default=None, alias="visitorId", max_length=64),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db),
    _api_key=Depends(require_admin),
) -> SessionListResponse:
    """List visitor sessions, newest first."""
    repo = VisitorSessionRepository(db)
    sessions = await repo.list_sessions(active=active, visitor_id=visitor_id, limit=limit, offset=offset)
    total = await repo.count(active=active, visitor_id=visitor_id)
    return SessionListResponse(
        total=total,
        limit=limit,
        offset=offset,
        sessions=[SessionResponse.model_validate(s) for s in sessions],
    )


@router.get("/{session_id}", response_model=SessionDetailResponse)
async def get_session_detail(
    session_id: str,
    db: AsyncSession = Depends(get_db),
    _api_key=Depends(require_admin),
) -> SessionDetailResponse:
    """Return one session with its page views in timestamp order."""
    session = await VisitorSessionRepository(db).get_by_session_id(session_id)
    if session is None:
        raise NotFoundError("Session not found")

    views = await PageViewRepository(db).list_for_session(session_id)
    summary = SessionResponse.model_validate(session)
    return SessionDetailResponse(
        **summary.model_dump(),
        views=[PageViewResponse.model_validate(v) for v in views],
    )
