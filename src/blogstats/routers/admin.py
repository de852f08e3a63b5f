"""Admin endpoints for session maintenance."""

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from blogstats.dependencies import get_tracker, require_admin
from blogstats.services.tracker import SessionTracker

router = APIRouter(prefix="/v1/admin", tags=["admin"])


class CloseIdleResponse(BaseModel):
    """Number of sessions closed by the idle sweep."""

    closed: int


@router.post("/sessions/close-idle", response_model=CloseIdleResponse)
async def close_idle_sessions(
    idle_minutes: int | None = Query(default=None, alias="idleMinutes", ge=1, le=1440),
    tracker: SessionTracker = Depends(get_tracker),
    _api_key=Depends(require_admin),
) -> CloseIdleResponse:
    """Close every active session with no activity within the timeout.

    Meant to be called by a scheduler; defaults to SESSION_TIMEOUT_MINUTES.
    """
    closed = await tracker.close_idle_sessions(idle_minutes=idle_minutes)
    return CloseIdleResponse(closed=closed)
