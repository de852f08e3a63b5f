"""Tracking endpoints - hot path for page-view and session events."""

from fastapi import APIRouter, Depends, Request, Response, status

from blogstats.config import Settings
from blogstats.dependencies import get_app_settings, get_tracker
from blogstats.schemas.tracking import (
    PageExitEvent,
    PageExitResponse,
    PageViewEvent,
    SessionEndEvent,
    SessionEndResponse,
    SessionResponse,
    TrackResponse,
    TrackStatusResponse,
)
from blogstats.services.tracker import SessionTracker
from blogstats.services.user_agent import RequestContext, client_ip

router = APIRouter(prefix="/v1/track", tags=["track"])

VISITOR_COOKIE = "visitor_id"
SESSION_COOKIE = "session_id"


def request_context(request: Request) -> RequestContext:
    """Extract server-side signals from the incoming request."""
    return RequestContext(
        user_agent=request.headers.get("user-agent"),
        ip=client_ip(
            request.headers.get("x-forwarded-for"),
            request.client.host if request.client else None,
        ),
        # Set by Cloudflare when IP geolocation is enabled
        country=request.headers.get("cf-ipcountry"),
        visitor_cookie=request.cookies.get(VISITOR_COOKIE),
        session_cookie=request.cookies.get(SESSION_COOKIE),
    )


def set_tracking_cookies(
    response: Response, visitor_id: str, session_id: str, settings: Settings
) -> None:
    response.set_cookie(
        VISITOR_COOKIE,
        visitor_id,
        max_age=settings.visitor_cookie_max_age_days * 24 * 60 * 60,
        httponly=True,
        secure=settings.secure_cookies,
        samesite="lax",
        path="/",
    )
    response.set_cookie(
        SESSION_COOKIE,
        session_id,
        max_age=settings.session_timeout_minutes * 60,
        httponly=True,
        secure=settings.secure_cookies,
        samesite="lax",
        path="/",
    )


@router.post(
    "/pageview",
    response_model=TrackResponse,
    status_code=status.HTTP_201_CREATED,
)
async def track_page_view(
    event: PageViewEvent,
    request: Request,
    response: Response,
    tracker: SessionTracker = Depends(get_tracker),
    settings: Settings = Depends(get_app_settings),
) -> TrackResponse:
    """Record a page view, creating the visitor session on its first view.

    This is the hot path - called on every page load.
    """
    result = await tracker.record_page_view(event, request_context(request))
    session = result.session

    set_tracking_cookies(response, event.visitor_id, event.session_id, settings)

    return TrackResponse(
        visitor_id=event.visitor_id,
        session_id=session.session_id,
        page_view_id=result.page_view.id,
        is_new_session=result.is_new_session,
        is_new_visitor=session.is_new_visitor,
        page_views=session.page_views,
    )


@router.post("/exit", response_model=PageExitResponse)
async def track_page_exit(
    event: PageExitEvent,
    tracker: SessionTracker = Depends(get_tracker),
) -> PageExitResponse:
    """Attach time-on-page and scroll depth once the visitor leaves a page."""
    view = await tracker.record_page_exit(event)
    return PageExitResponse(page_view_id=view.id)


@router.post("/session-end", response_model=SessionEndResponse)
async def track_session_end(
    event: SessionEndEvent,
    tracker: SessionTracker = Depends(get_tracker),
) -> SessionEndResponse:
    """Close a session on the client's explicit leave signal."""
    session = await tracker.end_session(event.session_id, ended_at=event.timestamp)
    return SessionEndResponse(session=SessionResponse.model_validate(session))


@router.get("/status", response_model=TrackStatusResponse)
async def track_status(request: Request) -> TrackStatusResponse:
    """Report which tracking cookies the browser currently holds."""
    context = request_context(request)
    return TrackStatusResponse(
        has_visitor=context.visitor_cookie is not None,
        has_session=context.session_cookie is not None,
        visitor_id=context.visitor_cookie,
        session_id=context.session_cookie,
    )
