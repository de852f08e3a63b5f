"""Schemas for the /v1/track endpoints."""

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model exposing camelCase field names on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# Longest value stored for each optional text field of a page view.
OPTIONAL_TEXT_LIMITS = {
    "title": 512,
    "referrer": 2048,
    "internal_referrer": 2048,
    "utm_source": 255,
    "utm_medium": 255,
    "utm_campaign": 255,
    "post_id": 64,
    "category_id": 64,
    "user_id": 64,
    "browser": 64,
    "os": 64,
    "country": 64,
    "city": 128,
    "region": 128,
}


class PageViewEvent(CamelModel):
    """One page load reported by the tracking script.

    Only the identifiers, path and timestamp are mandatory. Optional context
    that is malformed never fails the event: over-long strings are clipped and
    values of the wrong type are dropped.
    """

    visitor_id: str = Field(min_length=1, max_length=64)
    session_id: str = Field(min_length=1, max_length=64)
    path: str = Field(min_length=1, max_length=2048)
    timestamp: datetime

    title: str | None = None
    referrer: str | None = None
    internal_referrer: str | None = None
    utm_source: str | None = None
    utm_medium: str | None = None
    utm_campaign: str | None = None
    post_id: str | None = None
    category_id: str | None = None
    user_id: str | None = None

    device: Literal["desktop", "mobile", "tablet"] | None = None
    browser: str | None = None
    os: str | None = None
    country: str | None = None
    city: str | None = None
    region: str | None = None

    time_on_page: int | None = Field(default=None, ge=0)
    scroll_depth: int | None = Field(default=None, ge=0, le=100)

    @field_validator("timestamp")
    @classmethod
    def _normalize_timestamp(cls, value: datetime) -> datetime:
        return _as_utc(value)

    @field_validator(*OPTIONAL_TEXT_LIMITS, mode="before")
    @classmethod
    def _clean_optional_text(cls, value, info: ValidationInfo):
        if isinstance(value, bool) or not isinstance(value, (str, int, float)):
            return None
        text = str(value)[: OPTIONAL_TEXT_LIMITS[info.field_name]]
        return text or None

    @field_validator("device", mode="before")
    @classmethod
    def _ignore_unknown_device(cls, value):
        # Unrecognized device classes fall back to User-Agent detection.
        if isinstance(value, str) and value.lower() in ("desktop", "mobile", "tablet"):
            return value.lower()
        return None


class TrackResponse(CamelModel):
    success: bool = True
    visitor_id: str
    session_id: str
    page_view_id: str
    is_new_session: bool
    is_new_visitor: bool
    page_views: int


class PageExitEvent(CamelModel):
    """Late engagement data sent when the visitor leaves a page."""

    session_id: str = Field(min_length=1, max_length=64)
    page_view_id: str | None = Field(default=None, max_length=36)
    path: str | None = Field(default=None, max_length=2048)
    time_on_page: int | None = Field(default=None, ge=0)
    scroll_depth: int | None = Field(default=None, ge=0, le=100)


class PageExitResponse(CamelModel):
    success: bool = True
    page_view_id: str


class SessionEndEvent(CamelModel):
    session_id: str = Field(min_length=1, max_length=64)
    timestamp: datetime | None = None

    @field_validator("timestamp")
    @classmethod
    def _normalize_timestamp(cls, value: datetime | None) -> datetime | None:
        return _as_utc(value)


class SessionResponse(CamelModel):
    """Session summary returned to clients and administrators."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )

    session_id: str
    visitor_id: str
    user_id: str | None = None
    is_new_visitor: bool
    start_time: datetime
    end_time: datetime | None = None
    duration: int
    page_views: int
    bounced: bool
    is_active: bool
    source: str
    referrer: str | None = None
    utm_source: str | None = None
    utm_medium: str | None = None
    utm_campaign: str | None = None
    entry_page: str | None = None
    exit_page: str | None = None
    country: str | None = None
    city: str | None = None
    region: str | None = None
    device: str | None = None
    browser: str | None = None
    os: str | None = None


class SessionEndResponse(CamelModel):
    success: bool = True
    session: SessionResponse


class PageViewResponse(CamelModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )

    id: str
    path: str
    title: str | None = None
    post_id: str | None = None
    category_id: str | None = None
    referrer: str | None = None
    time_on_page: int | None = None
    scroll_depth: int | None = None
    exit_page: bool
    timestamp: datetime


class SessionDetailResponse(SessionResponse):
    views: list[PageViewResponse] = Field(default_factory=list)


class TrackStatusResponse(CamelModel):
    has_visitor: bool
    has_session: bool
    visitor_id: str | None = None
    session_id: str | None = None
