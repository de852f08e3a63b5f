"""Schemas for the /v1/stats endpoint."""

from datetime import date

from pydantic import Field

from blogstats.schemas.tracking import CamelModel


class SourceCount(CamelModel):
    source: str
    count: int
    percentage: int


class CountryCount(CamelModel):
    country: str
    count: int
    percentage: int


class DeviceCount(CamelModel):
    device: str
    count: int
    percentage: int


class BrowserCount(CamelModel):
    browser: str
    count: int
    percentage: int


class PageCount(CamelModel):
    path: str
    title: str
    count: int


class SeriesPoint(CamelModel):
    date: str
    visitors: int
    page_views: int


class HourlyPoint(CamelModel):
    hour: str
    visitors: int


class AnalyticsStats(CamelModel):
    """Dashboard statistics for one date range."""

    total_unique_visitors: int
    unique_visitors_today: int
    unique_visitors_in_range: int
    total_page_views: int
    page_views_today: int
    page_views_in_range: int
    current_online: int

    visitors_trend: int

    new_visitors: int
    returning_visitors: int
    new_vs_returning_ratio: int
    bounce_rate: int
    avg_session_duration: int
    avg_pages_per_session: float
    avg_time_on_page: int

    traffic_sources: list[SourceCount] = Field(default_factory=list)
    top_countries: list[CountryCount] = Field(default_factory=list)
    device_breakdown: list[DeviceCount] = Field(default_factory=list)
    browser_breakdown: list[BrowserCount] = Field(default_factory=list)
    top_pages: list[PageCount] = Field(default_factory=list)

    visitors_per_day: list[SeriesPoint] = Field(default_factory=list)
    hourly_traffic: list[HourlyPoint] = Field(default_factory=list)

    date_range: str
    range_label: str
    from_date: date | None = None
    to_date: date | None = None
