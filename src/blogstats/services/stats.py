"""Analytics aggregation over visitor sessions and page views.

Range totals and breakdowns are computed in SQL; the time series buckets are
filled in Python from the (start_time, visitor_id) pairs of the range so the
same code runs on SQLite and PostgreSQL. All dates are UTC.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from blogstats.config import Settings, get_settings
from blogstats.db.types import utcnow
from blogstats.errors import ValidationError
from blogstats.models.page_view import PageView
from blogstats.models.visitor_session import VisitorSession
from blogstats.schemas.stats import (
    AnalyticsStats,
    BrowserCount,
    CountryCount,
    DeviceCount,
    HourlyPoint,
    PageCount,
    SeriesPoint,
    SourceCount,
)

logger = logging.getLogger(__name__)

RANGES: dict[str, tuple[int, str]] = {
    "7d": (7, "Last 7 Days"),
    "30d": (30, "Last 30 Days"),
    "6m": (180, "Last 6 Months"),
    "1y": (365, "Last Year"),
}

TOP_COUNTRIES = 10
TOP_BROWSERS = 5
TOP_PAGES = 10


@dataclass
class DateRange:
    key: str
    label: str
    start: datetime
    end: datetime
    days: int
    from_date: date | None = None
    to_date: date | None = None


def _midnight(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def _short_date(day: date) -> str:
    return f"{day:%b} {day.day}"


def resolve_range(
    range_key: str = "7d",
    from_date: date | None = None,
    to_date: date | None = None,
    now: datetime | None = None,
) -> DateRange:
    """Turn a preset key or an inclusive custom date span into a UTC window."""
    today = (now or utcnow()).date()

    if from_date is not None and to_date is not None:
        if to_date < from_date:
            raise ValidationError("'to' must not be earlier than 'from'")
        start = _midnight(from_date)
        end = _midnight(to_date + timedelta(days=1))
        return DateRange(
            key="custom",
            label=f"{_short_date(from_date)} - {_short_date(to_date)}, {to_date.year}",
            start=start,
            end=end,
            days=(end - start).days,
            from_date=from_date,
            to_date=to_date,
        )

    if range_key not in RANGES:
        raise ValidationError(f"Unknown range '{range_key}'; expected one of {', '.join(RANGES)}")
    days, label = RANGES[range_key]
    return DateRange(
        key=range_key,
        label=label,
        start=_midnight(today - timedelta(days=days)),
        end=_midnight(today + timedelta(days=1)),
        days=days,
    )


def percent(part: int, whole: int) -> int:
    """Percentage rounded half-up; 0 when ``whole`` is 0."""
    if whole <= 0:
        return 0
    return int(part * 100 / whole + 0.5)


def _series_buckets(date_range: DateRange) -> list[tuple[datetime, datetime, str]]:
    """Daily buckets up to 30 days, weekly up to 180, monthly beyond."""
    start, end = date_range.start, date_range.end
    buckets = []

    if date_range.days <= 30:
        cursor = start
        while cursor < end:
            nxt = cursor + timedelta(days=1)
            buckets.append((cursor, nxt, _short_date(cursor.date())))
            cursor = nxt
    elif date_range.days <= 180:
        cursor = end
        while cursor > start:
            prev = max(cursor - timedelta(days=7), start)
            buckets.append((prev, cursor, _short_date(prev.date())))
            cursor = prev
        buckets.reverse()
    else:
        cursor = _midnight(start.date().replace(day=1))
        while cursor < end:
            if cursor.month == 12:
                nxt = cursor.replace(year=cursor.year + 1, month=1)
            else:
                nxt = cursor.replace(month=cursor.month + 1)
            buckets.append((max(cursor, start), min(nxt, end), f"{cursor:%b} {cursor:%y}"))
            cursor = nxt

    return buckets


async def _unique_visitors(db: AsyncSession, start: datetime | None = None, end: datetime | None = None) -> int:
    stmt = select(func.count(VisitorSession.visitor_id.distinct()))
    if start is not None:
        stmt = stmt.where(VisitorSession.start_time >= start)
    if end is not None:
        stmt = stmt.where(VisitorSession.start_time < end)
    result = await db.execute(stmt)
    return result.scalar_one() or 0


async def _page_view_count(db: AsyncSession, start: datetime | None = None, end: datetime | None = None) -> int:
    stmt = select(func.count(PageView.id))
    if start is not None:
        stmt = stmt.where(PageView.timestamp >= start)
    if end is not None:
        stmt = stmt.where(PageView.timestamp < end)
    result = await db.execute(stmt)
    return result.scalar_one() or 0


async def _breakdown(
    db: AsyncSession, column, date_range: DateRange, default: str, limit: int | None = None
) -> list[tuple[str, int]]:
    """Session counts grouped by ``column`` within the range, largest first.

    NULLs are folded into ``default`` after the query.
    """
    stmt = (
        select(column, func.count(VisitorSession.id))
        .where(VisitorSession.start_time >= date_range.start)
        .where(VisitorSession.start_time < date_range.end)
        .group_by(column)
    )
    result = await db.execute(stmt)

    counts: dict[str, int] = defaultdict(int)
    for value, count in result.all():
        counts[value or default] += count
    ordered = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return ordered[:limit] if limit is not None else ordered


async def compute_stats(
    db: AsyncSession,
    date_range: DateRange,
    settings: Settings | None = None,
    now: datetime | None = None,
) -> AnalyticsStats:
    """Compute the dashboard statistics for ``date_range``."""
    settings = settings or get_settings()
    now = now or utcnow()
    today = _midnight(now.date())
    tomorrow = today + timedelta(days=1)
    start, end = date_range.start, date_range.end

    total_visitors = await _unique_visitors(db)
    visitors_today = await _unique_visitors(db, today, tomorrow)
    visitors_in_range = await _unique_visitors(db, start, end)
    previous_visitors = await _unique_visitors(db, start - timedelta(days=date_range.days), start)

    total_views = await _page_view_count(db)
    views_today = await _page_view_count(db, today, tomorrow)
    views_in_range = await _page_view_count(db, start, end)

    online_cutoff = now - timedelta(minutes=settings.active_window_minutes)
    last_activity = func.coalesce(VisitorSession.end_time, VisitorSession.start_time)
    online_result = await db.execute(
        select(func.count(VisitorSession.id))
        .where(VisitorSession.is_active.is_(True))
        .where(last_activity >= online_cutoff)
    )
    current_online = online_result.scalar_one() or 0

    # Session behaviour within the range
    in_range = (VisitorSession.start_time >= start, VisitorSession.start_time < end)
    behaviour = (
        await db.execute(
            select(
                func.count(VisitorSession.id).label("sessions"),
                func.sum(case((VisitorSession.is_new_visitor.is_(True), 1), else_=0)).label("new"),
                func.sum(case((VisitorSession.bounced.is_(True), 1), else_=0)).label("bounced"),
                func.sum(VisitorSession.page_views).label("pages"),
            ).where(*in_range)
        )
    ).one()
    sessions_in_range = behaviour.sessions or 0
    new_visitors = int(behaviour.new or 0)
    bounced = int(behaviour.bounced or 0)
    total_pages = int(behaviour.pages or 0)

    avg_duration = (
        await db.execute(
            select(func.avg(VisitorSession.duration)).where(*in_range).where(VisitorSession.duration > 0)
        )
    ).scalar_one()
    avg_time_on_page = (
        await db.execute(
            select(func.avg(PageView.time_on_page))
            .where(PageView.timestamp >= start)
            .where(PageView.timestamp < end)
            .where(PageView.time_on_page > 0)
        )
    ).scalar_one()

    if previous_visitors > 0:
        trend = round((visitors_in_range - previous_visitors) * 100 / previous_visitors)
    else:
        trend = 100 if visitors_in_range > 0 else 0

    sources = await _breakdown(db, VisitorSession.source, date_range, "direct")
    countries = await _breakdown(db, VisitorSession.country, date_range, "Unknown", TOP_COUNTRIES)
    devices = await _breakdown(db, VisitorSession.device, date_range, "desktop")
    browsers = await _breakdown(db, VisitorSession.browser, date_range, "Unknown", TOP_BROWSERS)

    page_rows = (
        await db.execute(
            select(
                PageView.path,
                func.max(PageView.title).label("title"),
                func.count(PageView.id).label("count"),
            )
            .where(PageView.timestamp >= start)
            .where(PageView.timestamp < end)
            .group_by(PageView.path)
            .order_by(func.count(PageView.id).desc(), PageView.path)
            .limit(TOP_PAGES)
        )
    ).all()

    # Time series
    session_rows = (
        await db.execute(
            select(VisitorSession.start_time, VisitorSession.visitor_id).where(*in_range)
        )
    ).all()
    view_times = (
        await db.execute(
            select(PageView.timestamp)
            .where(PageView.timestamp >= start)
            .where(PageView.timestamp < end)
        )
    ).scalars().all()

    series = []
    for bucket_start, bucket_end, label in _series_buckets(date_range):
        visitors = {v for t, v in session_rows if bucket_start <= t < bucket_end}
        views = sum(1 for t in view_times if bucket_start <= t < bucket_end)
        series.append(SeriesPoint(date=label, visitors=len(visitors), page_views=views))

    hourly_visitors: dict[int, set[str]] = defaultdict(set)
    today_rows = (
        await db.execute(
            select(VisitorSession.start_time, VisitorSession.visitor_id)
            .where(VisitorSession.start_time >= today)
            .where(VisitorSession.start_time < tomorrow)
        )
    ).all()
    for started, visitor_id in today_rows:
        hourly_visitors[started.hour].add(visitor_id)
    hourly = [
        HourlyPoint(hour=f"{hour:02d}:00", visitors=len(hourly_visitors[hour]))
        for hour in range(24)
    ]

    logger.debug(
        "Computed stats for %s: %d sessions, %d page views",
        date_range.key,
        sessions_in_range,
        views_in_range,
    )

    return AnalyticsStats(
        total_unique_visitors=total_visitors,
        unique_visitors_today=visitors_today,
        unique_visitors_in_range=visitors_in_range,
        total_page_views=total_views,
        page_views_today=views_today,
        page_views_in_range=views_in_range,
        current_online=current_online,
        visitors_trend=trend,
        new_visitors=new_visitors,
        returning_visitors=sessions_in_range - new_visitors,
        new_vs_returning_ratio=percent(new_visitors, sessions_in_range),
        bounce_rate=percent(bounced, sessions_in_range),
        avg_session_duration=round(avg_duration or 0),
        avg_pages_per_session=round(total_pages / sessions_in_range, 1) if sessions_in_range else 0.0,
        avg_time_on_page=round(avg_time_on_page or 0),
        traffic_sources=[
            SourceCount(source=v, count=c, percentage=percent(c, sessions_in_range)) for v, c in sources
        ],
        top_countries=[
            CountryCount(country=v, count=c, percentage=percent(c, sessions_in_range)) for v, c in countries
        ],
        device_breakdown=[
            DeviceCount(device=v, count=c, percentage=percent(c, sessions_in_range)) for v, c in devices
        ],
        browser_breakdown=[
            BrowserCount(browser=v, count=c, percentage=percent(c, sessions_in_range)) for v, c in browsers
        ],
        top_pages=[PageCount(path=row.path, title=row.title or row.path, count=row.count) for row in page_rows],
        visitors_per_day=series,
        hourly_traffic=hourly,
        date_range=date_range.key,
        range_label=date_range.label,
        from_date=date_range.from_date,
        to_date=date_range.to_date,
    )
