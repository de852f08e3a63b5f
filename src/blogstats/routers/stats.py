"""Analytics statistics endpoint."""

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from blogstats.config import Settings
from blogstats.dependencies import get_app_settings, get_db, require_stats_reader
from blogstats.errors import ValidationError
from blogstats.schemas.stats import AnalyticsStats
from blogstats.services.stats import compute_stats, resolve_range

router = APIRouter(prefix="/v1/stats", tags=["stats"])


@router.get("", response_model=AnalyticsStats)
async def get_stats(
    range_key: str = Query(default="7d", alias="range"),
    from_date: date | None = Query(default=None, alias="from"),
    to_date: date | None = Query(default=None, alias="to"),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    _api_key=Depends(require_stats_reader),
) -> AnalyticsStats:
    """Visitor, page-view and engagement statistics for a date range.

    ``range`` accepts 7d, 30d, 6m or 1y. A custom span is given with both
    ``from`` and ``to`` (YYYY-MM-DD, inclusive) and takes precedence.
    """
    if (from_date is None) != (to_date is None):
        raise ValidationError("Both 'from' and 'to' are required for a custom range")
    date_range = resolve_range(range_key, from_date, to_date)
    return await compute_stats(db, date_range, settings)
