"""Typed data access for the session and page-view stores."""

from blogstats.repositories.page_views import PageViewRepository
from blogstats.repositories.sessions import VisitorSessionRepository

__all__ = [
    "PageViewRepository",
    "VisitorSessionRepository",
]
