"""SQLAlchemy ORM models."""

from blogstats.models.base import Base
from blogstats.models.api_key import ApiKey
from blogstats.models.visitor_session import VisitorSession
from blogstats.models.page_view import PageView

__all__ = [
    "Base",
    "ApiKey",
    "VisitorSession",
    "PageView",
]
