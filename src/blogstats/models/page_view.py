"""PageView model - one page load within a visitor session."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from blogstats.db.types import UTCDateTime, utcnow
from blogstats.models.base import Base


class PageView(Base):
    __tablename__ = "page_views"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    visitor_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    session_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    visitor_session_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("visitor_sessions.id", ondelete="CASCADE"),
        nullable=True,
    )
    user_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    path: Mapped[str] = mapped_column(Text, nullable=False)
    title: Mapped[str | None] = mapped_column(Text, nullable=True)
    post_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    category_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    referrer: Mapped[str | None] = mapped_column(Text, nullable=True)

    time_on_page: Mapped[int | None] = mapped_column(Integer, nullable=True)
    scroll_depth: Mapped[int | None] = mapped_column(Integer, nullable=True)
    exit_page: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    timestamp: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utcnow, nullable=False
    )

    # Relationships
    session: Mapped["VisitorSession | None"] = relationship(  # noqa: F821
        back_populates="views"
    )

    __table_args__ = (
        CheckConstraint(
            "time_on_page IS NULL OR time_on_page >= 0",
            name="time_on_page",
        ),
        CheckConstraint(
            "scroll_depth IS NULL OR (scroll_depth >= 0 AND scroll_depth <= 100)",
            name="scroll_depth",
        ),
        Index("ix_page_views_path_created_at", "path", "created_at"),
        Index("ix_page_views_timestamp", "timestamp"),
    )
