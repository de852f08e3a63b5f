"""VisitorSession model - one visitor's continuous browsing session."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from blogstats.db.types import UTCDateTime, utcnow
from blogstats.models.base import Base

TRAFFIC_SOURCES = ("direct", "organic", "social", "referral", "email", "paid")
DEVICE_TYPES = ("desktop", "mobile", "tablet")


class VisitorSession(Base):
    __tablename__ = "visitor_sessions"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    visitor_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    session_id: Mapped[str] = mapped_column(
        String(64), nullable=False, unique=True, index=True
    )
    user_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    is_new_visitor: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    start_time: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    end_time: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    # seconds
    duration: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    page_views: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    bounced: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    source: Mapped[str] = mapped_column(String(16), default="direct", nullable=False)
    referrer: Mapped[str | None] = mapped_column(Text, nullable=True)
    utm_source: Mapped[str | None] = mapped_column(String(255), nullable=True)
    utm_medium: Mapped[str | None] = mapped_column(String(255), nullable=True)
    utm_campaign: Mapped[str | None] = mapped_column(String(255), nullable=True)
    entry_page: Mapped[str | None] = mapped_column(Text, nullable=True)
    exit_page: Mapped[str | None] = mapped_column(Text, nullable=True)

    country: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    city: Mapped[str | None] = mapped_column(String(128), nullable=True)
    region: Mapped[str | None] = mapped_column(String(128), nullable=True)
    device: Mapped[str | None] = mapped_column(String(16), nullable=True)
    browser: Mapped[str | None] = mapped_column(String(64), nullable=True)
    os: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)
    ip_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utcnow, onupdate=utcnow, nullable=False
    )

    # Relationships
    views: Mapped[list["PageView"]] = relationship(  # noqa: F821
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="PageView.timestamp",
    )

    __table_args__ = (
        CheckConstraint(
            "source IN ('direct', 'organic', 'social', 'referral', 'email', 'paid')",
            name="source",
        ),
        CheckConstraint(
            "device IS NULL OR device IN ('desktop', 'mobile', 'tablet')",
            name="device",
        ),
        CheckConstraint("duration >= 0", name="duration"),
        Index("ix_visitor_sessions_created_at", "created_at"),
        Index("ix_visitor_sessions_active_updated", "is_active", "updated_at"),
    )

    @property
    def last_activity(self) -> datetime:
        """Latest known activity: the end time once set, else the start time."""
        return self.end_time or self.start_time
