"""Initial schema - visitor sessions, page views and API keys.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # API keys table
    op.create_table(
        "api_keys",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("key_hash", sa.String(128), nullable=False),
        sa.Column("prefix", sa.String(16), nullable=False),
        sa.Column("role", sa.String(16), nullable=False, server_default="admin"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("role IN ('admin', 'editor')", name="ck_api_keys_role"),
        sa.UniqueConstraint("key_hash", name="uq_api_keys_key_hash"),
    )

    # Visitor sessions table - session_id uniqueness guards concurrent creation
    op.create_table(
        "visitor_sessions",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("visitor_id", sa.String(64), nullable=False),
        sa.Column("session_id", sa.String(64), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=True),
        sa.Column("is_new_visitor", sa.Boolean(), nullable=False, server_default="1"),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("duration", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("page_views", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("bounced", sa.Boolean(), nullable=False, server_default="1"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="1"),
        sa.Column("source", sa.String(16), nullable=False, server_default="direct"),
        sa.Column("referrer", sa.Text(), nullable=True),
        sa.Column("utm_source", sa.String(255), nullable=True),
        sa.Column("utm_medium", sa.String(255), nullable=True),
        sa.Column("utm_campaign", sa.String(255), nullable=True),
        sa.Column("entry_page", sa.Text(), nullable=True),
        sa.Column("exit_page", sa.Text(), nullable=True),
        sa.Column("country", sa.String(64), nullable=True),
        sa.Column("city", sa.String(128), nullable=True),
        sa.Column("region", sa.String(128), nullable=True),
        sa.Column("device", sa.String(16), nullable=True),
        sa.Column("browser", sa.String(64), nullable=True),
        sa.Column("os", sa.String(64), nullable=True),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column("ip_hash", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "source IN ('direct', 'organic', 'social', 'referral', 'email', 'paid')",
            name="ck_visitor_sessions_source",
        ),
        sa.CheckConstraint(
            "device IS NULL OR device IN ('desktop', 'mobile', 'tablet')",
            name="ck_visitor_sessions_device",
        ),
        sa.CheckConstraint("duration >= 0", name="ck_visitor_sessions_duration"),
    )
    op.create_index(
        "ix_visitor_sessions_session_id", "visitor_sessions", ["session_id"], unique=True
    )
    op.create_index("ix_visitor_sessions_visitor_id", "visitor_sessions", ["visitor_id"])
    op.create_index("ix_visitor_sessions_country", "visitor_sessions", ["country"])
    op.create_index("ix_visitor_sessions_created_at", "visitor_sessions", ["created_at"])
    op.create_index(
        "ix_visitor_sessions_active_updated", "visitor_sessions", ["is_active", "updated_at"]
    )

    # Page views table
    op.create_table(
        "page_views",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("visitor_id", sa.String(64), nullable=False),
        sa.Column("session_id", sa.String(64), nullable=False),
        sa.Column(
            "visitor_session_id",
            sa.String(36),
            sa.ForeignKey("visitor_sessions.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("user_id", sa.String(64), nullable=True),
        sa.Column("path", sa.Text(), nullable=False),
        sa.Column("title", sa.Text(), nullable=True),
        sa.Column("post_id", sa.String(64), nullable=True),
        sa.Column("category_id", sa.String(64), nullable=True),
        sa.Column("referrer", sa.Text(), nullable=True),
        sa.Column("time_on_page", sa.Integer(), nullable=True),
        sa.Column("scroll_depth", sa.Integer(), nullable=True),
        sa.Column("exit_page", sa.Boolean(), nullable=False, server_default="0"),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "time_on_page IS NULL OR time_on_page >= 0",
            name="ck_page_views_time_on_page",
        ),
        sa.CheckConstraint(
            "scroll_depth IS NULL OR (scroll_depth >= 0 AND scroll_depth <= 100)",
            name="ck_page_views_scroll_depth",
        ),
    )
    op.create_index("ix_page_views_visitor_id", "page_views", ["visitor_id"])
    op.create_index("ix_page_views_session_id", "page_views", ["session_id"])
    op.create_index("ix_page_views_path_created_at", "page_views", ["path", "created_at"])
    op.create_index("ix_page_views_timestamp", "page_views", ["timestamp"])


def downgrade() -> None:
    op.drop_table("page_views")
    op.drop_table("visitor_sessions")
    op.drop_table("api_keys")
