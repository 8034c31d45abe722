"""Initial schema — users, learning sessions, reports, history, stats, behaviors.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-17

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamp(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(
        name, sa.DateTime(timezone=True), nullable=nullable,
        server_default=None if nullable else sa.func.now(),
    )


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(128), primary_key=True),
        sa.Column("nickname", sa.String(64), nullable=True),
        sa.Column("avatar_url", sa.String(512), nullable=True),
        sa.Column("settings", sa.JSON, nullable=False),
        sa.Column("learning_stats", sa.JSON, nullable=False),
        sa.Column("achievements", sa.JSON, nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )

    op.create_table(
        "learning_sessions",
        sa.Column("session_id", sa.String(128), primary_key=True),
        sa.Column("owner_id", sa.String(128), nullable=False),
        sa.Column("problem_text", sa.Text, nullable=False),
        sa.Column("analysis", sa.JSON, nullable=False),
        sa.Column("image_ref", sa.String(512), nullable=True),
        sa.Column("dialogue", sa.JSON, nullable=False),
        sa.Column("current_round", sa.Integer, nullable=False, server_default="1"),
        sa.Column("total_rounds", sa.Integer, nullable=False, server_default="3"),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        _timestamp("start_time"),
        _timestamp("end_time", nullable=True),
        sa.Column("completion_reason", sa.String(32), nullable=True),
        sa.Column("abandon_note", sa.String(200), nullable=True),
        sa.Column("revision", sa.Integer, nullable=False, server_default="0"),
        _timestamp("updated_at"),
    )
    op.create_index(
        "ix_learning_sessions_owner_start", "learning_sessions",
        ["owner_id", "start_time"],
    )

    op.create_table(
        "learning_reports",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("session_id", sa.String(128), nullable=False),
        sa.Column("owner_id", sa.String(128), nullable=False),
        sa.Column("score", sa.Integer, nullable=False),
        sa.Column("level", sa.String(16), nullable=False),
        sa.Column("source", sa.String(16), nullable=False),
        sa.Column("payload", sa.JSON, nullable=False),
        _timestamp("created_at"),
        sa.UniqueConstraint("session_id", name="uq_learning_reports_session_id"),
    )
    op.create_index(
        "ix_learning_reports_owner_id", "learning_reports", ["owner_id"],
    )

    op.create_table(
        "learning_history",
        sa.Column("owner_id", sa.String(128), primary_key=True),
        sa.Column("entries", sa.JSON, nullable=False),
        sa.Column("total_sessions", sa.Integer, nullable=False, server_default="0"),
        sa.Column("revision", sa.Integer, nullable=False, server_default="0"),
        _timestamp("updated_at"),
    )

    op.create_table(
        "user_stats",
        sa.Column("owner_id", sa.String(128), primary_key=True),
        sa.Column("total_questions", sa.Integer, nullable=False, server_default="0"),
        sa.Column("completed_sessions", sa.Integer, nullable=False, server_default="0"),
        sa.Column("total_learning_minutes", sa.Integer, nullable=False, server_default="0"),
        sa.Column("average_score", sa.Integer, nullable=False, server_default="0"),
        sa.Column("best_score", sa.Integer, nullable=False, server_default="0"),
        sa.Column("current_streak", sa.Integer, nullable=False, server_default="0"),
        sa.Column("longest_streak", sa.Integer, nullable=False, server_default="0"),
        sa.Column("total_days", sa.Integer, nullable=False, server_default="0"),
        sa.Column("first_learning_date", sa.String(10), nullable=True),
        sa.Column("last_learning_date", sa.String(10), nullable=True),
        sa.Column("latest_achievement", sa.String(32), nullable=False),
        _timestamp("updated_at"),
    )

    op.create_table(
        "user_behaviors",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("owner_id", sa.String(128), nullable=False),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("page", sa.String(100), nullable=True),
        sa.Column("data", sa.JSON, nullable=True),
        _timestamp("created_at"),
    )
    op.create_index(
        "ix_user_behaviors_owner_id", "user_behaviors", ["owner_id"],
    )


def downgrade() -> None:
    op.drop_index("ix_user_behaviors_owner_id", table_name="user_behaviors")
    op.drop_table("user_behaviors")
    op.drop_table("user_stats")
    op.drop_table("learning_history")
    op.drop_index("ix_learning_reports_owner_id", table_name="learning_reports")
    op.drop_table("learning_reports")
    op.drop_index(
        "ix_learning_sessions_owner_start", table_name="learning_sessions",
    )
    op.drop_table("learning_sessions")
    op.drop_table("users")
