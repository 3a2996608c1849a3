"""pattern_insights_schema

Revision ID: 001_pattern_insights
Revises:
Create Date: 2026-10-19

Users, patterns with their triggers / timeline / connections, the per-user
insight snapshot and the community knowledge base.
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID, JSONB

# revision identifiers, used by Alembic.
revision = "001_pattern_insights"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "app_user",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("email", sa.Text(), nullable=True, unique=True),
        sa.Column("display_name", sa.Text(), nullable=True),
        sa.Column("role", sa.Text(), nullable=False, server_default="user"),
    )

    op.create_table(
        "pattern",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", UUID(as_uuid=True), sa.ForeignKey("app_user.id"), nullable=False),
        sa.Column("pattern_name", sa.Text(), nullable=False),
        sa.Column("category", sa.Text(), nullable=True),
        sa.Column("severity", sa.Float(), nullable=False, server_default="0"),
        sa.Column("frequency", sa.Float(), nullable=False, server_default="0"),
        sa.Column("status", sa.Text(), nullable=False, server_default="active"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_pattern_user_id", "pattern", ["user_id"])
    op.create_index("ix_pattern_category_status", "pattern", ["category", "status"])

    op.create_table(
        "pattern_trigger",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("pattern_id", UUID(as_uuid=True), sa.ForeignKey("pattern.id", ondelete="CASCADE"), nullable=False),
        sa.Column("trigger_type", sa.Text(), nullable=False),
        sa.Column("occurrence_count", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("intensity", sa.Float(), nullable=False),
        sa.Column("trigger_description", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("intensity >= 0 AND intensity <= 10", name="ck_pattern_trigger_intensity_range"),
        sa.CheckConstraint("occurrence_count >= 0", name="ck_pattern_trigger_occurrence_nonneg"),
    )
    op.create_index("ix_pattern_trigger_pattern_id", "pattern_trigger", ["pattern_id"])

    op.create_table(
        "pattern_timeline",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("pattern_id", UUID(as_uuid=True), sa.ForeignKey("pattern.id", ondelete="CASCADE"), nullable=False),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("emotional_state", sa.Text(), nullable=True),
        sa.Column("outcome", sa.Text(), nullable=True),
        sa.Column("coping_used", JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
    )
    op.create_index("ix_pattern_timeline_pattern_occurred", "pattern_timeline", ["pattern_id", "occurred_at"])

    op.create_table(
        "pattern_connection",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", UUID(as_uuid=True), sa.ForeignKey("app_user.id"), nullable=False),
        sa.Column("from_pattern_id", UUID(as_uuid=True), sa.ForeignKey("pattern.id", ondelete="CASCADE"), nullable=False),
        sa.Column("to_pattern_id", UUID(as_uuid=True), sa.ForeignKey("pattern.id", ondelete="CASCADE"), nullable=False),
        sa.Column("connection_type", sa.Text(), nullable=False),
        sa.Column("strength", sa.Float(), nullable=False, server_default="0.5"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_pattern_connection_from_pattern_id", "pattern_connection", ["from_pattern_id"])
    op.create_index("ix_pattern_connection_to_pattern_id", "pattern_connection", ["to_pattern_id"])

    op.create_table(
        "pattern_insights_cache",
        sa.Column("user_id", UUID(as_uuid=True), sa.ForeignKey("app_user.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("insights", JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "pattern_knowledge_base",
        sa.Column("pattern_type", sa.Text(), primary_key=True),
        sa.Column("prevalence", sa.Float(), nullable=False),
        sa.Column("common_triggers", JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("effective_interventions", JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("average_resolution_time", sa.Float(), nullable=False, server_default="0"),
        sa.Column("correlated_patterns", JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("pattern_knowledge_base")
    op.drop_table("pattern_insights_cache")
    op.drop_index("ix_pattern_connection_to_pattern_id", table_name="pattern_connection")
    op.drop_index("ix_pattern_connection_from_pattern_id", table_name="pattern_connection")
    op.drop_table("pattern_connection")
    op.drop_index("ix_pattern_timeline_pattern_occurred", table_name="pattern_timeline")
    op.drop_table("pattern_timeline")
    op.drop_index("ix_pattern_trigger_pattern_id", table_name="pattern_trigger")
    op.drop_table("pattern_trigger")
    op.drop_index("ix_pattern_category_status", table_name="pattern")
    op.drop_index("ix_pattern_user_id", table_name="pattern")
    op.drop_table("pattern")
    op.drop_table("app_user")
