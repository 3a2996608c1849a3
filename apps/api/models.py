from sqlalchemy import Column, Integer, Float, DateTime, ForeignKey, Text, Index, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.sql import func
from core.database import Base
import uuid


class User(Base):
    __tablename__ = "app_user"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    email = Column(Text, unique=True, nullable=True)
    display_name = Column(Text, nullable=True)
    role = Column(Text, default="user", nullable=False)  # 'user', 'admin'

    patterns = relationship("Pattern", back_populates="user", cascade="all, delete-orphan")


class Pattern(Base):
    """
    A recurring behavior tracked for a user.

    Rows are created when the coaching conversation flags a behavior and are
    read-mostly afterwards. `category` is free-form and is what community
    statistics are grouped by.
    """
    __tablename__ = "pattern"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("app_user.id"), nullable=False, index=True)
    pattern_name = Column(Text, nullable=False)
    category = Column(Text, nullable=True)
    severity = Column(Float, default=0.0, nullable=False)  # 0-10
    frequency = Column(Float, default=0.0, nullable=False)  # 0-10
    status = Column(Text, default="active", nullable=False)  # 'active', 'resolved'
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    resolved_at = Column(DateTime(timezone=True), nullable=True)

    user = relationship("User", back_populates="patterns")
    triggers = relationship("PatternTrigger", back_populates="pattern", cascade="all, delete-orphan")
    timeline = relationship(
        "PatternTimelineEvent",
        back_populates="pattern",
        cascade="all, delete-orphan",
        order_by="PatternTimelineEvent.occurred_at",
    )

    __table_args__ = (
        Index("ix_pattern_category_status", "category", "status"),
    )


class PatternTrigger(Base):
    __tablename__ = "pattern_trigger"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    pattern_id = Column(UUID(as_uuid=True), ForeignKey("pattern.id", ondelete="CASCADE"), nullable=False, index=True)
    trigger_type = Column(Text, nullable=False)
    occurrence_count = Column(Integer, default=1, nullable=False)
    intensity = Column(Float, nullable=False)
    trigger_description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    pattern = relationship("Pattern", back_populates="triggers")

    __table_args__ = (
        CheckConstraint("intensity >= 0 AND intensity <= 10", name="ck_pattern_trigger_intensity_range"),
        CheckConstraint("occurrence_count >= 0", name="ck_pattern_trigger_occurrence_nonneg"),
    )


class PatternTimelineEvent(Base):
    """Append-only occurrence log for a pattern."""
    __tablename__ = "pattern_timeline"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    pattern_id = Column(UUID(as_uuid=True), ForeignKey("pattern.id", ondelete="CASCADE"), nullable=False)
    occurred_at = Column(DateTime(timezone=True), nullable=False)
    emotional_state = Column(Text, nullable=True)
    outcome = Column(Text, nullable=True)  # 'positive' or anything else
    coping_used = Column(JSONB, nullable=False, default=list)  # list[str]

    pattern = relationship("Pattern", back_populates="timeline")

    __table_args__ = (
        Index("ix_pattern_timeline_pattern_occurred", "pattern_id", "occurred_at"),
    )


class PatternConnection(Base):
    """Directed link between two of a user's patterns, recorded by the coaching flow."""
    __tablename__ = "pattern_connection"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("app_user.id"), nullable=False)
    from_pattern_id = Column(UUID(as_uuid=True), ForeignKey("pattern.id", ondelete="CASCADE"), nullable=False, index=True)
    to_pattern_id = Column(UUID(as_uuid=True), ForeignKey("pattern.id", ondelete="CASCADE"), nullable=False, index=True)
    connection_type = Column(Text, nullable=False)
    strength = Column(Float, default=0.5, nullable=False)  # 0-1
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class PatternInsightsCache(Base):
    """Last computed insight snapshot per user. Fresh for one hour."""
    __tablename__ = "pattern_insights_cache"

    user_id = Column(UUID(as_uuid=True), ForeignKey("app_user.id", ondelete="CASCADE"), primary_key=True)
    insights = Column(JSONB, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), nullable=False)


class PatternKnowledgeBase(Base):
    """Cross-user statistics per pattern category, rebuilt by the community task."""
    __tablename__ = "pattern_knowledge_base"

    pattern_type = Column(Text, primary_key=True)
    prevalence = Column(Float, nullable=False)  # % of users with this pattern
    common_triggers = Column(JSONB, nullable=False, default=list)
    effective_interventions = Column(JSONB, nullable=False, default=list)
    average_resolution_time = Column(Float, nullable=False, default=0.0)  # days
    correlated_patterns = Column(JSONB, nullable=False, default=list)  # [{pattern, correlation}]
    updated_at = Column(DateTime(timezone=True), nullable=False)
