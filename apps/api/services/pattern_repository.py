"""
Pattern Repository

SQLAlchemy data access for the pattern insights engine. Rows are converted to
plain dataclasses at this boundary so the engine never touches the ORM.

No retries and no error translation: database failures propagate to the caller.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy import func, case, distinct
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.orm import Session, selectinload

from models import (
    User,
    Pattern,
    PatternTrigger,
    PatternConnection,
    PatternKnowledgeBase,
)
from services.insight_types import CommunityPattern, CorrelatedPattern


# =============================================================================
# RECORDS
# =============================================================================

@dataclass
class TriggerRecord:
    trigger_type: str
    occurrence_count: int
    intensity: float
    description: Optional[str] = None


@dataclass
class TimelineRecord:
    occurred_at: datetime
    emotional_state: Optional[str] = None
    outcome: Optional[str] = None
    coping_used: List[str] = field(default_factory=list)


@dataclass
class PatternRecord:
    id: UUID
    name: str
    category: Optional[str]
    severity: float
    frequency: float
    triggers: List[TriggerRecord] = field(default_factory=list)
    timeline: List[TimelineRecord] = field(default_factory=list)


@dataclass
class CommunityStats:
    """Community-wide view of one pattern category."""
    avg_severity: float
    resolution_rate: float  # percent
    pattern_count: int
    effective_strategies: List[str] = field(default_factory=list)
    correlated_patterns: List[str] = field(default_factory=list)


@dataclass
class AggregatedPatternStats:
    pattern_type: str
    user_count: int
    total_users: int
    common_triggers: List[str] = field(default_factory=list)
    avg_resolution_days: float = 0.0


def _to_pattern_record(row: Pattern) -> PatternRecord:
    return PatternRecord(
        id=row.id,
        name=row.pattern_name,
        category=row.category,
        severity=float(row.severity or 0.0),
        frequency=float(row.frequency or 0.0),
        triggers=[
            TriggerRecord(
                trigger_type=t.trigger_type,
                occurrence_count=t.occurrence_count or 0,
                intensity=float(t.intensity or 0.0),
                description=t.trigger_description,
            )
            for t in row.triggers
        ],
        timeline=[
            TimelineRecord(
                occurred_at=e.occurred_at,
                emotional_state=e.emotional_state,
                outcome=e.outcome,
                coping_used=list(e.coping_used or []),
            )
            for e in row.timeline
        ],
    )


class PatternRepository:
    """Query/write boundary over the pattern tables."""

    COMMON_TRIGGER_LIMIT = 5

    def __init__(self, db: Session):
        self.db = db

    # -------------------------------------------------------------------------
    # Per-user data
    # -------------------------------------------------------------------------

    def load_user_patterns(self, user_id: UUID) -> List[PatternRecord]:
        rows = (
            self.db.query(Pattern)
            .options(selectinload(Pattern.triggers), selectinload(Pattern.timeline))
            .filter(Pattern.user_id == user_id)
            .order_by(Pattern.created_at, Pattern.id)
            .all()
        )
        return [_to_pattern_record(row) for row in rows]

    def get_community_pattern_stats(self, category: Optional[str]) -> Optional[CommunityStats]:
        """
        Average severity and resolution rate for a category across all users.

        Returns None when the category is unknown or has no rows.
        """
        if not category:
            return None

        row = (
            self.db.query(
                func.count(Pattern.id),
                func.avg(Pattern.severity),
                func.sum(case((Pattern.status == "resolved", 1), else_=0)),
            )
            .filter(Pattern.category == category)
            .one()
        )
        pattern_count, avg_severity, resolved = row
        if not pattern_count or avg_severity is None:
            return None

        stats = CommunityStats(
            avg_severity=float(avg_severity),
            resolution_rate=round(100.0 * float(resolved or 0) / pattern_count, 1),
            pattern_count=int(pattern_count),
        )

        kb = self.db.get(PatternKnowledgeBase, category)
        if kb is not None:
            stats.effective_strategies = list(kb.effective_interventions or [])
            stats.correlated_patterns = [
                c.get("pattern") for c in (kb.correlated_patterns or []) if c.get("pattern")
            ]
        return stats

    # -------------------------------------------------------------------------
    # Cross-user aggregation
    # -------------------------------------------------------------------------

    def aggregated_pattern_stats(self) -> List[AggregatedPatternStats]:
        total_users = self.db.query(func.count(User.id)).scalar() or 0

        rows = (
            self.db.query(Pattern.category, func.count(distinct(Pattern.user_id)))
            .filter(Pattern.category.isnot(None))
            .group_by(Pattern.category)
            .order_by(Pattern.category)
            .all()
        )

        results = []
        for category, user_count in rows:
            results.append(
                AggregatedPatternStats(
                    pattern_type=category,
                    user_count=int(user_count or 0),
                    total_users=int(total_users),
                    common_triggers=self._common_triggers(category),
                    avg_resolution_days=self._avg_resolution_days(category),
                )
            )
        return results

    def _common_triggers(self, category: str) -> List[str]:
        rows = (
            self.db.query(PatternTrigger.trigger_type, func.sum(PatternTrigger.occurrence_count))
            .join(Pattern, Pattern.id == PatternTrigger.pattern_id)
            .filter(Pattern.category == category)
            .group_by(PatternTrigger.trigger_type)
            .order_by(func.sum(PatternTrigger.occurrence_count).desc(), PatternTrigger.trigger_type)
            .limit(self.COMMON_TRIGGER_LIMIT)
            .all()
        )
        return [trigger_type for trigger_type, _ in rows]

    def _avg_resolution_days(self, category: str) -> float:
        resolved = (
            self.db.query(Pattern.created_at, Pattern.resolved_at)
            .filter(
                Pattern.category == category,
                Pattern.status == "resolved",
                Pattern.resolved_at.isnot(None),
            )
            .all()
        )
        durations = [
            (resolved_at - created_at).total_seconds() / 86400
            for created_at, resolved_at in resolved
            if created_at and resolved_at
        ]
        if not durations:
            return 0.0
        avg = sum(durations) / len(durations)
        return round(avg, 1) if math.isfinite(avg) else 0.0

    def resolved_pattern_timelines(self, category: str, limit: int) -> List[List[TimelineRecord]]:
        """Timelines of up to `limit` resolved patterns in a category."""
        rows = (
            self.db.query(Pattern)
            .options(selectinload(Pattern.timeline))
            .filter(Pattern.category == category, Pattern.status == "resolved")
            .order_by(Pattern.resolved_at.desc().nullslast())
            .limit(limit)
            .all()
        )
        return [_to_pattern_record(row).timeline for row in rows]

    def pattern_correlations(self, category: str) -> List[CorrelatedPattern]:
        """
        Categories linked to `category` through recorded pattern connections,
        with mean connection strength.
        """
        source = Pattern.__table__.alias("source")
        target = Pattern.__table__.alias("target")
        rows = (
            self.db.query(target.c.category, func.avg(PatternConnection.strength))
            .select_from(PatternConnection)
            .join(source, source.c.id == PatternConnection.from_pattern_id)
            .join(target, target.c.id == PatternConnection.to_pattern_id)
            .filter(source.c.category == category)
            .filter(target.c.category.isnot(None))
            .filter(target.c.category != category)
            .group_by(target.c.category)
            .order_by(func.avg(PatternConnection.strength).desc())
            .all()
        )
        return [
            CorrelatedPattern(pattern=other, correlation=round(float(strength or 0.0), 3))
            for other, strength in rows
        ]

    # -------------------------------------------------------------------------
    # Knowledge base
    # -------------------------------------------------------------------------

    def upsert_knowledge_base(self, pattern: CommunityPattern, updated_at: datetime) -> None:
        values: Dict = {
            "pattern_type": pattern.pattern_type,
            "prevalence": pattern.prevalence,
            "common_triggers": pattern.common_triggers,
            "effective_interventions": pattern.effective_interventions,
            "average_resolution_time": pattern.average_resolution_time,
            "correlated_patterns": [c.model_dump() for c in pattern.correlated_patterns],
            "updated_at": updated_at,
        }
        stmt = pg_insert(PatternKnowledgeBase).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[PatternKnowledgeBase.pattern_type],
            set_={k: v for k, v in values.items() if k != "pattern_type"},
        )
        self.db.execute(stmt)
        self.db.flush()

    def get_knowledge_base(self, pattern_type: str) -> Optional[CommunityPattern]:
        row = self.db.get(PatternKnowledgeBase, pattern_type)
        if row is None:
            return None
        return CommunityPattern.model_validate(row)
