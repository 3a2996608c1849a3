"""In-memory stand-ins for the pattern repository and insight cache.

Builders produce PatternRecord graphs with deterministic timestamps anchored
at NOW, so tests can drive the engine without a database.
"""
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Sequence
from uuid import UUID, uuid4

from services.insight_cache import CachedInsights
from services.insight_types import CommunityPattern, CorrelatedPattern
from services.pattern_repository import (
    AggregatedPatternStats,
    CommunityStats,
    PatternRecord,
    TimelineRecord,
    TriggerRecord,
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class FixedClock:
    """Callable clock that tests can move forward."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


def make_trigger(trigger_type: str, count: int = 1, intensity: float = 5.0,
                 description: Optional[str] = None) -> TriggerRecord:
    return TriggerRecord(
        trigger_type=trigger_type,
        occurrence_count=count,
        intensity=intensity,
        description=description,
    )


def make_event(days_ago: float, emotional_state: Optional[str] = None,
               outcome: Optional[str] = None, coping: Sequence[str] = ()) -> TimelineRecord:
    return TimelineRecord(
        occurred_at=NOW - timedelta(days=days_ago),
        emotional_state=emotional_state,
        outcome=outcome,
        coping_used=list(coping),
    )


def events_days_ago(*days_ago: float) -> List[TimelineRecord]:
    return [make_event(d) for d in days_ago]


def make_pattern(name: str = "Late-night snacking", category: Optional[str] = "eating",
                 severity: float = 5.0, frequency: float = 5.0,
                 triggers: Sequence[TriggerRecord] = (),
                 timeline: Sequence[TimelineRecord] = (),
                 pattern_id: Optional[UUID] = None) -> PatternRecord:
    return PatternRecord(
        id=pattern_id or uuid4(),
        name=name,
        category=category,
        severity=severity,
        frequency=frequency,
        triggers=list(triggers),
        timeline=list(timeline),
    )


class FakePatternRepository:
    """Counts calls so tests can assert the pattern tables were not touched."""

    def __init__(self, patterns: Optional[Dict[UUID, List[PatternRecord]]] = None):
        self.patterns: Dict[UUID, List[PatternRecord]] = patterns or {}
        self.community_stats: Dict[str, CommunityStats] = {}
        self.aggregates: List[AggregatedPatternStats] = []
        self.resolved_timelines: Dict[str, List[List[TimelineRecord]]] = {}
        self.correlations: Dict[str, List[CorrelatedPattern]] = {}
        self.knowledge_base: Dict[str, CommunityPattern] = {}
        self.load_calls = 0
        self.fail_with: Optional[Exception] = None

    def load_user_patterns(self, user_id: UUID) -> List[PatternRecord]:
        self.load_calls += 1
        if self.fail_with is not None:
            raise self.fail_with
        return list(self.patterns.get(user_id, []))

    def get_community_pattern_stats(self, category):
        if not category:
            return None
        return self.community_stats.get(category)

    def aggregated_pattern_stats(self):
        return list(self.aggregates)

    def resolved_pattern_timelines(self, category, limit):
        return self.resolved_timelines.get(category, [])[:limit]

    def pattern_correlations(self, category):
        return self.correlations.get(category, [])

    def upsert_knowledge_base(self, pattern: CommunityPattern, updated_at: datetime) -> None:
        self.knowledge_base[pattern.pattern_type] = pattern.model_copy(update={"updated_at": updated_at})

    def get_knowledge_base(self, pattern_type: str):
        return self.knowledge_base.get(pattern_type)


class FakeInsightCache:
    def __init__(self):
        self.rows: Dict[UUID, CachedInsights] = {}
        self.put_calls = 0

    def get(self, user_id: UUID) -> Optional[CachedInsights]:
        return self.rows.get(user_id)

    def put(self, user_id: UUID, insights, created_at: datetime) -> None:
        self.put_calls += 1
        self.rows[user_id] = CachedInsights(insights=list(insights), created_at=created_at)
