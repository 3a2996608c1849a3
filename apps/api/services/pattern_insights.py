"""
Pattern Insights Engine

Turns a user's pattern history (triggers + timeline events) into a short list
of structured insights:

1. Trigger frequency   - which trigger type dominates a pattern
2. Timeline trend      - how often the pattern recurs, is it speeding up
3. Community comparison- severity vs. others with the same category
4. Pattern correlation - which of the user's patterns travel together
5. Recurrence forecast - naive likelihood of the pattern showing up soon

Emission order: per pattern (1, 2, 3), then all correlations, then forecasts.

Below a minimum amount of data an insight type is silently skipped; that is
not an error. Data access failures are NOT caught here: they propagate to the
caller, and nothing computed so far is returned or cached.

The engine holds no process-wide state. Data access, the cache store, the
thresholds and the clock are all injected, so several isolated engines can
coexist (tests build one per case).
"""

from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, List, Optional, Protocol
from uuid import UUID
import logging
import math

from core.config import settings
from services import pattern_statistics as stats
from services.insight_cache import CachedInsights
from services.insight_text import render_insight
from services.insight_types import (
    CommunityComparisonInsight,
    CommunityPattern,
    CommunityStanding,
    CorrelatedPattern,
    Insight,
    PatternCorrelationInsight,
    RecurrencePredictionInsight,
    RiskLevel,
    TimelineTrendInsight,
    TriggerFrequencyInsight,
)
from services.pattern_repository import (
    AggregatedPatternStats,
    CommunityStats,
    PatternRecord,
    TimelineRecord,
)

logger = logging.getLogger(__name__)


# =============================================================================
# CONTEXT
# =============================================================================

class PatternDataSource(Protocol):
    def load_user_patterns(self, user_id: UUID) -> List[PatternRecord]: ...
    def get_community_pattern_stats(self, category: Optional[str]) -> Optional[CommunityStats]: ...
    def aggregated_pattern_stats(self) -> List[AggregatedPatternStats]: ...
    def resolved_pattern_timelines(self, category: str, limit: int) -> List[List[TimelineRecord]]: ...
    def pattern_correlations(self, category: str) -> List[CorrelatedPattern]: ...
    def upsert_knowledge_base(self, pattern: CommunityPattern, updated_at: datetime) -> None: ...
    def get_knowledge_base(self, pattern_type: str) -> Optional[CommunityPattern]: ...


class InsightCacheStore(Protocol):
    def get(self, user_id: UUID) -> Optional[CachedInsights]: ...
    def put(self, user_id: UUID, insights: List[Insight], created_at: datetime) -> None: ...


@dataclass
class InsightThresholds:
    min_triggers: int = 5
    min_timeline_events: int = 3
    correlation_threshold: float = 0.6
    correlation_window_days: float = 3.0
    prediction_min_probability: float = 0.7
    cache_ttl_s: int = 3600
    community_min_users: int = 10
    community_intervention_sample: int = 50
    community_severe_ratio: float = 1.2
    community_better_ratio: float = 0.8
    community_confidence: float = 0.85
    effective_intervention_limit: int = 5
    warning_signal_limit: int = 3

    @classmethod
    def from_settings(cls, cfg=settings) -> "InsightThresholds":
        return cls(
            min_triggers=cfg.INSIGHT_MIN_TRIGGERS,
            min_timeline_events=cfg.INSIGHT_MIN_TIMELINE_EVENTS,
            correlation_threshold=cfg.INSIGHT_CORRELATION_THRESHOLD,
            correlation_window_days=cfg.INSIGHT_CORRELATION_WINDOW_DAYS,
            prediction_min_probability=cfg.INSIGHT_PREDICTION_MIN_PROBABILITY,
            cache_ttl_s=cfg.INSIGHT_CACHE_TTL_S,
            community_min_users=cfg.COMMUNITY_MIN_USERS,
            community_intervention_sample=cfg.COMMUNITY_INTERVENTION_SAMPLE,
        )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# ENGINE
# =============================================================================

class PatternInsightsEngine:

    def __init__(
        self,
        repository: PatternDataSource,
        cache: InsightCacheStore,
        thresholds: Optional[InsightThresholds] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.repository = repository
        self.cache = cache
        self.thresholds = thresholds or InsightThresholds()
        self.clock = clock

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def analyze_user_patterns(self, user_id: UUID) -> List[Insight]:
        """Recompute every insight for a user and overwrite their cache row."""
        patterns = self.repository.load_user_patterns(user_id)
        if not patterns:
            return []

        insights: List[Insight] = []
        for pattern in patterns:
            insights.extend(self._pattern_insights(pattern))

        insights.extend(self.find_pattern_correlations(patterns))

        for pattern in patterns:
            prediction = self.predict_recurrence(pattern)
            if prediction is not None:
                insights.append(prediction)

        self.cache.put(user_id, insights, self.clock())
        logger.info(
            f"Computed {len(insights)} pattern insights for user {user_id}",
            extra={"extra_fields": {"user_id": str(user_id), "pattern_count": len(patterns)}},
        )
        return insights

    def get_user_insights(self, user_id: UUID) -> List[Insight]:
        """Cached insights if younger than the TTL, otherwise a fresh analysis."""
        cached = self.cache.get(user_id)
        if cached is not None and self._is_fresh(cached.created_at):
            logger.debug(f"Insight cache hit: {user_id}")
            return cached.insights

        logger.debug(f"Insight cache miss: {user_id}")
        return self.analyze_user_patterns(user_id)

    def get_recommendations(self, user_id: UUID, pattern_id: UUID) -> List[str]:
        """Distinct actionable steps across a pattern's insights, first-seen order."""
        steps: List[str] = []
        seen = set()
        for insight in self.get_user_insights(user_id):
            if insight.pattern_id != pattern_id:
                continue
            for step in render_insight(insight).actionable_steps:
                if step not in seen:
                    seen.add(step)
                    steps.append(step)
        return steps

    def get_community_insights(self, pattern_type: str) -> Optional[CommunityPattern]:
        return self.repository.get_knowledge_base(pattern_type)

    # -------------------------------------------------------------------------
    # Per-pattern insights
    # -------------------------------------------------------------------------

    def _pattern_insights(self, pattern: PatternRecord) -> List[Insight]:
        insights: List[Insight] = []

        trigger_insight = self.analyze_triggers(pattern)
        if trigger_insight is not None:
            insights.append(trigger_insight)

        timeline_insight = self.analyze_timeline(pattern)
        if timeline_insight is not None:
            insights.append(timeline_insight)

        community_insight = self.compare_to_community(pattern)
        if community_insight is not None:
            insights.append(community_insight)

        return insights

    def analyze_triggers(self, pattern: PatternRecord) -> Optional[TriggerFrequencyInsight]:
        """
        Dominant trigger type by summed occurrence count.

        The minimum-data gate and the confidence ramp count trigger rows;
        occurrence counts only decide which type dominates.
        """
        triggers = pattern.triggers
        trigger_count = len(triggers)
        if trigger_count < self.thresholds.min_triggers:
            return None

        totals = stats.trigger_totals((t.trigger_type, t.occurrence_count) for t in triggers)
        dominant = stats.dominant_trigger(totals)
        if dominant is None:
            return None
        dominant_type, dominant_occurrences = dominant

        return TriggerFrequencyInsight(
            pattern_id=pattern.id,
            pattern_name=pattern.name,
            confidence=stats.ramp_confidence(trigger_count),
            risk_level=RiskLevel(stats.risk_level(pattern.severity, pattern.frequency)),
            dominant_trigger=dominant_type,
            dominant_occurrences=dominant_occurrences,
            total_occurrences=sum(totals.values()),
            trigger_count=trigger_count,
            mean_intensity=round(stats.mean([t.intensity for t in triggers]), 2),
        )

    def analyze_timeline(self, pattern: PatternRecord) -> Optional[TimelineTrendInsight]:
        timeline = pattern.timeline
        if len(timeline) < self.thresholds.min_timeline_events:
            return None

        gaps = stats.day_gaps(e.occurred_at for e in timeline)
        avg_gap = stats.mean(gaps)
        latest_gap = gaps[-1]

        successful_coping = [
            strategy
            for event in timeline
            if event.outcome == "positive"
            for strategy in (event.coping_used or [])
        ]

        return TimelineTrendInsight(
            pattern_id=pattern.id,
            pattern_name=pattern.name,
            confidence=stats.ramp_confidence(len(timeline)),
            risk_level=RiskLevel.MEDIUM,
            event_count=len(timeline),
            mean_interval_days=round(avg_gap, 2),
            latest_interval_days=round(latest_gap, 2),
            accelerating=latest_gap < avg_gap,
            dominant_emotion=stats.most_common(e.emotional_state for e in timeline),
            most_effective_coping=stats.most_common(successful_coping),
        )

    def compare_to_community(self, pattern: PatternRecord) -> Optional[CommunityComparisonInsight]:
        community = self.repository.get_community_pattern_stats(pattern.category)
        if community is None:
            return None

        avg_severity = community.avg_severity
        resolution_rate = community.resolution_rate
        if (
            avg_severity is None
            or resolution_rate is None
            or not math.isfinite(avg_severity)
            or not math.isfinite(resolution_rate)
        ):
            logger.debug(f"Ignoring malformed community stats for category {pattern.category!r}")
            return None

        severity = pattern.severity
        if severity > avg_severity * self.thresholds.community_severe_ratio:
            standing = CommunityStanding.MORE_SEVERE
        elif severity < avg_severity * self.thresholds.community_better_ratio:
            standing = CommunityStanding.BETTER
        else:
            standing = CommunityStanding.IN_LINE

        return CommunityComparisonInsight(
            pattern_id=pattern.id,
            pattern_name=pattern.name,
            confidence=self.thresholds.community_confidence,
            risk_level=RiskLevel.HIGH if severity > avg_severity else RiskLevel.MEDIUM,
            pattern_category=pattern.category or "",
            user_severity=severity,
            community_avg_severity=round(avg_severity, 2),
            resolution_rate=resolution_rate,
            standing=standing,
            community_strategies=list(community.effective_strategies or []),
            community_correlated_patterns=list(community.correlated_patterns or []),
        )

    # -------------------------------------------------------------------------
    # Cross-pattern correlation
    # -------------------------------------------------------------------------

    def correlate(self, a: PatternRecord, b: PatternRecord):
        """(score, shared_trigger_ratio, temporal_proximity_ratio) for a pair."""
        return stats.pattern_correlation(
            [t.trigger_type for t in a.triggers],
            [t.trigger_type for t in b.triggers],
            [e.occurred_at for e in a.timeline],
            [e.occurred_at for e in b.timeline],
            window_days=self.thresholds.correlation_window_days,
        )

    def find_pattern_correlations(self, patterns: List[PatternRecord]) -> List[PatternCorrelationInsight]:
        # O(n^2) over pairs; per-user pattern counts are single digits.
        insights: List[PatternCorrelationInsight] = []
        for i in range(len(patterns)):
            for j in range(i + 1, len(patterns)):
                a, b = patterns[i], patterns[j]
                score, trigger_part, temporal_part = self.correlate(a, b)
                if score <= self.thresholds.correlation_threshold:
                    continue
                insights.append(
                    PatternCorrelationInsight(
                        pattern_id=a.id,
                        pattern_name=a.name,
                        confidence=score,
                        risk_level=RiskLevel.MEDIUM,
                        related_patterns=[b.id],
                        related_pattern_name=b.name,
                        correlation=score,
                        shared_trigger_ratio=round(trigger_part, 4),
                        temporal_proximity_ratio=round(temporal_part, 4),
                    )
                )
        return insights

    # -------------------------------------------------------------------------
    # Forecast
    # -------------------------------------------------------------------------

    def recurrence_probability(self, pattern: PatternRecord) -> Optional[float]:
        """Probability in [0, 1], or None when there is too little history."""
        timeline = pattern.timeline
        if len(timeline) < self.thresholds.min_timeline_events:
            return None
        gaps = stats.day_gaps(e.occurred_at for e in timeline)
        last = max(e.occurred_at for e in timeline)
        return stats.recurrence_probability(gaps, stats.days_between(last, self.clock()))

    def predict_recurrence(self, pattern: PatternRecord) -> Optional[RecurrencePredictionInsight]:
        probability = self.recurrence_probability(pattern)
        if probability is None or probability <= self.thresholds.prediction_min_probability:
            return None

        gaps = stats.day_gaps(e.occurred_at for e in pattern.timeline)
        last = max(e.occurred_at for e in pattern.timeline)
        high = probability > 0.8

        return RecurrencePredictionInsight(
            pattern_id=pattern.id,
            pattern_name=pattern.name,
            confidence=probability,
            risk_level=RiskLevel.HIGH if high else RiskLevel.MEDIUM,
            probability=probability,
            mean_interval_days=round(stats.mean(gaps), 2),
            std_dev_days=round(stats.std_dev(gaps), 2),
            days_since_last=round(stats.days_between(last, self.clock()), 2),
            timeframe="3-5 days" if high else "7-10 days",
            early_warning_signals=self._early_warning_signals(pattern),
        )

    def _early_warning_signals(self, pattern: PatternRecord) -> List[str]:
        ranked = sorted(pattern.triggers, key=lambda t: t.occurrence_count, reverse=True)
        return [
            t.description or t.trigger_type
            for t in ranked[: self.thresholds.warning_signal_limit]
        ]

    # -------------------------------------------------------------------------
    # Community knowledge base
    # -------------------------------------------------------------------------

    def analyze_community_patterns(self) -> List[CommunityPattern]:
        """Rebuild the knowledge base from every user's patterns."""
        results: List[CommunityPattern] = []
        for aggregate in self.repository.aggregated_pattern_stats():
            community_pattern = self._process_community_pattern(aggregate)
            if community_pattern is not None:
                results.append(community_pattern)

        now = self.clock()
        for community_pattern in results:
            self.repository.upsert_knowledge_base(community_pattern, now)

        logger.info(f"Pattern knowledge base updated: {len(results)} categories")
        return results

    def _process_community_pattern(self, aggregate: AggregatedPatternStats) -> Optional[CommunityPattern]:
        # Too few users for the numbers to mean anything (and to stay anonymous)
        if aggregate.user_count < self.thresholds.community_min_users or aggregate.total_users <= 0:
            return None

        timelines = self.repository.resolved_pattern_timelines(
            aggregate.pattern_type, self.thresholds.community_intervention_sample
        )

        return CommunityPattern(
            pattern_type=aggregate.pattern_type,
            prevalence=round(aggregate.user_count / aggregate.total_users * 100, 2),
            common_triggers=list(aggregate.common_triggers),
            effective_interventions=extract_effective_interventions(
                timelines, self.thresholds.effective_intervention_limit
            ),
            average_resolution_time=aggregate.avg_resolution_days or 0.0,
            correlated_patterns=self.repository.pattern_correlations(aggregate.pattern_type),
        )

    def _is_fresh(self, created_at: datetime) -> bool:
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        age_s = (self.clock() - created_at).total_seconds()
        return age_s < self.thresholds.cache_ttl_s


def extract_effective_interventions(timelines: List[List[TimelineRecord]], limit: int = 5) -> List[str]:
    """Most used coping strategies on positive-outcome events."""
    counts: Counter = Counter()
    for timeline in timelines:
        for event in timeline:
            if event.outcome == "positive" and event.coping_used:
                counts.update(s for s in event.coping_used if s)
    return stats.top_labels(counts, limit)


def build_pattern_insights_engine(db) -> PatternInsightsEngine:
    """Engine bound to a SQLAlchemy session."""
    from services.insight_cache import DatabaseInsightCache
    from services.pattern_repository import PatternRepository

    return PatternInsightsEngine(
        repository=PatternRepository(db),
        cache=DatabaseInsightCache(db),
        thresholds=InsightThresholds.from_settings(),
    )
