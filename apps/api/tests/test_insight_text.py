"""
Tests for insight wording (messages and actionable steps).
"""

from uuid import uuid4

import pytest

from services.insight_text import DEFAULT_COMMUNITY_STEPS, render_insight
from services.insight_types import (
    CommunityComparisonInsight,
    CommunityStanding,
    RecurrencePredictionInsight,
    RiskLevel,
    TimelineTrendInsight,
)


def _community(standing, strategies=()):
    return CommunityComparisonInsight(
        pattern_id=uuid4(), pattern_name="Late-night snacking", confidence=0.85,
        risk_level=RiskLevel.MEDIUM, pattern_category="eating", user_severity=5.0,
        community_avg_severity=5.0, resolution_rate=37.5, standing=standing,
        community_strategies=list(strategies),
    )


class TestCommunityText:

    def test_more_severe(self):
        rendered = render_insight(_community(CommunityStanding.MORE_SEVERE))
        assert "more severe" in rendered.message
        assert "Consider professional support" in rendered.actionable_steps

    def test_better(self):
        rendered = render_insight(_community(CommunityStanding.BETTER))
        assert rendered.message.startswith("You're managing this pattern better")

    def test_in_line_falls_back_to_default_steps(self):
        rendered = render_insight(_community(CommunityStanding.IN_LINE))
        assert "38% successfully manage this" in rendered.message
        assert rendered.actionable_steps == DEFAULT_COMMUNITY_STEPS


class TestTimelineText:

    def test_without_coping_or_emotion(self):
        insight = TimelineTrendInsight(
            pattern_id=uuid4(), pattern_name="Doomscrolling", confidence=0.3,
            risk_level=RiskLevel.MEDIUM, event_count=3, mean_interval_days=6.0,
            latest_interval_days=6.0, accelerating=False,
        )
        steps = render_insight(insight).actionable_steps
        assert steps == [
            "Maintain current interventions",
            "Try different coping strategies",
            "Track emotional patterns",
        ]


class TestPredictionText:

    def test_moderate_without_known_triggers(self):
        insight = RecurrencePredictionInsight(
            pattern_id=uuid4(), pattern_name="Doomscrolling", confidence=0.75,
            risk_level=RiskLevel.MEDIUM, probability=0.75, mean_interval_days=10.0,
            std_dev_days=2.0, days_since_last=11.0, timeframe="7-10 days",
        )
        rendered = render_insight(insight)
        assert rendered.message == "Moderate likelihood of Doomscrolling pattern in the next 7-10 days."
        assert not any(s.startswith("Avoid known triggers") for s in rendered.actionable_steps)


def test_unknown_type_is_rejected():
    with pytest.raises(TypeError):
        render_insight(object())
