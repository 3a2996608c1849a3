"""
Insight Text

Turns structured insights into user-facing copy: a one-sentence message and
a short list of actionable steps. Kept apart from the statistics so wording
can change without touching the numbers (or invalidating cached snapshots).
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, List

from services.insight_types import (
    CommunityComparisonInsight,
    CommunityStanding,
    PatternCorrelationInsight,
    RecurrencePredictionInsight,
    TimelineTrendInsight,
    TriggerFrequencyInsight,
)

CRISIS_INTENSITY_THRESHOLD = 7.0
HIGH_LIKELIHOOD_THRESHOLD = 0.8

DEFAULT_COMMUNITY_STEPS = [
    "Connect with others facing similar challenges",
    "Try community-validated strategies",
    "Track your progress against community benchmarks",
]


@dataclass
class RenderedInsight:
    message: str
    actionable_steps: List[str] = field(default_factory=list)


def _render_trigger_frequency(insight: TriggerFrequencyInsight) -> RenderedInsight:
    share_pct = insight.dominant_share * 100
    message = (
        f"Your {insight.dominant_trigger} triggers account for {share_pct:.0f}% of recorded "
        f"occurrences ({insight.dominant_occurrences} of {insight.total_occurrences}). "
        f"Average intensity is {insight.mean_intensity:.1f}/10."
    )
    steps = [
        f"Focus on managing {insight.dominant_trigger} triggers first",
        "Consider crisis prevention strategies"
        if insight.mean_intensity > CRISIS_INTENSITY_THRESHOLD
        else "Practice regular coping techniques",
        "Track trigger patterns for the next week to identify timing",
    ]
    return RenderedInsight(message=message, actionable_steps=steps)


def _render_timeline_trend(insight: TimelineTrendInsight) -> RenderedInsight:
    if insight.accelerating:
        message = (
            f"This pattern is occurring more frequently (every "
            f"{insight.latest_interval_days:.0f} days vs average of "
            f"{insight.mean_interval_days:.0f} days)."
        )
    else:
        message = f"This pattern occurs approximately every {insight.mean_interval_days:.0f} days."

    steps = [
        "Increase support and coping strategies" if insight.accelerating else "Maintain current interventions",
        f"'{insight.most_effective_coping}' has been your most effective coping strategy"
        if insight.most_effective_coping
        else "Try different coping strategies",
        f"Address underlying {insight.dominant_emotion} emotions"
        if insight.dominant_emotion
        else "Track emotional patterns",
    ]
    return RenderedInsight(message=message, actionable_steps=steps)


def _render_community_comparison(insight: CommunityComparisonInsight) -> RenderedInsight:
    if insight.standing == CommunityStanding.MORE_SEVERE:
        message = f"Your {insight.pattern_category} pattern is more severe than most of the community."
        steps = [
            "Consider professional support",
            "Join a focused support group",
            "Implement intensive interventions",
        ]
    elif insight.standing == CommunityStanding.BETTER:
        message = "You're managing this pattern better than most of the community!"
        steps = [
            "Share your strategies with the community",
            "Help others with similar patterns",
            "Maintain your current approach",
        ]
    else:
        message = (
            f"Your pattern aligns with community averages. "
            f"{insight.resolution_rate:.0f}% successfully manage this."
        )
        steps = list(insight.community_strategies) or list(DEFAULT_COMMUNITY_STEPS)
    return RenderedInsight(message=message, actionable_steps=steps)


def _render_pattern_correlation(insight: PatternCorrelationInsight) -> RenderedInsight:
    message = (
        f"Strong correlation ({insight.correlation * 100:.0f}%) found between your "
        f"{insight.pattern_name} and {insight.related_pattern_name} patterns."
    )
    steps = [
        "Address both patterns together for better results",
        f"When {insight.pattern_name} improves, expect {insight.related_pattern_name} to follow",
        "Consider if one pattern triggers the other",
    ]
    return RenderedInsight(message=message, actionable_steps=steps)


def _render_recurrence_prediction(insight: RecurrencePredictionInsight) -> RenderedInsight:
    strength = "High" if insight.probability > HIGH_LIKELIHOOD_THRESHOLD else "Moderate"
    message = f"{strength} likelihood of {insight.pattern_name} pattern in the next {insight.timeframe}."
    steps = [
        "Increase use of coping strategies",
        "Schedule extra support or therapy sessions",
    ]
    if insight.early_warning_signals:
        steps.append("Avoid known triggers: " + ", ".join(insight.early_warning_signals))
    steps += [
        "Practice stress reduction techniques daily",
        "Reach out to your support network proactively",
    ]
    return RenderedInsight(message=message, actionable_steps=steps)


_RENDERERS: Dict[type, Callable[..., RenderedInsight]] = {
    TriggerFrequencyInsight: _render_trigger_frequency,
    TimelineTrendInsight: _render_timeline_trend,
    CommunityComparisonInsight: _render_community_comparison,
    PatternCorrelationInsight: _render_pattern_correlation,
    RecurrencePredictionInsight: _render_recurrence_prediction,
}


def render_insight(insight) -> RenderedInsight:
    """Message and actionable steps for any insight variant."""
    renderer = _RENDERERS.get(type(insight))
    if renderer is None:
        raise TypeError(f"No renderer for insight type {type(insight).__name__}")
    return renderer(insight)
