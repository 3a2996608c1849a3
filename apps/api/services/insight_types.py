"""
Insight Types

Structured insight records. Each variant carries the numbers it was derived
from; wording lives in services.insight_text.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, List, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class InsightCategory(str, Enum):
    TRIGGER = "trigger"
    CORRELATION = "correlation"
    PREDICTION = "prediction"
    RECOMMENDATION = "recommendation"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class CommunityStanding(str, Enum):
    MORE_SEVERE = "more_severe"
    BETTER = "better"
    IN_LINE = "in_line"


class _InsightBase(BaseModel):
    pattern_id: UUID
    pattern_name: str
    confidence: float = Field(ge=0.0, le=1.0)
    risk_level: RiskLevel
    related_patterns: List[UUID] = Field(default_factory=list)


class TriggerFrequencyInsight(_InsightBase):
    """Which trigger type dominates a pattern."""
    kind: Literal["trigger_frequency"] = "trigger_frequency"
    category: InsightCategory = InsightCategory.TRIGGER

    dominant_trigger: str
    dominant_occurrences: int
    total_occurrences: int
    trigger_count: int
    mean_intensity: float

    @property
    def dominant_share(self) -> float:
        if self.total_occurrences <= 0:
            return 0.0
        return self.dominant_occurrences / self.total_occurrences


class TimelineTrendInsight(_InsightBase):
    """How often a pattern recurs and whether it is speeding up."""
    kind: Literal["timeline_trend"] = "timeline_trend"
    category: InsightCategory = InsightCategory.CORRELATION

    event_count: int
    mean_interval_days: float
    latest_interval_days: float
    accelerating: bool
    dominant_emotion: Optional[str] = None
    most_effective_coping: Optional[str] = None


class CommunityComparisonInsight(_InsightBase):
    """User severity against the community average for the same category."""
    kind: Literal["community_comparison"] = "community_comparison"
    category: InsightCategory = InsightCategory.CORRELATION

    pattern_category: str
    user_severity: float
    community_avg_severity: float
    resolution_rate: float
    standing: CommunityStanding
    community_strategies: List[str] = Field(default_factory=list)
    community_correlated_patterns: List[str] = Field(default_factory=list)


class PatternCorrelationInsight(_InsightBase):
    """Two of the user's patterns tend to show up together."""
    kind: Literal["pattern_correlation"] = "pattern_correlation"
    category: InsightCategory = InsightCategory.CORRELATION

    related_pattern_name: str
    correlation: float = Field(ge=0.0, le=1.0)
    shared_trigger_ratio: float
    temporal_proximity_ratio: float


class RecurrencePredictionInsight(_InsightBase):
    """Heuristic likelihood that a pattern recurs soon."""
    kind: Literal["recurrence_prediction"] = "recurrence_prediction"
    category: InsightCategory = InsightCategory.PREDICTION

    probability: float = Field(ge=0.0, le=1.0)
    mean_interval_days: float
    std_dev_days: float
    days_since_last: float
    timeframe: str
    early_warning_signals: List[str] = Field(default_factory=list)


Insight = Annotated[
    Union[
        TriggerFrequencyInsight,
        TimelineTrendInsight,
        CommunityComparisonInsight,
        PatternCorrelationInsight,
        RecurrencePredictionInsight,
    ],
    Field(discriminator="kind"),
]

INSIGHT_LIST_ADAPTER = TypeAdapter(List[Insight])


def dump_insights(insights: List[Insight]) -> list:
    """JSON-safe snapshot for the cache table."""
    return INSIGHT_LIST_ADAPTER.dump_python(insights, mode="json")


def load_insights(raw: list) -> List[Insight]:
    return INSIGHT_LIST_ADAPTER.validate_python(raw or [])


class CorrelatedPattern(BaseModel):
    pattern: str
    correlation: float


class CommunityPattern(BaseModel):
    """A knowledge-base entry: what the community looks like for one category."""
    model_config = ConfigDict(from_attributes=True)

    pattern_type: str
    prevalence: float
    common_triggers: List[str] = Field(default_factory=list)
    effective_interventions: List[str] = Field(default_factory=list)
    average_resolution_time: float = 0.0
    correlated_patterns: List[CorrelatedPattern] = Field(default_factory=list)
    updated_at: Optional[datetime] = None
