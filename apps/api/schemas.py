from pydantic import BaseModel
from datetime import datetime
from uuid import UUID
from typing import Any, Dict, List, Optional

from services.insight_text import render_insight
from services.insight_types import CommunityPattern


class InsightResponse(BaseModel):
    """Structured insight plus its rendered copy."""
    kind: str
    category: str
    pattern_id: UUID
    pattern_name: str
    message: str
    confidence: float
    risk_level: str
    related_patterns: List[UUID] = []
    actionable_steps: List[str] = []
    data: Dict[str, Any] = {}

    @classmethod
    def from_insight(cls, insight) -> "InsightResponse":
        rendered = render_insight(insight)
        base_fields = {
            "kind", "category", "pattern_id", "pattern_name",
            "confidence", "risk_level", "related_patterns",
        }
        return cls(
            kind=insight.kind,
            category=insight.category.value,
            pattern_id=insight.pattern_id,
            pattern_name=insight.pattern_name,
            message=rendered.message,
            confidence=round(insight.confidence, 3),
            risk_level=insight.risk_level.value,
            related_patterns=list(insight.related_patterns),
            actionable_steps=rendered.actionable_steps,
            data=insight.model_dump(mode="json", exclude=base_fields),
        )


class InsightListResponse(BaseModel):
    user_id: UUID
    insights: List[InsightResponse]
    total: int


class RecommendationsResponse(BaseModel):
    pattern_id: UUID
    recommendations: List[str]


class CommunityPatternResponse(CommunityPattern):
    pass


class CommunityRefreshResponse(BaseModel):
    status: str
    task_id: Optional[str] = None
    requested_at: datetime
