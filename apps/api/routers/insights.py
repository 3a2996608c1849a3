"""
Pattern Insights API Router

Per-user insights derived from pattern triggers and timeline events.

Endpoints:
- GET  /v1/insights                                    - Cached (<= 1 hour) or fresh insights
- POST /v1/insights/analyze                            - Force a recomputation
- GET  /v1/insights/patterns/{pattern_id}/recommendations - Steps for one pattern

Failures inside the engine are logged and reported as a generic 500;
the caller never sees partial results.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from uuid import UUID
import logging

from core.auth import resolve_target_user_id
from core.database import get_db
from core.exceptions import InsightsUnavailableError
from schemas import InsightListResponse, InsightResponse, RecommendationsResponse
from services.pattern_insights import PatternInsightsEngine, build_pattern_insights_engine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/insights", tags=["Insights"])


def get_insights_engine(db: Session = Depends(get_db)) -> PatternInsightsEngine:
    return build_pattern_insights_engine(db)


def _to_response(user_id: UUID, insights) -> InsightListResponse:
    items = [InsightResponse.from_insight(i) for i in insights]
    return InsightListResponse(user_id=user_id, insights=items, total=len(items))


@router.get("", response_model=InsightListResponse)
def get_insights(
    user_id: UUID = Depends(resolve_target_user_id),
    engine: PatternInsightsEngine = Depends(get_insights_engine),
):
    """
    Insights for the current user (admins may pass ?user_id=).

    Served from the per-user snapshot when it is less than an hour old.
    """
    try:
        insights = engine.get_user_insights(user_id)
    except Exception as e:
        logger.error(f"Error fetching insights for {user_id}: {e}", exc_info=True)
        raise InsightsUnavailableError()
    return _to_response(user_id, insights)


@router.post("/analyze", response_model=InsightListResponse)
def analyze_insights(
    user_id: UUID = Depends(resolve_target_user_id),
    engine: PatternInsightsEngine = Depends(get_insights_engine),
):
    """Recompute insights now and replace the cached snapshot."""
    try:
        insights = engine.analyze_user_patterns(user_id)
    except Exception as e:
        logger.error(f"Error analyzing patterns for {user_id}: {e}", exc_info=True)
        raise InsightsUnavailableError("Failed to analyze patterns")
    return _to_response(user_id, insights)


@router.get("/patterns/{pattern_id}/recommendations", response_model=RecommendationsResponse)
def get_pattern_recommendations(
    pattern_id: UUID,
    user_id: UUID = Depends(resolve_target_user_id),
    engine: PatternInsightsEngine = Depends(get_insights_engine),
):
    """De-duplicated actionable steps from every insight about one pattern."""
    try:
        recommendations = engine.get_recommendations(user_id, pattern_id)
    except Exception as e:
        logger.error(f"Error fetching recommendations for {user_id}/{pattern_id}: {e}", exc_info=True)
        raise InsightsUnavailableError("Failed to fetch recommendations")
    return RecommendationsResponse(pattern_id=pattern_id, recommendations=recommendations)
