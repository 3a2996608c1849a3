"""
Community Patterns API Router

Read access to the cross-user pattern knowledge base, plus an admin trigger
to rebuild it in the background.
"""

from datetime import datetime, timezone
from fastapi import APIRouter, Depends, status
import logging

from core.auth import get_current_user, require_admin
from core.cache import COMMUNITY_PREFIX, cache_key, get_cache, set_cache
from core.config import settings
from core.exceptions import NotFoundError
from models import User
from routers.insights import get_insights_engine
from schemas import CommunityPatternResponse, CommunityRefreshResponse
from services.pattern_insights import PatternInsightsEngine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/community", tags=["Community"])


@router.get("/patterns/{pattern_type}", response_model=CommunityPatternResponse)
def get_community_pattern(
    pattern_type: str,
    current_user: User = Depends(get_current_user),
    engine: PatternInsightsEngine = Depends(get_insights_engine),
):
    """
    Community statistics for one pattern category.

    Cached in Redis; the refresh task drops the cache when it rebuilds.
    """
    key = cache_key(COMMUNITY_PREFIX, pattern_type)
    cached = get_cache(key)
    if cached is not None:
        return cached

    community_pattern = engine.get_community_insights(pattern_type)
    if community_pattern is None:
        raise NotFoundError("Community pattern", pattern_type)

    payload = community_pattern.model_dump(mode="json")
    set_cache(key, payload, ttl=settings.CACHE_TTL_COMMUNITY)
    return payload


@router.post(
    "/refresh",
    response_model=CommunityRefreshResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
def refresh_community_patterns(admin: User = Depends(require_admin)):
    """Enqueue a knowledge-base rebuild (admin only)."""
    from tasks.community_tasks import refresh_community_patterns_task

    result = refresh_community_patterns_task.delay()
    logger.info(f"Community pattern refresh enqueued by {admin.id}: task={result.id}")
    return CommunityRefreshResponse(
        status="queued",
        task_id=str(result.id),
        requested_at=datetime.now(timezone.utc),
    )
