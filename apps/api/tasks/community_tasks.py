"""
Community Pattern Tasks

Rebuilds the cross-user pattern knowledge base.
Runs nightly via Celery Beat and on demand from the admin endpoint.
"""

from typing import Dict
from sqlalchemy.orm import Session
from core.cache import invalidate_community_cache
from core.database import get_db_sync
from services.pattern_insights import build_pattern_insights_engine
from tasks import celery_app
import logging

logger = logging.getLogger(__name__)


@celery_app.task(name="tasks.refresh_community_patterns")
def refresh_community_patterns_task() -> Dict:
    """Aggregate every user's patterns by category and upsert the knowledge base."""
    db: Session = get_db_sync()

    try:
        engine = build_pattern_insights_engine(db)
        community_patterns = engine.analyze_community_patterns()
        db.commit()

        invalidate_community_cache()

        return {
            "status": "success",
            "categories_updated": len(community_patterns),
            "pattern_types": [p.pattern_type for p in community_patterns],
        }
    except Exception as e:
        db.rollback()
        logger.error(f"Error in refresh_community_patterns_task: {e}", exc_info=True)
        return {"status": "error", "message": str(e)}
    finally:
        db.close()
