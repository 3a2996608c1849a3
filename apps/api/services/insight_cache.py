"""
Insight Cache Store

Per-user snapshot of the last computed insight list, kept in the
`pattern_insights_cache` table. Freshness is decided by the engine; this
module only reads and overwrites rows.

No invalidation on data mutation and no optimistic concurrency: two
concurrent recomputations both write, last write wins.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional
from uuid import UUID
import logging

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.orm import Session

from models import PatternInsightsCache
from services.insight_types import Insight, dump_insights, load_insights

logger = logging.getLogger(__name__)


@dataclass
class CachedInsights:
    insights: List[Insight]
    created_at: datetime


class DatabaseInsightCache:
    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: UUID) -> Optional[CachedInsights]:
        row = self.db.get(PatternInsightsCache, user_id)
        if row is None or row.created_at is None:
            return None
        try:
            insights = load_insights(row.insights)
        except ValueError as e:
            # Snapshot written by an older insight shape; treat as a miss.
            logger.warning(f"Discarding unreadable insight cache for {user_id}: {e}")
            return None
        return CachedInsights(insights=insights, created_at=row.created_at)

    def put(self, user_id: UUID, insights: List[Insight], created_at: datetime) -> None:
        values = {
            "user_id": user_id,
            "insights": dump_insights(insights),
            "created_at": created_at,
        }
        stmt = pg_insert(PatternInsightsCache).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[PatternInsightsCache.user_id],
            set_={"insights": values["insights"], "created_at": created_at},
        )
        self.db.execute(stmt)
        self.db.flush()
        # Drop any identity-map copy so the next get() reads the new row
        self.db.expire_all()
