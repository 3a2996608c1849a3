"""
Celery worker entry point for the pattern insights service.

The API source is mounted at /api in the worker container; the task
package lives there and is shared with the API (which only enqueues).

    celery -A main worker --beat -l info
"""
import sys

sys.path.insert(0, '/api')

from core.logging import setup_logging  # noqa: E402
from tasks import celery_app  # noqa: E402

setup_logging()

celery_app.autodiscover_tasks(['tasks'])


@celery_app.task(name="worker.health_check")
def health_check():
    return {"status": "ok", "beat_entries": sorted(celery_app.conf.beat_schedule or {})}
