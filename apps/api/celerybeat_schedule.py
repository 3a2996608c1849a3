"""
Celery Beat Schedule Configuration

Defines periodic tasks that run on a schedule.
"""

from celery.schedules import crontab

beat_schedule = {
    # Rebuild the community pattern knowledge base nightly (low traffic window).
    'refresh-community-patterns': {
        'task': 'tasks.refresh_community_patterns',
        'schedule': crontab(hour=3, minute=30),
    },
}
