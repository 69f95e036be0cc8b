from celery import Celery
from celery.schedules import crontab

from bzr_portal.core.config import settings


def _crontab_from_expression(expression: str) -> crontab:
    minute, hour, day_of_month, month_of_year, day_of_week = expression.split()
    return crontab(
        minute=minute,
        hour=hour,
        day_of_month=day_of_month,
        month_of_year=month_of_year,
        day_of_week=day_of_week,
    )


celery_app = Celery(
    "bzr_portal",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["bzr_portal.tasks.knowledge_sync"],
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="Europe/Belgrade",
    enable_utc=True,
    task_track_started=True,
    worker_prefetch_multiplier=1,
    beat_schedule={
        "migrate-knowledge-references": {
            "task": "bzr_portal.tasks.knowledge_sync.migrate_knowledge_references",
            "schedule": _crontab_from_expression(settings.KNOWLEDGE_SYNC_SCHEDULE),
        },
    },
)
