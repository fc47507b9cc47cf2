from celery import Celery
from celery.schedules import crontab

from .config import get_settings
from .logging import configure_logging

settings = get_settings()
configure_logging()

celery_app = Celery(
    "company_membership",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
)

celery_app.conf.update(
    task_routes={"app.services.reconciliation.sync_all_profiles": {"queue": "maintenance"}},
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    imports=("app.services.reconciliation",),
    beat_schedule={
        # Daily profile/membership reconciliation
        "sync-company-memberships": {
            "task": "app.services.reconciliation.sync_all_profiles",
            "schedule": crontab(
                hour=settings.SYNC_SCHEDULE_HOUR,
                minute=settings.SYNC_SCHEDULE_MINUTE,
            ),
        },
    },
)
