"""Celery application configuration and beat schedule."""

from celery import Celery
from celery.schedules import crontab

from linkguard.config import get_settings

settings = get_settings()

celery_app = Celery(
    "linkguard",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=[
        "linkguard.tasks.audit_tasks",
    ],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    task_track_started=True,
    task_time_limit=1800,
    task_soft_time_limit=1740,
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
)

celery_app.conf.beat_schedule = {
    "dispatch-due-audits": {
        "task": "linkguard.tasks.audit_tasks.dispatch_due_audits",
        "schedule": crontab(minute=f"*/{settings.audit_dispatch_interval_minutes}"),
    },
}
