"""Celery application hosting the periodic webhook retry sweep."""

from celery import Celery

from hookline.config import get_settings

settings = get_settings()

celery_app = Celery(
    "hookline",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["hookline.tasks.webhook_tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    beat_schedule={
        "sweep-webhook-retries": {
            "task": "hookline.sweep_webhook_retries",
            "schedule": float(settings.webhook_sweep_interval_seconds),
        },
    },
)
