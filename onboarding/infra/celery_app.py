"""Celery application: redis broker and the periodic abandonment sweep."""

from __future__ import annotations

from celery import Celery

from onboarding.config import get_settings

settings = get_settings()

celery_app = Celery(
    "onboarding",
    broker=settings.broker_url,
    include=["onboarding.tasks.abandonment_sweep_task"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_ignore_result=True,
    beat_schedule={
        "abandon-idle-conversations": {
            "task": "onboarding.tasks.abandonment_sweep_task.abandon_idle_conversations_task",
            "schedule": float(settings.abandonment_sweep_interval_seconds),
        },
    },
)
