# Import celery app first
from onboarding.infra.celery_app import celery_app

# Initialize logging configuration for Celery workers
from onboarding.infra.logging_config import LoggingConfig
from onboarding.tasks.abandonment_sweep_task import abandon_idle_conversations_task

LoggingConfig()  # Initialize logging

__all__ = [
    "celery_app",
    "abandon_idle_conversations_task",
]
