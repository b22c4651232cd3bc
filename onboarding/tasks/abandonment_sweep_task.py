"""Celery task for the periodic abandonment sweep."""

from __future__ import annotations

from onboarding.commands.abandon_idle_conversations_command import (
    AbandonIdleConversationsCommand,
)
from onboarding.db import db_manager
from onboarding.infra.celery_app import celery_app
from onboarding.infra.logging_config import get_logger

logger = get_logger("abandonment_sweep")


@celery_app.task(
    name="onboarding.tasks.abandonment_sweep_task.abandon_idle_conversations_task"
)
def abandon_idle_conversations_task() -> int:
    """Abandon active conversations idle past the configured threshold."""
    with db_manager.db_session() as db:
        abandoned = AbandonIdleConversationsCommand(db).execute()
    logger.info("Abandonment sweep finished: %d conversations abandoned", abandoned)
    return abandoned
