"""Tests for the celery abandonment sweep task."""

from datetime import timedelta

from onboarding.constants.conversation_status import ConversationStatus
from onboarding.core.clock import utcnow
from onboarding.db import DatabaseManager
from onboarding.infra.celery_app import celery_app
from onboarding.services.conversation_service import ConversationService
from onboarding.tasks import abandonment_sweep_task
from onboarding.tasks.abandonment_sweep_task import abandon_idle_conversations_task


def test_task_runs_sweep_against_configured_database(
    db, engine, make_conversation, monkeypatch
):
    manager = DatabaseManager()
    manager.configure(engine)
    monkeypatch.setattr(abandonment_sweep_task, "db_manager", manager)
    idle = make_conversation(created_at=utcnow() - timedelta(hours=2))
    fresh = make_conversation()

    assert abandon_idle_conversations_task() == 1

    service = ConversationService(db)
    assert service.reload(idle.id).status_enum == ConversationStatus.ABANDONED
    assert service.reload(fresh.id).status_enum == ConversationStatus.ACTIVE


def test_sweep_is_scheduled_on_beat():
    entry = celery_app.conf.beat_schedule["abandon-idle-conversations"]
    assert entry["task"] == abandon_idle_conversations_task.name
    assert entry["schedule"] == 300.0
