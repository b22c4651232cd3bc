"""Tests for ErrorTrackerService."""

from onboarding.config import Settings
from onboarding.constants.conversation_status import ConversationStatus
from onboarding.constants.error_types import ErrorType
from onboarding.models.error_event import ErrorEvent
from onboarding.schemas.collected_data import CollectedData
from onboarding.services.conversation_service import ConversationService
from onboarding.services.conversation_state_machine import ConversationStateMachine
from onboarding.services.error_tracker_service import ErrorTrackerService


def _collected(db, conversation_id) -> CollectedData:
    return CollectedData.from_document(
        ConversationService(db).reload(conversation_id).collected_data
    )


def test_failure_increments_retry_count(db, setup_conversation, settings):
    tracker = ErrorTrackerService(db, settings=settings)
    first = tracker.record_failure(
        setup_conversation.id, ErrorType.OPENAI_API_ERROR, "rate limited"
    )
    second = tracker.record_failure(
        setup_conversation.id, ErrorType.OPENAI_API_ERROR, "rate limited again"
    )

    assert (first.retry_count, second.retry_count) == (1, 2)
    assert not second.escalated
    assert second.status == ConversationStatus.ACTIVE
    last_error = _collected(db, setup_conversation.id).last_error
    assert last_error.code == "openai_api_error"
    assert last_error.message == "rate limited again"
    assert last_error.retry_count == 2


def test_failure_past_max_retries_escalates(db, setup_conversation, settings):
    tracker = ErrorTrackerService(db, settings=settings)
    records = [
        tracker.record_failure(setup_conversation.id, "sporttia_api_error", "503")
        for _ in range(settings.max_retries + 1)
    ]

    assert [r.escalated for r in records] == [False, False, False, True]
    assert records[-1].retry_count == 4
    assert records[-1].status == ConversationStatus.ERROR
    conversation = ConversationService(db).reload(setup_conversation.id)
    assert conversation.status_enum == ConversationStatus.ERROR


def test_non_retryable_failure_escalates_immediately(db, setup_conversation, settings):
    record = ErrorTrackerService(db, settings=settings).record_failure(
        setup_conversation.id,
        ErrorType.SPORTTIA_API_ERROR,
        "Sports center name already taken",
        retryable=False,
    )
    assert record.escalated
    assert record.retry_count == 1
    assert record.status == ConversationStatus.ERROR


def test_configured_non_retryable_type_escalates(db, setup_conversation):
    settings = Settings(non_retryable_error_types=["validation_error"])
    record = ErrorTrackerService(db, settings=settings).record_failure(
        setup_conversation.id, ErrorType.VALIDATION_ERROR, "bad schedule"
    )
    assert record.escalated


def test_unknown_type_is_classified_as_internal_error(db, setup_conversation, settings):
    record = ErrorTrackerService(db, settings=settings).record_failure(
        setup_conversation.id, "disk_full", "no space left"
    )
    assert record.event.error_type == "internal_error"
    assert _collected(db, setup_conversation.id).last_error.code == "internal_error"


def test_failures_after_terminal_are_logged_but_frozen(db, setup_conversation, settings):
    tracker = ErrorTrackerService(db, settings=settings)
    tracker.record_failure(setup_conversation.id, "openai_api_error", "first")
    ConversationStateMachine(db, settings=settings).abandon(setup_conversation.id)

    record = tracker.record_failure(setup_conversation.id, "email_failed", "late")

    assert record.retry_count == 1
    assert not record.escalated
    assert record.status == ConversationStatus.ABANDONED
    assert _collected(db, setup_conversation.id).last_error.message == "first"
    assert len(tracker.get_events_for_conversation(setup_conversation.id)) == 2


def test_system_wide_failure_reports_zero(db, settings):
    record = ErrorTrackerService(db, settings=settings).record_failure(
        None, ErrorType.EMAIL_FAILED, "SMTP down"
    )
    assert record.retry_count == 0
    assert record.event.conversation_id is None


def test_failure_for_unknown_conversation_is_kept_unlinked(db, settings):
    record = ErrorTrackerService(db, settings=settings).record_failure(
        "does-not-exist", ErrorType.INTERNAL_ERROR, "boom", details={"step": "x"}
    )
    assert record.retry_count == 0
    assert record.event.conversation_id is None
    assert record.event.details == {"step": "x", "conversationId": "does-not-exist"}


def test_success_resets_retry_count(db, setup_conversation, settings):
    tracker = ErrorTrackerService(db, settings=settings)
    tracker.record_failure(setup_conversation.id, "openai_api_error", "one")
    tracker.record_failure(setup_conversation.id, "openai_api_error", "two")

    assert tracker.record_success(setup_conversation.id) == 0
    last_error = _collected(db, setup_conversation.id).last_error
    assert last_error.retry_count == 0
    assert last_error.message == "two"

    next_failure = tracker.record_failure(setup_conversation.id, "openai_api_error", "3")
    assert next_failure.retry_count == 1


def test_success_without_failures_is_a_no_op(db, setup_conversation, settings):
    version = setup_conversation.version
    assert ErrorTrackerService(db, settings=settings).record_success(
        setup_conversation.id
    ) == 0
    assert ConversationService(db).reload(setup_conversation.id).version == version


def test_log_event_does_not_touch_retry_count(db, setup_conversation, settings):
    tracker = ErrorTrackerService(db, settings=settings)
    event = tracker.log_event(
        setup_conversation.id, ErrorType.EMAIL_FAILED, "bounced", details={"to": "x"}
    )
    assert event.conversation_id == setup_conversation.id
    assert _collected(db, setup_conversation.id).last_error is None
    assert db.query(ErrorEvent).count() == 1
