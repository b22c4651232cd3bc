"""
Error/retry tracker.

Every failure is appended to the ErrorEvent ledger. Failures attributed to an
active conversation also replace its ``lastError`` with an incremented
``retryCount``; once the count passes ``max_retries`` (or the failure is not
retryable) the same compare-and-set write moves the conversation to ``error``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from onboarding.config import Settings, get_settings
from onboarding.constants.conversation_status import ConversationStatus
from onboarding.constants.error_types import ErrorType, classify_error_type
from onboarding.core.clock import utcnow
from onboarding.models.error_event import ErrorEvent
from onboarding.schemas.collected_data import CollectedData, LastError
from onboarding.services.conversation_service import ConversationService

logger = logging.getLogger(__name__)

MAX_WRITE_ATTEMPTS = 5


@dataclass
class FailureRecord:
    event: ErrorEvent
    retry_count: int
    escalated: bool
    status: Optional[ConversationStatus] = None


class ErrorTrackerService:
    def __init__(self, db: Session, settings: Optional[Settings] = None) -> None:
        self.db = db
        self.settings = settings or get_settings()
        self.conversations = ConversationService(db)

    def log_event(
        self,
        conversation_id: Optional[str],
        error_type: Any,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> ErrorEvent:
        """Append to the ledger only; retry bookkeeping is untouched."""
        error_type = classify_error_type(error_type)
        if conversation_id and self.conversations.get_conversation(conversation_id) is None:
            details = {**(details or {}), "conversationId": conversation_id}
            conversation_id = None
        event = ErrorEvent(
            conversation_id=conversation_id,
            error_type=error_type.value,
            message=message,
            details=details or None,
        )
        self.db.add(event)
        self.db.commit()
        self.db.refresh(event)
        logger.info(
            "Recorded %s for conversation %s: %s",
            error_type.value,
            conversation_id,
            message,
        )
        return event

    def is_retryable(self, error_type: ErrorType, retryable: bool = True) -> bool:
        return retryable and error_type.value not in self.settings.non_retryable_error_types

    def record_failure(
        self,
        conversation_id: Optional[str],
        error_type: Any,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        retryable: bool = True,
    ) -> FailureRecord:
        """
        Classify, append an ErrorEvent and bump the conversation's retry count.

        System-wide failures (no conversation) report a retry count of 0. For a
        terminal conversation the event is still appended but ``lastError`` is
        frozen.
        """
        error_type = classify_error_type(error_type)
        event = self.log_event(conversation_id, error_type, message, details)
        if event.conversation_id is None:
            return FailureRecord(event=event, retry_count=0, escalated=False)

        for _ in range(MAX_WRITE_ATTEMPTS):
            conversation = self.conversations.reload(conversation_id)
            data = CollectedData.from_document(conversation.collected_data)
            status = conversation.status_enum
            if status.is_terminal:
                logger.info(
                    "Conversation %s is %s; retry count frozen at %s",
                    conversation_id,
                    status.value,
                    data.retry_count,
                )
                return FailureRecord(
                    event=event,
                    retry_count=data.retry_count,
                    escalated=False,
                    status=status,
                )

            retry_count = data.retry_count + 1
            data.last_error = LastError(
                code=error_type.value,
                message=message,
                timestamp=event.created_at or utcnow(),
                retry_count=retry_count,
            )
            escalate = retry_count > self.settings.max_retries or not self.is_retryable(
                error_type, retryable
            )
            applied = self.conversations.compare_and_set(
                conversation_id,
                expected_status=ConversationStatus.ACTIVE,
                new_status=ConversationStatus.ERROR if escalate else None,
                expected_version=conversation.version,
                collected_data=data.to_document(),
            )
            if applied:
                if escalate:
                    logger.warning(
                        "Conversation %s escalated to error after %s (retry_count=%s, max_retries=%s)",
                        conversation_id,
                        error_type.value,
                        retry_count,
                        self.settings.max_retries,
                    )
                return FailureRecord(
                    event=event,
                    retry_count=retry_count,
                    escalated=escalate,
                    status=ConversationStatus.ERROR if escalate else status,
                )

        logger.warning(
            "Gave up updating last error for conversation %s after %s attempts",
            conversation_id,
            MAX_WRITE_ATTEMPTS,
        )
        conversation = self.conversations.reload(conversation_id)
        data = CollectedData.from_document(conversation.collected_data)
        return FailureRecord(
            event=event,
            retry_count=data.retry_count,
            escalated=False,
            status=conversation.status_enum,
        )

    def record_success(self, conversation_id: str) -> int:
        """A successful attempt resets ``retryCount`` to 0 while the conversation is active."""
        for _ in range(MAX_WRITE_ATTEMPTS):
            conversation = self.conversations.reload(conversation_id)
            if conversation is None:
                return 0
            data = CollectedData.from_document(conversation.collected_data)
            if conversation.status_enum.is_terminal or data.retry_count == 0:
                return data.retry_count
            data.last_error = data.last_error.model_copy(update={"retry_count": 0})
            if self.conversations.compare_and_set(
                conversation_id,
                expected_status=ConversationStatus.ACTIVE,
                expected_version=conversation.version,
                collected_data=data.to_document(),
            ):
                logger.info("Retry count reset for conversation %s", conversation_id)
                return 0
        return CollectedData.from_document(
            self.conversations.reload(conversation_id).collected_data
        ).retry_count

    def get_events_for_conversation(self, conversation_id: str):
        return (
            self.db.query(ErrorEvent)
            .filter(ErrorEvent.conversation_id == conversation_id)
            .order_by(ErrorEvent.created_at.asc())
            .all()
        )
