"""
Conversation lifecycle controller.

All status changes go through ``ConversationService.compare_and_set``: the
write only lands if the row is still in the expected prior state, otherwise
the caller gets a ``TransitionResult`` with ``conflict=True``. Message
ingestion is serialized per conversation with ``conversation_locks``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import ValidationError
from sqlalchemy.orm import Session

from onboarding.config import Settings, get_settings
from onboarding.constants.conversation_status import ConversationStatus, MessageRole
from onboarding.constants.error_types import ErrorType
from onboarding.core.conversation_locks import ConversationLocks, conversation_locks
from onboarding.models.conversation_message import ConversationMessage
from onboarding.schemas.collected_data import CollectedData, CollectedDataPartial
from onboarding.schemas.conversation import MessageCreate
from onboarding.services.collected_data_service import CollectedDataService
from onboarding.services.conversation_service import ConversationService
from onboarding.services.error_tracker_service import ErrorTrackerService, FailureRecord
from onboarding.services.message_service import MessageService

logger = logging.getLogger(__name__)

MAX_WRITE_ATTEMPTS = 5

REASON_ALREADY_CONFIRMED = "already_confirmed"
REASON_TERMINAL = "terminal"
DEFAULT_ESCALATION_REASON = "Manual escalation requested by user"


@dataclass
class TransitionResult:
    conversation_id: str
    applied: bool
    status: ConversationStatus
    previous_status: Optional[ConversationStatus] = None
    conflict: bool = False
    reason: Optional[str] = None


@dataclass
class MessageOutcome:
    message: ConversationMessage
    status: ConversationStatus
    projected: bool = False


class ConversationStateMachine:
    def __init__(
        self,
        db: Session,
        settings: Optional[Settings] = None,
        locks: Optional[ConversationLocks] = None,
    ) -> None:
        self.db = db
        self.settings = settings or get_settings()
        self.locks = locks or conversation_locks
        self.conversations = ConversationService(db)
        self.messages = MessageService(db)
        self.projector = CollectedDataService()
        self.tracker = ErrorTrackerService(db, settings=self.settings)

    # -------------------------------------------------------------------------
    # Generic transition
    # -------------------------------------------------------------------------

    def transition(
        self,
        conversation_id: str,
        expected: ConversationStatus,
        target: ConversationStatus,
        expected_version: Optional[int] = None,
        **values: Any,
    ) -> TransitionResult:
        """Single CAS transition; a missed guard is reported, never retried here."""
        applied = self.conversations.compare_and_set(
            conversation_id,
            expected_status=expected,
            new_status=target,
            expected_version=expected_version,
            **values,
        )
        current = self.conversations.reload(conversation_id)
        status = current.status_enum if current else expected
        if applied:
            logger.info(
                "Conversation %s transitioned %s -> %s",
                conversation_id,
                expected.value,
                target.value,
            )
        else:
            logger.info(
                "Conversation %s transition %s -> %s conflicted; current status is %s",
                conversation_id,
                expected.value,
                target.value,
                status.value,
            )
        return TransitionResult(
            conversation_id=conversation_id,
            applied=applied,
            status=status,
            previous_status=expected,
            conflict=not applied,
        )

    # -------------------------------------------------------------------------
    # Message ingestion (active -> active)
    # -------------------------------------------------------------------------

    def record_message(
        self, conversation_id: str, data: MessageCreate
    ) -> Optional[MessageOutcome]:
        """
        Store a message and fold it into the conversation.

        Messages on terminal conversations are stored for audit only. A partial
        older than the projection watermark triggers a full replay.
        """
        with self.locks.hold(conversation_id):
            conversation = self.conversations.reload(conversation_id)
            if conversation is None:
                return None

            metadata = (
                data.metadata.model_dump(mode="json", by_alias=True, exclude_none=True)
                if data.metadata
                else None
            )
            message = self.messages.append_message(
                conversation_id,
                role=data.role,
                content=data.content,
                metadata=metadata,
                timestamp=data.timestamp,
            )

            if conversation.status_enum.is_terminal:
                logger.info(
                    "Message %s stored for audit on %s conversation %s",
                    message.id,
                    conversation.status,
                    conversation_id,
                )
                return MessageOutcome(message=message, status=conversation.status_enum)

            partial = self._extract_partial(conversation_id, message)
            return self._apply_message(conversation_id, message, partial)

    def _extract_partial(
        self, conversation_id: str, message: ConversationMessage
    ) -> Optional[CollectedDataPartial]:
        if message.role != MessageRole.ASSISTANT.value:
            return None
        try:
            return self.projector.extract_partial(message.message_metadata)
        except ValidationError as e:
            logger.warning(
                "Malformed collected data on message %s of conversation %s",
                message.id,
                conversation_id,
            )
            self.tracker.log_event(
                conversation_id,
                ErrorType.INTERNAL_ERROR,
                "Malformed collected data in assistant message",
                details={
                    "messageId": message.id,
                    "errors": e.errors(include_url=False, include_context=False),
                },
            )
            return None

    def _partials_in_order(self, conversation_id: str) -> List[CollectedDataPartial]:
        partials = []
        for message in self.messages.get_messages(conversation_id):
            if message.role != MessageRole.ASSISTANT.value:
                continue
            try:
                partial = self.projector.extract_partial(message.message_metadata)
            except ValidationError:
                continue
            if partial is not None:
                partials.append(partial)
        return partials

    def _apply_message(
        self,
        conversation_id: str,
        message: ConversationMessage,
        partial: Optional[CollectedDataPartial],
    ) -> MessageOutcome:
        is_user = message.role == MessageRole.USER.value

        for _ in range(MAX_WRITE_ATTEMPTS):
            conversation = self.conversations.reload(conversation_id)
            if conversation.status_enum.is_terminal:
                # Lost the race to a terminal transition; the message stays for audit.
                return MessageOutcome(message=message, status=conversation.status_enum)

            values: Dict[str, Any] = {}
            if is_user:
                values["last_user_message_at"] = _later(
                    conversation.last_user_message_at, message.timestamp
                )

            if partial is not None:
                current = CollectedData.from_document(conversation.collected_data)
                watermark = conversation.projected_through
                if watermark is not None and message.timestamp < watermark:
                    logger.info(
                        "Replaying projection for conversation %s: message %s predates %s",
                        conversation_id,
                        message.id,
                        watermark.isoformat(),
                    )
                    projected = self.projector.replay(
                        self._partials_in_order(conversation_id),
                        preserved=current,
                        conversation_id=conversation_id,
                    )
                else:
                    projected = self.projector.merge(
                        current, partial, conversation_id=conversation_id
                    )
                values["collected_data"] = projected.to_document()
                values["admin_email"] = projected.admin_email
                values["projected_through"] = _later(watermark, message.timestamp)

            if not values:
                return MessageOutcome(message=message, status=conversation.status_enum)

            if self.conversations.compare_and_set(
                conversation_id,
                expected_status=ConversationStatus.ACTIVE,
                expected_version=conversation.version,
                **values,
            ):
                return MessageOutcome(
                    message=message,
                    status=ConversationStatus.ACTIVE,
                    projected=partial is not None,
                )

        logger.warning(
            "Could not fold message %s into conversation %s after %s attempts",
            message.id,
            conversation_id,
            MAX_WRITE_ATTEMPTS,
        )
        conversation = self.conversations.reload(conversation_id)
        return MessageOutcome(message=message, status=conversation.status_enum)

    # -------------------------------------------------------------------------
    # Terminal transitions
    # -------------------------------------------------------------------------

    def complete(self, conversation_id: str, sports_center_id: str) -> TransitionResult:
        """active -> completed, linking the provisioned record."""
        return self.transition(
            conversation_id,
            ConversationStatus.ACTIVE,
            ConversationStatus.COMPLETED,
            sports_center_id=sports_center_id,
        )

    def abandon(
        self, conversation_id: str, expected_version: Optional[int] = None
    ) -> TransitionResult:
        """
        active -> abandoned for an idle conversation.

        With ``expected_version`` the write is also refused if anything touched
        the row since it was selected (e.g. a user message just arrived).
        """
        return self.transition(
            conversation_id,
            ConversationStatus.ACTIVE,
            ConversationStatus.ABANDONED,
            expected_version=expected_version,
        )

    def end_session(self, conversation_id: str) -> Optional[TransitionResult]:
        """User-initiated end; refused once the configuration is confirmed."""
        with self.locks.hold(conversation_id):
            conversation = self.conversations.reload(conversation_id)
            if conversation is None:
                return None
            status = conversation.status_enum
            if status.is_terminal:
                return self._rejected(conversation_id, status, REASON_TERMINAL)
            data = CollectedData.from_document(conversation.collected_data)
            if data.confirmed:
                logger.info(
                    "Refusing to end confirmed conversation %s", conversation_id
                )
                return self._rejected(conversation_id, status, REASON_ALREADY_CONFIRMED)
            return self.transition(
                conversation_id,
                ConversationStatus.ACTIVE,
                ConversationStatus.ABANDONED,
                expected_version=conversation.version,
            )

    def escalate(
        self, conversation_id: str, reason: Optional[str] = None
    ) -> Optional[TransitionResult]:
        """Explicit human escalation: active -> error with escalatedToHuman set."""
        with self.locks.hold(conversation_id):
            result = None
            for _ in range(MAX_WRITE_ATTEMPTS):
                conversation = self.conversations.reload(conversation_id)
                if conversation is None:
                    return None
                status = conversation.status_enum
                if status.is_terminal:
                    return self._rejected(conversation_id, status, REASON_TERMINAL)
                data = CollectedData.from_document(conversation.collected_data)
                data.escalated_to_human = True
                reason = reason or DEFAULT_ESCALATION_REASON
                data.escalation_reason = reason
                result = self.transition(
                    conversation_id,
                    ConversationStatus.ACTIVE,
                    ConversationStatus.ERROR,
                    expected_version=conversation.version,
                    collected_data=data.to_document(),
                )
                if result.applied or result.status.is_terminal:
                    if result.applied:
                        logger.warning(
                            "Conversation %s escalated to a human: %s",
                            conversation_id,
                            reason,
                        )
                    return result
            return result

    # -------------------------------------------------------------------------
    # Failures reported by collaborators
    # -------------------------------------------------------------------------

    def report_failure(
        self,
        conversation_id: str,
        error_type: Any,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        retryable: bool = True,
    ) -> FailureRecord:
        with self.locks.hold(conversation_id):
            return self.tracker.record_failure(
                conversation_id, error_type, message, details, retryable=retryable
            )

    def report_success(self, conversation_id: str) -> int:
        with self.locks.hold(conversation_id):
            return self.tracker.record_success(conversation_id)

    @staticmethod
    def _rejected(
        conversation_id: str, status: ConversationStatus, reason: str
    ) -> TransitionResult:
        return TransitionResult(
            conversation_id=conversation_id,
            applied=False,
            status=status,
            previous_status=status,
            reason=reason,
        )


def _later(first: Optional[datetime], second: datetime) -> datetime:
    if first is None or second > first:
        return second
    return first
