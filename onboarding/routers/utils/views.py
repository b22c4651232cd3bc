"""Builders that turn ORM rows into the dashboard/chat read models."""

from __future__ import annotations

from sqlalchemy.orm import Session

from onboarding.models.conversation import Conversation
from onboarding.schemas.collected_data import CollectedData
from onboarding.schemas.conversation import (
    CollectedDataDigest,
    ConversationDetail,
    ConversationListRow,
    ConversationRead,
    MessageRead,
    SportsCenterDigest,
    SportsCenterRead,
    TransitionRead,
)
from onboarding.schemas.error_event import ErrorEventRead
from onboarding.services.error_tracker_service import ErrorTrackerService
from onboarding.services.message_service import MessageService


def conversation_to_list_row(conversation: Conversation) -> ConversationListRow:
    row = ConversationRead.model_validate(conversation)
    data = CollectedData.from_document(conversation.collected_data)
    sports_center = conversation.sports_center
    return ConversationListRow(
        **row.model_dump(),
        sports_center=(
            SportsCenterDigest(
                sporttia_id=sports_center.sporttia_id, name=sports_center.name
            )
            if sports_center is not None
            else None
        ),
        collected_data=CollectedDataDigest(
            sports_center_name=data.sports_center_name,
            admin_email=data.admin_email,
            facilities_count=len(data.facilities),
        ),
    )


def build_conversation_detail(
    db: Session, conversation: Conversation
) -> ConversationDetail:
    messages = MessageService(db).get_messages(conversation.id)
    events = ErrorTrackerService(db).get_events_for_conversation(conversation.id)
    sports_center = conversation.sports_center
    return ConversationDetail(
        conversation=ConversationRead.model_validate(conversation),
        messages=[MessageRead.from_model(m) for m in messages],
        collected_data=CollectedData.from_document(conversation.collected_data),
        sports_center=(
            SportsCenterRead.model_validate(sports_center)
            if sports_center is not None
            else None
        ),
        errors=[ErrorEventRead.from_model(e) for e in events],
    )


def transition_to_read(result) -> TransitionRead:
    return TransitionRead(
        conversation_id=result.conversation_id,
        applied=result.applied,
        conflict=result.conflict,
        status=result.status,
        previous_status=result.previous_status,
        reason=result.reason,
    )
