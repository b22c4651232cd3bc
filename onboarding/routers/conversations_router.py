"""Conversations API used by the chat layer: intake, messages and lifecycle events."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from onboarding.adapters.notifier import Notifier
from onboarding.adapters.provisioning import ProvisioningClient
from onboarding.config import Settings
from onboarding.db import get_db
from onboarding.models.conversation import Conversation
from onboarding.routers.utils.dependencies import (
    get_app_settings,
    get_conversation_by_id,
    get_notifier,
    get_provisioning_client,
)
from onboarding.routers.utils.views import build_conversation_detail, transition_to_read
from onboarding.schemas.collected_data import (
    CollectedData,
    ConfigurationSummary,
    Readiness,
)
from onboarding.schemas.conversation import (
    ConversationCreate,
    ConversationDetail,
    ConversationRead,
    EscalationRequest,
    FailureOutcome,
    FailureReport,
    MessageAccepted,
    MessageCreate,
    MessageRead,
    ProvisioningRead,
    SportsCenterRead,
    SuccessOutcome,
    TransitionRead,
)
from onboarding.services.collected_data_service import CollectedDataService
from onboarding.services.conversation_service import ConversationService
from onboarding.services.conversation_state_machine import ConversationStateMachine
from onboarding.services.provisioning_service import ProvisioningService

router = APIRouter(
    prefix="/conversations",
    tags=["conversations"],
    responses={404: {"description": "Not found"}},
)


def _raise_if_not_applied(result) -> TransitionRead:
    read = transition_to_read(result)
    if not result.applied:
        raise HTTPException(
            status_code=409, detail=read.model_dump(mode="json", by_alias=True)
        )
    return read


@router.post("", response_model=ConversationRead, status_code=201)
def create_conversation(
    data: ConversationCreate,
    db: Session = Depends(get_db),
) -> ConversationRead:
    """Start a conversation for a chat session."""
    conversation = ConversationService(db).create_conversation(data)
    return ConversationRead.model_validate(conversation)


@router.get("/active", response_model=ConversationRead)
def get_active_conversation(
    session_id: str,
    db: Session = Depends(get_db),
) -> ConversationRead:
    """Return the active conversation for a session, if any."""
    conversation = ConversationService(db).get_active_by_session(session_id)
    if conversation is None:
        raise HTTPException(status_code=404, detail="Conversation not found")
    return ConversationRead.model_validate(conversation)


@router.get("/{conversation_id}", response_model=ConversationDetail)
def get_conversation(
    conversation: Conversation = Depends(get_conversation_by_id),
    db: Session = Depends(get_db),
) -> ConversationDetail:
    """Current status, collected data, messages and errors."""
    return build_conversation_detail(db, conversation)


@router.post(
    "/{conversation_id}/messages", response_model=MessageAccepted, status_code=201
)
def add_message(
    data: MessageCreate,
    conversation: Conversation = Depends(get_conversation_by_id),
    settings: Settings = Depends(get_app_settings),
    db: Session = Depends(get_db),
) -> MessageAccepted:
    """Append a message; on terminal conversations it is stored for audit only."""
    outcome = ConversationStateMachine(db, settings=settings).record_message(
        conversation.id, data
    )
    if outcome is None:
        raise HTTPException(status_code=404, detail="Conversation not found")
    return MessageAccepted(
        message=MessageRead.from_model(outcome.message),
        status=outcome.status,
        projected=outcome.projected,
    )


@router.get("/{conversation_id}/readiness", response_model=Readiness)
def get_readiness(
    conversation: Conversation = Depends(get_conversation_by_id),
) -> Readiness:
    data = CollectedData.from_document(conversation.collected_data)
    return CollectedDataService().readiness(
        data, fallback_language=conversation.language
    )


@router.get("/{conversation_id}/summary", response_model=ConfigurationSummary)
def get_summary(
    conversation: Conversation = Depends(get_conversation_by_id),
) -> ConfigurationSummary:
    data = CollectedData.from_document(conversation.collected_data)
    return CollectedDataService().summarize(
        data, fallback_language=conversation.language
    )


@router.post("/{conversation_id}/provision", response_model=ProvisioningRead)
def provision(
    conversation: Conversation = Depends(get_conversation_by_id),
    client: ProvisioningClient = Depends(get_provisioning_client),
    notifier: Notifier = Depends(get_notifier),
    settings: Settings = Depends(get_app_settings),
    db: Session = Depends(get_db),
) -> ProvisioningRead:
    """
    Attempt to create the sports center once.

    Failures are recorded and reported in the body; 409 means the sports
    center was created but the conversation had already left ``active``.
    """
    service = ProvisioningService(db, client, notifier=notifier, settings=settings)
    outcome = service.provision(conversation.id)
    if outcome is None:
        raise HTTPException(status_code=404, detail="Conversation not found")
    read = ProvisioningRead(
        conversation_id=outcome.conversation_id,
        success=outcome.success,
        status=outcome.status,
        conflict=outcome.conflict,
        reason=outcome.reason,
        retry_count=outcome.retry_count,
        sports_center=(
            SportsCenterRead.model_validate(outcome.sports_center)
            if outcome.sports_center is not None
            else None
        ),
    )
    if outcome.conflict:
        raise HTTPException(
            status_code=409, detail=read.model_dump(mode="json", by_alias=True)
        )
    return read


@router.post("/{conversation_id}/failures", response_model=FailureOutcome)
def report_failure(
    data: FailureReport,
    conversation: Conversation = Depends(get_conversation_by_id),
    settings: Settings = Depends(get_app_settings),
    db: Session = Depends(get_db),
) -> FailureOutcome:
    """Record a collaborator failure (assistant call, notification...)."""
    record = ConversationStateMachine(db, settings=settings).report_failure(
        conversation.id,
        data.error_type,
        data.message,
        details=data.details,
        retryable=data.retryable,
    )
    return FailureOutcome(
        retry_count=record.retry_count,
        escalated=record.escalated,
        status=record.status or conversation.status_enum,
    )


@router.post("/{conversation_id}/success", response_model=SuccessOutcome)
def report_success(
    conversation: Conversation = Depends(get_conversation_by_id),
    settings: Settings = Depends(get_app_settings),
    db: Session = Depends(get_db),
) -> SuccessOutcome:
    """A successful collaborator call resets the retry count of an active conversation."""
    retry_count = ConversationStateMachine(db, settings=settings).report_success(
        conversation.id
    )
    return SuccessOutcome(retry_count=retry_count)


@router.post("/{conversation_id}/escalate", response_model=TransitionRead)
def escalate(
    data: EscalationRequest,
    conversation: Conversation = Depends(get_conversation_by_id),
    settings: Settings = Depends(get_app_settings),
    db: Session = Depends(get_db),
) -> TransitionRead:
    result = ConversationStateMachine(db, settings=settings).escalate(
        conversation.id, reason=data.reason
    )
    if result is None:
        raise HTTPException(status_code=404, detail="Conversation not found")
    return _raise_if_not_applied(result)


@router.post("/{conversation_id}/end", response_model=TransitionRead)
def end_session(
    conversation: Conversation = Depends(get_conversation_by_id),
    settings: Settings = Depends(get_app_settings),
    db: Session = Depends(get_db),
) -> TransitionRead:
    """User ends the session; refused with 409 once the configuration is confirmed."""
    result = ConversationStateMachine(db, settings=settings).end_session(
        conversation.id
    )
    if result is None:
        raise HTTPException(status_code=404, detail="Conversation not found")
    return _raise_if_not_applied(result)
