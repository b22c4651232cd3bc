"""Pydantic schemas for conversations and their messages."""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from onboarding.constants.conversation_status import ConversationStatus, MessageRole
from onboarding.schemas.collected_data import CollectedData
from onboarding.schemas.error_event import ErrorEventRead

_CAMEL = {"alias_generator": to_camel, "populate_by_name": True}

# -----------------------------------------------------------------------------
# Conversation schemas
# -----------------------------------------------------------------------------


class ConversationCreate(BaseModel):
    session_id: str = Field(min_length=1, max_length=255)
    language: str = Field(default="es", min_length=2, max_length=2)

    model_config = _CAMEL


class ConversationRead(BaseModel):
    id: str
    session_id: str
    language: str
    status: ConversationStatus
    sports_center_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {**_CAMEL, "from_attributes": True}


class SportsCenterRead(BaseModel):
    id: str
    sporttia_id: int
    name: str
    city: str
    language: str
    admin_email: str
    admin_name: str
    facilities_count: int
    created_at: datetime

    model_config = {**_CAMEL, "from_attributes": True}


class CollectedDataDigest(BaseModel):
    """Compact view of the form used in listing rows."""

    sports_center_name: Optional[str] = None
    admin_email: Optional[str] = None
    facilities_count: int = 0

    model_config = _CAMEL


class SportsCenterDigest(BaseModel):
    sporttia_id: int
    name: str

    model_config = _CAMEL


class ConversationListRow(ConversationRead):
    sports_center: Optional[SportsCenterDigest] = None
    collected_data: Optional[CollectedDataDigest] = None


# -----------------------------------------------------------------------------
# Message schemas
# -----------------------------------------------------------------------------


class MessageMetadata(BaseModel):
    """Structured metadata attached to a message by the chat layer."""

    model: Optional[str] = None
    tokens_used: Optional[int] = None
    function_call: Optional[str] = None
    collected_data: Optional[dict[str, Any]] = None
    error: Optional[str] = None

    model_config = {**_CAMEL, "extra": "allow"}


class MessageCreate(BaseModel):
    role: MessageRole
    content: str = Field(default="", max_length=10000)
    metadata: Optional[MessageMetadata] = None
    timestamp: Optional[datetime] = None  # event time; defaults to arrival time

    model_config = _CAMEL


class MessageRead(BaseModel):
    id: str
    conversation_id: str
    role: MessageRole
    content: str
    metadata: Optional[dict[str, Any]] = None
    timestamp: datetime

    model_config = {**_CAMEL, "from_attributes": True}

    @classmethod
    def from_model(cls, message) -> "MessageRead":
        return cls(
            id=message.id,
            conversation_id=message.conversation_id,
            role=message.role,
            content=message.content,
            metadata=message.message_metadata,
            timestamp=message.timestamp,
        )


# -----------------------------------------------------------------------------
# Outcomes and detail views
# -----------------------------------------------------------------------------


class TransitionRead(BaseModel):
    """Result of a lifecycle operation; ``conflict`` means the expected state moved on."""

    conversation_id: str
    applied: bool
    conflict: bool = False
    status: ConversationStatus
    previous_status: Optional[ConversationStatus] = None
    reason: Optional[str] = None

    model_config = _CAMEL


class MessageAccepted(BaseModel):
    message: MessageRead
    status: ConversationStatus
    projected: bool = False

    model_config = _CAMEL


class FailureReport(BaseModel):
    """Failure reported by a collaborator (assistant call, notification...)."""

    error_type: str
    message: str
    details: Optional[dict[str, Any]] = None
    retryable: bool = True

    model_config = _CAMEL


class FailureOutcome(BaseModel):
    retry_count: int
    escalated: bool
    status: ConversationStatus

    model_config = _CAMEL


class EscalationRequest(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=1000)


class ConversationDetail(BaseModel):
    conversation: ConversationRead
    messages: List[MessageRead] = Field(default_factory=list)
    collected_data: CollectedData
    sports_center: Optional[SportsCenterRead] = None
    errors: List[ErrorEventRead] = Field(default_factory=list)

    model_config = _CAMEL


class ProvisioningRead(BaseModel):
    conversation_id: str
    success: bool
    status: ConversationStatus
    conflict: bool = False
    reason: Optional[str] = None
    retry_count: Optional[int] = None
    sports_center: Optional[SportsCenterRead] = None

    model_config = _CAMEL


class SuccessOutcome(BaseModel):
    retry_count: int

    model_config = _CAMEL
