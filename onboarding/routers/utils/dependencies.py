from fastapi import Depends, HTTPException
from sqlalchemy.orm import Session

from onboarding.adapters.notifier import LoggingNotifier, Notifier
from onboarding.adapters.provisioning import (
    HttpProvisioningClient,
    ProvisioningClient,
    UnconfiguredProvisioningClient,
)
from onboarding.config import Settings, get_settings
from onboarding.db import get_db
from onboarding.models.conversation import Conversation
from onboarding.services.conversation_service import ConversationService


def get_app_settings() -> Settings:
    return get_settings()


def get_conversation_by_id(
    conversation_id: str,
    db: Session = Depends(get_db),
) -> Conversation:
    """FastAPI dependency to get a conversation by ID."""
    conversation = ConversationService(db).get_conversation(conversation_id)
    if conversation is None:
        raise HTTPException(status_code=404, detail="Conversation not found")
    return conversation


def get_provisioning_client(
    settings: Settings = Depends(get_app_settings),
) -> ProvisioningClient:
    if not settings.provisioning_api_url:
        return UnconfiguredProvisioningClient()
    return HttpProvisioningClient(
        settings.provisioning_api_url,
        token=settings.provisioning_api_token,
        timeout=settings.provisioning_timeout_seconds,
    )


def get_notifier() -> Notifier:
    return LoggingNotifier()
