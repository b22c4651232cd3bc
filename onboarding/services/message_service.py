"""
Service for persisting conversation messages.

Messages are immutable; only insert. Canonical order is (timestamp, created_at).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from onboarding.constants.conversation_status import MessageRole
from onboarding.core.clock import to_naive_utc, utcnow
from onboarding.models.conversation_message import ConversationMessage


class MessageService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def append_message(
        self,
        conversation_id: str,
        role: MessageRole,
        content: str,
        metadata: Optional[Dict[str, Any]] = None,
        timestamp: Optional[datetime] = None,
    ) -> ConversationMessage:
        message = ConversationMessage(
            conversation_id=conversation_id,
            role=MessageRole(role).value,
            content=content or "",
            extra=metadata or None,
            timestamp=to_naive_utc(timestamp) if timestamp else utcnow(),
        )
        self.db.add(message)
        self.db.commit()
        self.db.refresh(message)
        return message

    def get_messages(self, conversation_id: str) -> List[ConversationMessage]:
        """All messages of a conversation in canonical event order."""
        return (
            self.db.query(ConversationMessage)
            .filter(ConversationMessage.conversation_id == conversation_id)
            .order_by(
                ConversationMessage.timestamp.asc(),
                ConversationMessage.created_at.asc(),
            )
            .all()
        )

    def count_messages(self, conversation_id: str) -> int:
        return (
            self.db.query(ConversationMessage)
            .filter(ConversationMessage.conversation_id == conversation_id)
            .count()
        )
