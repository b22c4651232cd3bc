"""ConversationMessage model: immutable chat turns ordered by timestamp."""

from __future__ import annotations

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import relationship

from onboarding.core.clock import utcnow
from onboarding.db import Base
from onboarding.models.mixins import JSONType


class ConversationMessage(Base):
    """One row per message; ``timestamp`` is the event time used for ordering."""

    __tablename__ = "conversation_messages"

    __table_args__ = (
        Index(
            "ix_conversation_messages_conversation_timestamp",
            "conversation_id",
            "timestamp",
        ),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    conversation_id = Column(
        String(36),
        ForeignKey("conversations.id", ondelete="CASCADE"),
        nullable=False,
    )
    role = Column(String(16), nullable=False)  # 'user' | 'assistant' | 'system'
    content = Column(Text, nullable=False, default="")
    extra = Column(
        "metadata", JSONType, nullable=True
    )  # DB column "metadata"; avoid shadowing Base.metadata
    timestamp = Column(DateTime, nullable=False, default=utcnow)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    conversation = relationship("Conversation", back_populates="messages")

    @property
    def message_metadata(self) -> dict | None:
        """Expose DB column 'metadata' for Pydantic/serialization (avoid shadowing Base.metadata)."""
        return self.extra
