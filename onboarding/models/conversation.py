"""Conversation model: one onboarding session and its lifecycle status."""

from __future__ import annotations

import uuid

from sqlalchemy import Column, DateTime, Index, Integer, String
from sqlalchemy.orm import relationship

from onboarding.constants.conversation_status import ConversationStatus
from onboarding.db import Base
from onboarding.models.mixins import JSONType, TimestampMixin


class Conversation(Base, TimestampMixin):
    """
    One row per onboarding session.

    ``status`` only moves along the lifecycle graph; every write goes through a
    compare-and-set on (status, version) so concurrent writers never clobber
    each other. ``collected_data`` holds the projected CollectedData document.
    """

    __tablename__ = "conversations"

    __table_args__ = (
        Index("ix_conversations_status_created", "status", "created_at"),
        Index(
            "ix_conversations_status_last_user_message",
            "status",
            "last_user_message_at",
        ),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    session_id = Column(String(255), nullable=False, index=True)
    language = Column(String(8), nullable=False, default="es")
    status = Column(
        String(16), nullable=False, default=ConversationStatus.ACTIVE.value
    )
    # Back-reference to the provisioned record; the FK lives on sports_centers.
    sports_center_id = Column(String(36), nullable=True)
    collected_data = Column(JSONType, nullable=True)
    # Denormalized from collected_data for search and the funnel.
    admin_email = Column(String(320), nullable=True, index=True)
    last_user_message_at = Column(DateTime, nullable=True)
    projected_through = Column(DateTime, nullable=True)
    version = Column(Integer, nullable=False, default=1)

    messages = relationship(
        "ConversationMessage",
        back_populates="conversation",
        cascade="all, delete-orphan",
        order_by="ConversationMessage.timestamp",
    )
    sports_center = relationship(
        "SportsCenter", back_populates="conversation", uselist=False
    )

    @property
    def status_enum(self) -> ConversationStatus:
        return ConversationStatus(self.status)
