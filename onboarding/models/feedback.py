"""Feedback model: write-once user feedback, optionally tied to a conversation."""

from __future__ import annotations

import uuid

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String, Text

from onboarding.core.clock import utcnow
from onboarding.db import Base


class Feedback(Base):
    __tablename__ = "feedbacks"

    __table_args__ = (
        CheckConstraint(
            "rating IS NULL OR (rating >= 1 AND rating <= 5)",
            name="ck_feedbacks_rating_range",
        ),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    conversation_id = Column(
        String(36),
        ForeignKey("conversations.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    rating = Column(Integer, nullable=True)
    message = Column(Text, nullable=False)
    language = Column(String(8), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
