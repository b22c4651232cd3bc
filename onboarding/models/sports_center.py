"""SportsCenter model: the provisioned outcome of a completed conversation."""

from __future__ import annotations

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from onboarding.core.clock import utcnow
from onboarding.db import Base


class SportsCenter(Base):
    """Written once when provisioning succeeds; never updated."""

    __tablename__ = "sports_centers"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    conversation_id = Column(
        String(36),
        ForeignKey("conversations.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    sporttia_id = Column(Integer, nullable=False)
    name = Column(String(255), nullable=False)
    city = Column(String(255), nullable=False)
    language = Column(String(8), nullable=False)
    admin_email = Column(String(320), nullable=False)
    admin_name = Column(String(255), nullable=False)
    facilities_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    conversation = relationship("Conversation", back_populates="sports_center")
