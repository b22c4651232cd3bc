"""
ErrorEvent model: append-only ledger of classified failures.

Rows are inserted once and never updated; retry bookkeeping lives on the
conversation's collected data, not here.
"""

from __future__ import annotations

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, Text

from onboarding.core.clock import utcnow
from onboarding.db import Base
from onboarding.models.mixins import JSONType


class ErrorEvent(Base):
    __tablename__ = "error_events"

    __table_args__ = (
        Index("ix_error_events_type_created", "error_type", "created_at"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    conversation_id = Column(
        String(36),
        ForeignKey("conversations.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    error_type = Column(String(64), nullable=False)
    message = Column(Text, nullable=False)
    details = Column(JSONType, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
