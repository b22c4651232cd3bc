"""Conversation store: CRUD plus the compare-and-set writes the state machine relies on."""

from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from onboarding.constants.conversation_status import (
    ConversationStatus,
    is_allowed_transition,
)
from onboarding.core.clock import utcnow
from onboarding.models.conversation import Conversation
from onboarding.schemas.conversation import ConversationCreate

logger = logging.getLogger(__name__)


class ConversationService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def create_conversation(self, data: ConversationCreate) -> Conversation:
        conversation = Conversation(
            session_id=data.session_id,
            language=data.language,
            status=ConversationStatus.ACTIVE.value,
            collected_data={},
        )
        self.db.add(conversation)
        self.db.commit()
        self.db.refresh(conversation)
        logger.info(
            "Conversation %s created for session %s",
            conversation.id,
            conversation.session_id,
        )
        return conversation

    def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
        return (
            self.db.query(Conversation)
            .filter(Conversation.id == conversation_id)
            .first()
        )

    def reload(self, conversation_id: str) -> Optional[Conversation]:
        """Read the committed row, discarding whatever this session has cached."""
        return self.db.get(Conversation, conversation_id, populate_existing=True)

    def get_active_by_session(self, session_id: str) -> Optional[Conversation]:
        return (
            self.db.query(Conversation)
            .filter(
                Conversation.session_id == session_id,
                Conversation.status == ConversationStatus.ACTIVE.value,
            )
            .order_by(Conversation.created_at.desc())
            .first()
        )

    def compare_and_set(
        self,
        conversation_id: str,
        expected_status: ConversationStatus,
        new_status: Optional[ConversationStatus] = None,
        expected_version: Optional[int] = None,
        **values: Any,
    ) -> bool:
        """
        Atomically write ``values`` (and optionally a new status) only if the row
        is still in ``expected_status`` (and at ``expected_version`` when given).

        Every successful write bumps ``version`` and ``updated_at``. Returns
        False when the guard did not match; the caller decides what to do next.
        """
        expected_status = ConversationStatus(expected_status)
        if new_status is not None:
            new_status = ConversationStatus(new_status)
            if not is_allowed_transition(expected_status, new_status):
                raise ValueError(
                    f"Transition {expected_status.value} -> {new_status.value} is not allowed"
                )
            values["status"] = new_status.value

        stmt = (
            update(Conversation)
            .where(
                Conversation.id == conversation_id,
                Conversation.status == expected_status.value,
            )
            .values(
                updated_at=utcnow(),
                version=Conversation.version + 1,
                **values,
            )
            .execution_options(synchronize_session=False)
        )
        if expected_version is not None:
            stmt = stmt.where(Conversation.version == expected_version)

        result = self.db.execute(stmt)
        self.db.commit()
        applied = result.rowcount == 1
        if not applied:
            logger.info(
                "Compare-and-set missed for conversation %s (expected status=%s version=%s)",
                conversation_id,
                expected_status.value,
                expected_version,
            )
        # Keep any identity-mapped instance in line with the committed row.
        self.reload(conversation_id)
        return applied
