"""Write-once feedback intake."""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.orm import Session

from onboarding.models.conversation import Conversation
from onboarding.models.feedback import Feedback
from onboarding.schemas.feedback import FeedbackCreate

logger = logging.getLogger(__name__)


class FeedbackService:
    """Create and read feedback. No update/delete."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def create_feedback(self, data: FeedbackCreate) -> Feedback:
        conversation_id = data.conversation_id
        if conversation_id and self.db.get(Conversation, conversation_id) is None:
            logger.info(
                "Feedback references unknown conversation %s; storing unlinked",
                conversation_id,
            )
            conversation_id = None
        feedback = Feedback(
            conversation_id=conversation_id,
            rating=data.rating,
            message=data.message,
            language=data.language,
        )
        self.db.add(feedback)
        self.db.commit()
        self.db.refresh(feedback)
        return feedback

    def get_feedback(self, feedback_id: str) -> Optional[Feedback]:
        return self.db.query(Feedback).filter(Feedback.id == feedback_id).first()
