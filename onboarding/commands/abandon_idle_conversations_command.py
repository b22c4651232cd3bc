"""Command that abandons conversations with no user activity past the idle threshold."""

from __future__ import annotations

import threading
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from onboarding.config import Settings, get_settings
from onboarding.constants.conversation_status import ConversationStatus
from onboarding.core.clock import utcnow
from onboarding.infra.logging_config import get_logger
from onboarding.models.conversation import Conversation
from onboarding.services.conversation_state_machine import ConversationStateMachine


class AbandonIdleConversationsCommand:
    """
    Select active conversations whose last user message (or creation, if the
    user never wrote) is older than ``abandonment_idle_minutes`` and move each
    one ``active -> abandoned``.

    Each transition is guarded by the row version read at selection time, so a
    user message landing between selection and write wins and the conversation
    stays active. Re-running over already abandoned rows is a no-op.
    """

    def __init__(
        self,
        db: Session,
        settings: Optional[Settings] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        self.db = db
        self.settings = settings or get_settings()
        self.cancel_event = cancel_event
        self.logger = get_logger("commands.abandon_idle_conversations")

    def execute(self, now: Optional[datetime] = None) -> int:
        """
        Run one sweep.

        Returns:
            int: number of conversations actually abandoned by this run
        """
        now = now or utcnow()
        cutoff = now - timedelta(minutes=self.settings.abandonment_idle_minutes)
        candidates = self._idle_candidates(cutoff)
        if not candidates:
            self.logger.debug("No idle conversations before %s", cutoff.isoformat())
            return 0

        state_machine = ConversationStateMachine(self.db, settings=self.settings)
        abandoned = 0
        conflicts = 0
        for conversation_id, version in candidates:
            if self.cancel_event is not None and self.cancel_event.is_set():
                self.logger.info(
                    "Abandonment sweep cancelled after %d of %d conversations",
                    abandoned + conflicts,
                    len(candidates),
                )
                break
            result = state_machine.abandon(conversation_id, expected_version=version)
            if result.applied:
                abandoned += 1
            else:
                conflicts += 1

        self.logger.info(
            "Abandonment sweep: %d abandoned, %d skipped (cutoff=%s)",
            abandoned,
            conflicts,
            cutoff.isoformat(),
        )
        return abandoned

    def _idle_candidates(self, cutoff: datetime) -> List[Tuple[str, int]]:
        last_activity = func.coalesce(
            Conversation.last_user_message_at, Conversation.created_at
        )
        rows = (
            self.db.query(Conversation.id, Conversation.version)
            .filter(
                Conversation.status == ConversationStatus.ACTIVE.value,
                last_activity < cutoff,
            )
            .order_by(last_activity.asc(), Conversation.id.asc())
            .limit(self.settings.abandonment_sweep_batch_size)
            .all()
        )
        return [(row.id, row.version) for row in rows]
