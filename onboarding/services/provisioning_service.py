"""Provisioning attempt: confirmed CollectedData -> external sports center -> completed."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Union

from sqlalchemy.orm import Session

from onboarding.adapters.notifier import LoggingNotifier, Notifier, WelcomeNotice
from onboarding.adapters.provisioning import (
    ProvisioningClient,
    ProvisioningError,
    ProvisioningResult,
    build_request,
)
from onboarding.config import Settings, get_settings
from onboarding.constants.conversation_status import ConversationStatus
from onboarding.constants.error_types import ErrorType
from onboarding.models.sports_center import SportsCenter
from onboarding.schemas.collected_data import CollectedData
from onboarding.services.conversation_state_machine import (
    REASON_TERMINAL,
    ConversationStateMachine,
)

logger = logging.getLogger(__name__)

REASON_ALREADY_PROVISIONED = "already_provisioned"
REASON_NOT_CONFIRMED = "not_confirmed"
REASON_NOT_READY = "not_ready"
REASON_PROVISIONING_FAILED = "provisioning_failed"


@dataclass
class ProvisioningOutcome:
    conversation_id: str
    status: ConversationStatus
    success: bool
    sports_center: Optional[SportsCenter] = None
    conflict: bool = False
    reason: Optional[str] = None
    retry_count: Optional[int] = None


class ProvisioningService:
    def __init__(
        self,
        db: Session,
        client: ProvisioningClient,
        notifier: Optional[Notifier] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.db = db
        self.client = client
        self.notifier = notifier or LoggingNotifier()
        self.settings = settings or get_settings()
        self.state_machine = ConversationStateMachine(db, settings=self.settings)

    def get_sports_center(self, conversation_id: str) -> Optional[SportsCenter]:
        return (
            self.db.query(SportsCenter)
            .filter(SportsCenter.conversation_id == conversation_id)
            .first()
        )

    def provision(self, conversation_id: str) -> Optional[ProvisioningOutcome]:
        """
        Attempt creation once. Failures go to the error tracker, whose retry
        ceiling decides whether the conversation stays active or escalates.

        Attempts for one conversation are serialized, but the conversation
        itself is only locked around the reads and writes, not the external
        call, so messages keep flowing while the client works.
        """
        with self.state_machine.locks.hold(f"provisioning:{conversation_id}"):
            prepared = self._prepare(conversation_id)
            if not isinstance(prepared, dict):
                return prepared
            request = prepared

            try:
                result = self.client.create_sports_center(request)
            except ProvisioningError as e:
                logger.error(
                    "Provisioning failed for conversation %s: %s (%s)",
                    conversation_id,
                    e.message,
                    e.code,
                )
                return self._failed(
                    conversation_id,
                    ErrorType.SPORTTIA_API_ERROR,
                    e.message,
                    details=e.as_details(),
                    retryable=e.retryable,
                )
            except Exception as e:
                logger.exception(
                    "Provisioning client crashed for conversation %s", conversation_id
                )
                return self._failed(
                    conversation_id,
                    ErrorType.INTERNAL_ERROR,
                    f"Unexpected provisioning failure: {e}",
                    details={"exception": type(e).__name__},
                )

            with self.state_machine.locks.hold(conversation_id):
                sports_center = self._store(conversation_id, request, result)
                transition = self.state_machine.complete(
                    conversation_id, sports_center.id
                )
            if transition.conflict:
                logger.warning(
                    "Sports center %s created but conversation %s is now %s",
                    sports_center.id,
                    conversation_id,
                    transition.status.value,
                )

            self._notify(conversation_id, request, result)
            return ProvisioningOutcome(
                conversation_id=conversation_id,
                status=transition.status,
                success=True,
                sports_center=sports_center,
                conflict=transition.conflict,
            )

    def _prepare(self, conversation_id: str) -> Union[dict, ProvisioningOutcome, None]:
        """The provisioning request, or the outcome that stops the attempt early."""
        sm = self.state_machine
        with sm.locks.hold(conversation_id):
            conversation = sm.conversations.reload(conversation_id)
            if conversation is None:
                return None

            existing = self.get_sports_center(conversation_id)
            if existing is not None:
                logger.info(
                    "Sports center %s already provisioned for conversation %s",
                    existing.id,
                    conversation_id,
                )
                return ProvisioningOutcome(
                    conversation_id=conversation_id,
                    status=conversation.status_enum,
                    success=True,
                    sports_center=existing,
                    reason=REASON_ALREADY_PROVISIONED,
                )

            if conversation.status_enum.is_terminal:
                return ProvisioningOutcome(
                    conversation_id=conversation_id,
                    status=conversation.status_enum,
                    success=False,
                    reason=REASON_TERMINAL,
                )

            data = CollectedData.from_document(conversation.collected_data)
            if not data.confirmed:
                logger.info(
                    "Conversation %s not confirmed; provisioning skipped", conversation_id
                )
                return ProvisioningOutcome(
                    conversation_id=conversation_id,
                    status=conversation.status_enum,
                    success=False,
                    reason=REASON_NOT_CONFIRMED,
                )

            readiness = sm.projector.readiness(data, fallback_language=conversation.language)
            if not readiness.is_ready:
                problems = readiness.missing + readiness.schedule_errors
                return self._failed(
                    conversation_id,
                    ErrorType.VALIDATION_ERROR,
                    "Collected data is not ready for creation: " + "; ".join(problems),
                    details={
                        "missing": readiness.missing,
                        "scheduleErrors": readiness.schedule_errors,
                    },
                    reason=REASON_NOT_READY,
                )

            return build_request(data, fallback_language=conversation.language)

    def _failed(
        self,
        conversation_id: str,
        error_type: ErrorType,
        message: str,
        details: Optional[dict] = None,
        retryable: bool = True,
        reason: str = REASON_PROVISIONING_FAILED,
    ) -> ProvisioningOutcome:
        sm = self.state_machine
        with sm.locks.hold(conversation_id):
            failure = sm.tracker.record_failure(
                conversation_id,
                error_type,
                message,
                details=details,
                retryable=retryable,
            )
            current = sm.conversations.reload(conversation_id)
        return ProvisioningOutcome(
            conversation_id=conversation_id,
            status=failure.status or current.status_enum,
            success=False,
            reason=reason,
            retry_count=failure.retry_count,
        )

    def _store(
        self, conversation_id: str, request: dict, result: ProvisioningResult
    ) -> SportsCenter:
        sports_center = SportsCenter(
            conversation_id=conversation_id,
            sporttia_id=result.sporttia_id,
            name=request["sportcenter"]["name"],
            city=request["sportcenter"]["city"]["name"],
            language=request["language"],
            admin_email=request["admin"]["email"],
            admin_name=request["admin"]["name"],
            facilities_count=len(request["facilities"]),
        )
        self.db.add(sports_center)
        self.db.commit()
        self.db.refresh(sports_center)
        logger.info(
            "Sports center %s (sporttia_id=%s) stored for conversation %s",
            sports_center.id,
            result.sporttia_id,
            conversation_id,
        )
        return sports_center

    def _notify(
        self, conversation_id: str, request: dict, result: ProvisioningResult
    ) -> None:
        notice = WelcomeNotice(
            sports_center_name=request["sportcenter"]["name"],
            admin_name=request["admin"]["name"],
            admin_email=request["admin"]["email"],
            city=request["sportcenter"]["city"]["name"],
            language=request["language"],
            sporttia_id=result.sporttia_id,
            facilities_count=len(request["facilities"]),
            admin_login=result.admin_login,
            admin_password=result.admin_password,
        )
        try:
            self.notifier.send_welcome(notice)
        except Exception as e:
            logger.error(
                "Welcome notice failed for conversation %s: %s", conversation_id, e
            )
            self.state_machine.tracker.log_event(
                conversation_id,
                ErrorType.EMAIL_FAILED,
                f"Welcome email failed: {e}",
                details={"adminEmail": notice.admin_email},
            )
