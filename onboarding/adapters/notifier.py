"""Notification collaborator invoked after a sports center is provisioned."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from onboarding.infra.logging_config import get_logger

logger = get_logger("notifier")


@dataclass
class WelcomeNotice:
    sports_center_name: str
    admin_name: str
    admin_email: str
    city: str
    language: str
    sporttia_id: int
    facilities_count: int
    admin_login: Optional[str] = None
    admin_password: Optional[str] = None


class Notifier(ABC):
    @abstractmethod
    def send_welcome(self, notice: WelcomeNotice) -> None:
        """Deliver the welcome message. Raise on delivery failure."""
        ...


class LoggingNotifier(Notifier):
    """Default notifier: records the notice in the log instead of sending it."""

    def send_welcome(self, notice: WelcomeNotice) -> None:
        logger.info(
            "Welcome notice for sports center %s (sporttia_id=%s) to %s",
            notice.sports_center_name,
            notice.sporttia_id,
            notice.admin_email,
        )
