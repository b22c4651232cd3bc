"""Fixtures for the provisioning and notification collaborators."""

from typing import Any, Dict, List

import pytest

from onboarding.adapters.notifier import Notifier, WelcomeNotice
from onboarding.adapters.provisioning import (
    ProvisioningClient,
    ProvisioningError,
    ProvisioningResult,
)


class FakeProvisioningClient(ProvisioningClient):
    """Returns queued outcomes in order; succeeds once the queue is empty."""

    def __init__(self) -> None:
        self.outcomes: List[Any] = []
        self.requests: List[Dict[str, Any]] = []
        self.next_id = 1000

    def fail_with(self, *errors: ProvisioningError) -> None:
        self.outcomes.extend(errors)

    def create_sports_center(self, request: Dict[str, Any]) -> ProvisioningResult:
        self.requests.append(request)
        if self.outcomes:
            outcome = self.outcomes.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome
        self.next_id += 1
        return ProvisioningResult(
            sporttia_id=self.next_id, admin_login="admin", admin_password="secret"
        )


class RecordingNotifier(Notifier):
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.notices: List[WelcomeNotice] = []

    def send_welcome(self, notice: WelcomeNotice) -> None:
        if self.fail:
            raise RuntimeError("SMTP connection refused")
        self.notices.append(notice)


@pytest.fixture(scope="function")
def fake_provisioning_client():
    return FakeProvisioningClient()


@pytest.fixture(scope="function")
def recording_notifier():
    return RecordingNotifier()


@pytest.fixture(scope="function")
def server_error():
    return ProvisioningError(
        "Internal server error", code="INTERNAL_ERROR", status_code=503
    )
