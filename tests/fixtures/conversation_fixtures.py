"""Fixtures for conversations and their collected data."""

from datetime import datetime, timedelta

import pytest

from onboarding.constants.conversation_status import ConversationStatus
from onboarding.core.clock import utcnow
from onboarding.models.conversation import Conversation


def build_schedule(**overrides):
    schedule = {
        "weekdays": [1, 2, 3, 4, 5],
        "startTime": "09:00",
        "endTime": "21:00",
        "duration": 60,
        "rate": 12.5,
    }
    schedule.update(overrides)
    return schedule


def build_facility(name="Pista 1", schedules=None):
    return {
        "name": name,
        "sportId": 3,
        "sportName": "Padel",
        "schedules": schedules if schedules is not None else [build_schedule()],
    }


@pytest.fixture(scope="function")
def complete_collected_data(faker):
    """A confirmed, complete CollectedData document."""
    return {
        "sportsCenterName": f"Club {faker.last_name()}",
        "city": "Sevilla, Sevilla",
        "country": "ES",
        "language": "es",
        "adminName": faker.name(),
        "adminEmail": faker.email().lower(),
        "facilities": [build_facility()],
        "confirmed": True,
    }


@pytest.fixture(scope="function")
def make_conversation(db, faker):
    """Factory inserting conversations with explicit status and timestamps."""

    def _make(
        status: ConversationStatus = ConversationStatus.ACTIVE,
        created_at: datetime = None,
        updated_at: datetime = None,
        last_user_message_at: datetime = None,
        collected_data: dict = None,
        admin_email: str = None,
        language: str = "es",
    ) -> Conversation:
        created_at = created_at or utcnow()
        conversation = Conversation(
            session_id=faker.uuid4(),
            language=language,
            status=ConversationStatus(status).value,
            collected_data=collected_data or {},
            admin_email=admin_email,
            last_user_message_at=last_user_message_at,
            created_at=created_at,
            updated_at=updated_at or created_at,
        )
        db.add(conversation)
        db.commit()
        db.refresh(conversation)
        return conversation

    return _make


@pytest.fixture(scope="function")
def setup_conversation(make_conversation):
    """An active conversation with an empty form."""
    return make_conversation()


@pytest.fixture(scope="function")
def setup_ready_conversation(make_conversation, complete_collected_data):
    """An active conversation whose form is confirmed and complete."""
    return make_conversation(
        collected_data=complete_collected_data,
        admin_email=complete_collected_data["adminEmail"],
    )


@pytest.fixture(scope="function")
def setup_idle_conversation(make_conversation):
    """An active, unconfirmed conversation idle for an hour."""
    an_hour_ago = utcnow() - timedelta(hours=1)
    return make_conversation(
        created_at=an_hour_ago - timedelta(minutes=5),
        last_user_message_at=an_hour_ago,
    )
