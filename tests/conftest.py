"""Shared fixtures: a per-test SQLite database, sessions and the API client."""

import os

os.environ.setdefault("ENV", "test")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

import onboarding.models  # noqa: F401
from onboarding.auth.principal import Principal, get_current_principal
from onboarding.config import Settings
from onboarding.db import Base, get_db
from onboarding.main import create_app
from onboarding.routers.utils.dependencies import (
    get_app_settings,
    get_notifier,
    get_provisioning_client,
)

pytest_plugins = [
    "tests.fixtures.conversation_fixtures",
    "tests.fixtures.provisioning_fixtures",
]


@pytest.fixture(scope="function")
def engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'onboarding.db'}",
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, _connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    """Open independent sessions to simulate concurrent writers."""
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture(scope="function")
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def settings():
    return Settings(
        max_retries=3,
        non_retryable_error_types=[],
        abandonment_idle_minutes=30,
        metrics_timezone="UTC",
        disable_auth=False,
        admin_api_token="test-token",
    )


@pytest.fixture(scope="function")
def client(session_factory, settings, fake_provisioning_client, recording_notifier):
    """API client with db, settings, principal and collaborators overridden."""

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app = create_app()
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_app_settings] = lambda: settings
    app.dependency_overrides[get_current_principal] = lambda: Principal(subject="test")
    app.dependency_overrides[get_provisioning_client] = lambda: fake_provisioning_client
    app.dependency_overrides[get_notifier] = lambda: recording_notifier
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
