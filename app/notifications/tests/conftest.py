"""
Test configuration and fixtures for notification tests.

This module provides:
- User fixtures (receiver, other user, admin)
- A recording email gateway and dispatchers wired to it
- API client helpers for authenticated requests

Usage:
    def test_example(user, dispatcher, recording_gateway):
        dispatcher.notify(user.id, "Hi", "body")
        assert recording_gateway.sent[0][0] == "message_notification"
"""

import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from authentication.tests.factories import UserFactory
from notifications.tests.fakes import RecordingGateway


# =============================================================================
# User Fixtures
# =============================================================================


@pytest.fixture
def user(db):
    """Create the default receiver."""
    return UserFactory(
        email="receiver@example.com", username="greenrider", name="Green Rider"
    )


@pytest.fixture
def other_user(db):
    """Create another user for ownership tests."""
    return UserFactory()


@pytest.fixture
def admin_user(db):
    """Create a staff user allowed to broadcast."""
    return UserFactory(email="admin@example.com", username="admin", is_staff=True)


# =============================================================================
# Pipeline Fixtures
# =============================================================================


@pytest.fixture
def recording_gateway():
    return RecordingGateway()


@pytest.fixture
def preference_store():
    from notifications.preferences import PreferenceStore

    return PreferenceStore()


@pytest.fixture
def dispatcher(db, recording_gateway, preference_store):
    """Dispatcher sending through the recording gateway."""
    from notifications.dispatcher import MessageDispatcher

    return MessageDispatcher(
        preferences=preference_store,
        gateway=recording_gateway,
    )


@pytest.fixture
def in_app_only_dispatcher(db, preference_store):
    """Dispatcher with email disabled."""
    from notifications.dispatcher import MessageDispatcher

    return MessageDispatcher(preferences=preference_store, gateway=None)


@pytest.fixture
def job_queue(recording_gateway, mocker):
    """
    Request-style queue bound to the current context.

    The spawner is a mock, so nothing is launched.
    """
    from notifications.context import bound_queue
    from notifications.queue import DeferredJobQueue
    from notifications.runner import JobRunner

    queue = DeferredJobQueue(
        runner=JobRunner(recording_gateway),
        spawner=mocker.Mock(),
    )
    with bound_queue(queue):
        yield queue


# =============================================================================
# API Client Fixtures
# =============================================================================


@pytest.fixture
def api_client():
    """Unauthenticated API client."""
    return APIClient()


@pytest.fixture
def authenticated_client(user):
    """API client authenticated with a JWT for the default user."""
    client = APIClient()
    refresh = RefreshToken.for_user(user)
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {refresh.access_token}")
    return client


@pytest.fixture
def admin_client(admin_user):
    """API client authenticated as staff."""
    client = APIClient()
    refresh = RefreshToken.for_user(admin_user)
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {refresh.access_token}")
    return client
