"""Shared fixtures for API tests."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from src.api.app import create_app
from src.api.auth import get_current_principal
from src.api.dependencies import (
    get_notification_store,
    get_pipeline,
    get_principal_repository,
    get_reading_repository,
    get_threshold_store,
)
from src.auth.repository import PrincipalRepository
from src.notifications.repository import NotificationStore
from src.readings.repository import ReadingRepository
from src.services.pipeline import SensorPipeline
from src.thresholds.schemas import ThresholdConfig
from src.thresholds.store import ThresholdStore


@pytest.fixture
def mock_context(test_settings):
    """AppContext stand-in; the app never connects an injected context."""
    context = MagicMock()
    context.settings = test_settings
    context.database.health_check = AsyncMock(return_value=True)
    context.redis.ping = AsyncMock(return_value=True)
    return context


@pytest.fixture
def mock_pipeline():
    return AsyncMock(spec=SensorPipeline)


@pytest.fixture
def mock_threshold_store():
    store = AsyncMock(spec=ThresholdStore)
    store.get_active.return_value = ThresholdConfig.default()
    return store


@pytest.fixture
def mock_reading_repo():
    repo = AsyncMock(spec=ReadingRepository)
    repo.get_recent.return_value = []
    return repo


@pytest.fixture
def mock_notification_store():
    store = AsyncMock(spec=NotificationStore)
    store.list_for_principal.return_value = []
    return store


@pytest.fixture
def mock_principals():
    return AsyncMock(spec=PrincipalRepository)


@pytest.fixture
def app(
    mock_context,
    mock_pipeline,
    mock_threshold_store,
    mock_reading_repo,
    mock_notification_store,
    mock_principals,
):
    """App with storage dependencies overridden and real authentication."""
    app = create_app(context=mock_context)

    app.dependency_overrides[get_pipeline] = lambda: mock_pipeline
    app.dependency_overrides[get_threshold_store] = lambda: mock_threshold_store
    app.dependency_overrides[get_reading_repository] = lambda: mock_reading_repo
    app.dependency_overrides[get_notification_store] = lambda: mock_notification_store
    app.dependency_overrides[get_principal_repository] = lambda: mock_principals

    yield app

    app.dependency_overrides.clear()


@pytest.fixture
def anonymous_client(app):
    """Client without any authentication override."""
    with TestClient(app) as c:
        yield c


@pytest.fixture
def client(app, user_principal):
    """Client authenticated as a regular user."""
    app.dependency_overrides[get_current_principal] = lambda: user_principal
    with TestClient(app) as c:
        yield c


@pytest.fixture
def admin_client(app, admin_principal):
    """Client authenticated as an admin."""
    app.dependency_overrides[get_current_principal] = lambda: admin_principal
    with TestClient(app) as c:
        yield c
