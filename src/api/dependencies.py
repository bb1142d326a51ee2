"""
Dependency injection for FastAPI endpoints.

Every dependency resolves from the AppContext stored on ``app.state``;
tests swap components with ``app.dependency_overrides``.
"""

from fastapi import Depends, Request

from src.auth.repository import PrincipalRepository
from src.notifications.repository import NotificationStore
from src.readings.repository import ReadingRepository
from src.services.context import AppContext
from src.services.pipeline import SensorPipeline
from src.thresholds.store import ThresholdStore


def get_context(request: Request) -> AppContext:
    """Get the process context the app was created with."""
    return request.app.state.context


def get_pipeline(context: AppContext = Depends(get_context)) -> SensorPipeline:
    return context.pipeline


def get_threshold_store(context: AppContext = Depends(get_context)) -> ThresholdStore:
    return context.thresholds


def get_reading_repository(context: AppContext = Depends(get_context)) -> ReadingRepository:
    return context.readings


def get_notification_store(context: AppContext = Depends(get_context)) -> NotificationStore:
    return context.notifications


def get_principal_repository(context: AppContext = Depends(get_context)) -> PrincipalRepository:
    return context.principals
