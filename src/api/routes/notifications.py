"""Notification endpoints: list the caller's alerts, submit a manual alert."""

import time

import structlog
from fastapi import APIRouter, Depends, status

from src.api.auth import get_current_principal
from src.api.dependencies import get_context, get_notification_store, get_pipeline
from src.api.models import (
    DispatchInfo,
    ErrorResponse,
    NotificationCreateRequest,
    NotificationCreateResponse,
    NotificationItem,
    NotificationsResponse,
    ValidationErrorResponse,
)
from src.auth.schemas import Principal
from src.notifications.repository import NotificationStore
from src.notifications.schemas import DispatchStatus
from src.readings.messages import parse_alert_report
from src.services.context import AppContext
from src.services.pipeline import SensorPipeline

logger = structlog.get_logger(__name__)
router = APIRouter()

_DISPATCH_MESSAGES = {
    DispatchStatus.SENT: "Notification created successfully",
    DispatchStatus.SKIPPED: "Value is within normal thresholds; no notification created",
    DispatchStatus.NO_RECIPIENT: "No recipient available; no notification created",
}


@router.get(
    "/notifications",
    response_model=NotificationsResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Missing or invalid token"},
        503: {"model": ErrorResponse, "description": "Storage unavailable"},
    },
    summary="List my notifications",
    description="All notifications addressed to the caller, newest first.",
)
async def list_notifications(
    principal: Principal = Depends(get_current_principal),
    store: NotificationStore = Depends(get_notification_store),
) -> NotificationsResponse:
    start_time = time.perf_counter()
    notifications = await store.list_for_principal(principal.principal_id)
    items = [NotificationItem.from_notification(n) for n in notifications]

    latency_ms = (time.perf_counter() - start_time) * 1000
    return NotificationsResponse(
        notifications=items,
        total=len(items),
        latency_ms=round(latency_ms, 2),
    )


@router.post(
    "/notifications",
    response_model=NotificationCreateResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ValidationErrorResponse, "description": "Invalid notification"},
        401: {"model": ErrorResponse, "description": "Missing or invalid token"},
        503: {"model": ErrorResponse, "description": "Storage unavailable"},
    },
    summary="Submit a manual alert",
    description=(
        "The reported status is validated, then rechecked against the active "
        "thresholds for `value`. The alert is addressed to the caller."
    ),
)
async def create_notification(
    request: NotificationCreateRequest,
    principal: Principal = Depends(get_current_principal),
    context: AppContext = Depends(get_context),
    pipeline: SensorPipeline = Depends(get_pipeline),
) -> NotificationCreateResponse:
    report = parse_alert_report(request.model_dump())

    result = await pipeline.process_report(
        report.sensor_type,
        report.severity,
        report.value,
        resolver=context.caller_resolver(principal.principal_id),
        message=report.message,
        timestamp=report.timestamp,
        source="api",
        reclassify=True,
    )

    logger.info(
        "Manual notification submitted",
        sensor_type=report.sensor_type.value,
        reported=report.severity.value,
        dispatch=result.status.value,
    )
    return NotificationCreateResponse(
        message=_DISPATCH_MESSAGES[result.status],
        dispatch=DispatchInfo.from_result(result),
        notification=(
            NotificationItem.from_notification(result.notification)
            if result.notification else None
        ),
    )
