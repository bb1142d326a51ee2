"""Threshold endpoints: read the active configuration, replace it, audit history."""

import structlog
from fastapi import APIRouter, Depends, Query

from src.api.auth import get_current_principal, require_admin
from src.api.dependencies import get_threshold_store
from src.api.models import (
    ErrorResponse,
    ThresholdHistoryResponse,
    ThresholdsResponse,
    ThresholdUpdateRequest,
    ValidationErrorResponse,
)
from src.auth.schemas import Principal
from src.thresholds.schemas import ThresholdConfig
from src.thresholds.store import ThresholdStore

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.get(
    "/thresholds",
    response_model=ThresholdsResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Missing or invalid token"},
        503: {"model": ErrorResponse, "description": "Storage unavailable"},
    },
    summary="Get active thresholds",
    description="Returns the active configuration, creating the defaults on first use.",
)
async def get_thresholds(
    principal: Principal = Depends(get_current_principal),
    store: ThresholdStore = Depends(get_threshold_store),
) -> ThresholdsResponse:
    config = await store.get_active()
    return ThresholdsResponse.from_config(config)


@router.put(
    "/thresholds",
    response_model=ThresholdsResponse,
    responses={
        400: {"model": ValidationErrorResponse, "description": "Invalid or misordered thresholds"},
        401: {"model": ErrorResponse, "description": "Missing or invalid token"},
        403: {"model": ErrorResponse, "description": "Admin role required"},
        503: {"model": ErrorResponse, "description": "Storage unavailable"},
    },
    summary="Replace thresholds",
    description=(
        "Replace the whole configuration. All nine fields are required, and for "
        "each sensor normal < warning < danger must hold."
    ),
)
async def replace_thresholds(
    request: ThresholdUpdateRequest,
    admin: Principal = Depends(require_admin),
    store: ThresholdStore = Depends(get_threshold_store),
) -> ThresholdsResponse:
    candidate = ThresholdConfig.from_payload(request.model_dump(exclude_none=True))
    stored = await store.replace(candidate, updated_by=admin.principal_id)

    logger.info("Thresholds replaced", updated_by=admin.principal_id)
    return ThresholdsResponse.from_config(stored)


@router.get(
    "/thresholds/history",
    response_model=ThresholdHistoryResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Missing or invalid token"},
        403: {"model": ErrorResponse, "description": "Admin role required"},
    },
    summary="Threshold change history",
    description="Stored configurations, active first.",
)
async def threshold_history(
    limit: int = Query(default=20, ge=1, le=200),
    admin: Principal = Depends(require_admin),
    store: ThresholdStore = Depends(get_threshold_store),
) -> ThresholdHistoryResponse:
    history = await store.history(limit=limit)
    items = [ThresholdsResponse.from_config(c) for c in history]
    return ThresholdHistoryResponse(thresholds=items, total=len(items))
