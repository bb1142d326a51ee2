"""Reading endpoints: submit single or multi-sensor readings, list recent ones."""

import time

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status

from src.api.auth import get_current_principal
from src.api.dependencies import get_context, get_pipeline, get_reading_repository
from src.api.models import (
    BatchReadingError,
    BatchReadingRequest,
    BatchReadingResponse,
    DispatchInfo,
    ErrorResponse,
    ReadingCreateRequest,
    ReadingItem,
    ReadingResponse,
    ReadingResult,
    ReadingsResponse,
    ValidationErrorResponse,
)
from src.auth.schemas import Principal
from src.errors import MonitoringError
from src.readings.messages import parse_batch_message, parse_reading_message
from src.readings.repository import ReadingRepository
from src.services.context import AppContext
from src.services.pipeline import ReadingOutcome, SensorPipeline

logger = structlog.get_logger(__name__)
router = APIRouter()

_ERROR_RESPONSES = {
    400: {"model": ValidationErrorResponse, "description": "Invalid reading"},
    401: {"model": ErrorResponse, "description": "Missing or invalid token"},
    503: {"model": ErrorResponse, "description": "Storage unavailable"},
}


def _to_result(outcome: ReadingOutcome) -> ReadingResult:
    return ReadingResult(
        reading=ReadingItem.from_reading(outcome.ingest.reading),
        status=outcome.severity.value,
        dispatch=DispatchInfo.from_result(outcome.dispatch),
    )


@router.post(
    "/readings",
    response_model=ReadingResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_ERROR_RESPONSES,
    summary="Submit a reading",
    description=(
        "Store one sensor reading, classify it against the active thresholds, "
        "and notify the caller when it is a warning or danger."
    ),
)
async def create_reading(
    request: ReadingCreateRequest,
    principal: Principal = Depends(get_current_principal),
    context: AppContext = Depends(get_context),
    pipeline: SensorPipeline = Depends(get_pipeline),
) -> ReadingResponse:
    start_time = time.perf_counter()
    message = parse_reading_message(request.model_dump())

    try:
        outcome = await pipeline.process_reading(
            message.sensor_type,
            message.value,
            resolver=context.caller_resolver(principal.principal_id),
            timestamp=message.timestamp,
            source="api",
        )
    except (HTTPException, MonitoringError):
        raise
    except Exception as e:
        logger.error(f"Failed to process reading: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to process reading",
        )

    latency_ms = (time.perf_counter() - start_time) * 1000
    logger.info(
        "Reading submitted",
        sensor_type=message.sensor_type.value,
        severity=outcome.severity.value,
        dispatch=outcome.dispatch.status.value,
        latency_ms=round(latency_ms, 2),
    )
    return ReadingResponse(**_to_result(outcome).model_dump(), latency_ms=round(latency_ms, 2))


@router.post(
    "/readings/batch",
    response_model=BatchReadingResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_ERROR_RESPONSES,
    summary="Submit a multi-sensor payload",
    description=(
        "Store one reading per sensor value in the payload. Each sensor type "
        "is processed independently; per-type failures are listed in `errors`."
    ),
)
async def create_reading_batch(
    request: BatchReadingRequest,
    principal: Principal = Depends(get_current_principal),
    context: AppContext = Depends(get_context),
    pipeline: SensorPipeline = Depends(get_pipeline),
) -> BatchReadingResponse:
    start_time = time.perf_counter()
    message = parse_batch_message(request.model_dump(exclude_unset=True))

    outcome = await pipeline.process_batch(
        message.values,
        resolver=context.caller_resolver(principal.principal_id),
        timestamp=message.timestamp,
        source="api",
    )

    latency_ms = (time.perf_counter() - start_time) * 1000
    logger.info(
        "Reading batch submitted",
        readings=len(outcome.outcomes),
        failed=len(outcome.errors),
        latency_ms=round(latency_ms, 2),
    )
    return BatchReadingResponse(
        results=[_to_result(o) for o in outcome.outcomes],
        errors=[
            BatchReadingError(type=sensor_type.value, error=str(error))
            for sensor_type, error in outcome.errors.items()
        ],
        latency_ms=round(latency_ms, 2),
    )


@router.get(
    "/readings",
    response_model=ReadingsResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Missing or invalid token"},
        503: {"model": ErrorResponse, "description": "Storage unavailable"},
    },
    summary="List recent readings",
    description="Most recent readings first. An empty store returns an empty list.",
)
async def list_readings(
    limit: int | None = Query(default=None, ge=1, le=1000, description="Maximum readings to return"),
    principal: Principal = Depends(get_current_principal),
    context: AppContext = Depends(get_context),
    reading_repo: ReadingRepository = Depends(get_reading_repository),
) -> ReadingsResponse:
    start_time = time.perf_counter()
    limit = limit or context.settings.readings_default_limit

    readings = await reading_repo.get_recent(limit=limit)
    items = [ReadingItem.from_reading(r) for r in readings]

    latency_ms = (time.perf_counter() - start_time) * 1000
    logger.info("Readings listed", total=len(items), latency_ms=round(latency_ms, 2))
    return ReadingsResponse(readings=items, total=len(items), latency_ms=round(latency_ms, 2))
