"""
FastAPI application factory.
"""

import time
import uuid
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.api.routes import health, notifications, readings, thresholds
from src.config.settings import get_settings
from src.errors import FieldViolation, StorageError, ValidationError
from src.observability.logging import bind_context, clear_context
from src.services.context import AppContext

logger = structlog.get_logger(__name__)


def _validation_response(detail: str, violations: list[FieldViolation]) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={
            "detail": detail,
            "error_type": "validation",
            "errors": [v.to_dict() for v in violations],
        },
    )


def create_app(context: AppContext | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        context: Process context to serve from. When omitted one is built
            from settings and connected/closed by the app lifespan; an
            injected context is left to its owner.

    Returns:
        Configured FastAPI application
    """
    settings = get_settings()
    owns_context = context is None
    app_context = context or AppContext.from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Sensor monitor API starting up")
        if owns_context:
            await app_context.connect()
        yield
        logger.info("Sensor monitor API shutting down")
        if owns_context:
            await app_context.close()

    openapi_tags = [
        {"name": "health", "description": "Service health checks"},
        {"name": "readings", "description": "Sensor reading submission and history"},
        {"name": "thresholds", "description": "Alert threshold configuration"},
        {"name": "notifications", "description": "Alerts addressed to the caller"},
    ]

    app = FastAPI(
        title="Sensor Monitor API",
        description="""
Ingests gas, temperature and sound readings, classifies them against
configurable thresholds, and notifies users of warning and danger states.

## Authentication

Requires `Authorization: Bearer <token>` for all requests except `/health`.
Replacing thresholds requires the admin role.
        """,
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
        openapi_tags=openapi_tags,
    )
    app.state.context = app_context

    # CORS (origins from CORS_ORIGINS env var, comma-separated)
    cors_origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials="*" not in cors_origins,
        allow_methods=["GET", "POST", "PUT", "OPTIONS"],
        allow_headers=["*"],
    )

    # Request logging and correlation ID
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        request_id = (
            request.headers.get("X-Request-ID")
            or request.headers.get("X-Correlation-ID")
            or str(uuid.uuid4())
        )
        bind_context(request_id=request_id)
        start_time = time.perf_counter()

        try:
            response = await call_next(request)
            duration = time.perf_counter() - start_time
            response.headers["X-Request-ID"] = request_id

            logger.info(
                "HTTP request",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round(duration * 1000, 2),
            )
            return response
        finally:
            clear_context()

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        logger.info("Rejected invalid input", errors=[v.to_dict() for v in exc.violations])
        return _validation_response(str(exc), exc.violations)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        violations = [
            FieldViolation(
                field=".".join(str(p) for p in err.get("loc", ()) if p != "body") or "body",
                reason=err.get("msg", "invalid"),
            )
            for err in exc.errors()
        ]
        return _validation_response("Invalid request", violations)

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError):
        logger.error("Storage unavailable", operation=exc.operation, error=str(exc.cause))
        return JSONResponse(
            status_code=503,
            content={"detail": "Storage unavailable, retry later", "error_type": "storage"},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error", "error_type": "internal"},
        )

    app.include_router(health.router, tags=["health"])
    app.include_router(readings.router, tags=["readings"])
    app.include_router(thresholds.router, tags=["thresholds"])
    app.include_router(notifications.router, tags=["notifications"])

    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "service": "Sensor Monitor API",
            "version": "0.1.0",
            "docs": "/docs",
        }

    return app
