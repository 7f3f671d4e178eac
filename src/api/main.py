"""FastAPI application for the emotion timeline dashboard feed.

This module provides the main FastAPI application with endpoints for:
- GET /health: Service health check
- GET /emotion-timeline/{device_id}/{date}: Normalized timeline for a day
- PUT /emotion-timeline/{device_id}/{date}: Store a raw timeline and
  return its normalized form
- POST /emotion-timeline/normalize: Normalize a posted raw timeline

Example:
    Run with uvicorn:

    $ uvicorn src.api.main:app --host 0.0.0.0 --port 8000
"""

import logging
import re
import time
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Annotated, Any

from fastapi import Body, Depends, FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware

from emotion_timeline import NormalizationResult, compute_stats, normalize_with_report
from vault import EMOTION_TIMELINE, LogStore, VaultClient

from .config import Settings, get_settings
from .deps import get_app_settings, get_log_store, get_vault_client, init_app_state
from .errors import (
    InternalError,
    InvalidInputError,
    NoDataError,
    register_exception_handlers,
)
from .logging import add_middleware, setup_logging
from .schemas import (
    CorrectionSchema,
    EmotionTimelineSchema,
    HealthResponse,
    TimelineResponse,
    TimelineStatsSchema,
)


logger = logging.getLogger(__name__)

_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


# =============================================================================
# Application Lifecycle
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events.

    Startup:
        - Initialize logging
    """
    settings: Settings = app.state.settings

    setup_logging(settings.log_level)
    logger.info(
        "Starting %s v%s data_source=%s",
        settings.app_name,
        settings.app_version,
        settings.data_source,
    )

    yield

    logger.info("Application shutdown")


# =============================================================================
# Application Factory
# =============================================================================


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Application settings. If None, loads from environment.

    Returns:
        Configured FastAPI application.
    """
    if settings is None:
        settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Emotion timeline feed - validated, normalized per-device daily emotion timelines.",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    init_app_state(app, settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add custom middleware (request ID, timing)
    add_middleware(app)

    register_exception_handlers(app)

    register_routes(app)

    return app


def register_routes(app: FastAPI) -> None:
    """Register all API routes on the application.

    Args:
        app: The FastAPI application.
    """

    # =========================================================================
    # Health Endpoint
    # =========================================================================

    @app.get(
        "/health",
        response_model=HealthResponse,
        tags=["System"],
        summary="Health check",
        description="Check service health and data source.",
    )
    def health(
        settings: Annotated[Settings, Depends(get_app_settings)],
    ) -> HealthResponse:
        """Health check endpoint."""
        return HealthResponse(
            status="ok",
            version=settings.app_version,
            data_source=settings.data_source,
        )

    # =========================================================================
    # Timeline Endpoints
    # =========================================================================

    @app.get(
        "/emotion-timeline/{device_id}/{date}",
        response_model=TimelineResponse,
        tags=["Timeline"],
        summary="Get normalized emotion timeline",
        description="Read the raw timeline for a device and day and return it normalized.",
    )
    def get_timeline(
        device_id: str,
        date: str,
        settings: Annotated[Settings, Depends(get_app_settings)],
        store: Annotated[LogStore, Depends(get_log_store)],
        client: Annotated[VaultClient, Depends(get_vault_client)],
        include_corrections: Annotated[
            bool | None,
            Query(description="Include the correction trail in the response"),
        ] = None,
    ) -> TimelineResponse:
        """Return the normalized emotion timeline for a device and day.

        Args:
            device_id: Device identifier.
            date: Day as YYYY-MM-DD.
            include_corrections: Include corrections. If None, uses default
                from settings.

        Returns:
            TimelineResponse with the normalized timeline and statistics.
        """
        _validate_date(date)

        if settings.data_source == "vault":
            raw = client.fetch_emotion_timeline(device_id, date)
        else:
            raw = store.get_emotion_timeline(device_id, date)

        if raw is None:
            raise NoDataError(details={"device_id": device_id, "date": date})

        return _normalize_to_response(raw, device_id, settings, include_corrections)

    @app.put(
        "/emotion-timeline/{device_id}/{date}",
        response_model=TimelineResponse,
        tags=["Timeline"],
        summary="Store a raw emotion timeline",
        description="Store the raw timeline in the local log and return it normalized.",
    )
    def put_timeline(
        device_id: str,
        date: str,
        raw: Annotated[dict[str, Any], Body(description="Raw emotion timeline")],
        settings: Annotated[Settings, Depends(get_app_settings)],
        store: Annotated[LogStore, Depends(get_log_store)],
        include_corrections: Annotated[
            bool | None,
            Query(description="Include the correction trail in the response"),
        ] = None,
    ) -> TimelineResponse:
        """Store a raw timeline as received and return the normalized form.

        The raw record is stored unmodified so that later changes to the
        normalization rules apply to it too.
        """
        _validate_date(date)
        store.save_log_data(device_id, date, EMOTION_TIMELINE, raw)
        return _normalize_to_response(raw, device_id, settings, include_corrections)

    @app.post(
        "/emotion-timeline/normalize",
        response_model=TimelineResponse,
        tags=["Timeline"],
        summary="Normalize a raw emotion timeline",
        description="Normalize a posted raw timeline without storing it.",
    )
    def normalize_timeline(
        raw: Annotated[Any, Body(description="Raw emotion timeline")],
        settings: Annotated[Settings, Depends(get_app_settings)],
        include_corrections: Annotated[
            bool | None,
            Query(description="Include the correction trail in the response"),
        ] = None,
    ) -> TimelineResponse:
        """Normalize a posted raw timeline."""
        return _normalize_to_response(raw, None, settings, include_corrections)


# =============================================================================
# Helpers
# =============================================================================


def _validate_date(date: str) -> None:
    """Reject dates that are not real YYYY-MM-DD days."""
    try:
        if not _DATE_PATTERN.match(date):
            raise ValueError(date)
        datetime.strptime(date, "%Y-%m-%d")
    except ValueError:
        raise InvalidInputError(
            message=f"date must be YYYY-MM-DD, got {date!r}",
            details={"date": date},
        ) from None


def _normalize_to_response(
    raw: Any,
    device_id: str | None,
    settings: Settings,
    include_corrections: bool | None,
) -> TimelineResponse:
    """Normalize a raw record and build the endpoint response."""
    if include_corrections is None:
        include_corrections = settings.include_corrections_default

    start_time = time.perf_counter()
    result: NormalizationResult = normalize_with_report(raw)
    normalize_ms = (time.perf_counter() - start_time) * 1000

    logger.info(
        "Timeline normalized in %.2fms",
        normalize_ms,
        extra={
            "device_id": device_id or "-",
            "status": result.status,
            "corrections": len(result.corrections),
        },
    )

    if result.status == "rejected":
        raise NoDataError(
            details={
                "device_id": device_id,
                "missing": result.error.details.get("missing") if result.error else None,
            },
        )
    if result.timeline is None:
        raise InternalError(
            message="Timeline could not be normalized",
            details={"device_id": device_id},
        )

    stats = compute_stats(result.timeline, expected_slots=settings.expected_slots)

    corrections = None
    if include_corrections:
        corrections = [CorrectionSchema(**c.to_dict()) for c in result.corrections]

    return TimelineResponse(
        device_id=device_id,
        status=result.status,
        timeline=EmotionTimelineSchema.model_validate(result.timeline.to_dict()),
        stats=TimelineStatsSchema(**stats.to_dict()),
        corrections=corrections,
    )


# =============================================================================
# Application Instance
# =============================================================================


app = create_app()
