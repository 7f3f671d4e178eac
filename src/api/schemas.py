"""Pydantic schemas for API request/response models.

Timeline payloads keep the dashboard's camelCase wire keys through field
aliases; everything else is snake_case.

Example:
    >>> from src.api.schemas import EmotionTimelineSchema
    >>> schema = EmotionTimelineSchema.model_validate(timeline.to_dict())
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Health Endpoint
# =============================================================================


class HealthResponse(BaseModel):
    """Response schema for /health endpoint."""

    status: str = Field(
        default="ok",
        description="Service status",
        examples=["ok"],
    )
    version: str = Field(
        description="Service version",
        examples=["1.0.0"],
    )
    data_source: str = Field(
        description="Where raw timelines are read from",
        examples=["local", "vault"],
    )


# =============================================================================
# Timeline Payloads
# =============================================================================


class EmotionChangeSchema(BaseModel):
    """Schema for a single emotion change event."""

    time: str = Field(description="Time label of the event", examples=["09:30"])
    event: str = Field(description="What happened", examples=["conversation with family"])
    score: int = Field(description="Score change attributed to the event", examples=[12])


class EmotionTimelineSchema(BaseModel):
    """Schema for a normalized emotion timeline (camelCase wire keys)."""

    model_config = ConfigDict(populate_by_name=True)

    time_points: list[Any] = Field(
        alias="timePoints",
        description="Time labels, index-aligned with emotionScores",
        examples=[["09:00", "09:30"]],
    )
    emotion_scores: list[int | None] = Field(
        alias="emotionScores",
        description="Scores in [-100, 100]; null marks a slot without measurement",
        examples=[[55, None]],
    )
    average_score: float = Field(
        alias="averageScore",
        description="Average of the measured scores, one decimal",
        examples=[27.5],
    )
    positive_hours: float = Field(alias="positiveHours", examples=[8])
    negative_hours: float = Field(alias="negativeHours", examples=[4])
    neutral_hours: float = Field(alias="neutralHours", examples=[12])
    insights: list[str] = Field(
        description="Insight texts",
        examples=[["insufficient analysis data"]],
    )
    emotion_changes: list[EmotionChangeSchema] = Field(
        alias="emotionChanges",
        description="Notable emotion change events",
    )
    date: str = Field(description="Day of the timeline", examples=["2025-03-01"])


class CorrectionSchema(BaseModel):
    """Schema for a single normalization correction."""

    field: str = Field(description="Wire key of the repaired field", examples=["emotionScores"])
    original_value: Any = Field(default=None, description="Value before the repair")
    corrected_value: Any = Field(default=None, description="Value after the repair")
    reason: str = Field(description="Reason code", examples=["range_clamp"])
    index: int | None = Field(default=None, description="Position within a sequence field")


class TimelineStatsSchema(BaseModel):
    """Schema for derived coverage statistics."""

    total_slots: int = Field(ge=0, examples=[48])
    measured_slots: int = Field(ge=0, examples=[40])
    gap_slots: int = Field(ge=0, examples=[8])
    expected_slots: int = Field(ge=1, examples=[48])
    coverage_percent: float = Field(ge=0.0, le=100.0, examples=[83.3])
    quality: Literal["none", "low", "medium", "high"] = Field(examples=["high"])
    min_score: int | None = Field(default=None, examples=[-40])
    max_score: int | None = Field(default=None, examples=[75])
    average_score: float = Field(examples=[12.4])
    hours: dict[str, float] = Field(
        description="Hour buckets keyed by wire name",
        examples=[{"positiveHours": 8, "negativeHours": 4, "neutralHours": 12}],
    )


class TimelineResponse(BaseModel):
    """Response schema for the emotion timeline endpoints."""

    device_id: str | None = Field(
        default=None,
        description="Device the timeline belongs to (null for posted data)",
        examples=["device-1"],
    )
    status: Literal["ok", "fallback"] = Field(
        description="Whether normalization completed or used the fallback record",
        examples=["ok"],
    )
    timeline: EmotionTimelineSchema = Field(description="Normalized timeline")
    stats: TimelineStatsSchema = Field(description="Coverage statistics")
    corrections: list[CorrectionSchema] | None = Field(
        default=None,
        description="Repairs applied (if include_corrections=true)",
    )


# =============================================================================
# Error Response
# =============================================================================


class ErrorDetail(BaseModel):
    """Detailed error information."""

    code: str = Field(
        description="Error code for programmatic handling",
        examples=["NO_DATA", "INVALID_INPUT"],
    )
    message: str = Field(
        description="Human-readable error message",
        examples=["No measurement data for this date"],
    )
    details: dict[str, Any] | None = Field(
        default=None,
        description="Additional error context",
    )


class ApiErrorResponse(BaseModel):
    """Standard error response wrapper."""

    error: ErrorDetail = Field(
        description="Error details",
    )
