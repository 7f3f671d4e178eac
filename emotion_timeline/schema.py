"""Schema definitions for normalized emotion timeline data.

This module defines the data structures produced by the normalizer: the
validated timeline record, individual emotion change events, the correction
trail, and the result wrapper that distinguishes a clean normalization from
a fallback or a rejection.

Example:
    >>> from emotion_timeline.schema import NormalizedEmotionTimeline
    >>> timeline = NormalizedEmotionTimeline(
    ...     time_points=["09:00", "09:30"],
    ...     emotion_scores=[55, None],
    ...     average_score=55.0,
    ...     positive_hours=8,
    ...     negative_hours=4,
    ...     neutral_hours=12,
    ...     insights=["calm morning"],
    ...     emotion_changes=[],
    ...     date="2025-03-01",
    ... )
    >>> timeline.to_dict()["emotionScores"]
    [55, None]
"""

import math
from copy import deepcopy
from dataclasses import dataclass, field
from typing import Any, Literal

from .errors import NormalizationError


# Wire keys of the emotion-timeline artifact, in output order.
RECOGNIZED_KEYS: tuple[str, ...] = (
    "timePoints",
    "emotionScores",
    "averageScore",
    "positiveHours",
    "negativeHours",
    "neutralHours",
    "insights",
    "emotionChanges",
    "date",
)

REQUIRED_KEYS: tuple[str, ...] = ("timePoints", "emotionScores")

NormalizationStatus = Literal["ok", "fallback", "rejected"]


@dataclass
class EmotionChange:
    """A notable emotion change event within the day.
    
    Attributes:
        time: Time label of the event (e.g. "09:30").
        event: Free-text description of what happened.
        score: Integer score change attributed to the event.
    """
    
    time: str
    event: str
    score: int
    
    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {"time": self.time, "event": self.event, "score": self.score}


@dataclass
class NormalizedEmotionTimeline:
    """A validated, internally consistent emotion timeline for one day.
    
    Attributes:
        time_points: Ordered time labels, index-aligned with emotion_scores.
        emotion_scores: Integer scores in [-100, 100], or None for a slot
            without a measurement.
        average_score: Mean of the measured scores, one decimal place.
        positive_hours: Hours spent in a positive state.
        negative_hours: Hours spent in a negative state.
        neutral_hours: Hours spent in a neutral state.
        insights: Non-empty list of non-blank insight strings.
        emotion_changes: Well-formed emotion change events, original order.
        date: Day of the timeline as YYYY-MM-DD.
    """
    
    time_points: list[Any]
    emotion_scores: list[int | None]
    average_score: float
    positive_hours: float
    negative_hours: float
    neutral_hours: float
    insights: list[str]
    emotion_changes: list[EmotionChange]
    date: str
    
    def to_dict(self) -> dict[str, Any]:
        """Convert to a camelCase dictionary matching the wire format.
        
        Returns:
            New dictionary; no container is shared with this instance.
        """
        return {
            "timePoints": deepcopy(self.time_points),
            "emotionScores": list(self.emotion_scores),
            "averageScore": self.average_score,
            "positiveHours": self.positive_hours,
            "negativeHours": self.negative_hours,
            "neutralHours": self.neutral_hours,
            "insights": list(self.insights),
            "emotionChanges": [change.to_dict() for change in self.emotion_changes],
            "date": self.date,
        }
    
    @property
    def slot_count(self) -> int:
        """Return number of time slots."""
        return len(self.time_points)
    
    @property
    def valid_score_count(self) -> int:
        """Return number of slots carrying a measurement."""
        return sum(1 for score in self.emotion_scores if score is not None)
    
    @property
    def gap_count(self) -> int:
        """Return number of slots without a measurement."""
        return self.slot_count - self.valid_score_count


@dataclass
class Correction:
    """A single automatic repair applied during normalization.
    
    Attributes:
        field: Wire key of the repaired field.
        original_value: Value before the repair.
        corrected_value: Value after the repair.
        reason: Short machine-readable reason code (e.g. "range_clamp").
        index: Position within a sequence field, if applicable.
    """
    
    field: str
    original_value: Any
    corrected_value: Any
    reason: str
    index: int | None = None
    
    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {
            "field": self.field,
            "original_value": _json_safe(self.original_value),
            "corrected_value": _json_safe(self.corrected_value),
            "reason": self.reason,
        }
        if self.index is not None:
            result["index"] = self.index
        return result
    
    def describe(self) -> str:
        """Return a one-line description for log output."""
        location = f"{self.field}[{self.index}]" if self.index is not None else self.field
        return (
            f"{location}: {self.original_value!r} -> {self.corrected_value!r} "
            f"({self.reason})"
        )


@dataclass
class NormalizationResult:
    """Outcome of normalizing one raw emotion timeline.
    
    Attributes:
        status: "ok" for a normal run, "fallback" when the fallback record
            was used, "rejected" when required fields were missing.
        timeline: Normalized record, or None when rejected or when the
            fallback could not be built.
        corrections: Every repair applied, in the order applied.
        error: Reason for a rejection or fallback, if any.
    """
    
    status: NormalizationStatus
    timeline: NormalizedEmotionTimeline | None
    corrections: list[Correction] = field(default_factory=list)
    error: NormalizationError | None = None
    
    @property
    def ok(self) -> bool:
        """Return True if normalization completed without falling back."""
        return self.status == "ok"
    
    @property
    def is_fallback(self) -> bool:
        """Return True if the fallback record was used."""
        return self.status == "fallback"
    
    @property
    def has_data(self) -> bool:
        """Return True if there is a timeline to render."""
        return self.timeline is not None
    
    def to_dict(self, include_corrections: bool = True) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization.
        
        Args:
            include_corrections: Whether to include the correction trail.
            
        Returns:
            Dictionary representation.
        """
        result: dict[str, Any] = {
            "status": self.status,
            "timeline": self.timeline.to_dict() if self.timeline is not None else None,
        }
        if include_corrections:
            result["corrections"] = [c.to_dict() for c in self.corrections]
        if self.error is not None:
            result["error"] = {"code": self.error.code, "message": self.error.message}
        return result


def _json_safe(value: Any) -> Any:
    """Return value if it is a plain JSON scalar, else its repr."""
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, float):
        # NaN and infinities are not valid JSON
        return value if math.isfinite(value) else repr(value)
    if isinstance(value, (list, tuple)):
        return [_json_safe(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _json_safe(v) for k, v in value.items()}
    return repr(value)
