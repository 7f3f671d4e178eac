"""Dashboard-side views of a normalized emotion timeline.

The statistics panel and the line chart both read a normalized timeline;
this module derives what they show. Nothing here feeds back into
normalization.

Example:
    >>> from emotion_timeline import normalize
    >>> from emotion_timeline.summary import compute_stats
    >>> timeline = normalize({"timePoints": ["00:00", "00:30"], "emotionScores": [10, None]})
    >>> compute_stats(timeline, expected_slots=2).coverage_percent
    50.0
"""

from dataclasses import dataclass, field
from typing import Any, Literal

from .schema import NormalizedEmotionTimeline
from .utils import round_half_up


QualityLabel = Literal["none", "low", "medium", "high"]

# One slot every 30 minutes.
DEFAULT_EXPECTED_SLOTS = 48

HIGH_COVERAGE_PERCENT = 80.0
MEDIUM_COVERAGE_PERCENT = 50.0


@dataclass
class TimelineStats:
    """Derived statistics for the dashboard statistics panel.

    Attributes:
        total_slots: Number of time slots in the timeline.
        measured_slots: Slots carrying a score.
        gap_slots: Slots without a score.
        expected_slots: Slots a fully covered day would have.
        coverage_percent: measured_slots as a percentage of expected_slots.
        quality: Coverage bucket ("none", "low", "medium" or "high").
        min_score: Lowest measured score, if any.
        max_score: Highest measured score, if any.
        average_score: The timeline's average score.
        hours: Hour buckets keyed by wire name.
    """

    total_slots: int
    measured_slots: int
    gap_slots: int
    expected_slots: int
    coverage_percent: float
    quality: QualityLabel
    min_score: int | None
    max_score: int | None
    average_score: float
    hours: dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "total_slots": self.total_slots,
            "measured_slots": self.measured_slots,
            "gap_slots": self.gap_slots,
            "expected_slots": self.expected_slots,
            "coverage_percent": self.coverage_percent,
            "quality": self.quality,
            "min_score": self.min_score,
            "max_score": self.max_score,
            "average_score": self.average_score,
            "hours": dict(self.hours),
        }


@dataclass
class ChartSeries:
    """Line chart input built from a timeline.

    Attributes:
        labels: Categorical x-axis labels (the time points).
        values: y-values; None leaves a gap in the line.
        event_indices: Indices of slots that have an emotion change event.
        y_min: Lower bound of the y-axis.
        y_max: Upper bound of the y-axis.
    """

    labels: list[Any]
    values: list[int | None]
    event_indices: list[int] = field(default_factory=list)
    y_min: int = -100
    y_max: int = 100

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "labels": list(self.labels),
            "values": list(self.values),
            "event_indices": list(self.event_indices),
            "y_min": self.y_min,
            "y_max": self.y_max,
        }


def coverage_quality(coverage_percent: float, measured_slots: int) -> QualityLabel:
    """Bucket a coverage percentage into a quality label."""
    if measured_slots == 0:
        return "none"
    if coverage_percent >= HIGH_COVERAGE_PERCENT:
        return "high"
    if coverage_percent >= MEDIUM_COVERAGE_PERCENT:
        return "medium"
    return "low"


def compute_stats(
    timeline: NormalizedEmotionTimeline,
    expected_slots: int = DEFAULT_EXPECTED_SLOTS,
) -> TimelineStats:
    """Compute coverage and score statistics for a normalized timeline.

    Args:
        timeline: Normalized timeline.
        expected_slots: Slots a fully covered day would have.

    Returns:
        TimelineStats for the statistics panel.

    Raises:
        ValueError: If expected_slots is not positive.
    """
    if expected_slots < 1:
        raise ValueError(f"expected_slots must be >= 1, got {expected_slots}")

    measured = [score for score in timeline.emotion_scores if score is not None]
    coverage = round_half_up(100.0 * len(measured) / expected_slots, 1)
    coverage = min(coverage, 100.0)

    return TimelineStats(
        total_slots=timeline.slot_count,
        measured_slots=len(measured),
        gap_slots=timeline.gap_count,
        expected_slots=expected_slots,
        coverage_percent=coverage,
        quality=coverage_quality(coverage, len(measured)),
        min_score=min(measured) if measured else None,
        max_score=max(measured) if measured else None,
        average_score=timeline.average_score,
        hours={
            "positiveHours": timeline.positive_hours,
            "negativeHours": timeline.negative_hours,
            "neutralHours": timeline.neutral_hours,
        },
    )


def build_chart_series(timeline: NormalizedEmotionTimeline) -> ChartSeries:
    """Build line chart input from a normalized timeline.

    Every slot whose time label matches an emotion change event is marked,
    including gap slots, so the chart can highlight it. Gaps stay None.
    """
    event_times = {change.time for change in timeline.emotion_changes}
    event_indices = [
        index
        for index, label in enumerate(timeline.time_points)
        if isinstance(label, str) and label in event_times
    ]

    return ChartSeries(
        labels=list(timeline.time_points),
        values=list(timeline.emotion_scores),
        event_indices=event_indices,
    )
