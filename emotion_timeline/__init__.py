"""Emotion timeline normalization for the family monitoring dashboard.

This package provides:
- Normalization of raw, loosely typed emotion-timeline records
- A correction trail describing every repair applied
- A fallback record for inputs the normal path cannot handle
- Coverage statistics and chart series for the dashboard

Example:
    >>> from emotion_timeline import normalize_with_report
    >>> result = normalize_with_report({
    ...     "timePoints": ["09:00", "09:30"],
    ...     "emotionScores": [55.4, "NaN"],
    ...     "date": "2025-03-01",
    ... })
    >>> result.timeline.emotion_scores
    [55, 0]
    >>> result.timeline.average_score
    27.5
"""

from .errors import NormalizationError, TimelineError
from .fallback import FALLBACK_INSIGHT, build_fallback
from .normalizer import (
    AVERAGE_DIVERGENCE_LIMIT,
    DEFAULT_HOURS,
    PLACEHOLDER_INSIGHT,
    normalize,
    normalize_with_report,
)
from .schema import (
    RECOGNIZED_KEYS,
    Correction,
    EmotionChange,
    NormalizationResult,
    NormalizedEmotionTimeline,
)
from .summary import ChartSeries, TimelineStats, build_chart_series, compute_stats


__all__ = [
    # Main API
    "normalize",
    "normalize_with_report",
    "build_fallback",
    # Schema
    "NormalizedEmotionTimeline",
    "EmotionChange",
    "Correction",
    "NormalizationResult",
    "RECOGNIZED_KEYS",
    # Dashboard views
    "TimelineStats",
    "ChartSeries",
    "compute_stats",
    "build_chart_series",
    # Constants
    "AVERAGE_DIVERGENCE_LIMIT",
    "DEFAULT_HOURS",
    "PLACEHOLDER_INSIGHT",
    "FALLBACK_INSIGHT",
    # Errors
    "TimelineError",
    "NormalizationError",
]
