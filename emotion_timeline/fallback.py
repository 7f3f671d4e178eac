"""Fallback record construction for emotion timelines.

When normalization fails unexpectedly, the dashboard still needs a record
it can render. build_fallback produces a minimal but internally consistent
timeline from whatever parts of the raw record are usable.
"""

import logging
import math
from collections.abc import Callable, Mapping
from copy import deepcopy
from datetime import date
from typing import Any

from .schema import NormalizedEmotionTimeline
from .utils import is_sequence, round_half_up, to_number, today_string


logger = logging.getLogger(__name__)

FALLBACK_TIME_POINT = "12:00"
FALLBACK_INSIGHT = "analysis in progress, please check back later"


def build_fallback(
    raw: Any,
    *,
    today: Callable[[], date] | None = None,
) -> NormalizedEmotionTimeline | None:
    """Build a minimal, internally consistent timeline from a raw record.

    Time points and scores are reused from the raw record where they are
    sequences; otherwise a single "12:00" slot scored 0 is used. Hours are
    the fixed defaults 8/4/12, insights a single placeholder, and there are
    no emotion changes.

    Args:
        raw: The raw record that normalize() failed on.
        today: Optional clock used when the date must be defaulted.

    Returns:
        Fallback timeline, or None if construction itself failed.
    """
    logger.warning("Building fallback emotion timeline")

    try:
        source = raw if isinstance(raw, Mapping) else {}

        raw_points = source.get("timePoints")
        raw_scores = source.get("emotionScores")

        if is_sequence(raw_points):
            time_points = [deepcopy(point) for point in raw_points]
            if is_sequence(raw_scores):
                scores = [_best_effort_score(score) for score in raw_scores]
            else:
                scores = [0] * len(time_points)
        else:
            time_points = [FALLBACK_TIME_POINT]
            scores = [0]

        # Same truncation rule as the normal path.
        if len(time_points) != len(scores):
            common = min(len(time_points), len(scores))
            time_points = time_points[:common]
            scores = scores[:common]

        raw_date = source.get("date")
        if isinstance(raw_date, str) and raw_date.strip():
            date_value = raw_date
        else:
            date_value = today_string(today)

        timeline = NormalizedEmotionTimeline(
            time_points=time_points,
            emotion_scores=scores,
            average_score=0.0,
            positive_hours=8,
            negative_hours=4,
            neutral_hours=12,
            insights=[FALLBACK_INSIGHT],
            emotion_changes=[],
            date=date_value,
        )
    except Exception:
        logger.error("Fallback emotion timeline could not be built", exc_info=True)
        return None

    logger.info(
        "Fallback emotion timeline built: date=%s slots=%d",
        timeline.date,
        timeline.slot_count,
    )
    return timeline


def _best_effort_score(value: Any) -> int | None:
    """Coerce a score without recording corrections; unusable values become 0."""
    if value is None:
        return None
    if isinstance(value, str) and value.strip().lower() == "nan":
        return 0

    number = to_number(value)
    if math.isnan(number):
        return 0
    if math.isinf(number):
        return 100 if number > 0 else -100
    return max(-100, min(100, int(round_half_up(number))))
