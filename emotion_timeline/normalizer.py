"""Normalization of raw emotion timeline records.

This module turns an untrusted, loosely typed emotion-timeline JSON object
into a NormalizedEmotionTimeline whose arrays are index-aligned and whose
numbers are in range. Every repair is recorded as a Correction rather than
raised, so the dashboard always has something plausible to render.

Pipeline Stages:
    0. project_keys: keep the nine recognized keys.
    1. check_required: timePoints and emotionScores must be present.
    2. coerce_scores: numeric coercion, rounding and clamping.
    3. reconcile_lengths: truncate both arrays to the shorter length.
    4. recompute_average: replace missing or divergent averages.
    5. repair_hours: default and rebalance the hour buckets.
    6. repair_insights: keep non-blank strings or use a placeholder.
    7. repair_changes: drop malformed emotion change events.
    8. repair_date: default to today.

An unexpected exception in any stage is caught and answered with the
fallback record from build_fallback.

Example:
    >>> from emotion_timeline import normalize
    >>> timeline = normalize({"timePoints": ["09:00"], "emotionScores": ["12.6"]})
    >>> timeline.emotion_scores
    [13]
"""

import logging
import math
from collections.abc import Callable, Mapping
from copy import deepcopy
from datetime import date
from typing import Any

from .errors import NormalizationError
from .fallback import build_fallback
from .schema import (
    RECOGNIZED_KEYS,
    REQUIRED_KEYS,
    Correction,
    EmotionChange,
    NormalizationResult,
    NormalizedEmotionTimeline,
)
from .utils import (
    is_finite_number,
    is_sequence,
    parse_float,
    round_half_up,
    to_number,
    today_string,
)


logger = logging.getLogger(__name__)

CorrectionSink = Callable[[Correction], None]

SCORE_MIN = -100
SCORE_MAX = 100

# An input averageScore further than this from the recomputed mean is
# treated as corrupt.
AVERAGE_DIVERGENCE_LIMIT = 10.0

HOURS_PER_DAY = 24
HOURS_TOLERANCE = 1
DEFAULT_HOURS: dict[str, int] = {
    "positiveHours": 8,
    "negativeHours": 4,
    "neutralHours": 12,
}

PLACEHOLDER_INSIGHT = "insufficient analysis data"


# =============================================================================
# Public API
# =============================================================================


def normalize(
    raw: Any,
    *,
    sink: CorrectionSink | None = None,
    today: Callable[[], date] | None = None,
) -> NormalizedEmotionTimeline | None:
    """Normalize a raw emotion timeline.

    Args:
        raw: Any JSON-deserializable value.
        sink: Optional callable receiving each Correction as it is made.
        today: Optional clock used when the date must be defaulted.

    Returns:
        The normalized timeline, or None when timePoints or emotionScores
        is missing (or, in the rare case, when even the fallback fails).
    """
    return normalize_with_report(raw, sink=sink, today=today).timeline


def normalize_with_report(
    raw: Any,
    *,
    sink: CorrectionSink | None = None,
    today: Callable[[], date] | None = None,
) -> NormalizationResult:
    """Normalize a raw emotion timeline and report how it went.

    Never raises. The input is not modified and shares no containers
    with the returned timeline. Exceptions raised by the sink are logged
    and ignored.

    Returns:
        NormalizationResult with status "ok", "fallback" or "rejected".
    """
    recorder = _CorrectionRecorder(sink)

    try:
        projected, ignored = project_keys(raw)
        recorder.extend(ignored)

        missing = check_required(projected)
        if missing:
            logger.warning(
                "Emotion timeline rejected: missing required fields %s",
                ", ".join(missing),
            )
            return NormalizationResult(
                status="rejected",
                timeline=None,
                corrections=recorder.corrections,
                error=NormalizationError(
                    message="Required fields are missing",
                    code="MISSING_FIELDS",
                    details={"missing": missing},
                ),
            )

        scores = recorder.take(coerce_scores(projected["emotionScores"]))
        time_points, scores, fixes = reconcile_lengths(projected["timePoints"], scores)
        recorder.extend(fixes)
        average_score = recorder.take(recompute_average(scores, projected.get("averageScore")))
        hours = recorder.take(repair_hours(projected))
        insights = recorder.take(repair_insights(projected.get("insights")))
        changes = recorder.take(repair_changes(projected.get("emotionChanges")))
        date_value = recorder.take(repair_date(projected.get("date"), today))

        timeline = NormalizedEmotionTimeline(
            time_points=time_points,
            emotion_scores=scores,
            average_score=average_score,
            positive_hours=hours["positiveHours"],
            negative_hours=hours["negativeHours"],
            neutral_hours=hours["neutralHours"],
            insights=insights,
            emotion_changes=changes,
            date=date_value,
        )
    except Exception as exc:
        logger.error(
            "Emotion timeline normalization failed, using fallback: %s",
            exc,
            exc_info=True,
        )
        return _fallback_result(raw, exc, today, sink)

    logger.info(
        "Emotion timeline normalized: date=%s slots=%d measured=%d corrections=%d",
        timeline.date,
        timeline.slot_count,
        timeline.valid_score_count,
        len(recorder.corrections),
    )
    return NormalizationResult(status="ok", timeline=timeline, corrections=recorder.corrections)


# =============================================================================
# Stages
# =============================================================================


def project_keys(raw: Any) -> tuple[dict[str, Any], list[Correction]]:
    """Keep only the recognized keys of a raw record.

    Anything that is not a mapping projects to {}. The projected dict
    holds the raw values themselves; later stages copy before changing.
    """
    if not isinstance(raw, Mapping):
        return {}, []

    projected = {key: raw[key] for key in RECOGNIZED_KEYS if key in raw}
    ignored = sorted((key for key in raw if key not in RECOGNIZED_KEYS), key=str)
    if not ignored:
        return projected, []
    return projected, [_fix("*", [str(key) for key in ignored], None, "ignored_keys")]


def check_required(projected: Mapping[str, Any]) -> list[str]:
    """Return the required keys that are missing.

    A key counts as missing when it is absent or JSON null. An empty
    array is present.
    """
    return [key for key in REQUIRED_KEYS if projected.get(key) is None]


def coerce_scores(scores: Any) -> tuple[list[int | None], list[Correction]]:
    """Coerce emotion scores to integers in [-100, 100], keeping gaps.

    Rules, applied per element and preserving position:
        - None stays None (a slot without a measurement).
        - "NaN" in any case becomes 0.
        - Other strings are parsed; unparseable ones become 0.
        - Non-numeric values and float NaN become 0.
        - Non-integers are rounded half-up, then clamped.
        - Integers outside the range are clamped.
    """
    if not is_sequence(scores):
        return [], [_fix("emotionScores", scores, [], "not_a_sequence")]

    corrections: list[Correction] = []
    result = [_coerce_score(raw_score, index, corrections) for index, raw_score in enumerate(scores)]
    return result, corrections


def reconcile_lengths(
    time_points: Any,
    scores: list[int | None],
) -> tuple[list[Any], list[int | None], list[Correction]]:
    """Truncate timePoints and emotionScores to a common length.

    Arrays are never padded. The retained elements keep their original
    order and alignment.
    """
    corrections: list[Correction] = []
    if is_sequence(time_points):
        points = [deepcopy(point) for point in time_points]
    else:
        corrections.append(_fix("timePoints", time_points, [], "not_a_sequence"))
        points = []

    if len(points) == len(scores):
        return points, list(scores), corrections

    common = min(len(points), len(scores))
    lengths = {"timePoints": len(points), "emotionScores": len(scores)}
    corrections.append(_fix("timePoints", lengths, common, "length_mismatch"))
    return points[:common], list(scores[:common]), corrections


def recompute_average(
    scores: list[int | None],
    existing: Any,
) -> tuple[float, list[Correction]]:
    """Validate averageScore against the mean of the measured scores.

    The candidate is the mean of the non-null scores rounded half-up to
    one decimal, or 0 when there are none. A finite input average is kept
    (rounded to one decimal) unless it differs from the candidate by more
    than AVERAGE_DIVERGENCE_LIMIT. existing may be missing or a string.
    """
    measured = [score for score in scores if score is not None]
    candidate = round_half_up(sum(measured) / len(measured), 1) if measured else 0.0

    value = to_number(existing) if existing is not None else math.nan
    if not math.isfinite(value):
        return candidate, [_fix("averageScore", existing, candidate, "average_recomputed")]
    if abs(value - candidate) > AVERAGE_DIVERGENCE_LIMIT:
        return candidate, [_fix("averageScore", existing, candidate, "average_override")]

    kept = round_half_up(value, 1)
    if isinstance(existing, str) or kept != existing:
        return kept, [_fix("averageScore", existing, kept, "average_rounded")]
    return kept, []


def repair_hours(projected: Mapping[str, Any]) -> tuple[dict[str, float], list[Correction]]:
    """Default missing hour buckets and rebalance them to about 24 hours.

    Each bucket that is absent or non-numeric gets its default. If the
    total then differs from 24 by more than HOURS_TOLERANCE, neutralHours
    absorbs the remainder (floored at 0), whatever the other two hold.
    """
    corrections: list[Correction] = []
    hours: dict[str, float] = {}

    for key, default in DEFAULT_HOURS.items():
        raw_value = projected.get(key)
        if is_finite_number(raw_value):
            hours[key] = raw_value
            continue

        value = to_number(raw_value) if raw_value is not None else math.nan
        if math.isfinite(value):
            hours[key] = value
            corrections.append(_fix(key, raw_value, value, "numeric_string"))
        else:
            hours[key] = default
            corrections.append(_fix(key, raw_value, default, "hours_default"))

    total = hours["positiveHours"] + hours["negativeHours"] + hours["neutralHours"]
    if abs(total - HOURS_PER_DAY) > HOURS_TOLERANCE:
        adjusted = max(0, HOURS_PER_DAY - hours["positiveHours"] - hours["negativeHours"])
        # Already absorbed on an earlier pass: nothing left to correct.
        if adjusted != hours["neutralHours"]:
            corrections.append(_fix("neutralHours", hours["neutralHours"], adjusted, "hours_adjusted"))
            hours["neutralHours"] = adjusted

    return hours, corrections


def repair_insights(insights: Any) -> tuple[list[str], list[Correction]]:
    """Keep non-blank string insights, or fall back to a placeholder."""
    if is_sequence(insights):
        kept = [item for item in insights if isinstance(item, str) and item.strip()]
    else:
        kept = []

    if not kept:
        return [PLACEHOLDER_INSIGHT], [
            _fix("insights", insights, [PLACEHOLDER_INSIGHT], "insights_default")
        ]
    if len(kept) != len(insights):
        return kept, [_fix("insights", len(insights), len(kept), "insights_filtered")]
    return kept, []


def repair_changes(changes: Any) -> tuple[list[EmotionChange], list[Correction]]:
    """Drop malformed emotion change events and round their scores.

    An event is kept only if it is an object with a string time, a string
    event and a score that coerces to a finite number. Malformed entries
    are dropped, never repaired. Order is preserved.
    """
    if not is_sequence(changes):
        return [], [_fix("emotionChanges", changes, [], "changes_default")]

    corrections: list[Correction] = []
    result: list[EmotionChange] = []

    for index, change in enumerate(changes):
        well_formed = (
            isinstance(change, Mapping)
            and isinstance(change.get("time"), str)
            and isinstance(change.get("event"), str)
        )
        raw_score = change.get("score") if well_formed else None
        score = to_number(raw_score)
        if not (well_formed and math.isfinite(score)):
            corrections.append(_fix("emotionChanges", change, None, "change_dropped", index))
            continue

        rounded = int(round_half_up(score))
        if rounded != raw_score or not isinstance(raw_score, int):
            corrections.append(
                _fix("emotionChanges", raw_score, rounded, "change_score_rounded", index)
            )
        result.append(EmotionChange(time=change["time"], event=change["event"], score=rounded))

    return result, corrections


def repair_date(
    value: Any,
    today: Callable[[], date] | None = None,
) -> tuple[str, list[Correction]]:
    """Keep a non-empty date string, or default to today's YYYY-MM-DD."""
    if isinstance(value, str) and value.strip():
        return value, []
    default = today_string(today)
    return default, [_fix("date", value, default, "date_default")]


# =============================================================================
# Helpers
# =============================================================================


class _CorrectionRecorder:
    """Collects corrections, logs them and forwards them to a sink."""

    def __init__(self, sink: CorrectionSink | None = None) -> None:
        self.sink = sink
        self.corrections: list[Correction] = []

    def take(self, stage_result: tuple[Any, list[Correction]]) -> Any:
        """Record a stage's corrections and return its value."""
        value, corrections = stage_result
        self.extend(corrections)
        return value

    def extend(self, corrections: list[Correction]) -> None:
        for correction in corrections:
            self.add(correction)

    def add(self, correction: Correction) -> None:
        self.corrections.append(correction)

        level = logging.INFO if correction.reason == "ignored_keys" else logging.WARNING
        logger.log(level, "Emotion timeline corrected: %s", correction.describe())

        if self.sink is None:
            return
        try:
            self.sink(correction)
        except Exception:
            logger.warning("Correction sink raised; continuing", exc_info=True)


def _fix(
    field: str,
    original: Any,
    corrected: Any,
    reason: str,
    index: int | None = None,
) -> Correction:
    return Correction(field, original, corrected, reason, index)


def _coerce_score(value: Any, index: int, corrections: list[Correction]) -> int | None:
    """Coerce a single score, appending any corrections made."""
    if value is None:
        return None

    def record(corrected: int, reason: str) -> int:
        corrections.append(_fix("emotionScores", value, corrected, reason, index))
        return corrected

    if isinstance(value, str):
        if value.strip().lower() == "nan":
            return record(0, "nan_string")
        number = parse_float(value)
        if math.isnan(number):
            return record(0, "invalid_value")
        if math.isfinite(number) and number.is_integer() and SCORE_MIN <= number <= SCORE_MAX:
            return record(int(number), "numeric_string")
    elif isinstance(value, bool) or not isinstance(value, (int, float)):
        return record(0, "invalid_value")
    else:
        number = value

    if isinstance(number, float):
        if math.isnan(number):
            return record(0, "invalid_value")
        if math.isinf(number):
            return record(SCORE_MAX if number > 0 else SCORE_MIN, "range_clamp")
        if not number.is_integer():
            rounded = int(round_half_up(number))
            record(rounded, "float_rounded")
            return _clamp(rounded, index, corrections, original=rounded)
        number = int(number)

    return _clamp(number, index, corrections, original=value)


def _clamp(value: int, index: int, corrections: list[Correction], original: Any) -> int:
    """Clamp an integer score into [SCORE_MIN, SCORE_MAX]."""
    if SCORE_MIN <= value <= SCORE_MAX:
        return value
    clamped = max(SCORE_MIN, min(SCORE_MAX, value))
    corrections.append(_fix("emotionScores", original, clamped, "range_clamp", index))
    return clamped


def _fallback_result(
    raw: Any,
    exc: Exception,
    today: Callable[[], date] | None,
    sink: CorrectionSink | None,
) -> NormalizationResult:
    """Build the result returned when a stage raised unexpectedly."""
    details = {"exception_type": type(exc).__name__}
    timeline = build_fallback(raw, today=today)
    if timeline is None:
        return NormalizationResult(
            status="fallback",
            timeline=None,
            error=NormalizationError(
                message="Fallback timeline could not be built",
                code="FALLBACK_FAILED",
                details=details,
            ),
        )

    recorder = _CorrectionRecorder(sink)
    recorder.add(_fix("*", type(exc).__name__, None, "fallback"))
    return NormalizationResult(
        status="fallback",
        timeline=timeline,
        corrections=recorder.corrections,
        error=NormalizationError(
            message=str(exc) or "Unexpected error during normalization",
            details=details,
        ),
    )
