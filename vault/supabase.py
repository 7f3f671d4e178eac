"""Conversion of Supabase summary rows into raw emotion timelines.

Rows of the vibe_whisper_summary table carry one score per 30-minute slot
but no time labels; the labels are generated here so the row can be fed
to the normalizer like any other raw record.
"""

from collections.abc import Mapping
from typing import Any


SUMMARY_TABLE = "vibe_whisper_summary"

SLOT_MINUTES = 30


def generate_time_points(slot_minutes: int = SLOT_MINUTES) -> list[str]:
    """Generate HH:MM labels covering one day.
    
    Args:
        slot_minutes: Slot length in minutes; must divide 1440.
    
    Returns:
        Labels from "00:00" upward, e.g. 48 labels for 30-minute slots.
    
    Raises:
        ValueError: If slot_minutes does not divide a day evenly.
    
    Examples:
        >>> generate_time_points()[:3]
        ['00:00', '00:30', '01:00']
        >>> len(generate_time_points())
        48
    """
    if slot_minutes < 1 or (24 * 60) % slot_minutes != 0:
        raise ValueError(
            f"slot_minutes must be a positive divisor of 1440, got {slot_minutes}"
        )
    
    return [
        f"{minute // 60:02d}:{minute % 60:02d}"
        for minute in range(0, 24 * 60, slot_minutes)
    ]


def summary_row_to_raw(row: Mapping[str, Any]) -> dict[str, Any]:
    """Convert a vibe_whisper_summary row to a raw emotion timeline.
    
    Missing columns are left for the normalizer to repair, except for the
    score and insight arrays which default to empty arrays.
    
    Args:
        row: One row of the summary table.
    
    Returns:
        Raw emotion timeline dictionary. processedAt and deviceId are
        carried along and ignored by the normalizer.
    """
    return {
        "timePoints": generate_time_points(),
        "emotionScores": row.get("vibe_scores") or [],
        "averageScore": row.get("average_score"),
        "positiveHours": row.get("positive_hours"),
        "negativeHours": row.get("negative_hours"),
        "neutralHours": row.get("neutral_hours"),
        "insights": row.get("insights") or [],
        "emotionChanges": row.get("vibe_changes") or [],
        "date": row.get("date"),
        "processedAt": row.get("processed_at"),
        "deviceId": row.get("device_id"),
    }
