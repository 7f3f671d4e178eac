"""Tests for emotion_timeline.fallback module."""

import pytest

from emotion_timeline import FALLBACK_INSIGHT, build_fallback
from emotion_timeline.fallback import FALLBACK_TIME_POINT


class TestBuildFallback:
    """Tests for build_fallback."""

    @pytest.mark.parametrize("raw", [None, 42, "x", [], {}])
    def test_unusable_raw_gives_single_noon_slot(self, raw, fixed_today):
        """Test the single 12:00 slot scored 0 for unusable input."""
        timeline = build_fallback(raw, today=fixed_today)

        assert timeline.time_points == [FALLBACK_TIME_POINT]
        assert timeline.emotion_scores == [0]
        assert timeline.date == "2025-03-02"

    def test_fixed_fields(self, fixed_today):
        """Test the fixed average, hours, insight and changes."""
        timeline = build_fallback(
            {
                "timePoints": ["09:00"],
                "emotionScores": [80],
                "averageScore": 80,
                "positiveHours": 20,
                "insights": ["real insight"],
                "emotionChanges": [{"time": "09:00", "event": "x", "score": 1}],
            },
            today=fixed_today,
        )

        assert timeline.average_score == 0.0
        assert timeline.positive_hours == 8
        assert timeline.negative_hours == 4
        assert timeline.neutral_hours == 12
        assert timeline.insights == [FALLBACK_INSIGHT]
        assert timeline.emotion_changes == []

    def test_reuses_best_effort_scores(self):
        """Test that raw scores are coerced without raising."""
        timeline = build_fallback({
            "timePoints": ["a", "b", "c", "d", "e", "f"],
            "emotionScores": [12.5, "NaN", "abc", None, -500, float("inf")],
            "date": "2025-03-01",
        })

        assert timeline.emotion_scores == [13, 0, 0, None, -100, 100]
        assert timeline.date == "2025-03-01"

    def test_zero_scores_when_scores_unusable(self):
        """Test zeros sized to timePoints when emotionScores is not an array."""
        timeline = build_fallback({"timePoints": ["a", "b"], "emotionScores": "broken"})

        assert timeline.time_points == ["a", "b"]
        assert timeline.emotion_scores == [0, 0]

    def test_truncates_to_shorter(self):
        """Test the same truncation rule as normal normalization."""
        timeline = build_fallback({
            "timePoints": ["a", "b", "c"],
            "emotionScores": [1],
        })

        assert timeline.time_points == ["a"]
        assert timeline.emotion_scores == [1]

    def test_does_not_alias_input(self):
        """Test that the fallback copies the raw time points."""
        raw = {"timePoints": [{"label": "a"}], "emotionScores": [1]}
        timeline = build_fallback(raw)
        timeline.time_points[0]["label"] = "b"

        assert raw["timePoints"][0]["label"] == "a"

    def test_construction_failure_returns_none(self):
        """Test that an error while building gives None instead of raising."""
        def broken_today():
            raise RuntimeError("clock broken")

        assert build_fallback({}, today=broken_today) is None
