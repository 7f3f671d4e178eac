"""Tests for emotion_timeline.normalizer (the normalization pipeline)."""

import copy
import logging
import math

import pytest

from emotion_timeline import (
    PLACEHOLDER_INSIGHT,
    FALLBACK_INSIGHT,
    Correction,
    EmotionChange,
    NormalizedEmotionTimeline,
    normalize,
    normalize_with_report,
)
from emotion_timeline import normalizer
from emotion_timeline.normalizer import (
    check_required,
    coerce_scores,
    project_keys,
    recompute_average,
    reconcile_lengths,
    repair_changes,
    repair_date,
    repair_hours,
    repair_insights,
)


def reasons(corrections: list[Correction]) -> list[str]:
    """Helper returning the reason codes in order."""
    return [c.reason for c in corrections]


def assert_valid_timeline(timeline: NormalizedEmotionTimeline) -> None:
    """Helper asserting the output invariants of a normalized timeline."""
    assert isinstance(timeline, NormalizedEmotionTimeline)
    assert len(timeline.time_points) == len(timeline.emotion_scores)
    for score in timeline.emotion_scores:
        if score is not None:
            assert type(score) is int
            assert -100 <= score <= 100
    assert math.isfinite(timeline.average_score)
    assert timeline.neutral_hours >= 0 or (
        abs(timeline.positive_hours + timeline.negative_hours + timeline.neutral_hours - 24) <= 1
    )
    assert timeline.insights
    assert all(isinstance(i, str) and i.strip() for i in timeline.insights)
    for change in timeline.emotion_changes:
        assert isinstance(change, EmotionChange)
        assert isinstance(change.time, str)
        assert isinstance(change.event, str)
        assert type(change.score) is int
    assert isinstance(timeline.date, str) and timeline.date


class TestScenario:
    """End-to-end behavior on representative records."""

    def test_two_slot_record(self, fixed_today):
        """Test the canonical two-slot record with a NaN string."""
        timeline = normalize(
            {
                "timePoints": ["09:00", "09:30"],
                "emotionScores": [55.4, "NaN"],
                "date": "2025-03-01",
            },
            today=fixed_today,
        )

        assert timeline.to_dict() == {
            "timePoints": ["09:00", "09:30"],
            "emotionScores": [55, 0],
            "averageScore": 27.5,
            "positiveHours": 8,
            "negativeHours": 4,
            "neutralHours": 12,
            "insights": ["insufficient analysis data"],
            "emotionChanges": [],
            "date": "2025-03-01",
        }

    def test_clean_record_needs_no_corrections(self, clean_raw):
        """Test that a consistent record passes through unchanged."""
        result = normalize_with_report(clean_raw)

        assert result.status == "ok"
        assert result.corrections == []
        assert result.timeline.to_dict() == {
            **clean_raw,
            "emotionChanges": [{"time": "09:30", "event": "argument", "score": -60}],
        }

    def test_messy_record(self, messy_raw, fixed_today):
        """Test a record with a problem in nearly every field."""
        result = normalize_with_report(messy_raw, today=fixed_today)
        timeline = result.timeline

        assert result.ok
        assert timeline.time_points == ["09:00", "09:30", "10:00", "10:30"]
        assert timeline.emotion_scores == [55, 0, 100, None]
        assert timeline.average_score == 51.7
        assert timeline.positive_hours == 6.0
        assert timeline.negative_hours == 4
        assert timeline.neutral_hours == 14.0
        assert timeline.insights == ["walked outside"]
        assert timeline.emotion_changes == [EmotionChange(time="09:00", event="woke up", score=13)]
        assert timeline.date == "2025-03-02"

        assert reasons(result.corrections) == [
            "ignored_keys",
            "float_rounded",
            "nan_string",
            "range_clamp",
            "length_mismatch",
            "average_override",
            "numeric_string",
            "hours_default",
            "hours_adjusted",
            "insights_filtered",
            "change_score_rounded",
            "change_dropped",
            "change_dropped",
            "date_default",
        ]
        assert_valid_timeline(timeline)


class TestRequiredFields:
    """Tests for the timePoints/emotionScores gate."""

    def test_empty_object_is_rejected(self):
        """Test that {} normalizes to None."""
        assert normalize({}) is None

    def test_missing_scores_is_rejected(self):
        """Test that timePoints alone normalizes to None."""
        assert normalize({"timePoints": []}) is None

    def test_missing_time_points_is_rejected(self):
        """Test that emotionScores alone normalizes to None."""
        assert normalize({"emotionScores": [1, 2]}) is None

    def test_null_required_field_is_missing(self):
        """Test that JSON null counts as a missing required field."""
        assert normalize({"timePoints": None, "emotionScores": [1]}) is None

    def test_empty_arrays_are_present(self, fixed_today):
        """Test that empty arrays give a valid empty timeline."""
        timeline = normalize({"timePoints": [], "emotionScores": []}, today=fixed_today)

        assert timeline is not None
        assert timeline.time_points == []
        assert timeline.emotion_scores == []
        assert timeline.average_score == 0
        assert_valid_timeline(timeline)

    def test_rejection_report(self):
        """Test the rejected result carries the missing fields."""
        result = normalize_with_report({"timePoints": ["09:00"]})

        assert result.status == "rejected"
        assert result.timeline is None
        assert not result.has_data
        assert result.error.code == "MISSING_FIELDS"
        assert result.error.details == {"missing": ["emotionScores"]}

    def test_check_required_lists_both(self):
        """Test check_required reports every missing key in order."""
        assert check_required({}) == ["timePoints", "emotionScores"]
        assert check_required({"timePoints": [], "emotionScores": []}) == []


class TestKeyProjection:
    """Tests for project_keys."""

    def test_unknown_keys_are_dropped(self):
        """Test that unrecognized keys do not reach the output."""
        projected, corrections = project_keys({
            "timePoints": [],
            "emotionScores": [],
            "deviceId": "d1",
            "processedAt": "2025-03-01T00:00:00Z",
        })

        assert set(projected) == {"timePoints", "emotionScores"}
        assert len(corrections) == 1
        assert corrections[0].reason == "ignored_keys"
        assert corrections[0].original_value == ["deviceId", "processedAt"]

    def test_non_mapping_projects_to_empty(self):
        """Test that a non-object input projects to an empty dict."""
        assert project_keys([1, 2, 3]) == ({}, [])
        assert project_keys("timePoints") == ({}, [])

    def test_ignored_keys_logged_at_info(self, caplog):
        """Test that ignored keys are logged at INFO, not WARNING."""
        with caplog.at_level(logging.INFO, logger="emotion_timeline.normalizer"):
            normalize({"timePoints": [], "emotionScores": [], "extra": 1, "date": "2025-03-01"})

        ignored = [r for r in caplog.records if "ignored_keys" in r.getMessage()]
        assert len(ignored) == 1
        assert ignored[0].levelno == logging.INFO


class TestScoreCoercion:
    """Tests for coerce_scores."""

    def test_nan_string(self):
        """Test that "NaN" becomes 0 whatever its case."""
        scores, corrections = coerce_scores(["NaN", "nan", " NAN "])

        assert scores == [0, 0, 0]
        assert reasons(corrections) == ["nan_string"] * 3

    def test_nan_string_end_to_end(self):
        """Test a single NaN string slot normalizes to 0."""
        timeline = normalize({"timePoints": ["00:00"], "emotionScores": ["NaN"]})
        assert timeline.emotion_scores == [0]

    def test_float_rounding_half_up(self):
        """Test that halves round toward +infinity."""
        scores, corrections = coerce_scores([12.6, -12.5, 12.5, -12.6, 0.4])

        assert scores == [13, -12, 13, -13, 0]
        assert reasons(corrections) == ["float_rounded"] * 5

    def test_range_clamp(self):
        """Test that out-of-range integers clamp to the nearest bound."""
        scores, corrections = coerce_scores([150, -999, 100, -100])

        assert scores == [100, -100, 100, -100]
        assert reasons(corrections) == ["range_clamp", "range_clamp"]
        assert corrections[0].index == 0
        assert corrections[1].index == 1

    def test_round_then_clamp(self):
        """Test that a large float is rounded and then clamped."""
        scores, corrections = coerce_scores([150.7])

        assert scores == [100]
        assert reasons(corrections) == ["float_rounded", "range_clamp"]

    def test_numeric_strings(self):
        """Test that numeric strings are parsed like numbers."""
        scores, corrections = coerce_scores(["42", "12.6", "150", " 7abc"])

        assert scores == [42, 13, 100, 7]
        assert reasons(corrections) == [
            "numeric_string",
            "float_rounded",
            "range_clamp",
            "numeric_string",
        ]

    def test_unparseable_values_become_zero(self):
        """Test that garbage becomes 0 with an invalid_value correction."""
        scores, corrections = coerce_scores(["abc", "", True, [], {}, float("nan")])

        assert scores == [0, 0, 0, 0, 0, 0]
        assert reasons(corrections) == ["invalid_value"] * 6

    def test_infinities_clamp(self):
        """Test that infinities clamp to the bounds."""
        scores, _ = coerce_scores([float("inf"), float("-inf"), "Infinity", "1e500"])
        assert scores == [100, -100, 100, 100]

    def test_integral_floats_become_ints(self):
        """Test that 40.0 is passed through as the int 40."""
        scores, corrections = coerce_scores([40.0])

        assert scores == [40]
        assert type(scores[0]) is int
        assert corrections == []

    def test_null_gaps_preserved(self):
        """Test that None stays None at the same index."""
        scores, corrections = coerce_scores([10, None, -10, None])

        assert scores == [10, None, -10, None]
        assert corrections == []

    def test_null_gaps_excluded_from_average(self):
        """Test that gaps are neither zeroed nor averaged."""
        timeline = normalize({
            "timePoints": ["00:00", "00:30", "01:00"],
            "emotionScores": [20, None, 40],
        })

        assert timeline.emotion_scores[1] is None
        assert timeline.average_score == 30.0

    def test_non_sequence_becomes_empty(self):
        """Test that a non-array emotionScores becomes []."""
        scores, corrections = coerce_scores({"a": 1})

        assert scores == []
        assert reasons(corrections) == ["not_a_sequence"]


class TestLengthReconciliation:
    """Tests for reconcile_lengths."""

    def test_truncates_both_to_shorter(self):
        """Test that the first n elements of both arrays are kept."""
        points = ["a", "b", "c", "d", "e"]
        time_points, scores, corrections = reconcile_lengths(points, [1, 2, 3])

        assert time_points == ["a", "b", "c"]
        assert scores == [1, 2, 3]
        assert reasons(corrections) == ["length_mismatch"]
        assert corrections[0].original_value == {"timePoints": 5, "emotionScores": 3}
        assert corrections[0].corrected_value == 3

    def test_scores_longer_than_time_points(self):
        """Test truncation when emotionScores is the longer array."""
        time_points, scores, _ = reconcile_lengths(["a"], [1, None, 3])

        assert time_points == ["a"]
        assert scores == [1]

    def test_never_pads(self):
        """Test that arrays are never extended."""
        time_points, scores, _ = reconcile_lengths([], [1, 2])
        assert time_points == [] and scores == []

    def test_equal_lengths_untouched(self):
        """Test no correction when lengths already match."""
        _, _, corrections = reconcile_lengths(["a", "b"], [1, 2])
        assert corrections == []

    def test_non_sequence_time_points(self):
        """Test that a non-array timePoints becomes [] first."""
        time_points, scores, corrections = reconcile_lengths("09:00", [5])

        assert time_points == [] and scores == []
        assert reasons(corrections) == ["not_a_sequence", "length_mismatch"]


class TestAverageRecompute:
    """Tests for recompute_average."""

    def test_override_when_divergent(self):
        """Test that an average more than 10 off is replaced."""
        average, corrections = recompute_average([0, 0, 0, 0], 95)

        assert average == 0
        assert reasons(corrections) == ["average_override"]

    def test_kept_when_close(self):
        """Test that an average within 10 is kept."""
        average, corrections = recompute_average([0, 0, 0, 0], 2)

        assert average == 2
        assert corrections == []

    def test_boundary_is_kept(self):
        """Test that a difference of exactly 10 is kept."""
        average, _ = recompute_average([0], 10)
        assert average == 10

    def test_missing_average_recomputed(self):
        """Test that an absent average adopts the candidate."""
        average, corrections = recompute_average([10, 20, None], None)

        assert average == 15.0
        assert reasons(corrections) == ["average_recomputed"]

    def test_non_numeric_average_recomputed(self):
        """Test that non-numeric averages adopt the candidate."""
        for value in ("abc", True, [1], float("nan"), float("inf")):
            average, corrections = recompute_average([10], value)
            assert average == 10.0
            assert reasons(corrections) == ["average_recomputed"]

    def test_candidate_rounded_to_one_decimal(self):
        """Test the candidate is the one-decimal half-up mean."""
        average, _ = recompute_average([1, 2, 2], None)
        assert average == 1.7

    def test_no_measurements_gives_zero(self):
        """Test that an all-gap timeline has average 0."""
        average, _ = recompute_average([None, None], None)
        assert average == 0

    def test_numeric_string_kept_as_number(self):
        """Test that a numeric string average is kept as a float."""
        average, corrections = recompute_average([10], "12.34")

        assert average == 12.3
        assert reasons(corrections) == ["average_rounded"]


class TestHourRepair:
    """Tests for repair_hours."""

    def test_defaults(self):
        """Test that absent buckets get 8/4/12."""
        hours, corrections = repair_hours({})

        assert hours == {"positiveHours": 8, "negativeHours": 4, "neutralHours": 12}
        assert reasons(corrections) == ["hours_default"] * 3

    def test_neutral_absorbs_remainder(self):
        """Test that neutralHours is clamped at 0, never negative."""
        hours, corrections = repair_hours({"positiveHours": 20, "negativeHours": 20})

        assert hours["neutralHours"] == 0
        assert reasons(corrections) == ["hours_default", "hours_adjusted"]

    def test_within_tolerance_untouched(self):
        """Test that a total within one hour of 24 is left alone."""
        hours, corrections = repair_hours(
            {"positiveHours": 8, "negativeHours": 4, "neutralHours": 13}
        )

        assert hours["neutralHours"] == 13
        assert corrections == []

    def test_neutral_overwritten_even_when_valid(self):
        """Test that a valid neutralHours still absorbs bad siblings."""
        hours, _ = repair_hours(
            {"positiveHours": 10, "negativeHours": 10, "neutralHours": 12}
        )
        assert hours["neutralHours"] == 4

    def test_zero_is_a_value(self):
        """Test that 0 hours is not treated as absent."""
        hours, corrections = repair_hours(
            {"positiveHours": 0, "negativeHours": 0, "neutralHours": 24}
        )

        assert hours == {"positiveHours": 0, "negativeHours": 0, "neutralHours": 24}
        assert corrections == []

    def test_non_numeric_gets_default(self):
        """Test that booleans and garbage strings get defaults."""
        hours, _ = repair_hours(
            {"positiveHours": True, "negativeHours": "lots", "neutralHours": 12}
        )
        assert hours == {"positiveHours": 8, "negativeHours": 4, "neutralHours": 12}

    def test_huge_integer_gets_default(self):
        """Test that an int too large for a float is replaced, not kept."""
        hours, corrections = repair_hours(
            {"positiveHours": 10**400, "negativeHours": 4, "neutralHours": 12}
        )

        assert hours == {"positiveHours": 8, "negativeHours": 4, "neutralHours": 12}
        assert reasons(corrections) == ["hours_default"]
        assert corrections[0].original_value == 10**400


class TestInsightsRepair:
    """Tests for repair_insights."""

    @pytest.mark.parametrize("insights", [None, "text", [], ["", "  "], [1, None]])
    def test_placeholder(self, insights):
        """Test that unusable insights become the placeholder."""
        kept, corrections = repair_insights(insights)

        assert kept == [PLACEHOLDER_INSIGHT]
        assert reasons(corrections) == ["insights_default"]

    def test_filters_blank_entries(self):
        """Test that blank and non-string entries are dropped in order."""
        kept, corrections = repair_insights(["a", "", 3, "b"])

        assert kept == ["a", "b"]
        assert reasons(corrections) == ["insights_filtered"]


class TestChangeRepair:
    """Tests for repair_changes."""

    def test_malformed_entries_dropped(self):
        """Test that only well-formed events survive, in order."""
        changes, corrections = repair_changes([
            {"time": "10:00", "event": "b", "score": 3},
            {"time": "09:00", "event": "a", "score": "4"},
            {"time": 9, "event": "bad time", "score": 1},
            {"time": "11:00", "event": "no score"},
            {"time": "12:00", "event": "nan", "score": "NaN"},
            ["10:00", "event", 1],
        ])

        assert changes == [
            EmotionChange(time="10:00", event="b", score=3),
            EmotionChange(time="09:00", event="a", score=4),
        ]
        assert [c.index for c in corrections if c.reason == "change_dropped"] == [2, 3, 4, 5]

    def test_scores_rounded(self):
        """Test that event scores are rounded half-up to ints."""
        changes, corrections = repair_changes([
            {"time": "09:00", "event": "a", "score": -2.5},
        ])

        assert changes[0].score == -2
        assert reasons(corrections) == ["change_score_rounded"]

    def test_not_a_sequence(self):
        """Test that a non-array emotionChanges becomes []."""
        changes, corrections = repair_changes(None)

        assert changes == []
        assert reasons(corrections) == ["changes_default"]


class TestDateRepair:
    """Tests for repair_date."""

    def test_keeps_date(self):
        """Test that a non-empty date string is kept."""
        assert repair_date("2025-03-01") == ("2025-03-01", [])

    @pytest.mark.parametrize("value", [None, "", "   ", 20250301])
    def test_defaults_to_today(self, value, fixed_today):
        """Test that missing or non-string dates use today."""
        date_value, corrections = repair_date(value, fixed_today)

        assert date_value == "2025-03-02"
        assert reasons(corrections) == ["date_default"]


class TestIdempotence:
    """Tests that a normalized record is a fixed point."""

    def test_messy_record_is_fixed_point(self, messy_raw, fixed_today):
        """Test that renormalizing gives the same record and no corrections."""
        first = normalize(messy_raw, today=fixed_today)
        second = normalize_with_report(first.to_dict(), today=fixed_today)

        assert second.timeline == first
        assert second.corrections == []

    def test_hours_clamped_to_zero_is_fixed_point(self, fixed_today):
        """Test that an absorbed neutralHours of 0 is not adjusted again."""
        first = normalize(
            {
                "timePoints": ["09:00"],
                "emotionScores": [1],
                "positiveHours": 20,
                "negativeHours": 20,
            },
            today=fixed_today,
        )
        second = normalize_with_report(first.to_dict(), today=fixed_today)

        assert second.timeline == first
        assert second.corrections == []

    def test_fractional_average_is_fixed_point(self, fixed_today):
        """Test that a one-decimal average survives renormalization."""
        first = normalize(
            {"timePoints": ["a", "b", "c"], "emotionScores": [1, 2, 2]},
            today=fixed_today,
        )
        second = normalize(first.to_dict(), today=fixed_today)

        assert first.average_score == 1.7
        assert second.average_score == 1.7


class TestPurity:
    """Tests that normalization neither mutates nor aliases its input."""

    def test_input_not_mutated(self, messy_raw, fixed_today):
        """Test that the raw record is unchanged after normalizing."""
        before = copy.deepcopy(messy_raw)
        normalize(messy_raw, today=fixed_today)
        assert messy_raw == before

    def test_output_shares_no_containers(self, fixed_today):
        """Test that mutating the output leaves the input untouched."""
        raw = {
            "timePoints": [{"label": "09:00"}],
            "emotionScores": [10],
            "insights": ["ok"],
        }
        timeline = normalize(raw, today=fixed_today)

        timeline.time_points[0]["label"] = "changed"
        timeline.insights.append("more")

        assert raw["timePoints"][0]["label"] == "09:00"
        assert raw["insights"] == ["ok"]

    def test_to_dict_returns_fresh_lists(self, clean_raw):
        """Test that to_dict output can be mutated safely."""
        timeline = normalize(clean_raw)
        data = timeline.to_dict()
        data["emotionScores"].append(1)

        assert len(timeline.emotion_scores) == 4


class TestCorrectionSink:
    """Tests for the correction sink."""

    def test_sink_receives_every_correction(self, messy_raw, fixed_today):
        """Test that the sink sees the same corrections as the report."""
        received: list[Correction] = []
        result = normalize_with_report(messy_raw, sink=received.append, today=fixed_today)

        assert received == result.corrections

    def test_raising_sink_does_not_change_outcome(self, messy_raw, fixed_today):
        """Test that a failing sink is ignored."""
        def broken_sink(correction: Correction) -> None:
            raise RuntimeError("sink down")

        expected = normalize_with_report(messy_raw, today=fixed_today)
        result = normalize_with_report(messy_raw, sink=broken_sink, today=fixed_today)

        assert result.status == "ok"
        assert result.timeline == expected.timeline
        assert result.corrections == expected.corrections

    def test_corrections_logged_as_warnings(self, caplog):
        """Test that data repairs are logged at WARNING."""
        with caplog.at_level(logging.WARNING, logger="emotion_timeline.normalizer"):
            normalize({"timePoints": ["a"], "emotionScores": [500], "date": "2025-03-01"})

        assert any("range_clamp" in r.getMessage() for r in caplog.records)


class TestFallback:
    """Tests for the fallback path on unexpected errors."""

    def test_stage_error_uses_fallback(self, monkeypatch, messy_raw, fixed_today):
        """Test that an exception in a stage yields the fallback record."""
        def broken_stage(projected):
            raise RuntimeError("boom")

        monkeypatch.setattr(normalizer, "repair_hours", broken_stage)
        result = normalize_with_report(messy_raw, today=fixed_today)

        assert result.status == "fallback"
        assert result.is_fallback
        assert reasons(result.corrections) == ["fallback"]
        assert result.error.code == "INTERNAL_ERROR"
        assert result.error.details == {"exception_type": "RuntimeError"}

        timeline = result.timeline
        assert timeline.time_points == ["09:00", "09:30", "10:00", "10:30"]
        assert timeline.emotion_scores == [55, 0, 100, None]
        assert timeline.average_score == 0.0
        assert timeline.insights == [FALLBACK_INSIGHT]
        assert timeline.emotion_changes == []
        assert timeline.date == "2025-03-02"
        assert_valid_timeline(timeline)

    def test_normalize_never_raises(self, monkeypatch):
        """Test that normalize returns the fallback instead of raising."""
        def broken_stage(scores):
            raise ZeroDivisionError()

        monkeypatch.setattr(normalizer, "coerce_scores", broken_stage)
        timeline = normalize({"timePoints": ["a"], "emotionScores": [1], "date": "2025-03-01"})

        assert timeline.date == "2025-03-01"
        assert timeline.insights == [FALLBACK_INSIGHT]

    def test_fallback_failure_returns_none(self, monkeypatch):
        """Test that a failing fallback gives None with FALLBACK_FAILED."""
        def broken_stage(insights):
            raise RuntimeError("boom")

        monkeypatch.setattr(normalizer, "repair_insights", broken_stage)
        monkeypatch.setattr(normalizer, "build_fallback", lambda raw, today=None: None)
        result = normalize_with_report({"timePoints": [], "emotionScores": []})

        assert result.status == "fallback"
        assert result.timeline is None
        assert result.error.code == "FALLBACK_FAILED"


class TestTotality:
    """Tests that odd inputs never raise."""

    @pytest.mark.parametrize(
        "raw",
        [
            None,
            42,
            "timePoints",
            [],
            [{"timePoints": [], "emotionScores": []}],
            {"timePoints": "abc", "emotionScores": {"a": 1}},
            {"timePoints": [1, [2], None], "emotionScores": [True, [], {}]},
            {"timePoints": ["a"], "emotionScores": ["1e500"], "averageScore": 10**400},
            {"timePoints": ["a"], "emotionScores": [10**400], "positiveHours": 10**400},
            {"timePoints": ["a"], "emotionScores": [-1e309], "neutralHours": float("nan")},
            {"timePoints": ["a"], "emotionScores": [1], "emotionChanges": [None, 1, "x"]},
            {"timePoints": ["a"], "emotionScores": [1], "insights": {"a": "b"}},
            {"timePoints": ["a"], "emotionScores": [1], "date": ["2025-03-01"]},
        ],
    )
    def test_odd_inputs(self, raw, fixed_today):
        """Test that normalize returns None or a valid timeline."""
        result = normalize_with_report(raw, today=fixed_today)

        assert result.status in ("ok", "rejected")
        if result.timeline is not None:
            assert_valid_timeline(result.timeline)
