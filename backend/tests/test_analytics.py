"""
Tests for mood analytics
========================
Covers:
- score(): fixed table for the closed set, 3 for anything else
- average(): 0 for empty, score of the single entry, mean otherwise
- filter_entries(): all / week / month, inclusive boundary at exactly N days
- chart_points(): one point per entry, timestamp order, label format (UTC)
- mood_counts(), daily_trend()
- summarize(): window applied before every section

Run: pytest tests/test_analytics.py -v
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from app.models.mood import MoodEntry
from app.services.analytics import (
    DEFAULT_SCORE,
    average,
    chart_label,
    chart_points,
    daily_trend,
    filter_entries,
    mood_counts,
    score,
    summarize,
)

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


def _entry(mood: str, age: timedelta = timedelta(0), entry_id: int = 1) -> MoodEntry:
    return MoodEntry(id=entry_id, mood=mood, timestamp=NOW - age)


class TestScore:

    @pytest.mark.parametrize(
        "label,expected",
        [
            ("Happy", 5),
            ("Neutral", 3),
            ("Stressed", 2),
            ("Anxious", 1.5),
            ("Sad", 1),
            ("Angry", 1),
        ],
    )
    def test_fixed_values(self, label: str, expected: float):
        assert score(label) == expected

    @pytest.mark.parametrize("label", ["", "happy", "Ecstatic", "Calm"])
    def test_unknown_labels_score_neutral(self, label: str):
        assert score(label) == DEFAULT_SCORE == 3


class TestAverage:

    def test_empty_is_zero(self):
        assert average([]) == 0

    def test_single_entry_is_its_score(self):
        assert average([_entry("Anxious")]) == 1.5

    def test_mean_of_scores(self):
        entries = [_entry("Happy"), _entry("Sad"), _entry("Neutral")]
        assert average(entries) == pytest.approx(3.0)

    def test_unknown_label_counts_as_neutral(self):
        assert average([_entry("Happy"), _entry("Mystery")]) == pytest.approx(4.0)


class TestFilter:

    def test_all_keeps_everything(self):
        entries = [_entry("Happy", timedelta(days=400)), _entry("Sad")]
        assert filter_entries(entries, "all", now=NOW) == entries

    def test_week_excludes_older_than_seven_days(self):
        old = _entry("Sad", timedelta(days=7, seconds=1), 1)
        recent = _entry("Happy", timedelta(days=2), 2)
        assert filter_entries([old, recent], "week", now=NOW) == [recent]

    def test_week_includes_exactly_seven_days(self):
        boundary = _entry("Neutral", timedelta(days=7))
        assert filter_entries([boundary], "week", now=NOW) == [boundary]

    def test_month_boundary(self):
        inside = _entry("Happy", timedelta(days=30), 1)
        outside = _entry("Sad", timedelta(days=30, microseconds=1), 2)
        assert filter_entries([outside, inside], "month", now=NOW) == [inside]

    def test_unknown_window_rejected(self):
        with pytest.raises(ValueError):
            filter_entries([], "year", now=NOW)  # type: ignore[arg-type]

    def test_defaults_to_current_time(self):
        fresh = MoodEntry(id=1, mood="Happy", timestamp=datetime.now(timezone.utc))
        assert filter_entries([fresh], "week") == [fresh]


class TestChart:

    def test_label_format(self):
        ts = datetime(2026, 3, 4, 14, 5, tzinfo=timezone.utc)
        assert chart_label(ts) == "Mar 4, 14:05"

    def test_label_is_utc_whatever_the_offset(self):
        berlin = timezone(timedelta(hours=1))
        ts = datetime(2026, 3, 4, 15, 5, tzinfo=berlin)
        assert chart_label(ts) == "Mar 4, 14:05"

    def test_one_point_per_entry_in_order(self):
        entries = [
            _entry("Happy", timedelta(hours=3), 1),
            _entry("Sad", timedelta(hours=2), 2),
            _entry("Sad", timedelta(hours=1), 3),
        ]
        points = chart_points(entries)
        assert [p.value for p in points] == [5, 1, 1]
        assert [p.mood for p in points] == ["Happy", "Sad", "Sad"]
        assert points[0].label == "Mar 10, 09:00"

    def test_same_day_entries_not_binned(self):
        entries = [_entry("Happy", timedelta(minutes=m), m) for m in (30, 20, 10)]
        assert len(chart_points(entries)) == 3

    def test_empty(self):
        assert chart_points([]) == []


class TestCountsAndTrend:

    def test_mood_counts(self):
        entries = [_entry("Sad"), _entry("Happy"), _entry("Sad"), _entry("Legacy")]
        assert mood_counts(entries) == {"Happy": 1, "Sad": 2, "Legacy": 1}

    def test_daily_trend_averages_per_day(self):
        entries = [
            _entry("Happy", timedelta(days=1, hours=1), 1),
            _entry("Sad", timedelta(days=1), 2),
            _entry("Neutral", timedelta(0), 3),
        ]
        trend = daily_trend(entries)
        assert [p.date for p in trend] == [date(2026, 3, 9), date(2026, 3, 10)]
        assert trend[0].average == 3.0
        assert trend[0].count == 2
        assert trend[1].average == 3.0

    def test_daily_trend_skips_empty_days(self):
        entries = [_entry("Happy", timedelta(days=5), 1), _entry("Happy", timedelta(0), 2)]
        assert len(daily_trend(entries)) == 2


class TestSummarize:

    def test_window_applies_to_every_section(self):
        entries = [
            _entry("Angry", timedelta(days=20), 1),
            _entry("Happy", timedelta(days=1), 2),
            _entry("Stressed", timedelta(hours=1), 3),
        ]
        summary = summarize(entries, "week", now=NOW)

        assert summary.window == "week"
        assert summary.count == 2
        assert summary.average == 3.5
        assert summary.mood_counts == {"Happy": 1, "Stressed": 1}
        assert [p.mood for p in summary.chart] == ["Happy", "Stressed"]

    def test_empty_history(self):
        summary = summarize([], "month", now=NOW)
        assert summary.count == 0
        assert summary.average == 0
        assert summary.chart == []
        assert summary.daily_trend == []
        assert summary.mood_counts == {}
