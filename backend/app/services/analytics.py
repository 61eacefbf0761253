"""
Mood Analytics
==============
Turns stored MoodEntry rows into the numbers the history view shows.

Scores put the closed mood set on a 1–5 scale so moods can be averaged
and plotted. The mapping is total: a label we no longer recognise
(e.g. a row written before the mood set changed) scores as Neutral.

Every entry is its own chart point. Same-day entries are not binned on
the chart; daily_trend() provides the per-day view separately.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Sequence
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from app.models.insights import ChartPoint, DailyMoodPoint, MoodSummary, TimeWindow
from app.models.mood import MOOD_LABELS, MoodEntry

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

MOOD_SCORES: dict[str, float] = {
    "Happy": 5,
    "Neutral": 3,
    "Stressed": 2,
    "Anxious": 1.5,
    "Sad": 1,
    "Angry": 1,
}

DEFAULT_SCORE = 3.0

WINDOW_DAYS: dict[str, int] = {
    "week": 7,
    "month": 30,
}


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------

def score(mood: str) -> float:
    """Numeric value of a mood label, Neutral (3) for anything unknown."""
    return float(MOOD_SCORES.get(mood, DEFAULT_SCORE))


def average(entries: Sequence[MoodEntry]) -> float:
    """Mean score of *entries*; 0 when there are none."""
    if not entries:
        return 0.0
    return sum(score(e.mood) for e in entries) / len(entries)


# ---------------------------------------------------------------------------
# Filtering
# ---------------------------------------------------------------------------

def filter_entries(
    entries: Iterable[MoodEntry],
    window: TimeWindow = "all",
    now: Optional[datetime] = None,
) -> list[MoodEntry]:
    """Keep entries no older than the window, measured from *now*.

    The bound is inclusive: an entry exactly 7 days old is still in the
    week window.
    """
    entries = list(entries)
    if window == "all":
        return entries

    days = WINDOW_DAYS.get(window)
    if days is None:
        raise ValueError(f"Unknown window {window!r}")

    now = now or datetime.now(timezone.utc)
    max_age = timedelta(days=days)
    return [e for e in entries if now - e.timestamp <= max_age]


# ---------------------------------------------------------------------------
# Chart / summary
# ---------------------------------------------------------------------------

def chart_label(timestamp: datetime) -> str:
    """e.g. ``Mar 4, 14:05``, always in UTC.

    Clients that want local time should convert from the point's
    ``timestamp`` rather than re-parsing the label.
    """
    utc = timestamp.astimezone(timezone.utc)
    return f"{utc:%b} {utc.day}, {utc:%H:%M}"


def chart_points(entries: Iterable[MoodEntry]) -> list[ChartPoint]:
    ordered = sorted(entries, key=lambda e: (e.timestamp, e.id))
    return [
        ChartPoint(
            label=chart_label(e.timestamp),
            value=score(e.mood),
            mood=e.mood,
            timestamp=e.timestamp,
        )
        for e in ordered
    ]


def mood_counts(entries: Iterable[MoodEntry]) -> dict[str, int]:
    counts = Counter(e.mood for e in entries)
    # Known moods first in their canonical order, then anything legacy
    ordered = {label: counts[label] for label in MOOD_LABELS if counts[label]}
    for label, count in counts.items():
        if label not in ordered:
            ordered[label] = count
    return ordered


def daily_trend(entries: Iterable[MoodEntry]) -> list[DailyMoodPoint]:
    daily_scores: dict[date, list[float]] = {}
    for e in entries:
        day = e.timestamp.astimezone(timezone.utc).date()
        daily_scores.setdefault(day, []).append(score(e.mood))

    return [
        DailyMoodPoint(
            date=d,
            average=round(sum(scores) / len(scores), 2),
            count=len(scores),
        )
        for d, scores in sorted(daily_scores.items())
    ]


def summarize(
    entries: Iterable[MoodEntry],
    window: TimeWindow = "all",
    now: Optional[datetime] = None,
) -> MoodSummary:
    filtered = filter_entries(entries, window, now=now)
    return MoodSummary(
        window=window,
        count=len(filtered),
        average=round(average(filtered), 2),
        mood_counts=mood_counts(filtered),
        daily_trend=daily_trend(filtered),
        chart=chart_points(filtered),
    )
