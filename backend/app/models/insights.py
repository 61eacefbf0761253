"""
Mood Insight Schemas
====================
Response models for the mood history dashboard.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel

TimeWindow = Literal["all", "week", "month"]


class ChartPoint(BaseModel):
    """One mood entry plotted on the history chart."""
    label: str
    value: float
    mood: str
    timestamp: datetime


class DailyMoodPoint(BaseModel):
    """A single day's average mood score."""
    date: date
    average: float
    count: int


class MoodSummary(BaseModel):
    """Everything the mood history view renders, for one time window."""
    window: TimeWindow
    count: int
    average: float
    mood_counts: dict[str, int]
    daily_trend: list[DailyMoodPoint]
    chart: list[ChartPoint]
