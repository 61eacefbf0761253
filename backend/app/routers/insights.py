"""
Insights Router
===============
GET /api/insights/moods?window=all|week|month

Returns everything the history view renders in one call:

  chart:        One point per mood entry, oldest first, valued on the
                1–5 mood scale. Same-day entries are separate points.

  daily_trend:  Average score per calendar day (UTC). Days with no
                entries are omitted.

  average:      Mean score over the window, 0 when there are no entries.

  mood_counts:  Number of entries per mood label.

The window is measured back from the moment of the request and is
inclusive: an entry exactly 7 days old is still in the week.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Query, status

from app.db.store import get_store
from app.models.insights import MoodSummary, TimeWindow
from app.services.analytics import summarize

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/insights", tags=["insights"])


@router.get(
    "/moods",
    response_model=MoodSummary,
    status_code=status.HTTP_200_OK,
    summary="Get mood history insights",
    description=(
        "Returns chart points, daily averages, mood counts and the average "
        "score for the selected window. All sections may be empty."
    ),
    responses={
        200: {"description": "Mood insights returned"},
        422: {"description": "Unknown window"},
    },
)
async def get_mood_insights(
    window: TimeWindow = Query("all", description="all, week (7 days) or month (30 days)"),
) -> MoodSummary:
    entries = get_store().list_moods()
    summary = summarize(entries, window)
    logger.debug("Mood insights for window=%s: %d entries", window, summary.count)
    return summary
