"""
Viral activity detection.

A signal is viral when its activity over the last 24 hours surges past its
average daily activity for the 7 days before that. Activity for a snapshot
is new_subscribers + new_sightings + view_count.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo

from ..models.ranking import SignalActivitySnapshot

BASELINE_DAYS = 7

# Last-24h activity needed when there is no baseline at all
NO_BASELINE_THRESHOLD = 10

# Surge factor over the baseline average
SURGE_FACTOR = 3


@dataclass(frozen=True)
class ViralActivity:
    last_24h: int
    previous_7d_average: float


def _as_datetime(day: date, tz: tzinfo | None) -> datetime:
    return datetime.combine(day, time.min, tzinfo=tz)


def summarize_activity(
    snapshots: Iterable[SignalActivitySnapshot],
    now: datetime,
) -> ViralActivity:
    """
    Split snapshots into the last 24 hours and the 7 days before.

    Snapshots are dated at midnight in ``now``'s timezone. Order does not
    matter and snapshots older than 8 days are ignored.
    """
    day_ago = now - timedelta(hours=24)
    window_start = day_ago - timedelta(days=BASELINE_DAYS)

    last_24h = 0
    previous = 0
    for snapshot in snapshots:
        taken = _as_datetime(snapshot.snapshot_date, now.tzinfo)
        if taken > day_ago:
            last_24h += snapshot.activity
        elif taken > window_start:
            previous += snapshot.activity

    return ViralActivity(last_24h=last_24h, previous_7d_average=previous / BASELINE_DAYS)


def is_viral(activity: ViralActivity) -> bool:
    if activity.previous_7d_average == 0:
        return activity.last_24h > NO_BASELINE_THRESHOLD
    return activity.last_24h > activity.previous_7d_average * SURGE_FACTOR
