"""Human-friendly rendering of tracked durations."""

from __future__ import annotations

import datetime as dt

MINUTES_PER_HOUR = 60
MINUTES_PER_DAY = 24 * MINUTES_PER_HOUR


def pretty_duration(duration: dt.timedelta) -> str:
    """Render a duration as ``1 days 5 hrs 34 mins``.

    Once a larger unit has been written every smaller unit follows, so a
    duration of exactly one day renders as ``1 days 0 hrs 0 mins``.
    """
    total_minutes = int(duration.total_seconds() // 60)
    days, remainder = divmod(total_minutes, MINUTES_PER_DAY)
    hours, minutes = divmod(remainder, MINUTES_PER_HOUR)

    parts = []
    if days:
        parts.append(f"{days} days")
    if parts or hours:
        parts.append(f"{hours} hrs")
    if parts or minutes:
        parts.append(f"{minutes} mins")
    return " ".join(parts)
