"""Codec for the date strings used by the Avalon listing payload.

Dates look like ``10/26/2022 4:00:00 AM +00:00``.
"""

from __future__ import annotations

import datetime as dt

AVA_DATE_FORMAT = "%m/%d/%Y %I:%M:%S %p %z"


def parse_ava_date(value: str) -> dt.datetime:
    """Parse an Avalon date string into an aware UTC datetime."""
    if not isinstance(value, str):
        raise ValueError(f"Expected a date string, got {value!r}")
    parsed = dt.datetime.strptime(value.strip(), AVA_DATE_FORMAT)
    return parsed.astimezone(dt.timezone.utc)


def format_ava_date(value: dt.datetime) -> str:
    """Render a datetime in the Avalon date format."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=dt.timezone.utc)
    offset = value.utcoffset() or dt.timedelta(0)
    sign = "-" if offset < dt.timedelta(0) else "+"
    minutes = abs(int(offset.total_seconds())) // 60
    hours, minutes = divmod(minutes, 60)
    return (
        f"{value.month:02d}/{value.day:02d}/{value.year} "
        f"{value.strftime('%I:%M:%S %p')} {sign}{hours:02d}:{minutes:02d}"
    )


def format_short_date(value: dt.datetime) -> str:
    """Render a date as ``Oct 21 2022`` (day padded to two columns)."""
    return f"{value.strftime('%b')} {value.day:>2} {value.year}"


def utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)
