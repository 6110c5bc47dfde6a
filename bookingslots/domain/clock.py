"""
Wall-clock helpers.

All interval arithmetic in the engine is done in minutes since local midnight.
These helpers translate between ``HH:MM`` strings, minute offsets and absolute
zoned instants.
"""

from typing import List, Optional

import pendulum
from pendulum import Date, DateTime

MINUTES_PER_DAY = 24 * 60

WEEKDAY_NAMES = [
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
]


def parse_clock(value: str, *, allow_end_of_day: bool = False) -> int:
    """
    Parse an ``HH:MM`` string into minutes since midnight.

    ``24:00`` is only accepted when ``allow_end_of_day`` is set, since it is a
    valid end but never a valid start.

    Raises:
        ValueError: If the value is not a valid wall-clock time
    """
    if not isinstance(value, str):
        raise ValueError(f"Expected HH:MM string, got {value!r}")

    parts = value.strip().split(":")
    if len(parts) != 2 or not all(part.isdigit() for part in parts):
        raise ValueError(f"Invalid time {value!r}, expected HH:MM")

    hours, minutes = int(parts[0]), int(parts[1])

    if hours == 24 and minutes == 0 and allow_end_of_day:
        return MINUTES_PER_DAY
    if not 0 <= hours <= 23 or not 0 <= minutes <= 59:
        raise ValueError(f"Time out of range: {value!r}")

    return hours * 60 + minutes


def format_clock(minutes: int) -> str:
    """Format minutes since midnight as ``HH:MM``."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def parse_weekday(value) -> int:
    """
    Parse a weekday given as an English day name or an integer (0=Monday).

    Raises:
        ValueError: If the weekday cannot be interpreted
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid weekday: {value!r}")
    if isinstance(value, int):
        if 0 <= value <= 6:
            return value
        raise ValueError(f"Weekday must be between 0 and 6, got {value}")
    if isinstance(value, str):
        name = value.strip().lower()
        if name in WEEKDAY_NAMES:
            return WEEKDAY_NAMES.index(name)
        if name.isdigit():
            return parse_weekday(int(name))
    raise ValueError(f"Invalid weekday: {value!r}")


def month_dates(year: int, month: int) -> List[Date]:
    """Return every calendar date of the given month."""
    first = pendulum.date(year, month, 1)
    last = first.end_of("month")
    return [first.add(days=offset) for offset in range(last.day)]


def local_instant(day: Date, minutes: int, timezone: str) -> Optional[DateTime]:
    """
    Anchor a wall-clock minute offset to a date in a timezone.

    Returns None when the wall-clock time does not exist on that date
    (spring-forward gap). Ambiguous times resolve to their first occurrence.
    """
    if minutes >= MINUTES_PER_DAY:
        day = day.add(days=minutes // MINUTES_PER_DAY)
        minutes %= MINUTES_PER_DAY

    hour, minute = divmod(minutes, 60)
    instant = pendulum.datetime(
        day.year, day.month, day.day, hour, minute, tz=timezone, fold=0
    )

    # Non-existent times get shifted by the tz database
    if instant.hour != hour or instant.minute != minute:
        return None

    return instant
