"""Duration and clock helpers for race timing."""

from __future__ import annotations

import datetime as dt

from utils.errors import InvalidInputError


def format_duration(total_minutes: float) -> str:
    """Format minutes as HH:MM:SS."""
    total_seconds = int(round(total_minutes * 60))
    hours, rem = divmod(total_seconds, 3600)
    minutes, seconds = divmod(rem, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def parse_duration(duration: str) -> float:
    """Parse "HH:MM:SS" or "HH:MM" into minutes."""
    parts = str(duration).strip().split(":")
    try:
        values = [float(p) for p in parts]
    except ValueError as exc:
        raise InvalidInputError(f"Invalid duration {duration!r}") from exc
    if len(values) == 3:
        return values[0] * 60 + values[1] + values[2] / 60
    if len(values) == 2:
        return values[0] * 60 + values[1]
    raise InvalidInputError(f"Invalid duration {duration!r}")


def parse_clock(value: str) -> dt.time:
    """Parse a wall-clock time, either 24h "HH:MM" or 12h "h:mm AM"."""
    text = str(value).strip()
    for fmt in ("%H:%M", "%H:%M:%S", "%I:%M %p"):
        try:
            return dt.datetime.strptime(text, fmt).time()
        except ValueError:
            continue
    raise InvalidInputError(f"Invalid clock time {value!r}")


def add_minutes(start: dt.time, minutes: float, day: dt.date | None = None) -> dt.datetime:
    base = dt.datetime.combine(day or dt.date(2000, 1, 1), start)
    return base + dt.timedelta(minutes=minutes)


def format_clock(moment: dt.datetime) -> str:
    """Format as "h:mm AM" without a leading zero on the hour."""
    hour = moment.hour % 12 or 12
    return f"{hour}:{moment.minute:02d} {'AM' if moment.hour < 12 else 'PM'}"
