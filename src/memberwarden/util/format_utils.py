import re
from datetime import datetime, timedelta, timezone

from memberwarden.errors import InvalidDuration

_UNIT_SECONDS = {
    "s": 1, "sec": 1, "secs": 1, "second": 1, "seconds": 1,
    "m": 60, "min": 60, "mins": 60, "minute": 60, "minutes": 60,
    "h": 3600, "hr": 3600, "hrs": 3600, "hour": 3600, "hours": 3600,
    "d": 86400, "day": 86400, "days": 86400,
    "w": 604800, "week": 604800, "weeks": 604800,
}

_DURATION_PART = re.compile(r"\s*([0-9]{1,18})\s*([a-zA-Z]+)")

# Longest suspension accepted from a command: 100 years.
MAX_DURATION_SECONDS = 100 * 365 * 86400


def parse_duration(text: str) -> timedelta:
    """Parse a humantime-style duration such as ``10m``, ``1h 30m`` or ``2days``.

    Args:
        text: One or more ``<number><unit>`` groups, optionally separated by spaces.

    Returns:
        The total duration.

    Raises:
        InvalidDuration: If the text is empty, has an unknown unit, contains
            anything besides duration groups, adds up to zero, or exceeds
            ``MAX_DURATION_SECONDS``.
    """
    if not isinstance(text, str) or not text.strip():
        raise InvalidDuration("Duration is empty.")

    total = 0
    position = 0
    source = text.strip()
    while position < len(source):
        match = _DURATION_PART.match(source, position)
        if match is None:
            raise InvalidDuration(f"Could not parse duration {text!r}.")
        amount, unit = match.groups()
        factor = _UNIT_SECONDS.get(unit.lower())
        if factor is None:
            raise InvalidDuration(f"Unknown duration unit {unit!r} in {text!r}.")
        total += int(amount) * factor
        position = match.end()

    if total <= 0:
        raise InvalidDuration(f"Duration {text!r} must be longer than zero.")
    if total > MAX_DURATION_SECONDS:
        raise InvalidDuration(f"Duration {text!r} is longer than {format_duration(MAX_DURATION_SECONDS)}.")
    return timedelta(seconds=total)


def format_duration(seconds: int) -> str:
    """
    Convert a duration in seconds to a compact human-readable string.

    Args:
        seconds (int): Duration in seconds.

    Returns:
        str: e.g. ``"45 secs"``, ``"10 mins"``, ``"1 hour"``, ``"3 days"``.
    """
    if seconds < 60:
        return f"{seconds} secs"
    elif seconds < 3600:
        mins = seconds // 60
        return f"{mins} mins"
    elif seconds < 86400:
        hours = seconds // 3600
        return f"{hours} hour{'s' if hours != 1 else ''}"
    else:
        days = seconds // 86400
        return f"{days} day{'s' if days != 1 else ''}"


def humanize_timestamp(value: datetime) -> str:
    """Return a human-readable timestamp (YYYY-MM-DD HH:MM:SS UTC).

    Naive datetimes are assumed to be UTC.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")
