import re
from datetime import timedelta

DEFAULT_DURATION = timedelta(minutes=15)

_DURATION_RE = re.compile(r"^(\d+)([smhd])$")

_UNITS = {
    "s": "seconds",
    "m": "minutes",
    "h": "hours",
    "d": "days",
}


def parse_duration(value: str) -> timedelta:
    """
    Parse a duration like "30s", "15m", "12h" or "7d".

    Anything else (including None or surrounding whitespace) falls back to
    15 minutes.
    """
    match = _DURATION_RE.match(value or "")
    if not match:
        return DEFAULT_DURATION

    amount, unit = match.groups()
    return timedelta(**{_UNITS[unit]: int(amount)})
