from __future__ import annotations

from datetime import date, datetime, tzinfo
from functools import lru_cache
from zoneinfo import ZoneInfo

from ..core.constants import DEFAULT_CLUB_TIMEZONE


@lru_cache(maxsize=None)
def club_timezone(name: str = DEFAULT_CLUB_TIMEZONE) -> tzinfo:
    """Resolve the canonical timezone used for day boundaries."""
    return ZoneInfo(name)


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def to_calendar_day(value: object, tz: tzinfo | None = None) -> date:
    """Truncate a record date to the club's calendar day.

    Policy: naive datetimes are wall-clock time in the club timezone, aware
    datetimes are converted into it first, plain dates and ``YYYY-MM-DD``
    strings are taken as they are.

    Raises ValueError/TypeError for anything that is not a date.
    """

    tz = tz or club_timezone()

    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(tz)
        return value.date()

    if isinstance(value, date):
        return value

    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValueError("empty date string")
        if len(text) == 10:
            return parse_iso_date(text)
        # fromisoformat on older interpreters does not accept a trailing Z
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        return to_calendar_day(datetime.fromisoformat(text), tz)

    raise TypeError(f"Unsupported date value: {type(value)!r}")


def now_local(tz: tzinfo | None = None) -> datetime:
    """Current time in the club timezone.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now(tz or club_timezone())
