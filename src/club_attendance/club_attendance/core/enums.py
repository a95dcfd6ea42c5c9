from __future__ import annotations

from enum import Enum


class AttendanceStatus(str, Enum):
    """Attendance status values stored on each record."""

    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"
    EXCUSED = "excused"

    @classmethod
    def parse(cls, value: object) -> "AttendanceStatus | None":
        """Return the matching status, or None for empty/novel values."""

        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


class SyncStatus(str, Enum):
    """Lifecycle of a live session view."""

    IDLE = "idle"
    SUBSCRIBING = "subscribing"
    LIVE = "live"
    ERROR = "error"


class TrendPeriod(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
