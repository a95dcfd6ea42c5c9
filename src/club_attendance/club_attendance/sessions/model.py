from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Union

from ..attendance.model import AttendanceRecord


@dataclass(frozen=True)
class Session:
    """One training occurrence: all records sharing (day, group, trainer).

    Derived on every read of the record feed and never persisted. Counts are
    computed in one pass over ``records``; ``total_count == len(records)``.
    """

    key: str
    date: date
    group_id: str
    group_name: str
    trainer_id: str
    trainer_name: str
    branch_id: str
    branch_name: str
    records: tuple[AttendanceRecord, ...]
    present_count: int = 0
    absent_count: int = 0
    late_count: int = 0
    excused_count: int = 0
    total_count: int = 0

    @property
    def unrecognized_count(self) -> int:
        return self.total_count - (self.present_count + self.absent_count + self.late_count + self.excused_count)

    @property
    def attendance_rate(self) -> float:
        if not self.total_count:
            return 0.0
        return self.present_count / self.total_count * 100

    @property
    def record_ids(self) -> list[str]:
        return [r.id for r in self.records]

    def describe_deletion(self) -> str:
        """Confirmation text: deleting a session deletes every one of its records."""

        return (
            f"Deleting the {self.group_name} session of {self.date.isoformat()} "
            f"permanently deletes {self.total_count} attendance records."
        )


@dataclass(frozen=True)
class SessionFilter:
    """Search/filter options for the session list. Empty values do not constrain."""

    free_text: str = ""
    branch_id: str = ""
    group_id: str = ""
    date: Optional[Union[date, datetime, str]] = None

    @property
    def is_empty(self) -> bool:
        return not (self.free_text.strip() or self.branch_id or self.group_id or self.date)
