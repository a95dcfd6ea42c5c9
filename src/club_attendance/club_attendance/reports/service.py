from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta, tzinfo
from typing import Iterable, Optional

from ..attendance.model import RecordQuery
from ..attendance.repository import AttendanceRepository
from ..common.datetime_utils import club_timezone
from ..core.enums import TrendPeriod
from ..core.exceptions import ValidationError
from ..sessions.grouping import group_sessions
from ..sessions.model import Session


@dataclass(frozen=True)
class AttendanceStats:
    total_sessions: int
    total_students: int
    average_attendance: float
    present_total: int
    absent_total: int
    late_total: int
    excused_total: int


@dataclass(frozen=True)
class TrendPoint:
    period: str
    present: int
    absent: int
    total: int

    @property
    def rate(self) -> float:
        return self.present / self.total * 100 if self.total else 0.0


@dataclass(frozen=True)
class ReportData:
    stats: AttendanceStats
    trend: list[TrendPoint]


def compute_stats(sessions: Iterable[Session]) -> AttendanceStats:
    sessions = list(sessions)
    total_students = sum(s.total_count for s in sessions)
    present_total = sum(s.present_count for s in sessions)
    return AttendanceStats(
        total_sessions=len(sessions),
        total_students=total_students,
        average_attendance=(present_total / total_students * 100) if total_students else 0.0,
        present_total=present_total,
        absent_total=sum(s.absent_count for s in sessions),
        late_total=sum(s.late_count for s in sessions),
        excused_total=sum(s.excused_count for s in sessions),
    )


def period_key(day: date, period: TrendPeriod) -> str:
    if period is TrendPeriod.WEEK:
        # Weeks start on Monday.
        return (day - timedelta(days=day.weekday())).isoformat()
    if period is TrendPeriod.MONTH:
        return f"{day.year}-{day.month:02d}"
    return day.isoformat()


def summarize_trend(sessions: Iterable[Session], period: TrendPeriod = TrendPeriod.DAY) -> list[TrendPoint]:
    """Bucket sessions per day/week/month, oldest first.

    Anything that is not "present" (absent, late, excused) counts as absent.
    """

    buckets: dict[str, dict[str, int]] = {}
    for s in sessions:
        bucket = buckets.setdefault(period_key(s.date, period), {"present": 0, "absent": 0, "total": 0})
        bucket["present"] += s.present_count
        bucket["absent"] += s.absent_count + s.late_count + s.excused_count
        bucket["total"] += s.total_count

    return [TrendPoint(period=key, **values) for key, values in sorted(buckets.items())]


class AttendanceReportService:
    def __init__(self, attendance: AttendanceRepository, *, tz: tzinfo | None = None):
        self._attendance = attendance
        self._tz = tz or club_timezone()

    async def build_report(
        self,
        *,
        start: date,
        end: date,
        period: TrendPeriod = TrendPeriod.WEEK,
        branch_id: Optional[str] = None,
        group_id: Optional[str] = None,
        trainer_id: Optional[str] = None,
    ) -> ReportData:
        if end < start:
            raise ValidationError("End date must not be before start date")

        query = RecordQuery(order_by="date")
        for name, value in (("branch_id", branch_id), ("group_id", group_id), ("trainer_id", trainer_id)):
            if value:
                query = query.where(name, value)

        records = await self._attendance.list_records(query)
        sessions = [s for s in group_sessions(records, tz=self._tz) if start <= s.date <= end]
        return ReportData(stats=compute_stats(sessions), trend=summarize_trend(sessions, period))
