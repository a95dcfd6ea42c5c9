"""Fold a flat list of attendance records into sessions.

A session key is ``"<calendar day>|<group id>|<trainer id>"``. The calendar
day follows the club timezone policy of ``common.datetime_utils``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, tzinfo
from typing import Iterable

from ..attendance.model import AttendanceRecord
from ..common.datetime_utils import to_calendar_day
from ..core.enums import AttendanceStatus
from ..core.exceptions import MalformedRecordError
from .model import Session

logger = logging.getLogger(__name__)

_COUNTER_BY_STATUS = {
    AttendanceStatus.PRESENT: "present_count",
    AttendanceStatus.ABSENT: "absent_count",
    AttendanceStatus.LATE: "late_count",
    AttendanceStatus.EXCUSED: "excused_count",
}


def record_day(record: AttendanceRecord, tz: tzinfo | None = None) -> date:
    if record.date is None:
        raise MalformedRecordError(record.id, "missing date")
    try:
        return to_calendar_day(record.date, tz)
    except (TypeError, ValueError) as e:
        raise MalformedRecordError(record.id, f"unparseable date {record.date!r}") from e


def _make_key(day: date, record: AttendanceRecord) -> str:
    return f"{day.isoformat()}|{record.group_id}|{record.trainer_id}"


def session_key(record: AttendanceRecord, tz: tzinfo | None = None) -> str:
    return _make_key(record_day(record, tz), record)


@dataclass
class _SessionBuilder:
    key: str
    day: date
    seed: AttendanceRecord
    records: list[AttendanceRecord] = field(default_factory=list)
    counts: dict[str, int] = field(default_factory=dict)

    def add(self, record: AttendanceRecord) -> None:
        self.records.append(record)
        counter = _COUNTER_BY_STATUS.get(AttendanceStatus.parse(record.status))
        if counter:
            self.counts[counter] = self.counts.get(counter, 0) + 1

    def build(self) -> Session:
        return Session(
            key=self.key,
            date=self.day,
            group_id=self.seed.group_id,
            group_name=self.seed.group_name,
            trainer_id=self.seed.trainer_id,
            trainer_name=self.seed.trainer_name,
            branch_id=self.seed.branch_id,
            branch_name=self.seed.branch_name,
            records=tuple(self.records),
            total_count=len(self.records),
            **self.counts,
        )


def group_sessions(records: Iterable[AttendanceRecord], *, tz: tzinfo | None = None) -> list[Session]:
    """Group records into sessions, most recent day first.

    Records without a usable date are skipped and logged; unknown statuses are
    kept in ``records`` and ``total_count`` but not in the named counters.
    Ties on the same day are ordered by key so the result does not depend on
    input order.
    """

    builders: dict[str, _SessionBuilder] = {}
    for record in records:
        try:
            day = record_day(record, tz)
        except MalformedRecordError as e:
            logger.warning("Skipping attendance record: %s", e)
            continue

        key = _make_key(day, record)
        builder = builders.get(key)
        if builder is None:
            builder = builders[key] = _SessionBuilder(key=key, day=day, seed=record)
        builder.add(record)

    sessions = sorted((b.build() for b in builders.values()), key=lambda s: s.key)
    sessions.sort(key=lambda s: s.date, reverse=True)
    return sessions


def find_session(sessions: Iterable[Session], key: str) -> Session | None:
    return next((s for s in sessions if s.key == key), None)
