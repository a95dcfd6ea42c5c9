from __future__ import annotations

from datetime import date, datetime

import pytest

from src.club_attendance.club_attendance.attendance.memory_attendance_repository import InMemoryAttendanceRepository
from src.club_attendance.club_attendance.attendance.model import AttendanceRecord
from src.club_attendance.club_attendance.common.datetime_utils import club_timezone


@pytest.fixture
def tz():
    return club_timezone("Europe/Istanbul")


@pytest.fixture
def fixed_now(tz):
    return datetime(2024, 3, 15, 18, 30, 0, tzinfo=tz)


@pytest.fixture
def make_record():
    counter = {"n": 0}

    def _make(
        *,
        record_id=None,
        student_id=None,
        day=date(2024, 3, 15),
        group_id="g1",
        trainer_id="t1",
        branch_id="b1",
        status="present",
        group_name="Juniors",
        trainer_name="Ayse",
        branch_name="Central",
        notes="",
    ) -> AttendanceRecord:
        counter["n"] += 1
        n = counter["n"]
        return AttendanceRecord(
            id=record_id or f"r{n}",
            student_id=student_id or f"s{n}",
            student_name=f"Student {n}",
            trainer_id=trainer_id,
            trainer_name=trainer_name,
            branch_id=branch_id,
            branch_name=branch_name,
            group_id=group_id,
            group_name=group_name,
            date=day,
            status=status,
            notes=notes,
            created_at=datetime(2024, 3, 15, 10, 0, n % 60),
        )

    return _make


@pytest.fixture
def memory_repo(tz):
    return InMemoryAttendanceRepository(tz=tz)
