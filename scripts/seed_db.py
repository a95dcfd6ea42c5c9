"""Seed a few demo training sessions.

Writes go through SessionService.create_session, so every record gets the
same name snapshots and timestamps as attendance taken from the API.
"""

from __future__ import annotations

import asyncio
import importlib
import sys
from datetime import timedelta
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import get_settings_module

from src.club_attendance.club_attendance.attendance.model import (
    AttendanceEntry,
    Branch,
    Group,
    Student,
    Trainer,
)
from src.club_attendance.club_attendance.common.datetime_utils import now_local
from src.club_attendance.club_attendance.container import build_container
from src.club_attendance.club_attendance.core.enums import AttendanceStatus

BRANCH = Branch(id="branch-central", name="Central")
GROUPS = [
    Group(id="group-u10", name="Under 10", branch_id=BRANCH.id),
    Group(id="group-u14", name="Under 14", branch_id=BRANCH.id),
]
TRAINERS = [Trainer(id="trainer-ayse", name="Ayse Demir"), Trainer(id="trainer-mert", name="Mert Kaya")]
STUDENTS = [Student(id=f"student-{i}", name=f"Student {i}") for i in range(1, 9)]

# Rotated per session so the demo data shows every status
STATUS_CYCLE = [
    AttendanceStatus.PRESENT,
    AttendanceStatus.PRESENT,
    AttendanceStatus.PRESENT,
    AttendanceStatus.LATE,
    AttendanceStatus.ABSENT,
    AttendanceStatus.EXCUSED,
]


async def seed(container, *, days: int = 7) -> int:
    today = now_local(container.tz).date()
    created = 0
    for offset in range(days):
        day = today - timedelta(days=offset)
        for i, (group, trainer) in enumerate(zip(GROUPS, TRAINERS)):
            students = STUDENTS[i * 4:(i + 1) * 4]
            entries = [
                AttendanceEntry(student=s, status=STATUS_CYCLE[(offset + j) % len(STATUS_CYCLE)].value)
                for j, s in enumerate(students)
            ]
            ids = await container.session_service.create_session(
                branch=BRANCH,
                group=group,
                trainer=trainer,
                date=day,
                entries=entries,
            )
            created += len(ids)
    return created


def main() -> None:
    settings = importlib.import_module(get_settings_module())
    db_config = dict(settings.DB_CONFIG)

    container = build_container(
        db_config=db_config,
        backend="mysql",
        timezone_name=settings.CLUB_TIMEZONE,
    )
    created = asyncio.run(seed(container))

    print(
        f"OK: Seeded {created} attendance records -> "
        f"{db_config.get('user')}@{db_config.get('host')}:{db_config.get('port', 3306)}/{db_config.get('database')}"
    )


if __name__ == "__main__":
    main()
