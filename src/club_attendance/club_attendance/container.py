from __future__ import annotations

from dataclasses import dataclass
from datetime import tzinfo
from typing import Optional

from .attendance.memory_attendance_repository import InMemoryAttendanceRepository
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .common.datetime_utils import club_timezone
from .core.constants import DEFAULT_CLUB_TIMEZONE, DEFAULT_FEED_POLL_SECONDS
from .core.exceptions import ValidationError
from .database.connection import DatabaseConnection, DBConfig
from .reports.service import AttendanceReportService
from .sessions.service import SessionService
from .sessions.sync import SessionSyncController


@dataclass(frozen=True)
class Container:
    tz: tzinfo
    conn: Optional[DatabaseConnection]

    attendance_repo: AttendanceRepository

    session_service: SessionService
    report_service: AttendanceReportService

    def session_view(self, **kwargs) -> SessionSyncController:
        """A new, unmounted live session view owned by the caller."""
        return SessionSyncController(self.attendance_repo, tz=self.tz, **kwargs)


def build_container(
    *,
    db_config: Optional[dict] = None,
    backend: str = "mysql",
    timezone_name: str = DEFAULT_CLUB_TIMEZONE,
    poll_seconds: float = DEFAULT_FEED_POLL_SECONDS,
    attendance_repo: Optional[AttendanceRepository] = None,
) -> Container:
    tz = club_timezone(timezone_name)

    conn = None
    if attendance_repo is None:
        if backend == "memory":
            attendance_repo = InMemoryAttendanceRepository(tz=tz)
        elif backend == "mysql":
            if not db_config:
                raise ValidationError("DB_CONFIG is required for the mysql backend")
            conn = DatabaseConnection(DBConfig.from_dict(db_config))
            attendance_repo = MySQLAttendanceRepository(conn, tz=tz, poll_interval=poll_seconds)
        else:
            raise ValidationError(f"Unknown store backend: {backend!r}")

    return Container(
        tz=tz,
        conn=conn,
        attendance_repo=attendance_repo,
        session_service=SessionService(attendance_repo, tz=tz),
        report_service=AttendanceReportService(attendance_repo, tz=tz),
    )
