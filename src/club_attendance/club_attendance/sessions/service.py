from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime, tzinfo
from typing import Any, Awaitable, Callable, Mapping, Optional, Sequence, Union

from ..attendance.model import (
    AttendanceEntry,
    AttendanceRecord,
    Branch,
    Group,
    NewAttendanceRecord,
    RecordQuery,
    Trainer,
)
from ..attendance.repository import AttendanceRepository
from ..common.datetime_utils import club_timezone, now_local, to_calendar_day
from ..common.validators import require_non_empty
from ..core.constants import DEFAULT_HISTORY_LIMIT
from ..core.enums import AttendanceStatus
from ..core.exceptions import AggregateError, AuthorizationError, NotFoundError, StoreWriteError, ValidationError
from .filtering import filter_sessions
from .grouping import find_session, group_sessions
from .model import Session, SessionFilter

logger = logging.getLogger(__name__)

StatusValue = Union[str, AttendanceStatus]


class SessionService:
    """Reads and multi-record writes over attendance sessions.

    A session write is a set of independent record writes issued concurrently
    and joined before returning. There is no transaction: when some writes
    fail, the ones that succeeded stay applied and an AggregateError reports
    how many of the batch went through. State is never patched locally; views
    pick up the result through their live feed.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        *,
        tz: tzinfo | None = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._attendance = attendance
        self._tz = tz or club_timezone()
        self._clock = clock or (lambda: now_local(self._tz))

    @staticmethod
    def _require_capability(can_manage: bool) -> None:
        if not can_manage:
            raise AuthorizationError("You are not allowed to change attendance")

    async def _run_batch(self, operation: str, calls: Sequence[Awaitable[Any]]) -> list[Any]:
        if not calls:
            return []

        results = await asyncio.gather(*calls, return_exceptions=True)
        errors: list[StoreWriteError] = []
        for result in results:
            if isinstance(result, StoreWriteError):
                errors.append(result)
            elif isinstance(result, BaseException):
                raise result

        if errors:
            error = AggregateError(operation, succeeded=len(results) - len(errors), errors=errors)
            logger.warning("Attendance batch partially failed: %s", error)
            raise error

        logger.info("Attendance batch %s: %d operations succeeded", operation, len(results))
        return list(results)

    # Reads

    async def list_sessions(
        self,
        criteria: Optional[SessionFilter] = None,
        *,
        query: Optional[RecordQuery] = None,
    ) -> list[Session]:
        records = await self._attendance.list_records(query or RecordQuery())
        sessions = group_sessions(records, tz=self._tz)
        if criteria is None or criteria.is_empty:
            return sessions
        return filter_sessions(sessions, criteria, tz=self._tz)

    async def get_session(self, key: str) -> Session:
        session = find_session(await self.list_sessions(), key)
        if session is None:
            raise NotFoundError(f"Attendance session {key!r} not found")
        return session

    async def student_history(self, student_id: str, *, limit: Optional[int] = DEFAULT_HISTORY_LIMIT) -> list[AttendanceRecord]:
        student_id = require_non_empty(student_id, "Student")
        query = RecordQuery(order_by="date", limit=limit).where("student_id", student_id)
        return list(await self._attendance.list_records(query))

    # Writes

    async def commit_status_edits(
        self,
        session: Session,
        edits: Mapping[str, StatusValue],
        *,
        can_manage: bool = True,
    ) -> int:
        """Write every changed status of ``edits`` (record id -> new status).

        Unchanged entries are skipped. Returns the number of updates issued.
        """

        self._require_capability(can_manage)

        by_id = {r.id: r for r in session.records}
        changes: list[tuple[str, AttendanceStatus]] = []
        for record_id, value in edits.items():
            record = by_id.get(record_id)
            if record is None:
                raise ValidationError(f"Record {record_id!r} is not part of session {session.key!r}")
            status = AttendanceStatus.parse(value)
            if status is None:
                raise ValidationError(f"Invalid attendance status: {value!r}")
            if AttendanceStatus.parse(record.status) != status:
                changes.append((record_id, status))

        await self._run_batch(
            "update",
            [self._attendance.update_record(record_id, status=status.value) for record_id, status in changes],
        )
        return len(changes)

    async def delete_session(self, session: Session, *, can_manage: bool = True) -> int:
        """Delete a whole session.

        Destructive and not reversible: deleting a session deletes all
        ``session.total_count`` of its records, one delete per record. Ask the
        user to confirm first (see ``Session.describe_deletion``).
        """

        self._require_capability(can_manage)

        await self._run_batch("delete", [self._attendance.delete_record(r.id) for r in session.records])
        logger.info("Deleted attendance session %s (%d records)", session.key, session.total_count)
        return session.total_count

    async def create_session(
        self,
        *,
        branch: Optional[Branch],
        group: Optional[Group],
        trainer: Optional[Trainer],
        date: Union[date, datetime, str, None],
        entries: Sequence[AttendanceEntry],
        can_manage: bool = True,
    ) -> list[str]:
        """Take attendance: create one record per entry.

        All checks run before the first write. Name snapshots are copied from
        the given branch/group/trainer/student at submission time.
        """

        self._require_capability(can_manage)

        if branch is None or not branch.id:
            raise ValidationError("Branch selection is required")
        if group is None or not group.id:
            raise ValidationError("Group selection is required")
        if trainer is None or not trainer.id:
            raise ValidationError("Trainer selection is required")
        if group.branch_id and group.branch_id != branch.id:
            raise ValidationError(f"Group {group.name!r} does not belong to branch {branch.name!r}")
        if not entries:
            raise ValidationError("No students to take attendance for")

        training_date = self._normalize_date(date)

        seen: set[str] = set()
        statuses: list[AttendanceStatus] = []
        for entry in entries:
            if entry.student.id in seen:
                raise ValidationError(f"Student {entry.student.name!r} appears more than once")
            seen.add(entry.student.id)
            status = AttendanceStatus.parse(entry.status)
            if status is None:
                raise ValidationError(f"Invalid attendance status for {entry.student.name!r}: {entry.status!r}")
            statuses.append(status)

        created_at = self._clock()
        records = [
            NewAttendanceRecord(
                student_id=entry.student.id,
                student_name=entry.student.name,
                trainer_id=trainer.id,
                trainer_name=trainer.name,
                branch_id=branch.id,
                branch_name=branch.name,
                group_id=group.id,
                group_name=group.name,
                date=training_date,
                status=status.value,
                notes=(entry.notes or "").strip(),
                created_at=created_at,
            )
            for entry, status in zip(entries, statuses)
        ]

        return await self._run_batch("create", [self._attendance.create_record(r) for r in records])

    def _normalize_date(self, value: Union[date, datetime, str, None]) -> date | datetime:
        if value is None or value == "":
            raise ValidationError("Training date is required")
        if isinstance(value, (date, datetime)):
            return value
        try:
            return to_calendar_day(value, self._tz)
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Invalid training date: {value!r}") from e
