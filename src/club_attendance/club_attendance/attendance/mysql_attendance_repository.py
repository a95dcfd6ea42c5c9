from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import date, datetime, tzinfo
from typing import Any, Optional, Sequence

import mysql.connector

from ..common.datetime_utils import club_timezone, now_local
from ..core.constants import DEFAULT_FEED_POLL_SECONDS, FILTERABLE_FIELDS, ORDERABLE_FIELDS
from ..core.exceptions import FeedError, StoreWriteError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall
from .feed import ErrorCallback, SnapshotCallback, Subscription
from .model import AttendanceRecord, NewAttendanceRecord, RecordQuery
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)

_COLUMNS = (
    "id, student_id, student_name, trainer_id, trainer_name, branch_id, branch_name, "
    "group_id, group_name, date, status, notes, created_at, updated_at"
)


def build_select(query: RecordQuery) -> tuple[str, tuple[Any, ...]]:
    """Translate a RecordQuery into SQL. Field names are whitelisted."""

    clauses: list[str] = []
    params: list[Any] = []
    for name, value in query.filters:
        if name not in FILTERABLE_FIELDS:
            raise ValueError(f"Unsupported filter field: {name}")
        clauses.append(f"{name}=%s")
        params.append(value)

    if query.order_by not in ORDERABLE_FIELDS:
        raise ValueError(f"Unsupported order field: {query.order_by}")
    direction = "DESC" if query.descending else "ASC"

    sql = f"SELECT {_COLUMNS} FROM attendance"
    if clauses:
        sql += " WHERE " + " AND ".join(clauses)
    sql += f" ORDER BY {query.order_by} IS NULL, {query.order_by} {direction}, id ASC"
    if query.limit is not None:
        sql += " LIMIT %s"
        params.append(int(query.limit))
    return sql, tuple(params)


class MySQLAttendanceRepository(AttendanceRepository):
    """Attendance store on MySQL.

    DATETIME columns hold wall-clock time in the club timezone. Blocking
    connector calls run in worker threads. Live feeds poll the query every
    ``poll_interval`` seconds and emit the full result set whenever it changed.
    Updating or deleting an unknown id raises StoreWriteError.
    """

    def __init__(
        self,
        conn_factory: DatabaseConnection,
        *,
        tz: tzinfo | None = None,
        poll_interval: float = DEFAULT_FEED_POLL_SECONDS,
    ):
        self._conn_factory = conn_factory
        self._tz = tz or club_timezone()
        self._poll_interval = float(poll_interval)

    def _to_db(self, value: Optional[date]) -> Optional[date]:
        if isinstance(value, datetime) and value.tzinfo is not None:
            return value.astimezone(self._tz).replace(tzinfo=None)
        return value

    @staticmethod
    def _to_record(r: dict) -> AttendanceRecord:
        return AttendanceRecord(
            id=str(r["id"]),
            student_id=r["student_id"],
            student_name=r.get("student_name") or "",
            trainer_id=r["trainer_id"],
            trainer_name=r.get("trainer_name") or "",
            branch_id=r["branch_id"],
            branch_name=r.get("branch_name") or "",
            group_id=r["group_id"],
            group_name=r.get("group_name") or "",
            date=r.get("date"),
            status=r.get("status") or "",
            notes=r.get("notes") or "",
            created_at=r.get("created_at"),
            updated_at=r.get("updated_at"),
        )

    # Blocking helpers (run in worker threads)

    def _insert(self, record_id: str, record: NewAttendanceRecord) -> None:
        created_at = self._to_db(record.created_at)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                INSERT INTO attendance({_COLUMNS})
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    record_id,
                    record.student_id,
                    record.student_name,
                    record.trainer_id,
                    record.trainer_name,
                    record.branch_id,
                    record.branch_name,
                    record.group_id,
                    record.group_name,
                    self._to_db(record.date),
                    record.status,
                    record.notes,
                    created_at,
                    created_at,
                ),
            )

    def _update(self, record_id: str, status: Optional[str], notes: Optional[str]) -> int:
        sets = ["updated_at=%s"]
        params: list[Any] = [self._to_db(now_local(self._tz))]
        if status is not None:
            sets.append("status=%s")
            params.append(status)
        if notes is not None:
            sets.append("notes=%s")
            params.append(notes)
        params.append(record_id)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"UPDATE attendance SET {', '.join(sets)} WHERE id=%s", tuple(params))
            return cur.rowcount

    def _delete(self, record_id: str) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM attendance WHERE id=%s", (record_id,))
            return cur.rowcount

    def _select(self, query: RecordQuery) -> list[AttendanceRecord]:
        sql, params = build_select(query)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, params)
            return [self._to_record(r) for r in fetchall(cur)]

    # AttendanceRepository

    async def create_record(self, record: NewAttendanceRecord) -> str:
        record_id = uuid.uuid4().hex
        try:
            await asyncio.to_thread(self._insert, record_id, record)
        except mysql.connector.Error as e:
            raise StoreWriteError(f"Could not create attendance record: {e}") from e
        return record_id

    async def update_record(
        self,
        record_id: str,
        *,
        status: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> None:
        try:
            rowcount = await asyncio.to_thread(self._update, record_id, status, notes)
        except mysql.connector.Error as e:
            raise StoreWriteError(f"Could not update attendance record {record_id!r}: {e}", record_id=record_id) from e
        if rowcount == 0:
            raise StoreWriteError(f"Attendance record {record_id!r} does not exist", record_id=record_id)

    async def delete_record(self, record_id: str) -> None:
        try:
            rowcount = await asyncio.to_thread(self._delete, record_id)
        except mysql.connector.Error as e:
            raise StoreWriteError(f"Could not delete attendance record {record_id!r}: {e}", record_id=record_id) from e
        if rowcount == 0:
            raise StoreWriteError(f"Attendance record {record_id!r} does not exist", record_id=record_id)

    async def list_records(self, query: RecordQuery) -> Sequence[AttendanceRecord]:
        return await asyncio.to_thread(self._select, query)

    async def subscribe(
        self,
        query: RecordQuery,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> Subscription:
        try:
            records = await self.list_records(query)
        except mysql.connector.Error as e:
            raise FeedError(f"Could not open attendance feed: {e}") from e

        on_snapshot(records)
        task = asyncio.get_running_loop().create_task(
            self._poll(query, on_snapshot, on_error, _fingerprint(records))
        )
        return Subscription(task.cancel, name=f"mysql:{id(task)}")

    async def _poll(
        self,
        query: RecordQuery,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
        last: tuple,
    ) -> None:
        while True:
            await asyncio.sleep(self._poll_interval)
            try:
                records = await self.list_records(query)
                current = _fingerprint(records)
                if current != last:
                    last = current
                    on_snapshot(records)
            except Exception as e:
                # The feed ends on any failure; the owner sees it through on_error.
                logger.warning("Attendance feed failed: %s", e, exc_info=not isinstance(e, mysql.connector.Error))
                error = FeedError(f"Attendance feed failed: {e}")
                error.__cause__ = e
                on_error(error)
                return


def _fingerprint(records: Sequence[AttendanceRecord]) -> tuple:
    return tuple((r.id, r.status, r.notes, r.updated_at) for r in records)
