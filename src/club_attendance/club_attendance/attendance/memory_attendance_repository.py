from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from datetime import date, datetime, timezone, tzinfo
from typing import Any, Mapping, Optional, Sequence

from ..common.datetime_utils import club_timezone, now_local
from ..core.exceptions import StoreWriteError
from .feed import ErrorCallback, SnapshotCallback, Subscription
from .model import AttendanceRecord, NewAttendanceRecord, RecordQuery
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


class _Listener:
    def __init__(self, query: RecordQuery, on_snapshot: SnapshotCallback, on_error: ErrorCallback):
        self.query = query
        self.on_snapshot = on_snapshot
        self.on_error = on_error


class InMemoryAttendanceRepository(AttendanceRepository):
    """Process-local record store with live feeds.

    Every write re-delivers the full matching result set to each listener, the
    way a document database's snapshot listener does. Updating or deleting an
    unknown id raises StoreWriteError.
    """

    def __init__(self, *, tz: tzinfo | None = None):
        self._tz = tz or club_timezone()
        self._records: dict[str, AttendanceRecord] = {}
        self._listeners: dict[int, _Listener] = {}
        self._next_listener = 0

    def load_documents(self, documents: Mapping[str, Mapping[str, Any]]) -> None:
        """Import raw store documents keyed by id (no feed notification)."""

        for record_id, data in documents.items():
            self._records[str(record_id)] = AttendanceRecord.from_document(record_id, data)

    def add(self, record: AttendanceRecord) -> None:
        self._records[record.id] = record
        self._notify()

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    async def create_record(self, record: NewAttendanceRecord) -> str:
        record_id = uuid.uuid4().hex
        self._records[record_id] = record.with_id(record_id)
        self._notify()
        return record_id

    async def update_record(
        self,
        record_id: str,
        *,
        status: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> None:
        current = self._records.get(record_id)
        if current is None:
            raise StoreWriteError(f"Attendance record {record_id!r} does not exist", record_id=record_id)

        changes: dict[str, Any] = {"updated_at": now_local(self._tz)}
        if status is not None:
            changes["status"] = status
        if notes is not None:
            changes["notes"] = notes

        self._records[record_id] = replace(current, **changes)
        self._notify()

    async def delete_record(self, record_id: str) -> None:
        if self._records.pop(record_id, None) is None:
            raise StoreWriteError(f"Attendance record {record_id!r} does not exist", record_id=record_id)
        self._notify()

    async def list_records(self, query: RecordQuery) -> Sequence[AttendanceRecord]:
        return self._select(query)

    async def subscribe(
        self,
        query: RecordQuery,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> Subscription:
        listener_id = self._next_listener
        self._next_listener += 1
        listener = _Listener(query, on_snapshot, on_error)
        self._listeners[listener_id] = listener

        self._deliver(listener)
        return Subscription(lambda: self._listeners.pop(listener_id, None), name=f"memory:{listener_id}")

    def fail_feeds(self, error: Exception) -> None:
        """Terminate every open feed with ``error`` (e.g. permission revoked)."""

        listeners = list(self._listeners.values())
        self._listeners.clear()
        for listener in listeners:
            listener.on_error(error)

    def _select(self, query: RecordQuery) -> list[AttendanceRecord]:
        matching = [r for r in self._records.values() if query.matches(r)]

        with_value = [r for r in matching if getattr(r, query.order_by) is not None]
        without_value = [r for r in matching if getattr(r, query.order_by) is None]
        with_value.sort(key=lambda r: self._sort_key(getattr(r, query.order_by)), reverse=query.descending)

        rows = with_value + without_value
        if query.limit is not None:
            rows = rows[: int(query.limit)]
        return rows

    def _sort_key(self, value: object) -> str:
        if isinstance(value, datetime):
            if value.tzinfo is None:
                value = value.replace(tzinfo=self._tz)
            return value.astimezone(timezone.utc).isoformat()
        if isinstance(value, date):
            return value.isoformat()
        return str(value)

    def _notify(self) -> None:
        for listener in list(self._listeners.values()):
            self._deliver(listener)

    def _deliver(self, listener: _Listener) -> None:
        try:
            listener.on_snapshot(self._select(listener.query))
        except Exception:
            # Listener errors stay out of the write path.
            logger.exception("Snapshot listener raised")
