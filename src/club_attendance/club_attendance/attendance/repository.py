from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .feed import ErrorCallback, SnapshotCallback, Subscription
from .model import AttendanceRecord, NewAttendanceRecord, RecordQuery


class AttendanceRepository(Protocol):
    """Record store adapter.

    Every operation is a coroutine. Write failures surface as StoreWriteError.
    Only ``status`` and ``notes`` can change after creation.
    """

    async def create_record(self, record: NewAttendanceRecord) -> str:
        raise NotImplementedError

    async def update_record(
        self,
        record_id: str,
        *,
        status: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> None:
        """Adapters document their own behaviour for unknown ids."""

        raise NotImplementedError

    async def delete_record(self, record_id: str) -> None:
        raise NotImplementedError

    async def list_records(self, query: RecordQuery) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    async def subscribe(
        self,
        query: RecordQuery,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> Subscription:
        """Open a live feed; ``on_snapshot`` receives the full result set on every change."""

        raise NotImplementedError
