from __future__ import annotations

import logging
from datetime import tzinfo
from typing import Callable, Optional, Sequence

from ..attendance.feed import Subscription
from ..attendance.model import AttendanceRecord, RecordQuery
from ..attendance.repository import AttendanceRepository
from ..core.enums import SyncStatus
from ..core.exceptions import FeedError
from .filtering import filter_sessions
from .grouping import group_sessions
from .model import Session, SessionFilter

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[Sequence[Session]], None]


class SessionSyncController:
    """Keeps a view's sessions in step with a live record feed.

    IDLE -> SUBSCRIBING on ``mount()``, -> LIVE on the first snapshot, LIVE on
    every later snapshot (full regroup, sessions replaced wholesale), -> IDLE
    on ``unmount()``. A feed failure moves to ERROR: the error is exposed,
    updates stop and nothing is retried; unmount and mount again to resubscribe.

    ``unmount()`` is idempotent and safe in every state.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        *,
        query: Optional[RecordQuery] = None,
        tz: tzinfo | None = None,
        on_change: Optional[ChangeCallback] = None,
    ):
        self._attendance = attendance
        self._query = query or RecordQuery()
        self._tz = tz
        self._on_change = on_change

        self._status = SyncStatus.IDLE
        self._records: tuple[AttendanceRecord, ...] = ()
        self._sessions: tuple[Session, ...] = ()
        self._error: Optional[FeedError] = None
        self._subscription: Optional[Subscription] = None
        # Bumped on every mount/unmount so late callbacks of an old feed are ignored.
        self._generation = 0

    @property
    def status(self) -> SyncStatus:
        return self._status

    @property
    def sessions(self) -> tuple[Session, ...]:
        return self._sessions

    @property
    def records(self) -> tuple[AttendanceRecord, ...]:
        return self._records

    @property
    def error(self) -> Optional[FeedError]:
        return self._error

    def filtered(self, criteria: Optional[SessionFilter] = None, **options) -> list[Session]:
        return filter_sessions(self._sessions, criteria, tz=self._tz, **options)

    async def mount(self) -> None:
        if self._status is not SyncStatus.IDLE:
            raise RuntimeError(f"Cannot mount a controller in state {self._status.value!r}")

        self._generation += 1
        generation = self._generation
        self._status = SyncStatus.SUBSCRIBING
        self._error = None

        try:
            subscription = await self._attendance.subscribe(
                self._query,
                lambda records: self._handle_snapshot(generation, records),
                lambda error: self._handle_error(generation, error),
            )
        except Exception as e:
            self._handle_error(generation, e)
            return

        if generation != self._generation or self._status is SyncStatus.ERROR:
            # Unmounted or failed while the feed was opening.
            subscription.cancel()
            return
        self._subscription = subscription

    def unmount(self) -> None:
        self._generation += 1
        self._release()
        self._status = SyncStatus.IDLE
        self._error = None
        self._records = ()
        self._sessions = ()

    async def __aenter__(self) -> "SessionSyncController":
        await self.mount()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.unmount()

    def _release(self) -> None:
        subscription, self._subscription = self._subscription, None
        if subscription is not None:
            subscription.cancel()

    def _handle_snapshot(self, generation: int, records: Sequence[AttendanceRecord]) -> None:
        if generation != self._generation or self._status is SyncStatus.ERROR:
            return

        self._records = tuple(records)
        self._sessions = tuple(group_sessions(self._records, tz=self._tz))
        self._status = SyncStatus.LIVE
        if self._on_change is not None:
            self._on_change(self._sessions)

    def _handle_error(self, generation: int, error: Exception) -> None:
        if generation != self._generation:
            return

        if not isinstance(error, FeedError):
            wrapped = FeedError(f"Attendance feed failed: {error}")
            wrapped.__cause__ = error
            error = wrapped

        logger.error("Attendance feed stopped: %s", error)
        self._error = error
        self._status = SyncStatus.ERROR
        self._release()


async def start_listening(
    attendance: AttendanceRepository,
    *,
    query: Optional[RecordQuery] = None,
    tz: tzinfo | None = None,
    on_change: Optional[ChangeCallback] = None,
) -> SessionSyncController:
    """Open a live session view and hand the owning caller its handle.

    The caller keeps the returned controller and calls ``unmount()`` when done.
    """

    controller = SessionSyncController(attendance, query=query, tz=tz, on_change=on_change)
    await controller.mount()
    return controller
