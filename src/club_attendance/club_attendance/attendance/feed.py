from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional, Sequence

from .model import AttendanceRecord

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[Sequence[AttendanceRecord]], None]
ErrorCallback = Callable[[Exception], None]


class Subscription:
    """Handle for one live feed.

    ``cancel()`` (or calling the handle) may be invoked any number of times;
    only the first call releases the underlying listener.
    """

    def __init__(self, release: Callable[[], None], *, name: str = "feed"):
        self._release: Optional[Callable[[], None]] = release
        self.name = name

    @property
    def active(self) -> bool:
        return self._release is not None

    def cancel(self) -> None:
        release, self._release = self._release, None
        if release is None:
            return
        release()
        logger.debug("Subscription %s cancelled", self.name)

    __call__ = cancel


def merge_snapshots(*batches: Iterable[AttendanceRecord]) -> list[AttendanceRecord]:
    """Combine result sets of independently opened feeds.

    Cross-feed ordering is undefined, so records are deduplicated by id; a
    record seen in a later batch replaces the earlier copy in place.
    """

    merged: dict[str, AttendanceRecord] = {}
    for batch in batches:
        for record in batch:
            merged[record.id] = record
    return list(merged.values())
