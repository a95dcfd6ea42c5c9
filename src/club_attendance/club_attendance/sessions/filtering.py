from __future__ import annotations

from datetime import tzinfo
from typing import Optional, Sequence

from ..common.datetime_utils import to_calendar_day
from ..core.exceptions import ValidationError
from .model import Session, SessionFilter


def filter_sessions(
    sessions: Sequence[Session],
    criteria: Optional[SessionFilter] = None,
    *,
    tz: tzinfo | None = None,
    **options,
) -> list[Session]:
    """Apply search/branch/group/date predicates (ANDed) to grouped sessions.

    Either pass a SessionFilter or its fields as keyword arguments. Returns a
    new list in the input order.
    """

    if criteria is None:
        criteria = SessionFilter(**options)
    elif options:
        raise TypeError("Pass either a SessionFilter or keyword options, not both")

    text = criteria.free_text.strip().casefold()
    day = None
    if criteria.date:
        try:
            day = to_calendar_day(criteria.date, tz)
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Invalid date filter: {criteria.date!r}") from e

    def keep(session: Session) -> bool:
        if text and not any(
            text in (name or "").casefold()
            for name in (session.trainer_name, session.branch_name, session.group_name)
        ):
            return False
        if criteria.branch_id and session.branch_id != criteria.branch_id:
            return False
        if criteria.group_id and session.group_id != criteria.group_id:
            return False
        if day is not None and session.date != day:
            return False
        return True

    return [s for s in sessions if keep(s)]
