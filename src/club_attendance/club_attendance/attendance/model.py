from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Any, Mapping, Optional, Union

from ..core.constants import ATTENDANCE_COLLECTION, DEFAULT_ORDER_FIELD, FILTERABLE_FIELDS, ORDERABLE_FIELDS
from ..core.exceptions import ValidationError

RecordDate = Union[date, datetime, str, None]


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one student's attendance at one training.

    Names are snapshots taken when the record was created; renaming a trainer
    or group later does not touch existing records.
    """

    id: str
    student_id: str
    student_name: str
    trainer_id: str
    trainer_name: str
    branch_id: str
    branch_name: str
    group_id: str
    group_name: str
    date: RecordDate
    status: str
    notes: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_document(cls, record_id: str, data: Mapping[str, Any]) -> "AttendanceRecord":
        """Build a record from a raw camelCase store document."""

        def text(key: str) -> str:
            value = data.get(key)
            return "" if value is None else str(value)

        return cls(
            id=str(record_id),
            student_id=text("studentId"),
            student_name=text("studentName"),
            trainer_id=text("trainerId"),
            trainer_name=text("trainerName"),
            branch_id=text("branchId"),
            branch_name=text("branchName"),
            group_id=text("groupId"),
            group_name=text("groupName"),
            date=data.get("date"),
            status=text("status"),
            notes=text("notes"),
            created_at=data.get("createdAt"),
            updated_at=data.get("updatedAt"),
        )


@dataclass(frozen=True)
class NewAttendanceRecord:
    """Fields for a record that does not exist yet (the store assigns the id)."""

    student_id: str
    student_name: str
    trainer_id: str
    trainer_name: str
    branch_id: str
    branch_name: str
    group_id: str
    group_name: str
    date: date | datetime
    status: str
    notes: str
    created_at: datetime

    def with_id(self, record_id: str) -> AttendanceRecord:
        return AttendanceRecord(
            id=record_id,
            student_id=self.student_id,
            student_name=self.student_name,
            trainer_id=self.trainer_id,
            trainer_name=self.trainer_name,
            branch_id=self.branch_id,
            branch_name=self.branch_name,
            group_id=self.group_id,
            group_name=self.group_name,
            date=self.date,
            status=self.status,
            notes=self.notes,
            created_at=self.created_at,
            updated_at=self.created_at,
        )


@dataclass(frozen=True)
class Branch:
    id: str
    name: str


@dataclass(frozen=True)
class Group:
    id: str
    name: str
    branch_id: Optional[str] = None


@dataclass(frozen=True)
class Trainer:
    id: str
    name: str


@dataclass(frozen=True)
class Student:
    id: str
    name: str


@dataclass(frozen=True)
class AttendanceEntry:
    """One row of a "take attendance" form."""

    student: Student
    status: str
    notes: str = ""


@dataclass(frozen=True)
class RecordQuery:
    """Query config for reads and live feeds: equality filters, ordering, limit."""

    collection: str = ATTENDANCE_COLLECTION
    filters: tuple[tuple[str, str], ...] = ()
    order_by: str = DEFAULT_ORDER_FIELD
    descending: bool = True
    limit: Optional[int] = None

    def __post_init__(self):
        for name, _ in self.filters:
            if name not in FILTERABLE_FIELDS:
                raise ValidationError(f"Cannot filter on {name!r}")
        if self.order_by not in ORDERABLE_FIELDS:
            raise ValidationError(f"Cannot order by {self.order_by!r}")
        if self.limit is not None and int(self.limit) <= 0:
            raise ValidationError("limit must be positive")

    def where(self, name: str, value: str) -> "RecordQuery":
        return replace(self, filters=self.filters + ((name, str(value)),))

    def matches(self, record: AttendanceRecord) -> bool:
        return all(str(getattr(record, name)) == value for name, value in self.filters)

