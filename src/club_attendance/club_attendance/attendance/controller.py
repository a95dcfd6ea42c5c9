from __future__ import annotations

from datetime import date, datetime, timedelta
from functools import wraps
from typing import Any

from flask import Flask, jsonify, request

from ..common.datetime_utils import now_local, parse_iso_date
from ..container import Container
from ..core.constants import DEFAULT_HISTORY_LIMIT, DEFAULT_STATS_DAYS
from ..core.enums import TrendPeriod
from ..core.exceptions import AggregateError, AuthorizationError, NotFoundError, ValidationError
from ..sessions.model import Session, SessionFilter
from .model import AttendanceEntry, AttendanceRecord, Branch, Group, Student, Trainer


def _iso(value: Any) -> Any:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


def record_to_dict(r: AttendanceRecord) -> dict:
    return {
        "id": r.id,
        "student_id": r.student_id,
        "student_name": r.student_name,
        "trainer_id": r.trainer_id,
        "trainer_name": r.trainer_name,
        "branch_id": r.branch_id,
        "branch_name": r.branch_name,
        "group_id": r.group_id,
        "group_name": r.group_name,
        "date": _iso(r.date),
        "status": r.status,
        "notes": r.notes,
        "created_at": _iso(r.created_at),
    }


def session_to_dict(s: Session, *, with_records: bool = False) -> dict:
    data = {
        "key": s.key,
        "date": s.date.isoformat(),
        "group_id": s.group_id,
        "group_name": s.group_name,
        "trainer_id": s.trainer_id,
        "trainer_name": s.trainer_name,
        "branch_id": s.branch_id,
        "branch_name": s.branch_name,
        "present_count": s.present_count,
        "absent_count": s.absent_count,
        "late_count": s.late_count,
        "excused_count": s.excused_count,
        "total_count": s.total_count,
        "attendance_rate": round(s.attendance_rate, 1),
    }
    if with_records:
        data["records"] = [record_to_dict(r) for r in s.records]
    return data


def _ref(payload: dict, name: str, cls):
    raw = payload.get(name)
    if not isinstance(raw, dict):
        return None
    if cls is Group:
        return Group(id=str(raw.get("id") or ""), name=str(raw.get("name") or ""), branch_id=raw.get("branch_id"))
    return cls(id=str(raw.get("id") or ""), name=str(raw.get("name") or ""))


def _entries(payload: dict) -> list[AttendanceEntry]:
    entries = []
    for raw in payload.get("entries") or []:
        student = _ref(raw, "student", Student)
        if student is None or not student.id:
            raise ValidationError("Every entry needs a student")
        entries.append(AttendanceEntry(student=student, status=str(raw.get("status") or ""), notes=str(raw.get("notes") or "")))
    return entries


def _parse_date_arg(name: str, default: date) -> date:
    value = request.args.get(name)
    if not value:
        return default
    try:
        return parse_iso_date(value)
    except ValueError:
        raise ValidationError(f"{name} must be YYYY-MM-DD")


def register(app: Flask, container: Container) -> None:
    def can_manage() -> bool:
        # Capability comes from the auth collaborator; allow only when none is configured.
        check = app.config.get("ATTENDANCE_CAN_MANAGE")
        if check is None:
            return True
        return bool(check()) if callable(check) else bool(check)

    def json_errors(view):
        @wraps(view)
        async def wrapper(*args, **kwargs):
            try:
                return await view(*args, **kwargs)
            except ValidationError as e:
                return jsonify({"success": False, "message": str(e)}), 400
            except AuthorizationError as e:
                return jsonify({"success": False, "message": str(e)}), 403
            except NotFoundError as e:
                return jsonify({"success": False, "message": str(e)}), 404
            except AggregateError as e:
                return jsonify({
                    "success": False,
                    "message": str(e),
                    "succeeded": e.succeeded,
                    "failed": e.failed,
                    "total": e.total,
                }), 502

        return wrapper

    def json_body() -> dict:
        payload = request.get_json(silent=True)
        if not isinstance(payload, dict):
            raise ValidationError("Expected a JSON object body")
        return payload

    @app.route("/api/attendance/sessions", methods=["GET"], endpoint="attendance_sessions")
    @json_errors
    async def list_sessions():
        criteria = SessionFilter(
            free_text=request.args.get("q", ""),
            branch_id=request.args.get("branch_id", ""),
            group_id=request.args.get("group_id", ""),
            date=request.args.get("date") or None,
        )
        sessions = await container.session_service.list_sessions(criteria)
        return jsonify({"success": True, "sessions": [session_to_dict(s) for s in sessions]})

    @app.route("/api/attendance/sessions/<key>", methods=["GET"], endpoint="attendance_session_detail")
    @json_errors
    async def session_detail(key: str):
        session = await container.session_service.get_session(key)
        return jsonify({"success": True, "session": session_to_dict(session, with_records=True)})

    @app.route("/api/attendance/sessions", methods=["POST"], endpoint="attendance_take")
    @json_errors
    async def take_attendance():
        payload = json_body()
        ids = await container.session_service.create_session(
            branch=_ref(payload, "branch", Branch),
            group=_ref(payload, "group", Group),
            trainer=_ref(payload, "trainer", Trainer),
            date=payload.get("date"),
            entries=_entries(payload),
            can_manage=can_manage(),
        )
        return jsonify({"success": True, "created": len(ids), "ids": ids}), 201

    @app.route("/api/attendance/sessions/<key>", methods=["PATCH"], endpoint="attendance_session_edit")
    @json_errors
    async def edit_session(key: str):
        edits = json_body().get("edits")
        if not isinstance(edits, dict):
            raise ValidationError("edits must map record ids to statuses")

        service = container.session_service
        session = await service.get_session(key)
        updated = await service.commit_status_edits(session, edits, can_manage=can_manage())
        return jsonify({"success": True, "updated": updated})

    @app.route("/api/attendance/sessions/<key>", methods=["DELETE"], endpoint="attendance_session_delete")
    @json_errors
    async def delete_session(key: str):
        service = container.session_service
        session = await service.get_session(key)
        deleted = await service.delete_session(session, can_manage=can_manage())
        return jsonify({"success": True, "deleted": deleted})

    @app.route("/api/attendance/students/<student_id>/history", methods=["GET"], endpoint="attendance_student_history")
    @json_errors
    async def student_history(student_id: str):
        try:
            limit = int(request.args.get("limit", DEFAULT_HISTORY_LIMIT))
        except ValueError:
            raise ValidationError("limit must be a number")
        records = await container.session_service.student_history(student_id, limit=limit)
        return jsonify({"success": True, "records": [record_to_dict(r) for r in records]})

    @app.route("/api/attendance/stats", methods=["GET"], endpoint="attendance_stats")
    @json_errors
    async def stats():
        today = now_local(container.tz).date()
        start = _parse_date_arg("start", today - timedelta(days=DEFAULT_STATS_DAYS))
        end = _parse_date_arg("end", today)
        try:
            period = TrendPeriod(request.args.get("period", TrendPeriod.WEEK.value))
        except ValueError:
            raise ValidationError("period must be day, week or month")

        report = await container.report_service.build_report(
            start=start,
            end=end,
            period=period,
            branch_id=request.args.get("branch_id") or None,
            group_id=request.args.get("group_id") or None,
            trainer_id=request.args.get("trainer_id") or None,
        )
        s = report.stats
        return jsonify({
            "success": True,
            "start": start.isoformat(),
            "end": end.isoformat(),
            "stats": {
                "total_sessions": s.total_sessions,
                "total_students": s.total_students,
                "average_attendance": round(s.average_attendance, 1),
                "present_total": s.present_total,
                "absent_total": s.absent_total,
                "late_total": s.late_total,
                "excused_total": s.excused_total,
            },
            "trend": [
                {"period": p.period, "present": p.present, "absent": p.absent, "total": p.total, "rate": round(p.rate, 1)}
                for p in report.trend
            ],
        })
