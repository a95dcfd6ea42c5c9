from __future__ import annotations

import asyncio
from datetime import date

import pytest

from src.club_attendance.club_attendance.core.enums import TrendPeriod
from src.club_attendance.club_attendance.core.exceptions import ValidationError
from src.club_attendance.club_attendance.reports.service import (
    AttendanceReportService,
    compute_stats,
    period_key,
    summarize_trend,
)
from src.club_attendance.club_attendance.sessions.grouping import group_sessions


def test_compute_stats_over_sessions(make_record, tz):
    records = [
        make_record(day=date(2024, 3, 14), status="present"),
        make_record(day=date(2024, 3, 14), status="absent"),
        make_record(day=date(2024, 3, 15), status="present"),
        make_record(day=date(2024, 3, 15), status="late"),
        make_record(day=date(2024, 3, 15), status="excused"),
    ]

    stats = compute_stats(group_sessions(records, tz=tz))

    assert stats.total_sessions == 2
    assert stats.total_students == 5
    assert stats.average_attendance == pytest.approx(40.0)
    assert (stats.present_total, stats.absent_total, stats.late_total, stats.excused_total) == (2, 1, 1, 1)


def test_compute_stats_of_nothing():
    stats = compute_stats([])

    assert stats.total_sessions == 0
    assert stats.average_attendance == 0.0


@pytest.mark.parametrize(
    "day, period, expected",
    [
        (date(2024, 3, 15), TrendPeriod.DAY, "2024-03-15"),
        (date(2024, 3, 15), TrendPeriod.WEEK, "2024-03-11"),
        (date(2024, 3, 11), TrendPeriod.WEEK, "2024-03-11"),
        (date(2024, 3, 17), TrendPeriod.WEEK, "2024-03-11"),
        (date(2024, 3, 15), TrendPeriod.MONTH, "2024-03"),
    ],
)
def test_period_key(day, period, expected):
    assert period_key(day, period) == expected


def test_trend_counts_everything_but_present_as_absent(make_record, tz):
    records = [
        make_record(day=date(2024, 3, 18), status="present"),
        make_record(day=date(2024, 3, 11), status="present"),
        make_record(day=date(2024, 3, 12), status="late", group_id="g2"),
        make_record(day=date(2024, 3, 13), status="excused"),
        make_record(day=date(2024, 3, 13), status="absent"),
    ]

    trend = summarize_trend(group_sessions(records, tz=tz), TrendPeriod.WEEK)

    assert [(p.period, p.present, p.absent, p.total) for p in trend] == [
        ("2024-03-11", 1, 3, 4),
        ("2024-03-18", 1, 0, 1),
    ]
    assert trend[0].rate == pytest.approx(25.0)


def test_build_report_restricts_range_and_filters(make_record, memory_repo, tz):
    memory_repo.add(make_record(day=date(2024, 2, 28), status="present"))
    memory_repo.add(make_record(day=date(2024, 3, 1), status="present"))
    memory_repo.add(make_record(day=date(2024, 3, 2), status="absent"))
    memory_repo.add(make_record(day=date(2024, 3, 2), status="present", branch_id="b2", group_id="g2"))
    service = AttendanceReportService(memory_repo, tz=tz)

    report = asyncio.run(service.build_report(start=date(2024, 3, 1), end=date(2024, 3, 31), period=TrendPeriod.MONTH, branch_id="b1"))

    assert report.stats.total_sessions == 2
    assert report.stats.total_students == 2
    assert report.stats.present_total == 1
    assert [(p.period, p.present, p.absent) for p in report.trend] == [("2024-03", 1, 1)]


def test_build_report_rejects_inverted_range(memory_repo, tz):
    service = AttendanceReportService(memory_repo, tz=tz)

    with pytest.raises(ValidationError):
        asyncio.run(service.build_report(start=date(2024, 3, 2), end=date(2024, 3, 1)))
