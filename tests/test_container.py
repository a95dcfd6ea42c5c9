from __future__ import annotations

import pytest

from config import get_settings_module
from src.club_attendance.club_attendance.attendance.memory_attendance_repository import InMemoryAttendanceRepository
from src.club_attendance.club_attendance.container import build_container
from src.club_attendance.club_attendance.core.enums import SyncStatus
from src.club_attendance.club_attendance.core.exceptions import ValidationError


def test_memory_backend_wires_services():
    container = build_container(backend="memory", timezone_name="Europe/Berlin")

    assert isinstance(container.attendance_repo, InMemoryAttendanceRepository)
    assert container.conn is None
    assert str(container.tz) == "Europe/Berlin"
    assert container.session_view().status is SyncStatus.IDLE


def test_unknown_backend_and_missing_db_config_are_rejected():
    with pytest.raises(ValidationError):
        build_container(backend="redis")
    with pytest.raises(ValidationError):
        build_container(backend="mysql", db_config=None)


@pytest.mark.parametrize(
    "env, module",
    [("production", "config.production"), ("TEST", "config.testing"), ("anything", "config.development")],
)
def test_settings_module_follows_app_env(monkeypatch, env, module):
    monkeypatch.setenv("APP_ENV", env)

    assert get_settings_module() == module


def test_each_mysql_container_gets_its_own_database():
    first = build_container(backend="mysql", db_config={"host": "db-a", "database": "club_a"})
    second = build_container(backend="mysql", db_config={"host": "db-b", "database": "club_b"})

    assert first.conn is not second.conn
    assert (first.conn.config.host, first.conn.config.database) == ("db-a", "club_a")
    assert (second.conn.config.host, second.conn.config.database) == ("db-b", "club_b")
