"""Example: use the service layer directly (no Flask).

Controllers stay thin; grouping, filtering and reports live in the services.
"""

import asyncio
import importlib

from config import get_settings_module

from src.club_attendance.club_attendance.container import build_container


async def show(container):
    sessions = await container.session_service.list_sessions()
    for s in sessions[:5]:
        print(f"{s.date} {s.group_name} / {s.trainer_name}: {s.present_count}/{s.total_count} present")

    # A live view regroups on every change until it is unmounted
    async with container.session_view() as view:
        print(f"live view: {view.status.value}, {len(view.sessions)} sessions")


def main():
    settings = importlib.import_module(get_settings_module())
    container = build_container(
        db_config=settings.DB_CONFIG,
        backend=settings.STORE_BACKEND,
        timezone_name=settings.CLUB_TIMEZONE,
    )
    asyncio.run(show(container))


if __name__ == "__main__":
    main()
