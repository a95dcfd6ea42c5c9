"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

ATTENDANCE_COLLECTION = "attendance"
DEFAULT_ORDER_FIELD = "created_at"
DEFAULT_HISTORY_LIMIT = 30
DEFAULT_CLUB_TIMEZONE = "Europe/Istanbul"
DEFAULT_FEED_POLL_SECONDS = 2.0
DEFAULT_STATS_DAYS = 30

# Equality filters / ordering fields a record query may reference.
FILTERABLE_FIELDS = frozenset({"student_id", "trainer_id", "branch_id", "group_id", "status"})
ORDERABLE_FIELDS = frozenset({"created_at", "date", "student_name"})
