"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
All durations are in seconds.
"""

DEFAULT_CACHE_TTL = 5 * 60

# Per-resource TTLs, ordered roughly by how often the data changes.
TTL_TEACHER_PROFILE = 30 * 60
TTL_SUBJECTS = 10 * 60
TTL_STUDENTS = 15 * 60
TTL_ATTENDANCE = 2 * 60
TTL_REPORTS = 5 * 60
TTL_STUDENT_HISTORY = 10 * 60

DEFAULT_SUBJECTS_LIMIT = 50
DEFAULT_SUBMIT_MAX_WORKERS = 8
DEFAULT_DATE_RANGE = "current_month"
ALL_TIME_DAILY_WINDOW_DAYS = 30

HIGH_ATTENDANCE_PERCENT = 80
LOW_ATTENDANCE_PERCENT = 60

DEFAULT_SESSION_DAYS = 7
