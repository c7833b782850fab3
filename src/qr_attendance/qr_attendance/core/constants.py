"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

POLL_INTERVAL_SECONDS = 3
DEFAULT_HISTORY_LIMIT = 500
DEFAULT_SCHOOL_TIMEZONE = "Asia/Manila"

LATE_TOKEN_SUFFIX = "_LATE"
SESSION_STORAGE_KEY = "attendanceSession"
SESSION_LIFETIME_DAYS = 7

REMARK_ON_TIME = "On time"
REMARK_LATE = "Arrived late"
REMARK_DID_NOT_SCAN = "Did not scan QR"
REMARK_MANUALLY_EDITED = "Manually edited"
