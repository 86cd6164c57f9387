"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_ISSUE_THRESHOLD = 80
DEFAULT_MIN_ABSENCE_DAYS = 3
DEFAULT_RECENT_LIMIT = 10

NOTIFICATION_TITLE = "Attendance Update"
NOTIFICATION_MESSAGE = "Your child's attendance status has been updated to {status}"
