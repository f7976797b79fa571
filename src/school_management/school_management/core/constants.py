"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

# Attendance
EARLY_LEAVE_TOLERANCE_MINUTES = 15
DEFAULT_STUDENT_LATE_THRESHOLD_MINUTES = 15
DEFAULT_WEEKEND_DAYS = (5, 6)  # Friday, Saturday (0=Sunday ... 6=Saturday)
DEFAULT_PUNCH_TYPE = "fingerprint"
SYSTEM_USER_ID = 1

# Fees
DEFAULT_FEE_DUE_DAY = 10
RECEIPT_PREFIX = "FEE"
RECEIPT_COUNTER_WIDTH = 6
ONE_TIME_FEE_DUE_DAYS = 30
QUARTER_END_MIN_DAYS_LEFT = 15
AUTO_GENERATED_FEE_REMARK = "Auto-generated monthly fee"

# Maintenance guard
FEE_GUARD_KEY_PREFIX = "fee_generation_check_"
FEE_GUARD_TTL_SECONDS = 3600

# Summaries
HIGH_ATTENDANCE_PERCENTAGE = 90
LOW_ATTENDANCE_PERCENTAGE = 75

DEFAULT_SESSION_DAYS = 7
DEFAULT_HISTORY_LIMIT = 31
DEFAULT_PAGE_SIZE = 50
