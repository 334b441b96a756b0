"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_TIMEZONE = "Asia/Kolkata"

DEFAULT_SHIFT_START = "09:00"
DEFAULT_SHIFT_END = "18:00"
DEFAULT_GRACE_MINUTES = 30
DEFAULT_OVERTIME_THRESHOLD_HOURS = 2
DEFAULT_HALF_DAY_THRESHOLD_HOURS = 4
DEFAULT_OVERTIME_MULTIPLIER = "1.5"
DEFAULT_PF_PERCENTAGE = "12"
DEFAULT_ESI_PERCENTAGE = "0.75"
DEFAULT_MONTHLY_HOURS_DIVISOR = 160

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 200

REVERSAL_PREFIX = "Reversal: "
