"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_MIN_SEATS = 5
DEFAULT_MAX_SEATS = 15

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100

# Export ceilings, in calendar months, per entry point.
EXPORT_API_MAX_MONTHS = 12
EXPORT_SHEET_MAX_MONTHS = 3

SESSION_SORT_FIELDS = ("start_at", "end_at", "location", "status", "max_seats", "created_at")

# Hours and rates are stored as DECIMAL(.., 2).
DECIMAL_PLACES = 2
