"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_TOKEN_TTL_MINUTES = 24 * 60
DEFAULT_RESET_TOKEN_TTL_MINUTES = 60
DEFAULT_HISTORY_DAYS = 30
MAX_HISTORY_DAYS = 366
MAX_BREAK_REASON_LENGTH = 200
MIN_PASSWORD_LENGTH = 6
DEFAULT_MAX_UPLOAD_MB = 5

# Fields a user may change on their own profile.
SELF_UPDATABLE_FIELDS = frozenset(
    {"name", "firstName", "lastName", "email", "phone", "address", "emergencyContact", "emergencyPhone"}
)

# Extra fields only an admin may change on someone else's record.
ADMIN_UPDATABLE_FIELDS = SELF_UPDATABLE_FIELDS | {"role", "department", "position", "isActive"}
