from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User roles used for authorization."""

    EMPLOYEE = "employee"
    MANAGER = "manager"
    ADMIN = "admin"


class AttendanceStatus(str, Enum):
    """Day status stored on an attendance record."""

    PRESENT = "present"
    ABSENT = "absent"
    LEAVE = "leave"
    HALF_DAY = "half-day"


class BreakCategory(str, Enum):
    LUNCH = "lunch"
    COFFEE = "coffee"
    PERSONAL = "personal"
    MEDICAL = "medical"
    SMOKE = "smoke"
    OTHER = "other"


class MediaCategory(str, Enum):
    """Sub-directory of the upload root a stored file lands in."""

    AVATARS = "avatars"
    DOCUMENTS = "documents"
