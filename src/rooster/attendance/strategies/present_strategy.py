from __future__ import annotations

from datetime import datetime

from ...core.enums import AttendanceStatus
from .base import AttendanceStrategy, StatusDecision


class PresentStrategy(AttendanceStrategy):
    """Keeps whatever status the day already carries."""

    name = "present"

    def decide_checkout(self, *, now: datetime, current: AttendanceStatus, active_ms: int) -> StatusDecision:
        return StatusDecision(status=current)
