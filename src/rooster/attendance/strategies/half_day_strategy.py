from __future__ import annotations

from datetime import datetime

from ...core.enums import AttendanceStatus
from .base import AttendanceStrategy, StatusDecision


class HalfDayStrategy(AttendanceStrategy):
    """Short day: active time fell below the configured threshold."""

    name = "half_day"

    def __init__(self, threshold_minutes: int):
        self._threshold_minutes = int(threshold_minutes)

    def decide_checkout(self, *, now: datetime, current: AttendanceStatus, active_ms: int) -> StatusDecision:
        worked_minutes = active_ms // 60_000
        return StatusDecision(
            status=AttendanceStatus.HALF_DAY,
            note=f"Worked {worked_minutes} min, under {self._threshold_minutes} min",
        )
