from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from ..core.enums import AttendanceStatus
from .strategies.base import AttendanceStrategy
from .strategies.half_day_strategy import HalfDayStrategy
from .strategies.present_strategy import PresentStrategy


@dataclass
class AttendanceStrategyFactory:
    """Factory Pattern: choose appropriate strategy based on rules.

    ``half_day_threshold_minutes`` <= 0 disables the half-day rule.
    """

    half_day_threshold_minutes: int = 0

    def for_checkin(self, *, now: datetime) -> AttendanceStrategy:
        return PresentStrategy()

    def for_checkout(self, *, now: datetime, current_status: AttendanceStatus, active_ms: int) -> AttendanceStrategy:
        threshold = int(self.half_day_threshold_minutes)
        if threshold <= 0 or current_status != AttendanceStatus.PRESENT:
            return PresentStrategy()
        if active_ms < threshold * 60_000:
            return HalfDayStrategy(threshold)
        return PresentStrategy()
