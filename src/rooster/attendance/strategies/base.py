from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ...core.enums import AttendanceStatus


@dataclass(frozen=True)
class StatusDecision:
    status: AttendanceStatus
    note: Optional[str] = None


class AttendanceStrategy(ABC):
    """Decides the status stamped on a day at check-in and at check-out.

    Every day opens as present; strategies differ only in how they close it.
    """

    name: str = "base"

    def decide_checkin(self, *, now: datetime) -> StatusDecision:
        return StatusDecision(status=AttendanceStatus.PRESENT)

    @abstractmethod
    def decide_checkout(self, *, now: datetime, current: AttendanceStatus, active_ms: int) -> StatusDecision:
        raise NotImplementedError
