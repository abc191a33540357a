from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..common.datetime_utils import iso_or_none
from ..core.enums import AttendanceStatus, BreakCategory


@dataclass(frozen=True)
class BreakEntry:
    """An interval away from work inside one attendance record."""

    break_id: int
    start_time: datetime
    end_time: Optional[datetime] = None
    duration_ms: int = 0
    category: BreakCategory = BreakCategory.OTHER
    reason: Optional[str] = None
    approved_by: Optional[int] = None

    @property
    def is_open(self) -> bool:
        return self.end_time is None


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one user's ledger entry for one work date."""

    attendance_id: int
    user_id: int
    work_date: date
    check_in_time: datetime
    check_out_time: Optional[datetime] = None
    status: AttendanceStatus = AttendanceStatus.PRESENT
    total_break_ms: int = 0
    breaks: tuple[BreakEntry, ...] = ()
    note: Optional[str] = None

    @property
    def is_checked_out(self) -> bool:
        return self.check_out_time is not None


@dataclass(frozen=True)
class HistorySummary:
    days: int
    worked_ms: int
    break_ms: int


def break_to_dict(entry: BreakEntry) -> dict:
    return {
        "id": entry.break_id,
        "startTime": iso_or_none(entry.start_time),
        "endTime": iso_or_none(entry.end_time),
        "duration": entry.duration_ms,
        "type": entry.category.value,
        "reason": entry.reason,
        "approvedBy": entry.approved_by,
    }


def record_to_dict(record: AttendanceRecord) -> dict:
    return {
        "id": record.attendance_id,
        "userId": record.user_id,
        "date": record.work_date.isoformat(),
        "checkInTime": iso_or_none(record.check_in_time),
        "checkOutTime": iso_or_none(record.check_out_time),
        "status": record.status.value,
        "totalBreakDuration": record.total_break_ms,
        "breaks": [break_to_dict(b) for b in record.breaks],
        "note": record.note,
    }
