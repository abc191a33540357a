from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import AttendanceStatus, BreakCategory
from .model import AttendanceRecord, BreakEntry


class AttendanceRepository(Protocol):
    """Storage for records and their breaks.

    Every mutating call is one transaction; totals are recomputed inside it.
    """

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def get_for_user_and_date(self, user_id: int, work_date: date) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def list_for_user(self, user_id: int, *, start_date: date, end_date: date) -> Sequence[AttendanceRecord]:
        """Inclusive range, newest work date first."""

        raise NotImplementedError

    def create_checkin(
        self,
        *,
        user_id: int,
        work_date: date,
        check_in_time: datetime,
        status: AttendanceStatus,
        note: Optional[str] = None,
    ) -> int:
        """Raises DuplicateRecordError when (user, work_date) already has a record."""

        raise NotImplementedError

    def append_break(
        self,
        attendance_id: int,
        *,
        start_time: datetime,
        category: BreakCategory,
        reason: Optional[str],
        approved_by: Optional[int],
    ) -> BreakEntry:
        """Lock the record, check for an open break and append, atomically.

        Raises ConflictError when a break is open, NoActiveSessionError when the
        record is gone or already checked out.
        """

        raise NotImplementedError

    def close_open_break(self, attendance_id: int, *, end_time: datetime) -> Optional[BreakEntry]:
        """Close the open break and recompute the total; None when nothing was open."""

        raise NotImplementedError

    def update_checkout(
        self,
        *,
        attendance_id: int,
        check_out_time: datetime,
        status: AttendanceStatus,
        note: Optional[str] = None,
    ) -> bool:
        """Force-close an open break at ``check_out_time`` and set the check-out.

        Returns False when the record was already checked out.
        """

        raise NotImplementedError

    def recompute_total_break(self, attendance_id: int) -> int:
        raise NotImplementedError

    def admin_update_record(
        self,
        *,
        attendance_id: int,
        check_in_time: datetime,
        check_out_time: Optional[datetime],
        status: AttendanceStatus,
        note: Optional[str] = None,
    ) -> bool:
        """Administrative override; setting a check-out closes any open break at that time."""

        raise NotImplementedError
