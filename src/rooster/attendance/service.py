from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable, Mapping, Optional, Sequence

from ..common.datetime_utils import now_local, parse_iso_date, parse_iso_datetime, to_ms, truncate_ms
from ..common.validators import optional_text, require_max_length
from ..core.constants import DEFAULT_HISTORY_DAYS, MAX_BREAK_REASON_LENGTH, MAX_HISTORY_DAYS
from ..core.enums import AttendanceStatus, BreakCategory
from ..core.exceptions import (
    AlreadyCheckedOutError,
    AuthorizationError,
    DuplicateRecordError,
    NoActiveSessionError,
    NoOpenBreakError,
    NotFoundError,
    ValidationError,
)
from ..core.permissions import Capability, can_act_on, require_capability
from ..users.repository import UserRepository
from ..users.service import CurrentUser
from .factory import AttendanceStrategyFactory
from .ledger import close_break, open_break, summarize, total_break_ms
from .model import AttendanceRecord, BreakEntry, HistorySummary
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)

CORRECTABLE_FIELDS = frozenset({"status", "checkInTime", "checkOutTime", "note"})


@dataclass(frozen=True)
class AttendanceHistory:
    start: date
    end: date
    records: Sequence[AttendanceRecord]
    summary: HistorySummary


def parse_break_category(value: object) -> BreakCategory:
    if value is None or not str(value).strip():
        return BreakCategory.OTHER
    try:
        return BreakCategory(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(c.value for c in BreakCategory)
        raise ValidationError(f"Invalid break type {value!r}, expected one of: {allowed}")


def parse_status(value: object) -> AttendanceStatus:
    try:
        return AttendanceStatus(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(s.value for s in AttendanceStatus)
        raise ValidationError(f"Invalid status {value!r}, expected one of: {allowed}")


class AttendanceService:
    """Daily ledger: check-in, breaks, check-out, history and corrections."""

    def __init__(
        self,
        attendance: AttendanceRepository,
        users: UserRepository,
        *,
        strategy_factory: AttendanceStrategyFactory | None = None,
        clock: Callable[[], Optional[datetime]] = now_local,
    ):
        self._attendance = attendance
        self._users = users
        self._factory = strategy_factory or AttendanceStrategyFactory()
        self._clock = clock

    def _now(self, now: datetime | None) -> datetime:
        value = now or self._clock()
        if value is None:
            raise ValidationError("Could not establish a timestamp")
        return truncate_ms(value)

    def _require_active_user(self, user_id: int) -> None:
        user = self._users.get_by_id(int(user_id))
        if not user or not user.is_active:
            raise NotFoundError("User not found")

    def _today_record(self, user_id: int, today: date) -> AttendanceRecord:
        record = self._attendance.get_for_user_and_date(int(user_id), today)
        if not record:
            raise NoActiveSessionError("You have not checked in today")
        return record

    def _reload(self, attendance_id: int) -> AttendanceRecord:
        record = self._attendance.get_by_id(attendance_id)
        if not record:
            raise NotFoundError("Attendance record not found")
        return record

    def check_in(self, user_id: int, *, now: datetime | None = None) -> AttendanceRecord:
        now = self._now(now)
        today = now.date()
        self._require_active_user(user_id)

        if self._attendance.get_for_user_and_date(int(user_id), today):
            raise DuplicateRecordError("Already checked in today")

        decision = self._factory.for_checkin(now=now).decide_checkin(now=now)
        try:
            attendance_id = self._attendance.create_checkin(
                user_id=int(user_id),
                work_date=today,
                check_in_time=now,
                status=decision.status,
                note=decision.note,
            )
        except DuplicateRecordError:
            logger.info("Concurrent check-in rejected for user %s on %s", user_id, today)
            raise

        logger.info("User %s checked in at %s", user_id, now.isoformat())
        return self._reload(attendance_id)

    def start_break(
        self,
        user_id: int,
        *,
        category: object = None,
        reason: object = None,
        actor_id: int | None = None,
        now: datetime | None = None,
    ) -> BreakEntry:
        now = self._now(now)
        parsed_category = parse_break_category(category)
        parsed_reason = require_max_length(optional_text(reason), "Break reason", MAX_BREAK_REASON_LENGTH)

        record = self._today_record(user_id, now.date())
        if record.is_checked_out:
            raise NoActiveSessionError("You have already checked out today")
        if now < record.check_in_time:
            raise ValidationError("Break cannot start before check-in")

        entry = self._attendance.append_break(
            record.attendance_id,
            start_time=now,
            category=parsed_category,
            reason=parsed_reason,
            approved_by=int(actor_id) if actor_id is not None else int(user_id),
        )
        logger.info("Break %s (%s) started for user %s", entry.break_id, parsed_category.value, user_id)
        return entry

    def end_break(self, user_id: int, *, now: datetime | None = None) -> AttendanceRecord:
        now = self._now(now)
        record = self._today_record(user_id, now.date())
        if record.is_checked_out:
            raise NoActiveSessionError("You have already checked out today")
        current = open_break(record.breaks)
        if not current:
            raise NoOpenBreakError("No active break found")
        # Validates ordering before touching the store.
        close_break(current, now)

        closed = self._attendance.close_open_break(record.attendance_id, end_time=now)
        if not closed:
            raise NoOpenBreakError("No active break found")

        logger.info("Break %s ended for user %s after %s ms", closed.break_id, user_id, closed.duration_ms)
        return self._reload(record.attendance_id)

    def check_out(self, user_id: int, *, now: datetime | None = None) -> AttendanceRecord:
        now = self._now(now)
        record = self._today_record(user_id, now.date())
        if record.is_checked_out:
            raise AlreadyCheckedOutError("You have already checked out today")
        if now < record.check_in_time:
            raise ValidationError("Check-out cannot be earlier than check-in")

        # An open break is closed at the check-out time in the same write.
        breaks = [close_break(b, now) if b.is_open else b for b in record.breaks]
        active_ms = max(0, to_ms(now - record.check_in_time) - total_break_ms(breaks))

        strategy = self._factory.for_checkout(now=now, current_status=record.status, active_ms=active_ms)
        decision = strategy.decide_checkout(now=now, current=record.status, active_ms=active_ms)

        if not self._attendance.update_checkout(
            attendance_id=record.attendance_id,
            check_out_time=now,
            status=decision.status,
            note=decision.note,
        ):
            raise AlreadyCheckedOutError("You have already checked out today")

        logger.info(
            "User %s checked out at %s (status=%s, rule=%s)", user_id, now.isoformat(), decision.status.value, strategy.name
        )
        return self._reload(record.attendance_id)

    def get_today(self, user_id: int, *, now: datetime | None = None) -> Optional[AttendanceRecord]:
        now = self._now(now)
        return self._attendance.get_for_user_and_date(int(user_id), now.date())

    def get_history(
        self,
        user_id: int,
        *,
        start: str | None = None,
        end: str | None = None,
        now: datetime | None = None,
    ) -> AttendanceHistory:
        today = self._now(now).date()
        end_date = parse_iso_date(end) if end else today
        start_date = parse_iso_date(start) if start else end_date - timedelta(days=DEFAULT_HISTORY_DAYS - 1)

        if start_date > end_date:
            raise ValidationError("start must be on or before end")
        if (end_date - start_date).days + 1 > MAX_HISTORY_DAYS:
            raise ValidationError(f"Date range must not exceed {MAX_HISTORY_DAYS} days")

        records = list(self._attendance.list_for_user(int(user_id), start_date=start_date, end_date=end_date))
        return AttendanceHistory(start=start_date, end=end_date, records=records, summary=summarize(records))

    def _require_target(self, actor: CurrentUser, user_id: int, capability: Capability) -> None:
        if not can_act_on(actor.role, actor_id=actor.user_id, target_id=user_id, capability=capability):
            raise AuthorizationError("Insufficient role")
        if not self._users.get_by_id(int(user_id)):
            raise NotFoundError("User not found")

    def get_today_for(self, actor: CurrentUser, user_id: int, *, now: datetime | None = None) -> Optional[AttendanceRecord]:
        self._require_target(actor, user_id, Capability.VIEW_ANY_ATTENDANCE)
        return self.get_today(user_id, now=now)

    def get_history_for(
        self,
        actor: CurrentUser,
        user_id: int,
        *,
        start: str | None = None,
        end: str | None = None,
        now: datetime | None = None,
    ) -> AttendanceHistory:
        self._require_target(actor, user_id, Capability.VIEW_ANY_ATTENDANCE)
        return self.get_history(user_id, start=start, end=end, now=now)

    def start_break_for(
        self,
        actor: CurrentUser,
        user_id: int,
        *,
        category: object = None,
        reason: object = None,
        now: datetime | None = None,
    ) -> BreakEntry:
        self._require_target(actor, user_id, Capability.MANAGE_OTHERS_BREAKS)
        return self.start_break(user_id, category=category, reason=reason, actor_id=actor.user_id, now=now)

    def end_break_for(self, actor: CurrentUser, user_id: int, *, now: datetime | None = None) -> AttendanceRecord:
        self._require_target(actor, user_id, Capability.MANAGE_OTHERS_BREAKS)
        return self.end_break(user_id, now=now)

    def correct_record(self, actor: CurrentUser, attendance_id: int, changes: Mapping[str, object]) -> AttendanceRecord:
        require_capability(actor.role, Capability.CORRECT_ATTENDANCE, "Only admins can correct attendance")
        if not isinstance(changes, Mapping) or not changes:
            raise ValidationError("No changes given")
        unknown = set(changes) - CORRECTABLE_FIELDS
        if unknown:
            raise ValidationError(f"Cannot change: {', '.join(sorted(unknown))}")

        record = self._reload(int(attendance_id))

        status = parse_status(changes["status"]) if "status" in changes else record.status
        check_in = record.check_in_time
        if "checkInTime" in changes:
            check_in = parse_iso_datetime(changes["checkInTime"])  # type: ignore[arg-type]
            if check_in is None:
                raise ValidationError("checkInTime is required")
            if check_in.date() != record.work_date:
                raise ValidationError("Check-in must fall on the record's date")
        check_out = record.check_out_time
        if "checkOutTime" in changes:
            check_out = parse_iso_datetime(changes["checkOutTime"])  # type: ignore[arg-type]
        note = require_max_length(optional_text(changes["note"]), "Note", 255) if "note" in changes else record.note

        check_in = truncate_ms(check_in)
        check_out = truncate_ms(check_out) if check_out else None
        if check_out is not None and check_out < check_in:
            raise ValidationError("Check-out cannot be earlier than check-in")
        if record.breaks and check_in > min(b.start_time for b in record.breaks):
            raise ValidationError("Check-in cannot be later than a recorded break")
        if check_out is not None and any(check_out < (b.end_time or b.start_time) for b in record.breaks):
            raise ValidationError("Check-out cannot be earlier than a recorded break")

        if not self._attendance.admin_update_record(
            attendance_id=record.attendance_id,
            check_in_time=check_in,
            check_out_time=check_out,
            status=status,
            note=note,
        ):
            raise NotFoundError("Attendance record not found")

        logger.info("Record %s corrected by %s", record.attendance_id, actor.user_id)
        return self._reload(record.attendance_id)
