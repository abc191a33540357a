from __future__ import annotations

import threading
from dataclasses import replace
from datetime import date, datetime
from pathlib import Path

import pytest
from werkzeug.security import generate_password_hash

from rooster.attendance.ledger import close_break, open_break, total_break_ms
from rooster.attendance.model import AttendanceRecord, BreakEntry
from rooster.config import Settings
from rooster.core.enums import AttendanceStatus, BreakCategory, Role
from rooster.core.exceptions import ConflictError, DuplicateRecordError, NoActiveSessionError, ValidationError
from rooster.users.model import User, UserDocument

FIXED_NOW = datetime(2025, 3, 10, 9, 0, 0)


class InMemoryUserRepository:
    _COLUMNS = frozenset(
        {
            "email",
            "first_name",
            "last_name",
            "role",
            "department",
            "position",
            "phone",
            "address",
            "emergency_contact",
            "emergency_phone",
            "is_active",
            "is_profile_complete",
        }
    )

    def __init__(self):
        self._next_id = 1
        self._users: dict[int, User] = {}
        self.fail_set_avatar = False

    def add(self, *, email, password="secret123", role=Role.EMPLOYEE, is_active=True, **fields) -> User:
        user_id = self.create_user(
            email=email,
            password_hash=generate_password_hash(password),
            first_name=fields.pop("first_name", "Test"),
            last_name=fields.pop("last_name", "User"),
            role=role,
            is_active=is_active,
        )
        if fields:
            self._users[user_id] = replace(self._users[user_id], **fields)
        return self._users[user_id]

    def get_by_id(self, user_id):
        return self._users.get(int(user_id))

    def get_by_email(self, email):
        return next((u for u in self._users.values() if u.email == email), None)

    def get_by_reset_token_hash(self, token_hash):
        return next((u for u in self._users.values() if u.reset_token_hash == token_hash), None)

    def list_users(self, *, role=None):
        return [u for u in sorted(self._users.values(), key=lambda u: u.user_id) if role is None or u.role == role]

    def create_user(self, *, email, password_hash, first_name, last_name, role, department=None, position=None, is_active=True):
        if self.get_by_email(email):
            raise DuplicateRecordError("Email already registered")
        user_id = self._next_id
        self._next_id += 1
        self._users[user_id] = User(
            user_id=user_id,
            email=email,
            password_hash=password_hash,
            first_name=first_name,
            last_name=last_name,
            role=role,
            department=department,
            position=position,
            is_active=is_active,
            created_at=FIXED_NOW,
        )
        return user_id

    def update_fields(self, user_id, fields):
        unknown = set(fields) - self._COLUMNS
        if unknown:
            raise ValidationError(f"Cannot update columns: {', '.join(sorted(unknown))}")
        user = self._users.get(int(user_id))
        if not user:
            return False
        email = fields.get("email")
        if email and any(u.email == email and u.user_id != user.user_id for u in self._users.values()):
            raise DuplicateRecordError("Email already exists")
        self._users[user.user_id] = replace(user, **fields)
        return True

    def delete_by_id(self, user_id):
        return self._users.pop(int(user_id), None) is not None

    def set_reset_token(self, user_id, *, token_hash, expires_at):
        user = self._users.get(int(user_id))
        if not user:
            return False
        self._users[user.user_id] = replace(user, reset_token_hash=token_hash, reset_expires_at=expires_at)
        return True

    def set_password(self, user_id, *, password_hash):
        user = self._users.get(int(user_id))
        if not user:
            return False
        self._users[user.user_id] = replace(
            user, password_hash=password_hash, reset_token_hash=None, reset_expires_at=None
        )
        return True

    def touch_last_login(self, user_id, *, at):
        user = self._users.get(int(user_id))
        if user:
            self._users[user.user_id] = replace(user, last_login=at)

    def set_avatar(self, user_id, avatar):
        if self.fail_set_avatar:
            raise RuntimeError("store down")
        user = self._users.get(int(user_id))
        if not user:
            return False
        self._users[user.user_id] = replace(user, avatar=avatar)
        return True

    def add_document(self, user_id, *, document_type, path, file_name):
        user = self._users[int(user_id)]
        doc = UserDocument(document_type=document_type, path=path, file_name=file_name)
        self._users[user.user_id] = replace(user, documents=user.documents + (doc,))
        return len(user.documents) + 1


class InMemoryAttendanceRepository:
    """Same uniqueness rules as the schema: one record per (user, day), one open break per record."""

    def __init__(self):
        self._lock = threading.Lock()
        self._next_id = 1
        self._next_break_id = 1
        self._records: dict[int, AttendanceRecord] = {}
        self.recompute_calls = 0

    def get_by_id(self, attendance_id):
        return self._records.get(int(attendance_id))

    def get_for_user_and_date(self, user_id, work_date):
        return next(
            (r for r in self._records.values() if r.user_id == int(user_id) and r.work_date == work_date),
            None,
        )

    def list_for_user(self, user_id, *, start_date, end_date):
        rows = [r for r in self._records.values() if r.user_id == int(user_id) and start_date <= r.work_date <= end_date]
        return sorted(rows, key=lambda r: r.work_date, reverse=True)

    def create_checkin(self, *, user_id, work_date, check_in_time, status, note=None):
        with self._lock:
            if any(r.user_id == int(user_id) and r.work_date == work_date for r in self._records.values()):
                raise DuplicateRecordError("Already checked in today")
            attendance_id = self._next_id
            self._next_id += 1
            self._records[attendance_id] = AttendanceRecord(
                attendance_id=attendance_id,
                user_id=int(user_id),
                work_date=work_date,
                check_in_time=check_in_time,
                status=status,
                note=note,
            )
            return attendance_id

    def append_break(self, attendance_id, *, start_time, category, reason, approved_by):
        with self._lock:
            record = self._records.get(int(attendance_id))
            if not record or record.check_out_time is not None:
                raise NoActiveSessionError("No active attendance session")
            if open_break(record.breaks):
                raise ConflictError("A break is already in progress")
            entry = BreakEntry(
                break_id=self._next_break_id,
                start_time=start_time,
                category=category,
                reason=reason,
                approved_by=approved_by,
            )
            self._next_break_id += 1
            self._records[record.attendance_id] = replace(record, breaks=record.breaks + (entry,))
            return entry

    def _recompute_locked(self, attendance_id):
        self.recompute_calls += 1
        record = self._records[int(attendance_id)]
        self._records[record.attendance_id] = replace(record, total_break_ms=total_break_ms(record.breaks))
        return self._records[record.attendance_id].total_break_ms

    def _close_locked(self, record, end_time):
        current = open_break(record.breaks)
        if not current:
            return record, None
        closed = close_break(current, end_time)
        breaks = tuple(closed if b.break_id == current.break_id else b for b in record.breaks)
        return replace(record, breaks=breaks), closed

    def close_open_break(self, attendance_id, *, end_time):
        with self._lock:
            record = self._records.get(int(attendance_id))
            if not record:
                return None
            record, closed = self._close_locked(record, end_time)
            if not closed:
                return None
            self._records[record.attendance_id] = record
            self._recompute_locked(record.attendance_id)
            return closed

    def update_checkout(self, *, attendance_id, check_out_time, status, note=None):
        with self._lock:
            record = self._records.get(int(attendance_id))
            if not record or record.check_out_time is not None:
                return False
            record, _ = self._close_locked(record, check_out_time)
            self._records[record.attendance_id] = replace(
                record, check_out_time=check_out_time, status=status, note=note if note is not None else record.note
            )
            self._recompute_locked(record.attendance_id)
            return True

    def recompute_total_break(self, attendance_id):
        with self._lock:
            return self._recompute_locked(attendance_id)

    def admin_update_record(self, *, attendance_id, check_in_time, check_out_time, status, note=None):
        with self._lock:
            record = self._records.get(int(attendance_id))
            if not record:
                return False
            if check_out_time is not None:
                record, _ = self._close_locked(record, check_out_time)
            self._records[record.attendance_id] = replace(
                record, check_in_time=check_in_time, check_out_time=check_out_time, status=status, note=note
            )
            self._recompute_locked(record.attendance_id)
            return True

    def seed(self, *, user_id, work_date: date, check_in_time, check_out_time=None, breaks=(), status=AttendanceStatus.PRESENT):
        """Insert a historical record directly."""
        attendance_id = self.create_checkin(
            user_id=user_id, work_date=work_date, check_in_time=check_in_time, status=status
        )
        entries = []
        for start, end in breaks:
            entries.append(
                BreakEntry(
                    break_id=self._next_break_id,
                    start_time=start,
                    end_time=end,
                    duration_ms=int((end - start).total_seconds() * 1000),
                    category=BreakCategory.OTHER,
                )
            )
            self._next_break_id += 1
        record = self._records[attendance_id]
        self._records[attendance_id] = replace(record, breaks=tuple(entries), check_out_time=check_out_time)
        self.recompute_total_break(attendance_id)
        return self._records[attendance_id]


@pytest.fixture
def fixed_now():
    return FIXED_NOW


@pytest.fixture
def users_repo():
    return InMemoryUserRepository()


@pytest.fixture
def attendance_repo():
    return InMemoryAttendanceRepository()


@pytest.fixture
def settings(tmp_path: Path):
    return Settings(
        jwt_secret="test-secret",
        debug=True,
        testing=True,
        log_level="WARNING",
        token_ttl_minutes=60,
        reset_token_ttl_minutes=60,
        expose_reset_token=True,
        upload_dir=tmp_path / "uploads",
        max_upload_mb=1,
    )
