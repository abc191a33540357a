from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Optional, Sequence

from ..core.enums import AttendanceStatus, BreakCategory
from ..core.exceptions import ConflictError, DuplicateRecordError, NoActiveSessionError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, is_duplicate_key
from .ledger import close_break
from .model import AttendanceRecord, BreakEntry
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)

_RECORD_COLUMNS = """
    attendance_id, user_id, work_date, check_in_time, check_out_time, total_break_ms, status, note
"""

_BREAK_COLUMNS = """
    break_id, attendance_id, start_time, end_time, duration_ms, category, reason, approved_by
"""


def _row_to_break(r: dict) -> BreakEntry:
    return BreakEntry(
        break_id=int(r["break_id"]),
        start_time=r["start_time"],
        end_time=r.get("end_time"),
        duration_ms=int(r.get("duration_ms") or 0),
        category=BreakCategory(r.get("category") or BreakCategory.OTHER.value),
        reason=r.get("reason"),
        approved_by=r.get("approved_by"),
    )


def _row_to_record(r: dict, breaks: Sequence[BreakEntry] = ()) -> AttendanceRecord:
    return AttendanceRecord(
        attendance_id=int(r["attendance_id"]),
        user_id=int(r["user_id"]),
        work_date=r["work_date"],
        check_in_time=r["check_in_time"],
        check_out_time=r.get("check_out_time"),
        status=AttendanceStatus(r["status"]),
        total_break_ms=int(r.get("total_break_ms") or 0),
        breaks=tuple(breaks),
        note=r.get("note"),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _breaks(self, cur, attendance_ids: Sequence[int]) -> dict[int, list[BreakEntry]]:
        if not attendance_ids:
            return {}
        placeholders = ",".join(["%s"] * len(attendance_ids))
        cur.execute(
            f"""
            SELECT {_BREAK_COLUMNS}
            FROM attendance_breaks
            WHERE attendance_id IN ({placeholders})
            ORDER BY break_id
            """,
            tuple(attendance_ids),
        )
        out: dict[int, list[BreakEntry]] = {}
        for r in fetchall(cur):
            out.setdefault(int(r["attendance_id"]), []).append(_row_to_break(r))
        return out

    def _records(self, cur, rows: Sequence[dict]) -> list[AttendanceRecord]:
        breaks = self._breaks(cur, [int(r["attendance_id"]) for r in rows])
        return [_row_to_record(r, breaks.get(int(r["attendance_id"]), ())) for r in rows]

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_RECORD_COLUMNS} FROM attendance_records WHERE attendance_id=%s", (int(attendance_id),))
            r = fetchone(cur)
            return self._records(cur, [r])[0] if r else None

    def get_for_user_and_date(self, user_id: int, work_date: date) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_RECORD_COLUMNS}
                FROM attendance_records
                WHERE user_id=%s AND work_date=%s
                """,
                (int(user_id), work_date),
            )
            r = fetchone(cur)
            return self._records(cur, [r])[0] if r else None

    def list_for_user(self, user_id: int, *, start_date: date, end_date: date) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_RECORD_COLUMNS}
                FROM attendance_records
                WHERE user_id=%s AND work_date BETWEEN %s AND %s
                ORDER BY work_date DESC
                """,
                (int(user_id), start_date, end_date),
            )
            return self._records(cur, fetchall(cur))

    def create_checkin(
        self,
        *,
        user_id: int,
        work_date: date,
        check_in_time: datetime,
        status: AttendanceStatus,
        note: Optional[str] = None,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            try:
                cur.execute(
                    """
                    INSERT INTO attendance_records(user_id, work_date, check_in_time, status, note)
                    VALUES(%s,%s,%s,%s,%s)
                    """,
                    (int(user_id), work_date, check_in_time, status.value, note),
                )
            except Exception as exc:
                if is_duplicate_key(exc):
                    raise DuplicateRecordError("Already checked in today") from exc
                raise
            return int(cur.lastrowid)

    @staticmethod
    def _lock_record(cur, attendance_id: int) -> Optional[dict]:
        cur.execute(
            "SELECT attendance_id, check_out_time FROM attendance_records WHERE attendance_id=%s FOR UPDATE",
            (int(attendance_id),),
        )
        return fetchone(cur)

    @staticmethod
    def _open_break(cur, attendance_id: int) -> Optional[BreakEntry]:
        cur.execute(
            f"""
            SELECT {_BREAK_COLUMNS}
            FROM attendance_breaks
            WHERE attendance_id=%s AND end_time IS NULL
            ORDER BY break_id DESC
            LIMIT 1
            """,
            (int(attendance_id),),
        )
        r = fetchone(cur)
        return _row_to_break(r) if r else None

    @staticmethod
    def _recompute(cur, attendance_id: int) -> int:
        cur.execute(
            """
            UPDATE attendance_records
            SET total_break_ms = (
                SELECT COALESCE(SUM(duration_ms), 0)
                FROM attendance_breaks
                WHERE attendance_id=%s AND end_time IS NOT NULL
            )
            WHERE attendance_id=%s
            """,
            (int(attendance_id), int(attendance_id)),
        )
        cur.execute("SELECT total_break_ms FROM attendance_records WHERE attendance_id=%s", (int(attendance_id),))
        r = fetchone(cur)
        return int(r["total_break_ms"]) if r else 0

    def _close(self, cur, entry: BreakEntry, end_time: datetime) -> Optional[BreakEntry]:
        closed = close_break(entry, end_time)
        cur.execute(
            """
            UPDATE attendance_breaks
            SET end_time=%s, duration_ms=%s
            WHERE break_id=%s AND end_time IS NULL
            """,
            (closed.end_time, closed.duration_ms, closed.break_id),
        )
        return closed if cur.rowcount > 0 else None

    def append_break(
        self,
        attendance_id: int,
        *,
        start_time: datetime,
        category: BreakCategory,
        reason: Optional[str],
        approved_by: Optional[int],
    ) -> BreakEntry:
        with db_cursor(self._conn_factory) as (_, cur):
            locked = self._lock_record(cur, attendance_id)
            if not locked or locked.get("check_out_time") is not None:
                raise NoActiveSessionError("No active attendance session")
            if self._open_break(cur, attendance_id):
                raise ConflictError("A break is already in progress")

            try:
                cur.execute(
                    """
                    INSERT INTO attendance_breaks(attendance_id, start_time, category, reason, approved_by)
                    VALUES(%s,%s,%s,%s,%s)
                    """,
                    (int(attendance_id), start_time, category.value, reason, approved_by),
                )
            except Exception as exc:
                if is_duplicate_key(exc):
                    raise ConflictError("A break is already in progress") from exc
                raise

            return BreakEntry(
                break_id=int(cur.lastrowid),
                start_time=start_time,
                category=category,
                reason=reason,
                approved_by=approved_by,
            )

    def close_open_break(self, attendance_id: int, *, end_time: datetime) -> Optional[BreakEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            if not self._lock_record(cur, attendance_id):
                return None
            entry = self._open_break(cur, attendance_id)
            if not entry:
                return None
            closed = self._close(cur, entry, end_time)
            self._recompute(cur, attendance_id)
            return closed

    def update_checkout(
        self,
        *,
        attendance_id: int,
        check_out_time: datetime,
        status: AttendanceStatus,
        note: Optional[str] = None,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            locked = self._lock_record(cur, attendance_id)
            if not locked or locked.get("check_out_time") is not None:
                return False

            entry = self._open_break(cur, attendance_id)
            if entry:
                self._close(cur, entry, check_out_time)
                logger.info("Break %s closed by check-out of record %s", entry.break_id, attendance_id)
            self._recompute(cur, attendance_id)

            cur.execute(
                """
                UPDATE attendance_records
                SET check_out_time=%s, status=%s, note=COALESCE(%s, note)
                WHERE attendance_id=%s AND check_out_time IS NULL
                """,
                (check_out_time, status.value, note, int(attendance_id)),
            )
            return cur.rowcount > 0

    def recompute_total_break(self, attendance_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            return self._recompute(cur, attendance_id)

    def admin_update_record(
        self,
        *,
        attendance_id: int,
        check_in_time: datetime,
        check_out_time: Optional[datetime],
        status: AttendanceStatus,
        note: Optional[str] = None,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            if not self._lock_record(cur, attendance_id):
                return False

            if check_out_time is not None:
                entry = self._open_break(cur, attendance_id)
                if entry:
                    self._close(cur, entry, check_out_time)
                    logger.info("Break %s closed by corrected check-out of record %s", entry.break_id, attendance_id)

            cur.execute(
                """
                UPDATE attendance_records
                SET check_in_time=%s, check_out_time=%s, status=%s, note=%s
                WHERE attendance_id=%s
                """,
                (check_in_time, check_out_time, status.value, note, int(attendance_id)),
            )
            self._recompute(cur, attendance_id)
            return True
