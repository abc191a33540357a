from __future__ import annotations

from datetime import date, datetime, timedelta

import pytest

from rooster.attendance.ledger import close_break, open_break, summarize, total_break_ms, worked_ms
from rooster.attendance.model import AttendanceRecord, BreakEntry
from rooster.core.exceptions import NoOpenBreakError, ValidationError

T0 = datetime(2025, 3, 10, 9, 0, 0)


def _closed(break_id, start, minutes):
    end = start + timedelta(minutes=minutes)
    return BreakEntry(break_id=break_id, start_time=start, end_time=end, duration_ms=minutes * 60_000)


def test_open_break_returns_latest_open_entry():
    breaks = (_closed(1, T0, 10), BreakEntry(break_id=2, start_time=T0 + timedelta(hours=1)))
    assert open_break(breaks).break_id == 2
    assert open_break(breaks[:1]) is None


def test_close_break_sets_duration_from_interval():
    entry = BreakEntry(break_id=1, start_time=T0)
    closed = close_break(entry, T0 + timedelta(minutes=30, milliseconds=250))

    assert closed.duration_ms == 30 * 60_000 + 250
    assert closed.end_time == T0 + timedelta(minutes=30, milliseconds=250)
    assert entry.is_open


def test_close_break_rejects_closed_entry_and_backwards_end():
    with pytest.raises(NoOpenBreakError):
        close_break(_closed(1, T0, 5), T0 + timedelta(hours=1))
    with pytest.raises(ValidationError):
        close_break(BreakEntry(break_id=1, start_time=T0), T0 - timedelta(seconds=1))


def test_total_break_ms_sums_closed_breaks_only():
    breaks = (
        _closed(1, T0, 15),
        _closed(2, T0 + timedelta(hours=2), 30),
        BreakEntry(break_id=3, start_time=T0 + timedelta(hours=4)),
    )
    assert total_break_ms(breaks) == 45 * 60_000
    # Same closed set, same answer.
    assert total_break_ms(breaks) == total_break_ms(list(breaks))


def test_worked_ms_and_summary():
    done = AttendanceRecord(
        attendance_id=1,
        user_id=1,
        work_date=date(2025, 3, 10),
        check_in_time=T0,
        check_out_time=T0 + timedelta(hours=9),
        total_break_ms=30 * 60_000,
    )
    running = AttendanceRecord(attendance_id=2, user_id=1, work_date=date(2025, 3, 11), check_in_time=T0 + timedelta(days=1))

    assert worked_ms(done) == (9 * 60 - 30) * 60_000
    assert worked_ms(running) == 0

    summary = summarize([done, running])
    assert summary.days == 2
    assert summary.worked_ms == worked_ms(done)
    assert summary.break_ms == 30 * 60_000
