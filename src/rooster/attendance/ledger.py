"""Pure aggregation rules over records and their breaks.

Repositories and the service call these so the totals stored next to a
record can always be re-derived from its break list.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Iterable, Optional, Sequence

from ..common.datetime_utils import to_ms
from ..core.exceptions import NoOpenBreakError, ValidationError
from .model import AttendanceRecord, BreakEntry, HistorySummary


def open_break(breaks: Sequence[BreakEntry]) -> Optional[BreakEntry]:
    """Most recent break without an end time."""
    for entry in reversed(breaks):
        if entry.is_open:
            return entry
    return None


def close_break(entry: BreakEntry, end_time: datetime) -> BreakEntry:
    if not entry.is_open:
        raise NoOpenBreakError("Break is already closed")
    if end_time < entry.start_time:
        raise ValidationError("Break cannot end before it starts")
    return replace(entry, end_time=end_time, duration_ms=to_ms(end_time - entry.start_time))


def total_break_ms(breaks: Iterable[BreakEntry]) -> int:
    return sum(to_ms(b.end_time - b.start_time) for b in breaks if b.end_time is not None)


def worked_ms(record: AttendanceRecord) -> int:
    """Check-in to check-out minus closed breaks; 0 while still checked in."""
    if record.check_out_time is None:
        return 0
    return max(0, to_ms(record.check_out_time - record.check_in_time) - record.total_break_ms)


def summarize(records: Sequence[AttendanceRecord]) -> HistorySummary:
    return HistorySummary(
        days=len(records),
        worked_ms=sum(worked_ms(r) for r in records),
        break_ms=sum(r.total_break_ms for r in records),
    )
