from datetime import datetime

from rooster.attendance.factory import AttendanceStrategyFactory
from rooster.attendance.strategies.half_day_strategy import HalfDayStrategy
from rooster.attendance.strategies.present_strategy import PresentStrategy
from rooster.core.enums import AttendanceStatus


def test_factory_checkin_is_always_present():
    now = datetime(2025, 1, 1, 8, 0, 0)
    strategy = AttendanceStrategyFactory(half_day_threshold_minutes=240).for_checkin(now=now)

    assert isinstance(strategy, PresentStrategy)
    assert strategy.decide_checkin(now=now).status == AttendanceStatus.PRESENT


def test_factory_checkout_ignores_half_day_when_disabled():
    factory = AttendanceStrategyFactory()
    strategy = factory.for_checkout(now=datetime(2025, 1, 1, 9, 0), current_status=AttendanceStatus.PRESENT, active_ms=60_000)

    assert isinstance(strategy, PresentStrategy)


def test_factory_checkout_short_day_is_half_day():
    factory = AttendanceStrategyFactory(half_day_threshold_minutes=240)
    now = datetime(2025, 1, 1, 11, 0)
    strategy = factory.for_checkout(now=now, current_status=AttendanceStatus.PRESENT, active_ms=3 * 3_600_000)

    assert isinstance(strategy, HalfDayStrategy)
    decision = strategy.decide_checkout(now=now, current=AttendanceStatus.PRESENT, active_ms=3 * 3_600_000)
    assert decision.status == AttendanceStatus.HALF_DAY
    assert decision.note == "Worked 180 min, under 240 min"


def test_factory_checkout_full_day_stays_present():
    factory = AttendanceStrategyFactory(half_day_threshold_minutes=240)
    strategy = factory.for_checkout(
        now=datetime(2025, 1, 1, 17, 0), current_status=AttendanceStatus.PRESENT, active_ms=240 * 60_000
    )

    assert isinstance(strategy, PresentStrategy)


def test_factory_checkout_keeps_admin_set_status():
    factory = AttendanceStrategyFactory(half_day_threshold_minutes=240)
    strategy = factory.for_checkout(now=datetime(2025, 1, 1, 9, 30), current_status=AttendanceStatus.LEAVE, active_ms=0)

    assert strategy.decide_checkout(now=datetime(2025, 1, 1, 9, 30), current=AttendanceStatus.LEAVE, active_ms=0).status == AttendanceStatus.LEAVE
