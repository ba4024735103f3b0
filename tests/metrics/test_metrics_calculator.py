from datetime import date, datetime, timedelta

from field_attendance.attendance.model import AttendanceSession
from field_attendance.metrics.calculator.standard_calculator import OdometerMetricsCalculator
from field_attendance.metrics.service import DailySummaryBuilder

T0 = datetime(2025, 3, 10, 9, 0, 0)


def test_duration_rounds_half_up_to_minutes():
    calc = OdometerMetricsCalculator()
    assert calc.duration_minutes(T0, T0 + timedelta(minutes=65)) == 65
    assert calc.duration_minutes(T0, T0 + timedelta(seconds=90)) == 2
    assert calc.duration_minutes(T0, T0 + timedelta(seconds=149)) == 2
    assert calc.duration_minutes(T0, T0 + timedelta(seconds=150)) == 3


def test_duration_is_at_least_one_minute():
    calc = OdometerMetricsCalculator()
    assert calc.duration_minutes(T0, T0) == 1
    assert calc.duration_minutes(T0, T0 + timedelta(seconds=10)) == 1


def test_distance_is_delta_clamped_at_zero():
    calc = OdometerMetricsCalculator()
    for start, end in ((1000, 1025), (1025, 1000), (0, 0), (12.5, 40.25)):
        assert calc.distance_traveled(start, end) == max(0, end - start)


def test_fallbacks_when_check_in_side_is_missing():
    calc = OdometerMetricsCalculator()
    assert calc.duration_minutes(None, T0) == 60
    assert calc.distance_traveled(None, 1234) == 5

    custom = OdometerMetricsCalculator(fallback_duration=30, fallback_distance=0)
    assert custom.duration_minutes(None, T0) == 30
    assert custom.distance_traveled(None, 1234) == 0


def test_summary_builder_totals_day_sessions():
    sessions = [
        AttendanceSession(
            session_id=2,
            user_id=3,
            check_in_time=T0 + timedelta(hours=3),
            check_in_reading=50,
            check_out_time=T0 + timedelta(hours=4),
            check_out_reading=70,
            duration_minutes=60,
            distance_traveled=20,
        ),
        AttendanceSession(
            session_id=1,
            user_id=3,
            check_in_time=T0,
            check_in_reading=10,
            check_out_time=T0 + timedelta(hours=2),
            check_out_reading=50,
            duration_minutes=120,
            distance_traveled=40,
        ),
        AttendanceSession(session_id=3, user_id=3, check_in_time=T0 + timedelta(hours=5), check_in_reading=70),
    ]

    summary = DailySummaryBuilder().build(
        user_id=3, work_date=date(2025, 3, 10), sessions=sessions, last_check_out=T0 + timedelta(hours=4)
    )

    assert summary.total_minutes == 180
    assert summary.total_distance == 60
    assert summary.check_in_count == 3
    assert summary.first_check_in == T0
    assert summary.last_check_out == T0 + timedelta(hours=4)
    assert summary.total_hours == 3.0
