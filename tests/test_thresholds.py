"""
Tests for threshold evaluation helpers.
"""

from datetime import date, datetime

import pytest

from kidsfind.core.exceptions import ValidationError
from kidsfind.core.thresholds import (
    BatteryStatus,
    LimitStatus,
    battery_health_label,
    evaluate_battery,
    evaluate_usage,
    is_weekend,
    is_within_window,
    parse_hhmm,
)


class TestBatteryThresholds:
    @pytest.mark.parametrize(
        "level,charging,expected",
        [
            (5, False, BatteryStatus.CRITICAL),
            (4.9, False, BatteryStatus.CRITICAL),
            (20, False, BatteryStatus.LOW),
            (21, False, BatteryStatus.NORMAL),
            (3, True, BatteryStatus.NORMAL),
            (100, True, BatteryStatus.FULL),
            (100, False, BatteryStatus.NORMAL),
        ],
    )
    def test_evaluate_battery(
        self, level: float, charging: bool, expected: BatteryStatus
    ) -> None:
        assert evaluate_battery(level, charging) == expected

    def test_custom_thresholds(self) -> None:
        assert evaluate_battery(30, False, low_threshold=35) == BatteryStatus.LOW

    def test_health_label(self) -> None:
        assert battery_health_label(None) is None
        assert battery_health_label(95) == "Excellent"
        assert battery_health_label(61) == "Good"
        assert battery_health_label(50) == "Fair"
        assert battery_health_label(30) == "Poor"
        assert battery_health_label(10) == "Very Poor"


class TestUsageThresholds:
    def test_within_warning_exceeded(self) -> None:
        assert evaluate_usage(10, 120) == LimitStatus.WITHIN
        assert evaluate_usage(96, 120) == LimitStatus.WARNING
        assert evaluate_usage(120, 120) == LimitStatus.EXCEEDED

    def test_zero_limit_is_exceeded(self) -> None:
        assert evaluate_usage(0, 0) == LimitStatus.EXCEEDED


class TestTimeWindows:
    def test_parse_hhmm(self) -> None:
        assert parse_hhmm("07:30").hour == 7

    @pytest.mark.parametrize("value", ["7:30", "24:00", "12:60", "", "noon"])
    def test_parse_hhmm_rejects(self, value: str) -> None:
        with pytest.raises(ValidationError):
            parse_hhmm(value, "bedtime_start")

    def test_same_day_window(self) -> None:
        assert is_within_window(datetime(2025, 1, 15, 10, 0), "08:00", "16:00")
        assert is_within_window(datetime(2025, 1, 15, 16, 0), "08:00", "16:00")
        assert not is_within_window(datetime(2025, 1, 15, 16, 1), "08:00", "16:00")

    def test_overnight_window(self) -> None:
        assert is_within_window(datetime(2025, 1, 15, 23, 30), "21:00", "07:00")
        assert is_within_window(datetime(2025, 1, 16, 6, 59), "21:00", "07:00")
        assert not is_within_window(datetime(2025, 1, 15, 12, 0), "21:00", "07:00")

    def test_weekend(self) -> None:
        assert is_weekend(date(2025, 1, 18))
        assert not is_weekend(date(2025, 1, 15))
