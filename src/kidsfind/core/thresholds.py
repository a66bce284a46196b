"""
Threshold evaluation.

Pure functions that turn raw numbers (battery level, minutes used, clock
time) into the derived statuses the services alert on.
"""

import re
from datetime import date, datetime, time
from enum import Enum
from typing import Optional

from .exceptions import ValidationError

_HHMM = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


class BatteryStatus(Enum):
    """Derived battery state."""

    CRITICAL = "critical"
    LOW = "low"
    NORMAL = "normal"
    FULL = "full"


class LimitStatus(Enum):
    """Derived state of a time allowance."""

    WITHIN = "within"
    WARNING = "warning"
    EXCEEDED = "exceeded"


def evaluate_battery(
    level: float,
    is_charging: bool,
    low_threshold: float = 20,
    critical_threshold: float = 5,
) -> BatteryStatus:
    """Classify a battery level.

    Low and critical only apply while unplugged; a full battery is only
    reported while charging.
    """
    if not is_charging:
        if level <= critical_threshold:
            return BatteryStatus.CRITICAL
        if level <= low_threshold:
            return BatteryStatus.LOW
    elif level >= 100:
        return BatteryStatus.FULL
    return BatteryStatus.NORMAL


def evaluate_usage(
    used_minutes: float, limit_minutes: float, warning_ratio: float = 0.8
) -> LimitStatus:
    """Classify minutes used against an allowance."""
    if limit_minutes <= 0 or used_minutes >= limit_minutes:
        return LimitStatus.EXCEEDED
    if used_minutes >= limit_minutes * warning_ratio:
        return LimitStatus.WARNING
    return LimitStatus.WITHIN


def battery_health_label(health: Optional[float]) -> Optional[str]:
    """Map a health percentage to a label."""
    if health is None:
        return None
    if health > 80:
        return "Excellent"
    if health > 60:
        return "Good"
    if health > 40:
        return "Fair"
    if health > 20:
        return "Poor"
    return "Very Poor"


def parse_hhmm(value: str, field: str = "time") -> time:
    """Parse a ``HH:MM`` string."""
    match = _HHMM.match(value or "")
    if not match:
        raise ValidationError(field, value, "expected HH:MM")
    return time(int(match.group(1)), int(match.group(2)))


def is_within_window(now: datetime, start: str, end: str) -> bool:
    """Return True if ``now`` falls inside ``[start, end]``.

    Windows whose start is after their end wrap around midnight
    (``21:00``-``07:00`` covers the night).
    """
    start_t = parse_hhmm(start, "start")
    end_t = parse_hhmm(end, "end")
    current = now.time().replace(second=0, microsecond=0)

    if start_t <= end_t:
        return start_t <= current <= end_t
    return current >= start_t or current <= end_t


def is_weekend(moment: date) -> bool:
    return moment.weekday() >= 5
