"""
Usage control feature package.

Screen time sessions, daily limits, bedtime and per-app control.
"""

from .manager import UsageControlService, create_usage_control_service
from .types import (
    AppAction,
    AppCategory,
    AppControlRequest,
    AppUsageData,
    ScreenTimeSession,
    UsageSnapshot,
    WeeklyUsage,
)

__all__ = [
    "UsageControlService",
    "create_usage_control_service",
    "AppAction",
    "AppCategory",
    "AppControlRequest",
    "AppUsageData",
    "ScreenTimeSession",
    "UsageSnapshot",
    "WeeklyUsage",
]
