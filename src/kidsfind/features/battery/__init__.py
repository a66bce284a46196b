"""
Battery monitoring feature.

Tracks device battery levels and alerts parents on low, critical,
charging and full states.
"""

from .manager import BatteryMonitoringService, create_battery_monitoring_service
from .source import BatterySource, BatteryState, MockBatterySource, fraction_to_percent
from .types import BatteryAlertType, BatteryAnalytics, BatteryInfo, BatteryReading

__all__ = [
    "BatteryMonitoringService",
    "create_battery_monitoring_service",
    "BatterySource",
    "BatteryState",
    "MockBatterySource",
    "fraction_to_percent",
    "BatteryAlertType",
    "BatteryAnalytics",
    "BatteryInfo",
    "BatteryReading",
]
