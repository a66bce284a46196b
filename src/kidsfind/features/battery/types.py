"""Battery monitoring types."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from ...core.thresholds import BatteryStatus, battery_health_label
from ...core.utils import from_iso, to_iso


class BatteryAlertType(Enum):
    """Kinds of battery alert. Alert log kinds are prefixed with ``battery_``."""

    LOW = "low"
    CRITICAL = "critical"
    CHARGING = "charging"
    FULL = "full"

    @property
    def alert_kind(self) -> str:
        return f"battery_{self.value}"


@dataclass
class BatteryReading:
    """Raw reading from a battery source, level already in percent."""

    level: float
    is_charging: bool
    temperature: Optional[float] = None
    health_pct: Optional[float] = None


@dataclass
class BatteryInfo:
    """One recorded battery state of a child's device."""

    child_id: str
    level: float
    is_charging: bool
    timestamp: datetime = field(default_factory=datetime.now)
    temperature: Optional[float] = None
    health_pct: Optional[float] = None
    status: BatteryStatus = BatteryStatus.NORMAL

    @property
    def health(self) -> Optional[str]:
        return battery_health_label(self.health_pct)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "child_id": self.child_id,
            "level": self.level,
            "is_charging": self.is_charging,
            "timestamp": to_iso(self.timestamp),
            "temperature": self.temperature,
            "health_pct": self.health_pct,
            "health": self.health,
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BatteryInfo":
        return cls(
            child_id=data["child_id"],
            level=data["level"],
            is_charging=data.get("is_charging", False),
            timestamp=from_iso(data.get("timestamp")) or datetime.now(),
            temperature=data.get("temperature"),
            health_pct=data.get("health_pct"),
            status=BatteryStatus(data.get("status", "normal")),
        )


@dataclass
class BatteryAnalytics:
    """Summary of a child's battery history over a period."""

    average_level: int = 0
    time_charging: int = 0  # percent of readings taken while charging
    lowest_level: float = 0
    highest_level: float = 0
    charging_cycles: int = 0
    battery_health_trend: str = "stable"  # improving | stable | declining
    readings: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "average_level": self.average_level,
            "time_charging": self.time_charging,
            "lowest_level": self.lowest_level,
            "highest_level": self.highest_level,
            "charging_cycles": self.charging_cycles,
            "battery_health_trend": self.battery_health_trend,
            "readings": self.readings,
        }
