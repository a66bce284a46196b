"""
Usage control types and data structures.

Contains enums and data classes for screen time sessions, per-app usage and
app control requests.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from ...core.lifecycle import MonitoringSession
from ...core.thresholds import LimitStatus
from ...core.utils import from_iso, to_iso


class AppCategory(Enum):
    """App categories used for limits."""

    SOCIAL = "social"
    GAMES = "games"
    EDUCATION = "education"
    ENTERTAINMENT = "entertainment"
    PRODUCTIVITY = "productivity"
    OTHER = "other"


class AppAction(Enum):
    """Parent actions on an app."""

    BLOCK = "block"
    UNBLOCK = "unblock"
    LIMIT = "limit"
    UNLIMITED = "unlimited"


@dataclass
class AppUsageData:
    """Today's usage of one app on one child's device."""

    child_id: str
    package_name: str
    app_name: str = ""
    category: AppCategory = AppCategory.OTHER
    usage_time: float = 0.0  # minutes
    open_count: int = 0
    last_used: datetime = field(default_factory=datetime.now)
    is_blocked: bool = False
    time_limit: Optional[int] = None  # minutes per day

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "child_id": self.child_id,
            "package_name": self.package_name,
            "app_name": self.app_name or self.package_name,
            "category": self.category.value,
            "usage_time": self.usage_time,
            "open_count": self.open_count,
            "last_used": to_iso(self.last_used),
            "is_blocked": self.is_blocked,
            "time_limit": self.time_limit,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AppUsageData":
        """Create from dictionary."""
        return cls(
            child_id=data["child_id"],
            package_name=data["package_name"],
            app_name=data.get("app_name", ""),
            category=AppCategory(data.get("category", "other")),
            usage_time=data.get("usage_time", 0.0),
            open_count=data.get("open_count", 0),
            last_used=from_iso(data.get("last_used")) or datetime.now(),
            is_blocked=data.get("is_blocked", False),
            time_limit=data.get("time_limit"),
        )


@dataclass
class ScreenTimeSession(MonitoringSession):
    """A stretch of device use by a child."""

    duration: int = 0  # minutes
    device_type: str = "phone"
    limit_exceeded: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        data = self._base_dict()
        data.update(
            {
                "child_id": self.subject_id,
                "duration": self.duration,
                "device_type": self.device_type,
                "limit_exceeded": self.limit_exceeded,
            }
        )
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScreenTimeSession":
        """Create from dictionary."""
        return cls(
            **cls._base_kwargs(data),
            duration=data.get("duration", 0),
            device_type=data.get("device_type", "phone"),
            limit_exceeded=data.get("limit_exceeded", False),
        )


@dataclass
class AppControlRequest:
    """A parent's request to change how an app may be used."""

    child_id: str
    package_name: str
    action: AppAction
    time_limit: Optional[int] = None
    reason: Optional[str] = None


@dataclass
class UsageSnapshot:
    """Today's screen time for one child, recomputed on every fetch."""

    subject_id: str
    date: date
    total_screen_time: int  # minutes
    per_app_breakdown: List[AppUsageData]
    sessions_count: int
    limit_minutes: int
    limit_status: LimitStatus

    def to_dict(self) -> Dict[str, Any]:
        return {
            "child_id": self.subject_id,
            "date": self.date.isoformat(),
            "total_screen_time": self.total_screen_time,
            "app_usage": [app.to_dict() for app in self.per_app_breakdown],
            "sessions_count": self.sessions_count,
            "limit_minutes": self.limit_minutes,
            "limit_status": self.limit_status.value,
        }


@dataclass
class WeeklyUsage:
    """Screen time over the last seven days."""

    subject_id: str
    daily_usage: Dict[str, int]  # ISO date -> minutes
    average_daily: float
    total_week: int
    most_used_apps: List[AppUsageData]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "child_id": self.subject_id,
            "daily_usage": [
                {"date": day, "screen_time": minutes}
                for day, minutes in sorted(self.daily_usage.items())
            ],
            "average_daily": self.average_daily,
            "total_week": self.total_week,
            "most_used_apps": [app.to_dict() for app in self.most_used_apps],
        }
