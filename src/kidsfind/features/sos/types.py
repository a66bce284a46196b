"""SOS alert types and provider protocols."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Protocol

from ...core.lifecycle import MonitoringSession
from ...core.utils import from_iso, to_iso


class SOSStatus(Enum):
    ACTIVE = "active"
    RESOLVED = "resolved"
    CANCELLED = "cancelled"


@dataclass
class Location:
    """A position fix of the child device."""

    latitude: float
    longitude: float
    accuracy: float = 0.0
    timestamp: datetime = field(default_factory=datetime.now)
    altitude: Optional[float] = None
    speed: Optional[float] = None
    heading: Optional[float] = None
    address: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "accuracy": self.accuracy,
            "timestamp": to_iso(self.timestamp),
            "altitude": self.altitude,
            "speed": self.speed,
            "heading": self.heading,
            "address": self.address,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Location":
        return cls(
            latitude=data["latitude"],
            longitude=data["longitude"],
            accuracy=data.get("accuracy", 0.0),
            timestamp=from_iso(data.get("timestamp")) or datetime.now(),
            altitude=data.get("altitude"),
            speed=data.get("speed"),
            heading=data.get("heading"),
            address=data.get("address"),
        )


class LocationProvider(Protocol):
    """Source of the child's current position."""

    async def get_current_location(self, child_id: str) -> Optional[Location]:
        ...


# child_id -> phone numbers (or ids) of the emergency contacts to alert
EmergencyContactsProvider = Callable[[str], List[str]]


class StaticLocationProvider:
    """Location provider returning a fixed position (or nothing)."""

    def __init__(self, location: Optional[Location] = None):
        self.location = location

    async def get_current_location(self, child_id: str) -> Optional[Location]:
        return self.location


@dataclass
class SOSAlert:
    """An emergency alert raised from the child device."""

    id: str
    child_id: str
    location: Location
    timestamp: datetime
    status: SOSStatus = SOSStatus.ACTIVE
    message: str = ""
    alert_type: str = "manual_trigger"
    severity: str = "high"
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    cancelled_by: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status == SOSStatus.ACTIVE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "child_id": self.child_id,
            "location": self.location.to_dict(),
            "timestamp": to_iso(self.timestamp),
            "status": self.status.value,
            "message": self.message,
            "type": self.alert_type,
            "severity": self.severity,
            "resolved_at": to_iso(self.resolved_at),
            "resolved_by": self.resolved_by,
            "cancelled_at": to_iso(self.cancelled_at),
            "cancelled_by": self.cancelled_by,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SOSAlert":
        return cls(
            id=data["id"],
            child_id=data["child_id"],
            location=Location.from_dict(data["location"]),
            timestamp=from_iso(data.get("timestamp")) or datetime.now(),
            status=SOSStatus(data.get("status", "active")),
            message=data.get("message", ""),
            alert_type=data.get("type", "manual_trigger"),
            severity=data.get("severity", "high"),
            resolved_at=from_iso(data.get("resolved_at")),
            resolved_by=data.get("resolved_by"),
            cancelled_at=from_iso(data.get("cancelled_at")),
            cancelled_by=data.get("cancelled_by"),
        )


@dataclass
class SOSSession(MonitoringSession):
    """Emergency protocol state that accompanies an active alert."""

    location: Optional[Location] = None
    emergency_contacts: List[str] = field(default_factory=list)
    alerts_sent: int = 0
    parent_notified: bool = False

    @property
    def child_id(self) -> str:
        return self.subject_id

    def to_dict(self) -> Dict[str, Any]:
        data = self._base_dict()
        data.update(
            {
                "child_id": self.subject_id,
                "location": self.location.to_dict() if self.location else None,
                "emergency_contacts": list(self.emergency_contacts),
                "alerts_sent": self.alerts_sent,
                "parent_notified": self.parent_notified,
            }
        )
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SOSSession":
        location = data.get("location")
        return cls(
            **cls._base_kwargs(data),
            location=Location.from_dict(location) if location else None,
            emergency_contacts=list(data.get("emergency_contacts", [])),
            alerts_sent=data.get("alerts_sent", 0),
            parent_notified=data.get("parent_notified", False),
        )
