"""
Append-only alert log shared by the monitoring services.

Alerts are parent-facing records (battery low, blocked call, limit reached,
...). The log supports acknowledgement, time-window queries and per-key
throttling so that a repeating condition alerts at most once per interval.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional

from .utils import Clock, from_iso, generate_id, to_iso

logger = logging.getLogger(__name__)


class AlertSeverity(Enum):
    """Alert severity levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass
class Alert:
    """A parent-facing alert raised by a monitoring service."""

    id: str
    kind: str
    severity: AlertSeverity = AlertSeverity.MEDIUM
    message: str = ""
    subject_id: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)
    acknowledged: bool = False
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "kind": self.kind,
            "severity": self.severity.value,
            "message": self.message,
            "subject_id": self.subject_id,
            "timestamp": to_iso(self.timestamp),
            "acknowledged": self.acknowledged,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Alert":
        """Create from dictionary."""
        return cls(
            id=data["id"],
            kind=data["kind"],
            severity=AlertSeverity(data.get("severity", "medium")),
            message=data.get("message", ""),
            subject_id=data.get("subject_id"),
            timestamp=from_iso(data.get("timestamp")) or datetime.now(),
            acknowledged=data.get("acknowledged", False),
            metadata=data.get("metadata", {}),
        )


class AlertLog:
    """In-memory alert list with throttling."""

    def __init__(
        self,
        prefix: str = "alert",
        max_history: int = 1000,
        clock: Optional[Clock] = None,
    ):
        self.prefix = prefix
        self.max_history = max_history
        self.clock = clock or datetime.now
        self._alerts: List[Alert] = []
        self._last_raised: Dict[str, datetime] = {}

    def is_throttled(self, key: str, interval_minutes: float) -> bool:
        """Return True if ``key`` raised an alert less than ``interval_minutes`` ago."""
        last = self._last_raised.get(key)
        if last is None:
            return False
        return self.clock() - last < timedelta(minutes=interval_minutes)

    def raise_alert(
        self,
        kind: str,
        message: str,
        severity: AlertSeverity = AlertSeverity.MEDIUM,
        subject_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        throttle_key: Optional[str] = None,
        throttle_minutes: Optional[float] = None,
    ) -> Optional[Alert]:
        """Append an alert, or return None when its throttle key is still cooling down."""
        if throttle_key is not None and throttle_minutes is not None:
            if self.is_throttled(throttle_key, throttle_minutes):
                logger.debug(f"Alert {kind} throttled for key {throttle_key}")
                return None

        now = self.clock()
        alert = Alert(
            id=generate_id(self.prefix, now),
            kind=kind,
            severity=severity,
            message=message,
            subject_id=subject_id,
            timestamp=now,
            metadata=dict(metadata or {}),
        )
        self._alerts.append(alert)
        if len(self._alerts) > self.max_history:
            del self._alerts[: len(self._alerts) - self.max_history]

        if throttle_key is not None:
            self._last_raised[throttle_key] = now
        return alert

    def acknowledge(self, alert_id: str) -> bool:
        for alert in self._alerts:
            if alert.id == alert_id:
                alert.acknowledged = True
                return True
        return False

    def get(self, alert_id: str) -> Optional[Alert]:
        for alert in self._alerts:
            if alert.id == alert_id:
                return alert
        return None

    def list(
        self,
        subject_id: Optional[str] = None,
        days: Optional[float] = None,
        kind: Optional[str] = None,
        unacknowledged_only: bool = False,
    ) -> List[Alert]:
        """Alerts matching the filters, newest first."""
        cutoff = self.clock() - timedelta(days=days) if days is not None else None
        alerts = [
            a
            for a in self._alerts
            if (subject_id is None or a.subject_id == subject_id)
            and (cutoff is None or a.timestamp >= cutoff)
            and (kind is None or a.kind == kind)
            and not (unacknowledged_only and a.acknowledged)
        ]
        return sorted(alerts, key=lambda a: a.timestamp, reverse=True)

    def load(self, alerts: List[Alert]) -> None:
        self._alerts = list(alerts)[-self.max_history :]

    def all(self) -> List[Alert]:
        """Every stored alert, oldest first."""
        return list(self._alerts)

    def clear(self) -> None:
        self._alerts.clear()
        self._last_raised.clear()

    def __len__(self) -> int:
        return len(self._alerts)
