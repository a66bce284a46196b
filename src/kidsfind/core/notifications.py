"""
Parent notification outbox.

Services push notifications here; the HTTP layer lists them and marks them
read. Delivery to a device (push, SMS) is left to whoever subscribes.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from .events import ListenerRegistry
from .utils import Clock, from_iso, generate_id, to_iso

logger = logging.getLogger(__name__)

PRIORITIES = ("low", "normal", "high", "max")


@dataclass
class Notification:
    """A message addressed to the parent."""

    id: str
    kind: str
    title: str
    body: str
    subject_id: Optional[str] = None
    priority: str = "normal"
    created_at: datetime = field(default_factory=datetime.now)
    read: bool = False
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "kind": self.kind,
            "title": self.title,
            "body": self.body,
            "subject_id": self.subject_id,
            "priority": self.priority,
            "created_at": to_iso(self.created_at),
            "read": self.read,
            "data": self.data,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Notification":
        """Create from dictionary."""
        return cls(
            id=data["id"],
            kind=data["kind"],
            title=data.get("title", ""),
            body=data.get("body", ""),
            subject_id=data.get("subject_id"),
            priority=data.get("priority", "normal"),
            created_at=from_iso(data.get("created_at")) or datetime.now(),
            read=data.get("read", False),
            data=data.get("data", {}),
        )


class NotificationCenter:
    """Collects notifications emitted by the monitoring services."""

    def __init__(
        self,
        max_history: int = 500,
        enabled: bool = True,
        clock: Optional[Clock] = None,
    ):
        self.max_history = max_history
        self.enabled = enabled
        self.clock = clock or datetime.now
        self._notifications: List[Notification] = []
        self._listeners: ListenerRegistry[Notification] = ListenerRegistry(
            "notification"
        )

    def send(
        self,
        kind: str,
        title: str,
        body: str,
        subject_id: Optional[str] = None,
        priority: str = "normal",
        data: Optional[Dict[str, Any]] = None,
    ) -> Optional[Notification]:
        """Store a notification and fan it out to listeners.

        Returns None when notifications are disabled.
        """
        if not self.enabled:
            logger.debug(f"Notifications disabled, dropping {kind}")
            return None
        if priority not in PRIORITIES:
            priority = "normal"

        now = self.clock()
        notification = Notification(
            id=generate_id("notif", now),
            kind=kind,
            title=title,
            body=body,
            subject_id=subject_id,
            priority=priority,
            created_at=now,
            data=dict(data or {}),
        )
        self._notifications.append(notification)
        if len(self._notifications) > self.max_history:
            del self._notifications[: len(self._notifications) - self.max_history]

        logger.info(f"Notification {kind} queued for {subject_id or 'all'}")
        self._listeners.notify(notification)
        return notification

    def list(
        self, subject_id: Optional[str] = None, unread_only: bool = False
    ) -> List[Notification]:
        """Notifications newest first."""
        items = [
            n
            for n in self._notifications
            if (subject_id is None or n.subject_id == subject_id)
            and not (unread_only and n.read)
        ]
        return sorted(items, key=lambda n: n.created_at, reverse=True)

    def mark_read(self, notification_id: str) -> bool:
        for notification in self._notifications:
            if notification.id == notification_id:
                notification.read = True
                return True
        return False

    def mark_all_read(self, subject_id: Optional[str] = None) -> int:
        """Mark every matching notification read; returns how many changed."""
        changed = 0
        for notification in self._notifications:
            if notification.read:
                continue
            if subject_id is None or notification.subject_id == subject_id:
                notification.read = True
                changed += 1
        return changed

    def unread_count(self, subject_id: Optional[str] = None) -> int:
        return len(self.list(subject_id=subject_id, unread_only=True))

    def add_listener(
        self, callback: Callable[[Notification], None]
    ) -> Callable[[], None]:
        return self._listeners.add(callback)

    def load(self, notifications: List[Notification]) -> None:
        self._notifications = list(notifications)[-self.max_history :]

    def all(self) -> List[Notification]:
        return list(self._notifications)

    def clear(self) -> None:
        self._notifications.clear()
