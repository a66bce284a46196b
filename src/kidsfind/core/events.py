"""
Listener registry used by every monitoring service to fan state changes out
to the UI layer (or any other subscriber).
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class MonitoringEvent:
    """State change emitted by a monitoring service."""

    kind: str
    subject_id: Optional[str] = None
    payload: Any = None
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        payload = self.payload
        if hasattr(payload, "to_dict"):
            payload = payload.to_dict()
        return {
            "kind": self.kind,
            "subject_id": self.subject_id,
            "payload": payload,
            "timestamp": self.timestamp.isoformat(),
        }


class ListenerRegistry(Generic[T]):
    """In-memory pub/sub list of callbacks.

    Callbacks are invoked in registration order. A callback that raises is
    logged and skipped so that the remaining listeners still receive the
    event.
    """

    def __init__(self, name: str = "listeners"):
        self.name = name
        self._callbacks: List[Callable[[T], None]] = []

    def add(self, callback: Callable[[T], None]) -> Callable[[], None]:
        """Register a callback and return a function that unregisters it."""
        if callback not in self._callbacks:
            self._callbacks.append(callback)

        def unsubscribe() -> None:
            self.remove(callback)

        return unsubscribe

    def remove(self, callback: Callable[[T], None]) -> bool:
        """Unregister a callback. Returns False if it was not registered."""
        try:
            self._callbacks.remove(callback)
            return True
        except ValueError:
            return False

    def notify(self, event: T) -> int:
        """Deliver an event to every callback; returns how many succeeded."""
        delivered = 0
        for callback in list(self._callbacks):
            try:
                callback(event)
                delivered += 1
            except Exception:
                logger.exception(f"Error in {self.name} listener {callback!r}")
        return delivered

    def clear(self) -> None:
        """Drop every registered callback."""
        self._callbacks.clear()

    def __len__(self) -> int:
        return len(self._callbacks)

    def __contains__(self, callback: object) -> bool:
        return callback in self._callbacks
