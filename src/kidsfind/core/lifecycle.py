"""
Session lifecycle shared by the monitoring services.

A session moves ``requested -> active -> completed | failed | cancelled``;
a requested session may also end directly as failed or cancelled. The
tracker holds at most one active session per subject plus a bounded history.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, Generic, List, Optional, TypeVar

from .exceptions import SessionConflictError, SessionStateError
from .utils import from_iso, to_iso

logger = logging.getLogger(__name__)


class SessionStatus(Enum):
    """Lifecycle status of a monitoring session."""

    REQUESTED = "requested"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


class ConsentStatus(Enum):
    """Child consent state for sessions that need it."""

    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"


TERMINAL_STATUSES: FrozenSet[SessionStatus] = frozenset(
    {SessionStatus.COMPLETED, SessionStatus.FAILED, SessionStatus.CANCELLED}
)

ALLOWED_TRANSITIONS: Dict[SessionStatus, FrozenSet[SessionStatus]] = {
    SessionStatus.REQUESTED: frozenset(
        {SessionStatus.ACTIVE, SessionStatus.FAILED, SessionStatus.CANCELLED}
    ),
    SessionStatus.ACTIVE: frozenset(
        {SessionStatus.COMPLETED, SessionStatus.FAILED, SessionStatus.CANCELLED}
    ),
    SessionStatus.COMPLETED: frozenset(),
    SessionStatus.FAILED: frozenset(),
    SessionStatus.CANCELLED: frozenset(),
}


def can_transition(current: SessionStatus, target: SessionStatus) -> bool:
    """Return True if ``current -> target`` is a legal lifecycle move."""
    return target in ALLOWED_TRANSITIONS[current]


@dataclass
class MonitoringSession:
    """Base record for a bounded monitoring activity."""

    id: str
    subject_id: str
    reason: str = ""
    status: SessionStatus = SessionStatus.REQUESTED
    start_time: datetime = field(default_factory=datetime.now)
    end_time: Optional[datetime] = None
    end_reason: Optional[str] = None
    activated_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status == SessionStatus.ACTIVE

    @property
    def was_activated(self) -> bool:
        return self.activated_at is not None

    def transition(
        self,
        target: SessionStatus,
        at: Optional[datetime] = None,
        reason: Optional[str] = None,
    ) -> None:
        """Move to ``target`` or raise :class:`SessionStateError`."""
        if not can_transition(self.status, target):
            raise SessionStateError(self.id, self.status.value, target.value)

        moment = at or datetime.now()
        self.status = target
        if target == SessionStatus.ACTIVE:
            self.activated_at = moment
        elif target.is_terminal:
            self.end_time = moment
            if reason is not None:
                self.end_reason = reason

    def _base_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "subject_id": self.subject_id,
            "reason": self.reason,
            "status": self.status.value,
            "start_time": to_iso(self.start_time),
            "end_time": to_iso(self.end_time),
            "end_reason": self.end_reason,
            "activated_at": to_iso(self.activated_at),
        }

    @staticmethod
    def _base_kwargs(data: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "id": data["id"],
            "subject_id": data["subject_id"],
            "reason": data.get("reason", ""),
            "status": SessionStatus(data.get("status", "requested")),
            "start_time": from_iso(data.get("start_time")) or datetime.now(),
            "end_time": from_iso(data.get("end_time")),
            "end_reason": data.get("end_reason"),
            "activated_at": from_iso(data.get("activated_at")),
        }

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return self._base_dict()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MonitoringSession":
        """Create from dictionary."""
        return cls(**cls._base_kwargs(data))


S = TypeVar("S", bound=MonitoringSession)


class SessionTracker(Generic[S]):
    """Tracks active sessions (one per subject) and a bounded history."""

    def __init__(self, max_history: int = 100):
        self.max_history = max_history
        self._active: Dict[str, S] = {}
        self._history: List[S] = []

    def start(self, session: S, at: Optional[datetime] = None) -> S:
        """Activate a requested session and register it as the subject's active one."""
        existing = self.get_active_for(session.subject_id)
        if existing is not None:
            raise SessionConflictError(session.subject_id, existing.id)

        session.transition(SessionStatus.ACTIVE, at=at)
        self._active[session.id] = session
        return session

    def finish(
        self,
        session_id: str,
        status: SessionStatus,
        reason: Optional[str] = None,
        at: Optional[datetime] = None,
    ) -> Optional[S]:
        """End an active session and move it to history."""
        session = self._active.get(session_id)
        if session is None:
            return None

        session.transition(status, at=at, reason=reason)
        del self._active[session_id]
        self.record(session)
        return session

    def record(self, session: S) -> None:
        """Append a finished session to history, dropping the oldest past the cap."""
        self._history.append(session)
        if len(self._history) > self.max_history:
            del self._history[: len(self._history) - self.max_history]

    def get(self, session_id: str) -> Optional[S]:
        """Look a session up among active sessions, then history."""
        if session_id in self._active:
            return self._active[session_id]
        for session in self._history:
            if session.id == session_id:
                return session
        return None

    def get_active_for(self, subject_id: str) -> Optional[S]:
        for session in self._active.values():
            if session.subject_id == subject_id:
                return session
        return None

    def is_active(self, subject_id: str) -> bool:
        return self.get_active_for(subject_id) is not None

    def active_sessions(self) -> List[S]:
        return list(self._active.values())

    def history(
        self, subject_id: Optional[str] = None, since: Optional[datetime] = None
    ) -> List[S]:
        """Finished sessions, newest first."""
        sessions = [
            s
            for s in self._history
            if (subject_id is None or s.subject_id == subject_id)
            and (since is None or s.start_time >= since)
        ]
        return sorted(sessions, key=lambda s: s.start_time, reverse=True)

    def all_sessions(self) -> List[S]:
        """Active and finished sessions in no particular order."""
        return list(self._active.values()) + list(self._history)

    def remove(self, session_id: str) -> Optional[S]:
        """Delete a finished session from history."""
        for index, session in enumerate(self._history):
            if session.id == session_id:
                return self._history.pop(index)
        return None

    def load_history(self, sessions: List[S]) -> None:
        """Replace history with persisted sessions."""
        self._history = list(sessions)[-self.max_history :]

    def __len__(self) -> int:
        return len(self._active)
