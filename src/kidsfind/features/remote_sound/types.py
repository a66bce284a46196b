"""Remote sound types."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from ...core.lifecycle import MonitoringSession, SessionStatus


class SoundType(Enum):
    """Sounds a parent can ring on the child device."""

    ALARM = "alarm"
    WHISTLE = "whistle"
    SIREN = "siren"
    BELL = "bell"
    CUSTOM = "custom"


class SoundEndReason(Enum):
    """Why a sound stopped playing."""

    COMPLETED = "completed"
    INTERRUPTED = "interrupted"
    CANCELLED = "cancelled"
    ERROR = "error"


@dataclass
class SoundRequest(MonitoringSession):
    """A sound triggered by a parent on a child's device.

    ``requested`` while the device is asked to play it, ``active`` while it
    plays, then completed, cancelled (interrupted or cancelled) or failed.
    """

    parent_id: str = ""
    sound_type: SoundType = SoundType.ALARM
    volume: int = 80
    duration: int = 30
    message: Optional[str] = None
    actual_duration: float = 0.0

    @property
    def child_id(self) -> str:
        return self.subject_id

    @property
    def state(self) -> str:
        """Playback state as shown to the parent."""
        if self.status == SessionStatus.REQUESTED:
            return "pending"
        if self.status == SessionStatus.ACTIVE:
            return "playing"
        if self.status == SessionStatus.CANCELLED:
            return self.end_reason or SoundEndReason.CANCELLED.value
        return self.status.value

    def to_dict(self) -> Dict[str, Any]:
        data = self._base_dict()
        data.update(
            {
                "child_id": self.subject_id,
                "parent_id": self.parent_id,
                "sound_type": self.sound_type.value,
                "volume": self.volume,
                "duration": self.duration,
                "message": self.message,
                "actual_duration": self.actual_duration,
                "state": self.state,
            }
        )
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SoundRequest":
        return cls(
            **cls._base_kwargs(data),
            parent_id=data.get("parent_id", ""),
            sound_type=SoundType(data.get("sound_type", "alarm")),
            volume=data.get("volume", 80),
            duration=data.get("duration", 30),
            message=data.get("message"),
            actual_duration=data.get("actual_duration", 0.0),
        )


@dataclass
class SoundStatistics:
    """Counts over the remote sound history."""

    total_requests: int = 0
    successful_requests: int = 0
    average_duration: float = 0.0
    most_used_sound_type: str = SoundType.ALARM.value

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_requests": self.total_requests,
            "successful_requests": self.successful_requests,
            "average_duration": self.average_duration,
            "most_used_sound_type": self.most_used_sound_type,
        }
