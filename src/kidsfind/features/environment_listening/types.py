"""
Environment listening types and data structures.

Contains enums, data classes, and audio profiles for listening sessions.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from ...core.lifecycle import ConsentStatus, MonitoringSession


class ListeningReason(Enum):
    """Why a parent asks to listen."""

    EMERGENCY = "emergency"
    SAFETY_CHECK = "safety_check"
    LOST_CHILD = "lost_child"
    SUSPICIOUS_ACTIVITY = "suspicious_activity"


class StopReason(Enum):
    """Why a listening session ended."""

    USER_REQUEST = "user_request"
    TIME_LIMIT = "time_limit"
    ERROR = "error"
    CHILD_DENIED = "child_denied"


class AudioQuality(Enum):
    """Recording quality presets."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class AudioProfile:
    """Capture parameters for one quality preset."""

    sample_rate: int
    channels: int
    bit_rate: int


AUDIO_PROFILES: Dict[AudioQuality, AudioProfile] = {
    AudioQuality.LOW: AudioProfile(sample_rate=16000, channels=1, bit_rate=64000),
    AudioQuality.MEDIUM: AudioProfile(sample_rate=22050, channels=1, bit_rate=128000),
    AudioQuality.HIGH: AudioProfile(sample_rate=44100, channels=2, bit_rate=192000),
}


def get_audio_profile(quality: str) -> AudioProfile:
    """Profile for a quality name; unknown names fall back to medium."""
    try:
        return AUDIO_PROFILES[AudioQuality(quality)]
    except ValueError:
        return AUDIO_PROFILES[AudioQuality.MEDIUM]


@dataclass
class ListeningRequest:
    """A parent's request to open a listening session."""

    child_id: str
    parent_id: str
    duration: int  # seconds
    reason: str
    emergency_mode: bool = False
    require_consent: bool = True
    audio_quality: str = "medium"
    auto_start: bool = True
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ListeningSession(MonitoringSession):
    """A bounded, consented listening session on a child device."""

    parent_id: str = ""
    duration: int = 0  # seconds
    audio_quality: str = "medium"
    consent_status: ConsentStatus = ConsentStatus.PENDING
    is_encrypted: bool = False
    audio_file: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def child_id(self) -> str:
        return self.subject_id

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        data = self._base_dict()
        data.update(
            {
                "child_id": self.subject_id,
                "parent_id": self.parent_id,
                "duration": self.duration,
                "audio_quality": self.audio_quality,
                "consent_status": self.consent_status.value,
                "is_encrypted": self.is_encrypted,
                "audio_file": self.audio_file,
                "metadata": self.metadata,
            }
        )
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ListeningSession":
        """Create from dictionary."""
        return cls(
            **cls._base_kwargs(data),
            parent_id=data.get("parent_id", ""),
            duration=data.get("duration", 0),
            audio_quality=data.get("audio_quality", "medium"),
            consent_status=ConsentStatus(data.get("consent_status", "pending")),
            is_encrypted=data.get("is_encrypted", False),
            audio_file=data.get("audio_file"),
            metadata=data.get("metadata", {}),
        )
