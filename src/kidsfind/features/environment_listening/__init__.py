"""
Environment listening feature package.

Bounded, consented audio listening sessions on a child device.
"""

from .consent import ConsentBroker, ConsentRequest
from .manager import EnvironmentListeningService, create_environment_listening_service
from .recorder import AudioRecorder, AudioVault, MockAudioRecorder
from .types import (
    AUDIO_PROFILES,
    AudioProfile,
    AudioQuality,
    ListeningReason,
    ListeningRequest,
    ListeningSession,
    StopReason,
    get_audio_profile,
)

__all__ = [
    # Manager
    "EnvironmentListeningService",
    "create_environment_listening_service",
    # Consent and audio
    "ConsentBroker",
    "ConsentRequest",
    "AudioRecorder",
    "AudioVault",
    "MockAudioRecorder",
    # Types
    "AUDIO_PROFILES",
    "AudioProfile",
    "AudioQuality",
    "ListeningReason",
    "ListeningRequest",
    "ListeningSession",
    "StopReason",
    "get_audio_profile",
]
