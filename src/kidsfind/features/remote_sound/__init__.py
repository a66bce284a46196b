"""
Remote sound feature.

Parent-triggered sounds on the child device, used to find a lost phone or
to get the child's attention.
"""

from .manager import RemoteSoundService, create_remote_sound_service
from .player import MockSoundPlayer, SoundPlayer, synthesize_tone
from .types import SoundEndReason, SoundRequest, SoundStatistics, SoundType

__all__ = [
    "RemoteSoundService",
    "create_remote_sound_service",
    "MockSoundPlayer",
    "SoundPlayer",
    "synthesize_tone",
    "SoundEndReason",
    "SoundRequest",
    "SoundStatistics",
    "SoundType",
]
