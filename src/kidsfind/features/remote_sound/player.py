"""Sound playback on the child device.

The player is a protocol so that a device bridge can be plugged in; the
mock implementation synthesizes the tone as a WAV clip instead of playing it.
"""

import io
import logging
from typing import Dict, Protocol

import numpy as np
import soundfile as sf

from ...core.exceptions import PlaybackError
from .types import SoundType

logger = logging.getLogger(__name__)

SAMPLE_RATE = 16000

# Base pitch of each sound, in Hz
TONES: Dict[SoundType, float] = {
    SoundType.ALARM: 880.0,
    SoundType.WHISTLE: 2000.0,
    SoundType.SIREN: 600.0,
    SoundType.BELL: 1046.5,
    SoundType.CUSTOM: 440.0,
}


class SoundPlayer(Protocol):
    """Protocol for playing sounds on the child device."""

    async def play(self, request_id: str, sound_type: SoundType, volume: float) -> None:
        """Start looping the sound at ``volume`` (0.0 to 1.0)."""
        ...

    async def stop(self, request_id: str) -> None:
        ...

    async def set_volume(self, volume: float) -> None:
        """Apply ``volume`` (0.0 to 1.0) to every sound still playing."""
        ...


def synthesize_tone(
    sound_type: SoundType, volume: float, seconds: float = 1.0
) -> bytes:
    """Render one loop of a sound as 16-bit mono WAV."""
    t = np.arange(int(SAMPLE_RATE * seconds)) / SAMPLE_RATE
    pitch = TONES[sound_type]
    if sound_type == SoundType.SIREN:
        # Rising and falling sweep around the base pitch
        pitch = pitch + 300.0 * np.sin(2 * np.pi * 0.5 * t)
    wave = np.sin(2 * np.pi * pitch * t) * max(0.0, min(1.0, volume))
    buffer = io.BytesIO()
    sf.write(buffer, (wave * 32767).astype(np.int16), SAMPLE_RATE, format="WAV")
    return buffer.getvalue()


class MockSoundPlayer:
    """Player that keeps the rendered clip instead of driving a speaker."""

    def __init__(self, fail_on_play: bool = False):
        self.fail_on_play = fail_on_play
        self.volume = 1.0
        self.clips: Dict[str, bytes] = {}
        self._playing: Dict[str, SoundType] = {}

    async def play(self, request_id: str, sound_type: SoundType, volume: float) -> None:
        if self.fail_on_play:
            raise PlaybackError("Speaker unavailable")
        self.volume = volume
        self._playing[request_id] = sound_type
        self.clips[request_id] = synthesize_tone(sound_type, volume)
        logger.debug(f"Mock playback of {sound_type.value} started for {request_id}")

    async def stop(self, request_id: str) -> None:
        self._playing.pop(request_id, None)

    async def set_volume(self, volume: float) -> None:
        self.volume = volume

    def is_playing(self, request_id: str) -> bool:
        return request_id in self._playing
