"""Audio capture and sealed storage for listening sessions.

The recorder is a protocol so that a device bridge can be plugged in; the
mock implementation produces silent WAV clips and is what tests and local
runs use.
"""

import io
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional, Protocol

import numpy as np
import soundfile as sf
from cryptography.fernet import Fernet, InvalidToken

from ...core.exceptions import NotFoundError, RecordingError
from .types import AudioProfile

logger = logging.getLogger(__name__)


class AudioRecorder(Protocol):
    """Protocol for audio capture on the child device."""

    async def start(self, session_id: str, profile: AudioProfile) -> None:
        """Begin capturing. Raises RecordingError when capture cannot start."""
        ...

    async def stop(self, session_id: str) -> Optional[bytes]:
        """Stop capturing and return the encoded clip, if any."""
        ...

    def is_recording(self, session_id: str) -> bool:
        ...


class MockAudioRecorder:
    """Recorder that returns silence instead of touching a microphone."""

    def __init__(
        self,
        clip_seconds: float = 0.5,
        fail_on_start: bool = False,
        permission_granted: bool = True,
    ):
        self.clip_seconds = clip_seconds
        self.fail_on_start = fail_on_start
        self.permission_granted = permission_granted
        self._active: Dict[str, AudioProfile] = {}
        self._started_at: Dict[str, datetime] = {}

    async def start(self, session_id: str, profile: AudioProfile) -> None:
        if not self.permission_granted:
            raise RecordingError(
                "Audio recording permission not granted",
                error_code="MICROPHONE_PERMISSION",
            )
        if self.fail_on_start:
            raise RecordingError("Failed to start audio recording")

        self._active[session_id] = profile
        self._started_at[session_id] = datetime.now()
        logger.debug(
            f"Mock recording started for {session_id} at {profile.sample_rate} Hz"
        )

    async def stop(self, session_id: str) -> Optional[bytes]:
        profile = self._active.pop(session_id, None)
        self._started_at.pop(session_id, None)
        if profile is None:
            return None

        frames = int(profile.sample_rate * self.clip_seconds)
        silence = np.zeros((frames, profile.channels), dtype=np.int16)
        buffer = io.BytesIO()
        sf.write(
            buffer, silence, profile.sample_rate, format="WAV", subtype="PCM_16"
        )
        return buffer.getvalue()

    def is_recording(self, session_id: str) -> bool:
        return session_id in self._active


class AudioVault:
    """Stores session audio, sealing it with a per-session Fernet key.

    Keys live only in memory: a restart makes earlier sealed clips unreadable.
    """

    def __init__(self, storage_path: Optional[Path] = None):
        self.storage_path = Path(storage_path) if storage_path is not None else None
        self._keys: Dict[str, bytes] = {}
        self._blobs: Dict[str, bytes] = {}

    def store(self, session_id: str, audio: bytes, encrypt: bool = True) -> str:
        """Persist a clip and return its location."""
        if encrypt:
            key = Fernet.generate_key()
            self._keys[session_id] = key
            payload = Fernet(key).encrypt(audio)
            name = f"env_listening_{session_id}.enc"
        else:
            payload = audio
            name = f"env_listening_{session_id}.wav"

        if self.storage_path is None:
            self._blobs[session_id] = payload
            return f"memory://{name}"

        self.storage_path.mkdir(parents=True, exist_ok=True)
        path = self.storage_path / name
        path.write_bytes(payload)
        return str(path)

    def read(self, session_id: str, location: str) -> bytes:
        """Return the decrypted clip stored at ``location``."""
        payload = self._read_payload(session_id, location)
        key = self._keys.get(session_id)
        if not location.endswith(".enc"):
            return payload
        if key is None:
            raise NotFoundError("encryption key", session_id)
        try:
            return Fernet(key).decrypt(payload)
        except InvalidToken as e:
            raise RecordingError(
                f"Audio for session {session_id} cannot be decrypted"
            ) from e

    def _read_payload(self, session_id: str, location: str) -> bytes:
        if location.startswith("memory://"):
            if session_id not in self._blobs:
                raise NotFoundError("audio", session_id)
            return self._blobs[session_id]

        path = Path(location)
        if not path.exists():
            raise NotFoundError("audio", session_id)
        return path.read_bytes()

    def discard(self, session_id: str, location: Optional[str]) -> None:
        """Delete a clip and its key."""
        self._keys.pop(session_id, None)
        self._blobs.pop(session_id, None)
        if location and not location.startswith("memory://"):
            Path(location).unlink(missing_ok=True)

    def has_key(self, session_id: str) -> bool:
        return session_id in self._keys
