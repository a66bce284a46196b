"""Fake device bridges that misbehave on purpose."""

from typing import List, Optional

from kidsfind.features.environment_listening import AudioProfile
from kidsfind.features.remote_sound import SoundType
from kidsfind.features.sos import Location


class FailingRecorder:
    """Recorder whose start raises a plain exception, as a broken driver would."""

    def __init__(self) -> None:
        self.stopped: List[str] = []

    async def start(self, session_id: str, profile: AudioProfile) -> None:
        raise OSError("audio device busy")

    async def stop(self, session_id: str) -> Optional[bytes]:
        self.stopped.append(session_id)
        return None

    def is_recording(self, session_id: str) -> bool:
        return False


class FlakyLocationProvider:
    """Returns the given fixes in order, raising once the list runs out."""

    def __init__(self, fixes: List[Location]):
        self.fixes = list(fixes)
        self.calls = 0

    async def get_current_location(self, child_id: str) -> Optional[Location]:
        self.calls += 1
        if not self.fixes:
            raise OSError("GPS unavailable")
        return self.fixes.pop(0)


class FailingSoundPlayer:
    """Sound player whose speaker driver crashes on play."""

    def __init__(self) -> None:
        self.stopped: List[str] = []

    async def play(self, request_id: str, sound_type: SoundType, volume: float) -> None:
        raise OSError("speaker busy")

    async def stop(self, request_id: str) -> None:
        self.stopped.append(request_id)

    async def set_volume(self, volume: float) -> None:
        pass
