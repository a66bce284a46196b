"""
Remote sound manager.

Lets a parent ring a sound on a child's device to find it or get the child's
attention. One sound plays per child at a time: a new request interrupts
the one already playing. Each sound stops by itself after its duration.
"""

import asyncio
import logging
from collections import Counter
from dataclasses import asdict
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from ...core.config.runtime import RemoteSoundConfig
from ...core.events import ListenerRegistry, MonitoringEvent
from ...core.exceptions import NotFoundError, PlaybackError, ValidationError
from ...core.lifecycle import SessionStatus, SessionTracker
from ...core.metrics import MetricsCollector
from ...core.notifications import NotificationCenter
from ...core.persistence.base_manager import BaseDataManager
from ...core.utils import Clock, generate_id, merge_settings, settings_from_dict
from ...services.error_messages import NotificationTexts
from .player import MockSoundPlayer, SoundPlayer
from .types import SoundEndReason, SoundRequest, SoundStatistics, SoundType

logger = logging.getLogger(__name__)

SERVICE_NAME = "remote_sound"

_END_STATUS = {
    SoundEndReason.COMPLETED: SessionStatus.COMPLETED,
    SoundEndReason.INTERRUPTED: SessionStatus.CANCELLED,
    SoundEndReason.CANCELLED: SessionStatus.CANCELLED,
    SoundEndReason.ERROR: SessionStatus.FAILED,
}


class RemoteSoundService(BaseDataManager):
    """Triggers and tracks sounds played on the children's devices."""

    def __init__(
        self,
        settings: Optional[RemoteSoundConfig] = None,
        storage_path: Optional[Path] = None,
        player: Optional[SoundPlayer] = None,
        notifications: Optional[NotificationCenter] = None,
        metrics: Optional[MetricsCollector] = None,
        clock: Optional[Clock] = None,
    ):
        super().__init__(storage_path, "RemoteSoundService")

        self.settings = settings or RemoteSoundConfig()
        self.player: SoundPlayer = player or MockSoundPlayer()
        self.notifications = notifications
        self.metrics = metrics
        self.clock = clock or datetime.now

        self.tracker: SessionTracker[SoundRequest] = SessionTracker(
            max_history=self.settings.max_history
        )
        self._listeners: ListenerRegistry[MonitoringEvent] = ListenerRegistry(
            "remote_sound"
        )
        self._timers: Dict[str, "asyncio.Task[None]"] = {}

    # Persistence

    async def _load_data(self) -> None:
        stored = self.load_json_data("settings.json")
        if stored:
            self.settings = settings_from_dict(RemoteSoundConfig, self.settings, stored)
            self.tracker.max_history = self.settings.max_history

        history = self.load_records("history.json", SoundRequest.from_dict)
        self.tracker.load_history([r for r in history if r.status.is_terminal])
        logger.info(f"Loaded {len(history)} remote sound requests")

    async def _save_data(self) -> None:
        self._save_settings()
        self._save_history()

    def _save_settings(self) -> None:
        self.save_json_data("settings.json", asdict(self.settings))

    def _save_history(self) -> None:
        self.save_records(
            "history.json",
            reversed(self.tracker.history()),
            limit=self.settings.max_history,
        )

    async def _stop(self) -> None:
        await self.cleanup()

    # Playback

    async def trigger_remote_sound(
        self,
        child_id: str,
        parent_id: str,
        sound_type: Any = None,
        duration: Optional[int] = None,
        volume: Optional[int] = None,
        message: Optional[str] = None,
    ) -> SoundRequest:
        """Play a sound on the child's device.

        Duration is clamped to the configured bounds and volume to 0-100.

        Raises:
            ValidationError: empty child id or unknown sound type
            PlaybackError: the device could not play the sound
        """
        if not child_id:
            raise ValidationError("child_id", child_id, "must not be empty")
        try:
            kind = SoundType(sound_type or self.settings.default_sound)
        except ValueError as e:
            raise ValidationError(
                "sound_type",
                sound_type,
                "expected alarm, whistle, siren, bell or custom",
            ) from e

        seconds = self.settings.default_duration if duration is None else duration
        level = self.settings.volume if volume is None else volume
        now = self.clock()
        request = SoundRequest(
            id=generate_id("sound_req", now),
            subject_id=child_id,
            reason="remote_sound",
            start_time=now,
            parent_id=parent_id,
            sound_type=kind,
            volume=max(0, min(100, int(level))),
            duration=max(
                self.settings.min_duration,
                min(self.settings.max_duration, int(seconds)),
            ),
            message=message,
        )

        current = self.tracker.get_active_for(child_id)
        if current is not None:
            await self._end(current.id, SoundEndReason.INTERRUPTED)

        try:
            await self.player.play(request.id, kind, request.volume / 100)
        except Exception as e:
            request.transition(
                SessionStatus.FAILED, at=self.clock(), reason=SoundEndReason.ERROR.value
            )
            self.tracker.record(request)
            self._save_history()
            if self.metrics:
                self.metrics.record_session_ended(
                    SERVICE_NAME, SessionStatus.FAILED.value, was_active=False
                )
            self._emit("sound_failed", request)
            if isinstance(e, PlaybackError):
                logger.error(f"Failed to play remote sound {request.id}: {e}")
                raise
            logger.exception(f"Sound player error for {request.id}")
            raise PlaybackError(
                f"Failed to play remote sound: {e}", component=SERVICE_NAME
            ) from e

        self.tracker.start(request, at=self.clock())
        self._timers[request.id] = asyncio.create_task(
            self._auto_stop(request.id, request.duration)
        )
        self._save_history()

        if self.metrics:
            self.metrics.record_session_started(SERVICE_NAME)
        self._notify(
            "remote_sound_started",
            request,
            sound_type=kind.value,
            duration=request.duration,
        )
        self._emit("sound_started", request)
        logger.info(
            f"Playing remote sound {kind.value} on {child_id} "
            f"for {request.duration}s: {request.id}"
        )
        return request

    async def _auto_stop(self, request_id: str, duration: float) -> None:
        await asyncio.sleep(duration)
        await self._end(request_id, SoundEndReason.COMPLETED)

    async def _end(self, request_id: str, reason: SoundEndReason) -> bool:
        request = self.tracker.get(request_id)
        if request is None or not request.is_active:
            return False

        task = self._timers.pop(request_id, None)
        if task is not None and task is not asyncio.current_task():
            task.cancel()

        try:
            await self.player.stop(request_id)
        except Exception:
            logger.exception(f"Error stopping remote sound {request_id}")
            reason = SoundEndReason.ERROR

        now = self.clock()
        if request.activated_at is not None:
            request.actual_duration = (now - request.activated_at).total_seconds()
        status = _END_STATUS[reason]
        self.tracker.finish(request_id, status, reason=reason.value, at=now)
        if self.metrics:
            self.metrics.record_session_ended(SERVICE_NAME, status.value)
        self._save_history()

        self._notify("remote_sound_stopped", request, end_reason=reason.value)
        self._emit("sound_stopped", request)
        logger.info(f"Stopped remote sound {request_id} ({reason.value})")
        return True

    async def cancel_remote_sound(self, request_id: str) -> bool:
        """Stop a playing sound at the parent's request."""
        return await self._end(request_id, SoundEndReason.CANCELLED)

    async def stop_all_sounds(self, child_id: Optional[str] = None) -> int:
        """Interrupt every playing sound (of one child). Returns how many stopped."""
        stopped = 0
        for request in self.get_active_sounds(child_id):
            if await self._end(request.id, SoundEndReason.INTERRUPTED):
                stopped += 1
        return stopped

    # Volume

    async def set_volume(self, volume: int) -> int:
        """Set the playback volume (0-100) for new and playing sounds."""
        level = max(0, min(100, int(volume)))
        await self.player.set_volume(level / 100)
        for request in self.tracker.active_sessions():
            request.volume = level
        self.settings = merge_settings(self.settings, {"volume": level})
        self._save_settings()
        return level

    def get_volume(self) -> int:
        return self.settings.volume

    # Queries

    def get_request(self, request_id: str) -> SoundRequest:
        request = self.tracker.get(request_id)
        if request is None:
            raise NotFoundError("sound request", request_id)
        return request

    def get_active_sounds(self, child_id: Optional[str] = None) -> List[SoundRequest]:
        return [
            r
            for r in self.tracker.active_sessions()
            if child_id is None or r.subject_id == child_id
        ]

    def is_playing(self, child_id: Optional[str] = None) -> bool:
        return bool(self.get_active_sounds(child_id))

    def get_sound_history(
        self, child_id: Optional[str] = None, days: float = 7
    ) -> List[SoundRequest]:
        """Requests from the last ``days`` days, playing ones included, newest first."""
        cutoff = self.clock() - timedelta(days=days)
        requests = [
            r
            for r in self.tracker.all_sessions()
            if r.start_time >= cutoff and (child_id is None or r.subject_id == child_id)
        ]
        return sorted(requests, key=lambda r: r.start_time, reverse=True)

    def get_statistics(self, child_id: Optional[str] = None) -> SoundStatistics:
        requests = [
            r
            for r in self.tracker.all_sessions()
            if child_id is None or r.subject_id == child_id
        ]
        if not requests:
            return SoundStatistics()

        completed = [r for r in requests if r.status == SessionStatus.COMPLETED]
        average = (
            sum(r.actual_duration for r in completed) / len(completed)
            if completed
            else 0.0
        )
        counts = Counter(r.sound_type.value for r in requests)
        return SoundStatistics(
            total_requests=len(requests),
            successful_requests=len(completed),
            average_duration=round(average, 1),
            most_used_sound_type=counts.most_common(1)[0][0],
        )

    # Settings

    def update_settings(self, **changes: Any) -> RemoteSoundConfig:
        updated = merge_settings(self.settings, changes)
        try:
            SoundType(updated.default_sound)
        except ValueError as e:
            raise ValidationError(
                "default_sound", updated.default_sound, "unknown sound type"
            ) from e
        if not 0 <= updated.min_duration <= updated.max_duration:
            raise ValidationError(
                "duration bounds",
                f"{updated.min_duration}/{updated.max_duration}",
                "expected 0 <= min_duration <= max_duration",
            )
        if not 0 <= updated.volume <= 100:
            raise ValidationError("volume", updated.volume, "expected 0-100")
        self.settings = updated
        self.tracker.max_history = updated.max_history
        self._save_settings()
        return self.settings

    def get_settings(self) -> RemoteSoundConfig:
        return self.settings

    def add_sound_listener(
        self, callback: Callable[[MonitoringEvent], None]
    ) -> Callable[[], None]:
        return self._listeners.add(callback)

    async def cleanup(self) -> None:
        """Interrupt playing sounds and drop listeners."""
        await self.stop_all_sounds()
        for task in self._timers.values():
            if task is not asyncio.current_task():
                task.cancel()
        self._timers.clear()
        self._listeners.clear()

    # Notifications

    def _emit(self, kind: str, request: SoundRequest) -> None:
        self._listeners.notify(
            MonitoringEvent(kind, request.subject_id, request, self.clock())
        )

    def _notify(self, kind: str, request: SoundRequest, **values: Any) -> None:
        if self.notifications is None:
            return
        text = NotificationTexts.render(kind, **values)
        self.notifications.send(
            kind,
            text["title"],
            text["body"],
            subject_id=request.subject_id,
            priority="normal",
            data={"request_id": request.id, "parent_id": request.parent_id},
        )


def create_remote_sound_service(
    settings: Optional[RemoteSoundConfig] = None, **kwargs: Any
) -> RemoteSoundService:
    """Create a remote sound service."""
    return RemoteSoundService(settings=settings, **kwargs)
