"""
Environment listening manager.

Opens bounded listening sessions on a child device after premium, quota,
cooldown and consent checks, records audio through an AudioRecorder and
seals each clip with its own key.
"""

import asyncio
import logging
from dataclasses import asdict
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Set

from ...core.config.runtime import ListeningConfig
from ...core.events import ListenerRegistry
from ...core.exceptions import (
    ConsentDeniedError,
    CooldownActiveError,
    DailyLimitExceededError,
    KidsFindError,
    NotFoundError,
    PermissionDeniedError,
    PremiumRequiredError,
    RecordingError,
    SessionConflictError,
    ValidationError,
)
from ...core.lifecycle import ConsentStatus, SessionStatus, SessionTracker
from ...core.metrics import MetricsCollector
from ...core.notifications import NotificationCenter
from ...core.persistence.base_manager import BaseDataManager
from ...core.utils import Clock, generate_id, merge_settings, settings_from_dict
from ...services.error_messages import NotificationTexts
from .consent import ConsentBroker, ConsentRequest
from .recorder import AudioRecorder, AudioVault, MockAudioRecorder
from .types import (
    AudioQuality,
    ListeningRequest,
    ListeningSession,
    StopReason,
    get_audio_profile,
)

logger = logging.getLogger(__name__)

SERVICE_NAME = "environment_listening"

PremiumChecker = Callable[[str], bool]


class EnvironmentListeningService(BaseDataManager):
    """Manages environment listening sessions."""

    def __init__(
        self,
        settings: Optional[ListeningConfig] = None,
        storage_path: Optional[Path] = None,
        recorder: Optional[AudioRecorder] = None,
        consent_broker: Optional[ConsentBroker] = None,
        notifications: Optional[NotificationCenter] = None,
        metrics: Optional[MetricsCollector] = None,
        premium_checker: Optional[PremiumChecker] = None,
        clock: Optional[Clock] = None,
    ):
        super().__init__(storage_path, "EnvironmentListeningService")

        self.settings = settings or ListeningConfig()
        self.recorder: AudioRecorder = recorder or MockAudioRecorder()
        self.consent = consent_broker or ConsentBroker()
        self.vault = AudioVault(
            self.storage_path / "audio" if self.storage_path is not None else None
        )
        self.notifications = notifications
        self.metrics = metrics
        self.clock = clock or datetime.now

        self._premium_parents: Set[str] = set()
        self._premium_checker = premium_checker
        self.tracker: SessionTracker[ListeningSession] = SessionTracker(
            max_history=self.settings.max_history
        )
        self._listeners: ListenerRegistry[ListeningSession] = ListenerRegistry(
            "session"
        )
        self._timers: Dict[str, "asyncio.Task[None]"] = {}

    # Persistence

    async def _load_data(self) -> None:
        """Load settings and session history."""
        stored = self.load_json_data("settings.json")
        if stored:
            self.settings = settings_from_dict(ListeningConfig, self.settings, stored)
            self.tracker.max_history = self.settings.max_history

        self._premium_parents = set(
            self.load_json_data("premium.json").get("parents", [])
        )

        history = self.load_records("history.json", ListeningSession.from_dict)
        # Sessions that were running when the process died are not resumed
        for session in history:
            if not session.status.is_terminal:
                session.transition(
                    SessionStatus.FAILED,
                    at=self.clock(),
                    reason=StopReason.ERROR.value,
                )
        self.tracker.load_history(history)
        logger.info(f"Loaded {len(history)} listening sessions")

    async def _save_data(self) -> None:
        self._save_settings()
        self._save_history()
        self.save_json_data("premium.json", {"parents": sorted(self._premium_parents)})

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

    # Premium access

    def set_premium(self, parent_id: str, is_premium: bool = True) -> None:
        """Record a parent's subscription status."""
        if is_premium:
            self._premium_parents.add(parent_id)
        else:
            self._premium_parents.discard(parent_id)
        self.save_json_data("premium.json", {"parents": sorted(self._premium_parents)})

    def has_premium(self, parent_id: str) -> bool:
        if self._premium_checker is not None:
            return self._premium_checker(parent_id)
        return parent_id in self._premium_parents

    # Session management

    async def start_listening_session(
        self, request: ListeningRequest
    ) -> ListeningSession:
        """Open a listening session or raise the error for the first failed check."""
        self._validate_request(request)
        now = self.clock()

        session = ListeningSession(
            id=generate_id("env_listening", now),
            subject_id=request.child_id,
            parent_id=request.parent_id,
            reason=request.reason,
            start_time=now,
            duration=min(request.duration, self.settings.max_session_duration),
            audio_quality=request.audio_quality,
            is_encrypted=self.settings.encryption_enabled,
            metadata=dict(request.metadata),
        )

        override = request.emergency_mode and self.settings.emergency_override
        if override:
            session.consent_status = ConsentStatus.APPROVED
        elif self.settings.require_child_consent and request.require_consent:
            await self._obtain_consent(session)
        else:
            session.consent_status = ConsentStatus.APPROVED

        try:
            await self.recorder.start(
                session.id, get_audio_profile(session.audio_quality)
            )
        except RecordingError as e:
            self._record_unstarted(session, SessionStatus.FAILED, StopReason.ERROR)
            logger.error(f"Failed to start recording for {session.id}: {e}")
            raise
        except Exception as e:
            self._record_unstarted(session, SessionStatus.FAILED, StopReason.ERROR)
            logger.exception(f"Recorder error for session {session.id}")
            raise RecordingError(
                f"Failed to start audio recording: {e}", component=SERVICE_NAME
            ) from e

        try:
            self.tracker.start(session, at=self.clock())
        except SessionConflictError:
            await self.recorder.stop(session.id)
            self._record_unstarted(
                session, SessionStatus.CANCELLED, StopReason.USER_REQUEST
            )
            raise

        if self.metrics:
            self.metrics.record_session_started(SERVICE_NAME)
        self._listeners.notify(session)
        self._notify_parent(
            "listening_started",
            session,
            duration=session.duration,
            reason=session.reason,
        )
        self._timers[session.id] = asyncio.create_task(
            self._auto_stop(session.id, session.duration)
        )

        logger.info(
            f"Environment listening session started: {session.id} "
            f"({session.duration}s, consent={session.consent_status.value})"
        )
        return session

    def _validate_request(self, request: ListeningRequest) -> None:
        """Run the pre-flight checks in order."""
        if request.reason not in self.settings.allowed_reasons:
            raise ValidationError("reason", request.reason, "reason not allowed")
        if request.duration <= 0:
            raise ValidationError("duration", request.duration, "must be positive")
        try:
            AudioQuality(request.audio_quality)
        except ValueError as e:
            raise ValidationError(
                "audio_quality", request.audio_quality, "expected low, medium or high"
            ) from e

        if self.settings.require_premium and not self.has_premium(request.parent_id):
            raise PremiumRequiredError(request.parent_id, "Environment listening")

        used = self._sessions_today(request.parent_id)
        if used >= self.settings.daily_limit:
            raise DailyLimitExceededError(used, self.settings.daily_limit)

        remaining = self._cooldown_remaining(request.child_id)
        if remaining > 0:
            raise CooldownActiveError(request.child_id, remaining)

        active = self.tracker.get_active_for(request.child_id)
        if active is not None:
            raise SessionConflictError(request.child_id, active.id)

        waiting = self.consent.pending(request.child_id)
        if waiting:
            raise SessionConflictError(request.child_id, waiting[0].session_id)

    def _sessions_today(self, parent_id: str) -> int:
        today = self.clock().date()
        return sum(
            1
            for s in self.tracker.all_sessions()
            if s.parent_id == parent_id
            and s.was_activated
            and s.start_time.date() == today
        )

    def _cooldown_remaining(self, child_id: str) -> float:
        """Seconds left before the child may be listened to again."""
        started = [
            s.start_time
            for s in self.tracker.all_sessions()
            if s.subject_id == child_id and s.was_activated
        ]
        if not started:
            return 0.0
        elapsed = self.clock() - max(started)
        cooldown = timedelta(minutes=self.settings.cooldown_period)
        return max(0.0, (cooldown - elapsed).total_seconds())

    async def _obtain_consent(self, session: ListeningSession) -> None:
        request = ConsentRequest(
            child_id=session.subject_id,
            session_id=session.id,
            parent_id=session.parent_id,
            reason=session.reason,
            requested_at=self.clock(),
            timeout=self.settings.consent_timeout,
        )
        try:
            answer = await self.consent.request(request)
        except asyncio.CancelledError:
            logger.warning(f"Consent request for session {session.id} was cancelled")
            self._record_unstarted(session, SessionStatus.CANCELLED, StopReason.ERROR)
            self._listeners.notify(session)
            raise
        if answer:
            session.consent_status = ConsentStatus.APPROVED
            return

        session.consent_status = ConsentStatus.DENIED
        self._record_unstarted(
            session, SessionStatus.CANCELLED, StopReason.CHILD_DENIED
        )
        self._listeners.notify(session)
        raise ConsentDeniedError(session.subject_id, timed_out=answer is None)

    def _record_unstarted(
        self, session: ListeningSession, status: SessionStatus, reason: StopReason
    ) -> None:
        """Close a session that never became active and keep it in history."""
        session.transition(status, at=self.clock(), reason=reason.value)
        self.tracker.record(session)
        if self.metrics:
            self.metrics.record_session_ended(
                SERVICE_NAME, status.value, was_active=False
            )
        self._save_history()

    async def _auto_stop(self, session_id: str, duration: float) -> None:
        await asyncio.sleep(duration)
        await self.stop_listening_session(session_id, StopReason.TIME_LIMIT)

    async def stop_listening_session(
        self, session_id: str, reason: Any = StopReason.USER_REQUEST
    ) -> bool:
        """Stop an active session. Returns False for unknown or finished sessions."""
        try:
            stop_reason = StopReason(reason)
        except ValueError as e:
            raise ValidationError("reason", reason, "unknown stop reason") from e
        status = (
            SessionStatus.FAILED
            if stop_reason == StopReason.ERROR
            else SessionStatus.COMPLETED
        )
        return await self._end_session(session_id, status, stop_reason)

    async def cancel_listening_session(self, session_id: str, user_id: str) -> bool:
        """Cancel a session on behalf of its parent or child."""
        session = self.tracker.get(session_id)
        if session is None or not session.is_active:
            return False
        if user_id not in (session.parent_id, session.subject_id):
            raise PermissionDeniedError(user_id, f"cancel session {session_id}")
        return await self._end_session(
            session_id, SessionStatus.CANCELLED, StopReason.USER_REQUEST
        )

    async def _end_session(
        self, session_id: str, status: SessionStatus, reason: StopReason
    ) -> bool:
        session = self.tracker.get(session_id)
        if session is None or not session.is_active:
            return False

        self._cancel_timer(session_id)

        audio: Optional[bytes] = None
        try:
            audio = await self.recorder.stop(session_id)
        except Exception:
            logger.exception(f"Error stopping audio recording for {session_id}")
            status = SessionStatus.FAILED
            reason = StopReason.ERROR

        if audio:
            session.audio_file = self.vault.store(
                session_id, audio, encrypt=session.is_encrypted
            )

        self.tracker.finish(session_id, status, reason=reason.value, at=self.clock())
        if self.metrics:
            self.metrics.record_session_ended(SERVICE_NAME, status.value)
        self._save_history()

        self._listeners.notify(session)
        self._notify_parent("listening_stopped", session, end_reason=reason.value)
        logger.info(
            f"Environment listening session stopped: {session_id} ({reason.value})"
        )
        return True

    def _cancel_timer(self, session_id: str) -> None:
        task = self._timers.pop(session_id, None)
        if task is not None and task is not asyncio.current_task():
            task.cancel()

    def _notify_parent(
        self, kind: str, session: ListeningSession, **values: Any
    ) -> None:
        if self.notifications is None:
            return
        text = NotificationTexts.render(kind, **values)
        self.notifications.send(
            kind,
            text["title"],
            text["body"],
            subject_id=session.subject_id,
            priority="high",
            data={"session_id": session.id, "parent_id": session.parent_id},
        )

    # Queries

    def get_session(self, session_id: str) -> ListeningSession:
        session = self.tracker.get(session_id)
        if session is None:
            raise NotFoundError("listening session", session_id)
        return session

    def get_session_history(
        self, parent_id: Optional[str] = None, days: int = 30
    ) -> List[ListeningSession]:
        """Finished sessions from the last ``days`` days, newest first."""
        cutoff = self.clock() - timedelta(days=days)
        return [
            s
            for s in self.tracker.history(since=cutoff)
            if parent_id is None or s.parent_id == parent_id
        ]

    def get_active_session(self, child_id: str) -> Optional[ListeningSession]:
        return self.tracker.get_active_for(child_id)

    def is_listening_active(self, child_id: str) -> bool:
        return self.tracker.is_active(child_id)

    def read_session_audio(self, session_id: str) -> bytes:
        """Decrypt and return the audio captured by a finished session."""
        session = self.get_session(session_id)
        if not session.audio_file:
            raise NotFoundError("audio", session_id)
        return self.vault.read(session_id, session.audio_file)

    # Maintenance

    def delete_session(self, session_id: str) -> bool:
        """Remove a finished session together with its audio and key."""
        session = self.tracker.remove(session_id)
        if session is None:
            return False
        self.vault.discard(session_id, session.audio_file)
        self._save_history()
        logger.info(f"Deleted listening session {session_id}")
        return True

    def cleanup_expired_sessions(self) -> int:
        """Delete sessions older than ``auto_delete_after`` hours."""
        cutoff = self.clock() - timedelta(hours=self.settings.auto_delete_after)
        expired = [s.id for s in self.tracker.history() if s.start_time < cutoff]
        for session_id in expired:
            self.delete_session(session_id)
        if expired:
            logger.info(f"Cleaned up {len(expired)} expired listening sessions")
        return len(expired)

    # Settings

    def update_settings(self, **changes: Any) -> ListeningConfig:
        if "audio_quality" in changes:
            try:
                AudioQuality(changes["audio_quality"])
            except ValueError as e:
                raise ValidationError(
                    "audio_quality", changes["audio_quality"], "unknown quality"
                ) from e
        self.settings = merge_settings(self.settings, changes)
        self.tracker.max_history = self.settings.max_history
        self._save_settings()
        return self.settings

    def get_settings(self) -> ListeningConfig:
        return self.settings

    def add_session_listener(
        self, callback: Callable[[ListeningSession], None]
    ) -> Callable[[], None]:
        return self._listeners.add(callback)

    async def cleanup(self) -> None:
        """Stop every active session with an error reason and drop listeners."""
        for session in self.tracker.active_sessions():
            try:
                await self.stop_listening_session(session.id, StopReason.ERROR)
            except KidsFindError as e:
                logger.error(f"Error stopping session {session.id}: {e}")
        for session_id in list(self._timers):
            self._cancel_timer(session_id)
        self.consent.cancel_all()
        self._listeners.clear()


def create_environment_listening_service(
    settings: Optional[ListeningConfig] = None, **kwargs: Any
) -> EnvironmentListeningService:
    """Create an environment listening service."""
    return EnvironmentListeningService(settings=settings, **kwargs)
