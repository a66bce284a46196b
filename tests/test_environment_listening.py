"""
Tests for the environment listening service.
"""

import asyncio
import io
from pathlib import Path
from typing import AsyncGenerator, List

import pytest
import pytest_asyncio
import soundfile as sf

from kidsfind.core.config import ListeningConfig
from kidsfind.core.exceptions import (
    ConsentDeniedError,
    CooldownActiveError,
    DailyLimitExceededError,
    PermissionDeniedError,
    PremiumRequiredError,
    RecordingError,
    SessionConflictError,
    ValidationError,
)
from kidsfind.core.lifecycle import ConsentStatus, SessionStatus
from kidsfind.core.metrics import MetricsCollector
from kidsfind.core.notifications import NotificationCenter
from kidsfind.features.environment_listening import (
    ConsentRequest,
    EnvironmentListeningService,
    ListeningRequest,
    ListeningSession,
    MockAudioRecorder,
    StopReason,
)
from testing_utilities import FailingRecorder, FakeClock


def _request(**overrides: object) -> ListeningRequest:
    fields = {
        "child_id": "child-1",
        "parent_id": "parent-1",
        "duration": 120,
        "reason": "safety_check",
        "require_consent": False,
    }
    fields.update(overrides)
    return ListeningRequest(**fields)  # type: ignore[arg-type]


def _make_service(
    clock: FakeClock,
    notifications: NotificationCenter,
    settings: ListeningConfig,
    **kwargs: object,
) -> EnvironmentListeningService:
    service = EnvironmentListeningService(
        settings=settings, notifications=notifications, clock=clock, **kwargs  # type: ignore[arg-type]
    )
    service.set_premium("parent-1")
    return service


@pytest_asyncio.fixture
async def service(
    clock: FakeClock, notifications: NotificationCenter
) -> AsyncGenerator[EnvironmentListeningService, None]:
    svc = _make_service(
        clock,
        notifications,
        ListeningConfig(cooldown_period=0, consent_timeout=1),
        metrics=MetricsCollector(),
    )
    await svc.initialize()
    yield svc
    await svc.cleanup()


class TestStartAndStop:
    """Test the basic session lifecycle."""

    @pytest.mark.asyncio
    async def test_start_session(
        self, service: EnvironmentListeningService, notifications: NotificationCenter
    ) -> None:
        session = await service.start_listening_session(_request())

        assert session.status == SessionStatus.ACTIVE
        assert session.consent_status == ConsentStatus.APPROVED
        assert session.is_encrypted is True
        assert session.id.startswith("env_listening_")
        assert service.is_listening_active("child-1")
        assert service.recorder.is_recording(session.id)
        assert [n.kind for n in notifications.all()] == ["listening_started"]

        samples = service.metrics.registry.get_sample_value(  # type: ignore[union-attr]
            "kidsfind_sessions_started_total", {"service": "environment_listening"}
        )
        assert samples == 1.0

    @pytest.mark.asyncio
    async def test_duration_is_capped(self, service: EnvironmentListeningService) -> None:
        session = await service.start_listening_session(_request(duration=3600))
        assert session.duration == service.settings.max_session_duration

    @pytest.mark.asyncio
    async def test_stop_seals_audio(
        self, service: EnvironmentListeningService, notifications: NotificationCenter
    ) -> None:
        session = await service.start_listening_session(_request())
        assert await service.stop_listening_session(session.id) is True

        assert session.status == SessionStatus.COMPLETED
        assert session.end_reason == StopReason.USER_REQUEST.value
        assert session.audio_file is not None
        assert session.audio_file.endswith(".enc")
        assert not service.is_listening_active("child-1")
        assert [n.kind for n in notifications.all()] == [
            "listening_started",
            "listening_stopped",
        ]

        audio = service.read_session_audio(session.id)
        data, sample_rate = sf.read(io.BytesIO(audio))
        assert sample_rate == 22050
        assert len(data) > 0

    @pytest.mark.asyncio
    async def test_stop_twice_returns_false(
        self, service: EnvironmentListeningService
    ) -> None:
        session = await service.start_listening_session(_request())
        assert await service.stop_listening_session(session.id)
        assert await service.stop_listening_session(session.id) is False
        assert await service.stop_listening_session("missing") is False

    @pytest.mark.asyncio
    async def test_stop_with_unknown_reason(
        self, service: EnvironmentListeningService
    ) -> None:
        session = await service.start_listening_session(_request())
        with pytest.raises(ValidationError):
            await service.stop_listening_session(session.id, "bored")

    @pytest.mark.asyncio
    async def test_auto_stop_after_duration(
        self, service: EnvironmentListeningService
    ) -> None:
        session = await service.start_listening_session(_request(duration=1))
        await asyncio.sleep(1.3)

        assert session.status == SessionStatus.COMPLETED
        assert session.end_reason == StopReason.TIME_LIMIT.value

    @pytest.mark.asyncio
    async def test_listener_receives_updates(
        self, service: EnvironmentListeningService
    ) -> None:
        seen: List[SessionStatus] = []
        service.add_session_listener(lambda s: seen.append(s.status))

        session = await service.start_listening_session(_request())
        await service.stop_listening_session(session.id)
        assert seen == [SessionStatus.ACTIVE, SessionStatus.COMPLETED]


class TestPreflightChecks:
    """Test the checks run before a session opens."""

    @pytest.mark.asyncio
    async def test_unknown_reason(self, service: EnvironmentListeningService) -> None:
        with pytest.raises(ValidationError):
            await service.start_listening_session(_request(reason="curiosity"))

    @pytest.mark.asyncio
    async def test_invalid_duration_and_quality(
        self, service: EnvironmentListeningService
    ) -> None:
        with pytest.raises(ValidationError):
            await service.start_listening_session(_request(duration=0))
        with pytest.raises(ValidationError):
            await service.start_listening_session(_request(audio_quality="ultra"))

    @pytest.mark.asyncio
    async def test_premium_required(self, service: EnvironmentListeningService) -> None:
        with pytest.raises(PremiumRequiredError):
            await service.start_listening_session(_request(parent_id="parent-2"))

        service.set_premium("parent-2")
        session = await service.start_listening_session(_request(parent_id="parent-2"))
        assert session.is_active

    def test_premium_checker_overrides_set(self, clock: FakeClock) -> None:
        service = EnvironmentListeningService(
            clock=clock, premium_checker=lambda parent_id: parent_id == "vip"
        )
        service.set_premium("parent-1")
        assert service.has_premium("vip")
        assert not service.has_premium("parent-1")

    @pytest.mark.asyncio
    async def test_daily_limit(self, service: EnvironmentListeningService) -> None:
        service.update_settings(daily_limit=2)
        for child in ("child-1", "child-2"):
            session = await service.start_listening_session(_request(child_id=child))
            await service.stop_listening_session(session.id)

        with pytest.raises(DailyLimitExceededError):
            await service.start_listening_session(_request(child_id="child-3"))

    @pytest.mark.asyncio
    async def test_daily_limit_resets_next_day(
        self, service: EnvironmentListeningService, clock: FakeClock
    ) -> None:
        service.update_settings(daily_limit=1)
        session = await service.start_listening_session(_request())
        await service.stop_listening_session(session.id)

        clock.advance(days=1)
        assert (await service.start_listening_session(_request())).is_active

    @pytest.mark.asyncio
    async def test_cooldown(
        self, service: EnvironmentListeningService, clock: FakeClock
    ) -> None:
        service.update_settings(cooldown_period=30)
        session = await service.start_listening_session(_request())
        await service.stop_listening_session(session.id)

        clock.advance(minutes=10)
        with pytest.raises(CooldownActiveError) as exc_info:
            await service.start_listening_session(_request())
        assert exc_info.value.details["remaining_seconds"] == 20 * 60

        clock.advance(minutes=20)
        assert (await service.start_listening_session(_request())).is_active

    @pytest.mark.asyncio
    async def test_one_active_session_per_child(
        self, service: EnvironmentListeningService
    ) -> None:
        await service.start_listening_session(_request())
        with pytest.raises(SessionConflictError):
            await service.start_listening_session(_request())


class TestConsent:
    """Test child consent handling."""

    @pytest.mark.asyncio
    async def test_consent_granted(self, service: EnvironmentListeningService) -> None:
        requests: List[ConsentRequest] = []

        def answer(request: ConsentRequest) -> None:
            requests.append(request)
            service.consent.respond(request.child_id, True)

        service.consent.add_listener(answer)
        session = await service.start_listening_session(_request(require_consent=True))

        assert session.is_active
        assert session.consent_status == ConsentStatus.APPROVED
        assert requests[0].reason == "safety_check"

    @pytest.mark.asyncio
    async def test_consent_denied(self, service: EnvironmentListeningService) -> None:
        service.consent.add_listener(
            lambda request: service.consent.respond(request.child_id, False)
        )

        with pytest.raises(ConsentDeniedError) as exc_info:
            await service.start_listening_session(_request(require_consent=True))
        assert exc_info.value.details["timed_out"] is False

        history = service.get_session_history()
        assert len(history) == 1
        assert history[0].status == SessionStatus.CANCELLED
        assert history[0].end_reason == StopReason.CHILD_DENIED.value
        assert history[0].consent_status == ConsentStatus.DENIED
        assert not service.is_listening_active("child-1")

    @pytest.mark.asyncio
    async def test_denied_sessions_do_not_use_quota(
        self, service: EnvironmentListeningService
    ) -> None:
        service.update_settings(daily_limit=1)
        unsubscribe = service.consent.add_listener(
            lambda request: service.consent.respond(request.child_id, False)
        )
        with pytest.raises(ConsentDeniedError):
            await service.start_listening_session(_request(require_consent=True))
        unsubscribe()

        assert (await service.start_listening_session(_request())).is_active

    @pytest.mark.asyncio
    async def test_consent_timeout(self, service: EnvironmentListeningService) -> None:
        with pytest.raises(ConsentDeniedError) as exc_info:
            await service.start_listening_session(_request(require_consent=True))
        assert exc_info.value.details["timed_out"] is True
        assert service.consent.pending("child-1") == []

    @pytest.mark.asyncio
    async def test_emergency_mode_skips_consent(
        self, service: EnvironmentListeningService
    ) -> None:
        session = await service.start_listening_session(
            _request(require_consent=True, emergency_mode=True, reason="emergency")
        )
        assert session.is_active
        assert session.consent_status == ConsentStatus.APPROVED

    @pytest.mark.asyncio
    async def test_second_start_while_consent_pending(
        self, service: EnvironmentListeningService
    ) -> None:
        first = asyncio.create_task(
            service.start_listening_session(_request(require_consent=True))
        )
        while not service.consent.pending("child-1"):
            await asyncio.sleep(0)
        pending_id = service.consent.pending("child-1")[0].session_id

        with pytest.raises(SessionConflictError) as exc_info:
            await service.start_listening_session(_request(require_consent=True))
        assert exc_info.value.details["session_id"] == pending_id

        assert [r.session_id for r in service.consent.pending("child-1")] == [
            pending_id
        ]
        assert service.consent.respond("child-1", True)
        session = await first
        assert session.id == pending_id
        assert session.is_active

    @pytest.mark.asyncio
    async def test_cancelled_consent_is_recorded(
        self, service: EnvironmentListeningService
    ) -> None:
        updates: List[ListeningSession] = []
        service.add_session_listener(updates.append)
        task = asyncio.create_task(
            service.start_listening_session(_request(require_consent=True))
        )
        while not service.consent.pending("child-1"):
            await asyncio.sleep(0)

        service.consent.cancel_all()
        with pytest.raises(asyncio.CancelledError):
            await task

        history = service.get_session_history()
        assert len(history) == 1
        assert history[0].status == SessionStatus.CANCELLED
        assert history[0].end_reason == StopReason.ERROR.value
        assert [s.status for s in updates] == [SessionStatus.CANCELLED]
        assert service.consent.pending("child-1") == []
        assert (await service.start_listening_session(_request())).is_active

    @pytest.mark.asyncio
    async def test_respond_without_pending_request(
        self, service: EnvironmentListeningService
    ) -> None:
        assert service.consent.respond("child-1", True) is False


class TestRecorderFailures:
    """Test recorder errors."""

    @pytest.mark.asyncio
    async def test_recorder_refuses_to_start(
        self, clock: FakeClock, notifications: NotificationCenter
    ) -> None:
        service = _make_service(
            clock,
            notifications,
            ListeningConfig(),
            recorder=MockAudioRecorder(fail_on_start=True),
        )
        with pytest.raises(RecordingError):
            await service.start_listening_session(_request())

        history = service.get_session_history()
        assert history[0].status == SessionStatus.FAILED
        assert not service.is_listening_active("child-1")

    @pytest.mark.asyncio
    async def test_missing_microphone_permission(
        self, clock: FakeClock, notifications: NotificationCenter
    ) -> None:
        service = _make_service(
            clock,
            notifications,
            ListeningConfig(),
            recorder=MockAudioRecorder(permission_granted=False),
        )
        with pytest.raises(RecordingError) as exc_info:
            await service.start_listening_session(_request())
        assert exc_info.value.error_code == "MICROPHONE_PERMISSION"

    @pytest.mark.asyncio
    async def test_unexpected_recorder_error_is_wrapped(
        self, clock: FakeClock, notifications: NotificationCenter
    ) -> None:
        service = _make_service(
            clock, notifications, ListeningConfig(), recorder=FailingRecorder()
        )
        with pytest.raises(RecordingError, match="audio device busy"):
            await service.start_listening_session(_request())


class TestCancelAndQueries:
    """Test cancellation, history and maintenance."""

    @pytest.mark.asyncio
    async def test_cancel_by_child(self, service: EnvironmentListeningService) -> None:
        session = await service.start_listening_session(_request())
        assert await service.cancel_listening_session(session.id, "child-1")
        assert session.status == SessionStatus.CANCELLED

    @pytest.mark.asyncio
    async def test_cancel_by_stranger(self, service: EnvironmentListeningService) -> None:
        session = await service.start_listening_session(_request())
        with pytest.raises(PermissionDeniedError):
            await service.cancel_listening_session(session.id, "someone-else")
        assert session.is_active

    @pytest.mark.asyncio
    async def test_history_filters(
        self, service: EnvironmentListeningService, clock: FakeClock
    ) -> None:
        service.set_premium("parent-2")
        first = await service.start_listening_session(_request())
        await service.stop_listening_session(first.id)
        clock.advance(days=2)
        second = await service.start_listening_session(
            _request(child_id="child-2", parent_id="parent-2")
        )
        await service.stop_listening_session(second.id)

        assert [s.id for s in service.get_session_history()] == [second.id, first.id]
        assert [s.id for s in service.get_session_history("parent-1")] == [first.id]
        assert [s.id for s in service.get_session_history(days=1)] == [second.id]

    @pytest.mark.asyncio
    async def test_cleanup_expired_sessions(
        self, service: EnvironmentListeningService, clock: FakeClock
    ) -> None:
        session = await service.start_listening_session(_request())
        await service.stop_listening_session(session.id)
        assert service.vault.has_key(session.id)

        clock.advance(hours=23)
        assert service.cleanup_expired_sessions() == 0
        clock.advance(hours=2)
        assert service.cleanup_expired_sessions() == 1
        assert service.get_session_history() == []
        assert not service.vault.has_key(session.id)

    @pytest.mark.asyncio
    async def test_update_settings_validation(
        self, service: EnvironmentListeningService
    ) -> None:
        with pytest.raises(ValidationError):
            service.update_settings(audio_quality="ultra")
        with pytest.raises(ValidationError):
            service.update_settings(volume=11)
        assert service.update_settings(daily_limit=9).daily_limit == 9


class TestPersistence:
    """Test storage across restarts."""

    @pytest.mark.asyncio
    async def test_history_and_premium_survive_restart(
        self, temp_dir: Path, clock: FakeClock
    ) -> None:
        settings = ListeningConfig(cooldown_period=0, encryption_enabled=False)
        first = EnvironmentListeningService(
            settings=settings, storage_path=temp_dir, clock=clock
        )
        await first.initialize()
        first.set_premium("parent-1")
        session = await first.start_listening_session(_request())
        await first.stop_listening_session(session.id)
        await first.shutdown()

        assert session.audio_file is not None
        assert Path(session.audio_file).exists()

        second = EnvironmentListeningService(storage_path=temp_dir, clock=clock)
        await second.initialize()
        restored = second.get_session(session.id)
        assert isinstance(restored, ListeningSession)
        assert restored.status == SessionStatus.COMPLETED
        assert second.has_premium("parent-1")
        assert second.settings.encryption_enabled is False
        assert second.read_session_audio(session.id)[:4] == b"RIFF"
        await second.shutdown()
