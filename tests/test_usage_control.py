"""
Tests for screen time monitoring and app control.
"""

from datetime import date, datetime
from pathlib import Path
from typing import AsyncGenerator, List

import pytest
import pytest_asyncio

from kidsfind.core.alerts import AlertLog
from kidsfind.core.config import UsageConfig
from kidsfind.core.events import MonitoringEvent
from kidsfind.core.exceptions import ValidationError
from kidsfind.core.notifications import NotificationCenter
from kidsfind.core.thresholds import LimitStatus
from kidsfind.features.usage_control import (
    AppAction,
    AppControlRequest,
    UsageControlService,
)
from testing_utilities import FakeClock


@pytest_asyncio.fixture
async def service(
    clock: FakeClock, notifications: NotificationCenter, alerts: AlertLog
) -> AsyncGenerator[UsageControlService, None]:
    svc = UsageControlService(
        settings=UsageConfig(),
        notifications=notifications,
        alerts=alerts,
        clock=clock,
    )
    await svc.initialize()
    yield svc
    await svc.cleanup()


async def _use_for(
    service: UsageControlService, clock: FakeClock, minutes: int, child: str = "child-1"
) -> None:
    assert await service.start_screen_time_monitoring(child)
    clock.advance(minutes=minutes)
    await service.stop_screen_time_monitoring(child)


class TestScreenTime:
    """Test screen time sessions against the daily allowance."""

    @pytest.mark.asyncio
    async def test_start_and_stop(
        self, service: UsageControlService, clock: FakeClock
    ) -> None:
        assert await service.start_screen_time_monitoring("child-1", "tablet")
        assert service.is_monitoring_active("child-1")
        session = service.get_current_session("child-1")
        assert session is not None
        assert session.device_type == "tablet"

        clock.advance(minutes=45)
        stopped = await service.stop_screen_time_monitoring("child-1")

        assert [s.duration for s in stopped] == [45]
        assert not service.is_monitoring_active()

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self, service: UsageControlService) -> None:
        assert await service.start_screen_time_monitoring("child-1")
        assert await service.start_screen_time_monitoring("child-1")
        assert len(service.tracker) == 1

    @pytest.mark.asyncio
    async def test_refused_at_bedtime(
        self,
        service: UsageControlService,
        clock: FakeClock,
        alerts: AlertLog,
        notifications: NotificationCenter,
    ) -> None:
        clock.set(datetime(2025, 1, 15, 22, 30))
        assert await service.start_screen_time_monitoring("child-1") is False
        assert [a.kind for a in alerts.all()] == ["bedtime"]
        assert notifications.all()[0].kind == "bedtime"

        clock.set(datetime(2025, 1, 16, 6, 59))
        assert service.is_within_bedtime()
        clock.set(datetime(2025, 1, 16, 7, 1))
        assert not service.is_within_bedtime()

    @pytest.mark.asyncio
    async def test_refused_when_limit_used(
        self, service: UsageControlService, clock: FakeClock, alerts: AlertLog
    ) -> None:
        await _use_for(service, clock, 120)

        assert await service.start_screen_time_monitoring("child-1") is False
        assert alerts.all()[-1].kind == "screen_time_limit"
        assert alerts.all()[-1].metadata == {"limit": 120}

    @pytest.mark.asyncio
    async def test_limit_flagged_once_while_running(
        self, service: UsageControlService, clock: FakeClock, alerts: AlertLog
    ) -> None:
        await _use_for(service, clock, 60)
        clock.advance(minutes=5)
        await service.start_screen_time_monitoring("child-1")

        clock.advance(minutes=59)
        service.update_current_session("child-1")
        assert alerts.all() == []

        clock.advance(minutes=1)
        service.update_current_session("child-1")
        service.update_current_session("child-1")

        session = service.get_current_session("child-1")
        assert session is not None and session.limit_exceeded
        assert [a.kind for a in alerts.all()] == ["screen_time_limit"]

    def test_weekend_allowance(self, service: UsageControlService) -> None:
        assert service.get_daily_limit(date(2025, 1, 15)) == 120
        assert service.get_daily_limit(date(2025, 1, 18)) == 180

    @pytest.mark.asyncio
    async def test_today_usage_includes_running_session(
        self, service: UsageControlService, clock: FakeClock
    ) -> None:
        await _use_for(service, clock, 60)
        await service.start_screen_time_monitoring("child-1")
        clock.advance(minutes=40)

        snapshot = service.get_today_usage("child-1")
        assert snapshot.total_screen_time == 100
        assert snapshot.sessions_count == 2
        assert snapshot.limit_status == LimitStatus.WARNING
        assert snapshot.to_dict()["limit_minutes"] == 120

    @pytest.mark.asyncio
    async def test_weekly_usage(
        self, service: UsageControlService, clock: FakeClock
    ) -> None:
        await _use_for(service, clock, 30)
        clock.advance(days=1)
        await _use_for(service, clock, 60)

        weekly = service.get_weekly_usage("child-1")
        assert weekly.total_week == 90
        assert sorted(weekly.daily_usage.values()) == [30, 60]
        assert weekly.average_daily == pytest.approx(90 / 7)

    @pytest.mark.asyncio
    async def test_break_reminder(
        self, service: UsageControlService, notifications: NotificationCenter
    ) -> None:
        service.send_break_reminder("child-1")
        assert notifications.all() == []

        await service.start_screen_time_monitoring("child-1")
        service.send_break_reminder("child-1")
        assert notifications.all()[-1].kind == "break_reminder"

    @pytest.mark.asyncio
    async def test_events(self, service: UsageControlService, clock: FakeClock) -> None:
        events: List[MonitoringEvent] = []
        service.add_usage_listener(events.append)

        await _use_for(service, clock, 10)
        assert [e.kind for e in events] == ["session_started", "session_ended"]


class TestAppControl:
    """Test per-app blocking and limits."""

    def test_block_and_unblock(
        self, service: UsageControlService, notifications: NotificationCenter
    ) -> None:
        request = AppControlRequest("child-1", "com.game", AppAction.BLOCK)
        assert service.apply_app_control(request)
        assert service.is_app_allowed("child-1", "com.game") == (False, "blocked")
        assert service.get_blocked_apps("child-1") == ["com.game"]
        assert notifications.all()[-1].kind == "app_blocked"

        service.apply_app_control(
            AppControlRequest("child-1", "com.game", AppAction.UNBLOCK)
        )
        assert service.is_app_allowed("child-1", "com.game") == (True, "allowed")

    def test_action_given_as_string(self, service: UsageControlService) -> None:
        service.apply_app_control(AppControlRequest("child-1", "com.chat", "block"))  # type: ignore[arg-type]
        assert service.get_blocked_apps("child-1") == ["com.chat"]

    def test_unknown_action(self, service: UsageControlService) -> None:
        with pytest.raises(ValidationError):
            service.apply_app_control(AppControlRequest("child-1", "com.chat", "nuke"))  # type: ignore[arg-type]

    def test_limit_requires_minutes(self, service: UsageControlService) -> None:
        with pytest.raises(ValidationError):
            service.apply_app_control(
                AppControlRequest("child-1", "com.game", AppAction.LIMIT)
            )

    def test_time_limit_reached(self, service: UsageControlService) -> None:
        service.apply_app_control(
            AppControlRequest("child-1", "com.game", AppAction.LIMIT, time_limit=30)
        )
        service.record_app_usage("child-1", "com.game", 20)
        assert service.is_app_allowed("child-1", "com.game") == (True, "allowed")

        service.record_app_usage("child-1", "com.game", 10)
        assert service.is_app_allowed("child-1", "com.game") == (
            False,
            "time_limit_reached",
        )

        service.apply_app_control(
            AppControlRequest("child-1", "com.game", AppAction.UNLIMITED)
        )
        assert service.is_app_allowed("child-1", "com.game") == (True, "allowed")

    def test_education_apps_unlimited(self, service: UsageControlService) -> None:
        service.set_app_time_limit("child-1", "org.khan", 10)
        service.record_app_usage("child-1", "org.khan", 50, category="education")
        allowed = service.is_app_allowed("child-1", "org.khan")
        assert allowed == (True, "education_unlimited")

    def test_blocked_by_settings(self, service: UsageControlService) -> None:
        service.update_settings(blocked_apps=["com.casino"])
        allowed = service.is_app_allowed("child-1", "com.casino")
        assert allowed == (False, "blocked_by_settings")

    def test_usage_resets_on_a_new_day(
        self, service: UsageControlService, clock: FakeClock
    ) -> None:
        service.record_app_usage("child-1", "com.video", 50, app_name="Video")
        clock.advance(days=1)
        app = service.record_app_usage("child-1", "com.video", 5)

        assert app.usage_time == 5
        assert app.open_count == 1
        assert app.app_name == "Video"

    def test_record_usage_validation(self, service: UsageControlService) -> None:
        with pytest.raises(ValidationError):
            service.record_app_usage("child-1", "com.video", -1)
        with pytest.raises(ValidationError):
            service.record_app_usage("child-1", "com.video", 1, category="casino")
        assert service.get_today_usage("child-1").per_app_breakdown == []

    def test_usage_and_limits_are_per_child(
        self, service: UsageControlService
    ) -> None:
        service.record_app_usage("alice", "com.tiktok", 50)
        service.set_app_time_limit("alice", "com.tiktok", 30)
        service.set_app_time_limit("bob", "com.tiktok", 30)
        service.block_app(AppControlRequest("alice", "com.game", AppAction.BLOCK))

        assert service.get_today_usage("bob").per_app_breakdown == []
        assert service.get_weekly_usage("bob").most_used_apps == []
        assert service.is_app_allowed("bob", "com.tiktok") == (True, "allowed")
        assert service.is_app_allowed("bob", "com.game") == (True, "allowed")
        assert service.get_blocked_apps("bob") == []

        alice = service.get_today_usage("alice").per_app_breakdown
        assert [(a.package_name, a.usage_time) for a in alice] == [("com.tiktok", 50)]
        assert service.get_blocked_apps("alice") == ["com.game"]
        assert service.is_app_allowed("alice", "com.tiktok") == (
            False,
            "time_limit_reached",
        )


class TestUsageSettings:
    def test_update_settings(self, service: UsageControlService) -> None:
        settings = service.update_settings(daily_screen_time_limit=90)
        assert settings.daily_screen_time_limit == 90
        assert service.get_daily_limit(date(2025, 1, 15)) == 90

    def test_invalid_bedtime(self, service: UsageControlService) -> None:
        with pytest.raises(ValidationError):
            service.update_settings(bedtime_start="9pm")

    @pytest.mark.asyncio
    async def test_state_survives_restart(
        self, temp_dir: Path, clock: FakeClock
    ) -> None:
        first = UsageControlService(storage_path=temp_dir, clock=clock)
        await first.initialize()
        first.update_settings(daily_screen_time_limit=60)
        first.apply_app_control(
            AppControlRequest("child-1", "com.game", AppAction.BLOCK)
        )
        await _use_for(first, clock, 15)
        await first.shutdown()

        second = UsageControlService(storage_path=temp_dir, clock=clock)
        await second.initialize()
        assert second.settings.daily_screen_time_limit == 60
        assert second.get_blocked_apps("child-1") == ["com.game"]
        assert second.get_today_usage("child-1").total_screen_time == 15
        await second.shutdown()
