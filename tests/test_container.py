"""
Tests for the service container wiring.
"""

import pytest

from kidsfind.core.config import Config
from kidsfind.features.sos import Location
from kidsfind.services.container import ServiceContainer
from testing_utilities import FakeClock


class TestServiceContainer:
    @pytest.mark.asyncio
    async def test_lifecycle(self, test_config: Config, clock: FakeClock) -> None:
        container = ServiceContainer(test_config, clock=clock)
        assert not any((await container.health()).values())

        await container.initialize()
        assert all((await container.health()).values())
        assert (test_config.data_dir / "battery").is_dir()

        await container.shutdown()
        assert not any((await container.health()).values())

    @pytest.mark.asyncio
    async def test_services_share_outbox(
        self, test_config: Config, clock: FakeClock
    ) -> None:
        container = ServiceContainer(test_config, persist=False, clock=clock)
        await container.initialize()

        container.battery.record_reading("child-1", 3, False)
        container.call_filtering.handle_incoming_call("0699999999")

        kinds = {n.kind for n in container.notifications.all()}
        assert kinds == {"battery_critical", "unknown_call"}
        assert {a.kind for a in container.alerts.all()} == kinds
        await container.shutdown()

    @pytest.mark.asyncio
    async def test_sos_alerts_emergency_contacts(
        self, test_config: Config, clock: FakeClock
    ) -> None:
        container = ServiceContainer(test_config, persist=False, clock=clock)
        await container.initialize()
        container.call_filtering.add_contact("Maman", "0600000001", "parent")
        container.call_filtering.add_contact("Léo", "0611223344", "friend")

        alert = await container.sos.trigger_sos_alert("child-1", Location(48.85, 2.35))
        details = container.sos.get_alert_details(alert.id)
        assert details is not None
        assert details["session"].emergency_contacts == ["0600000001"]
        await container.shutdown()

    @pytest.mark.asyncio
    async def test_data_survives_restart(
        self, test_config: Config, clock: FakeClock
    ) -> None:
        first = ServiceContainer(test_config, clock=clock)
        await first.initialize()
        first.battery.record_reading("child-1", 55, True)
        first.usage.update_settings(daily_screen_time_limit=45)
        await first.shutdown()

        second = ServiceContainer(test_config, clock=clock)
        await second.initialize()
        info = second.battery.get_current_battery_info("child-1")
        assert info is not None and info.level == 55
        assert second.usage.get_daily_limit() == 45
        assert await second.run_maintenance() == {"expired_sessions": 0}
        await second.shutdown()
