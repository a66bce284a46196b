"""
Service container.

Builds every monitoring service from a :class:`Config`, sharing one
notification outbox, one alert log and one metrics collector between them,
and drives their initialize/shutdown lifecycle.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..core.alerts import AlertLog
from ..core.config import Config
from ..core.metrics import MetricsCollector, create_metrics_collector
from ..core.notifications import NotificationCenter
from ..core.persistence.base_manager import BaseDataManager
from ..core.utils import Clock
from ..features.battery import BatteryMonitoringService
from ..features.call_filtering import CallFilteringService
from ..features.environment_listening import (
    AudioRecorder,
    ConsentBroker,
    EnvironmentListeningService,
)
from ..features.remote_sound import RemoteSoundService, SoundPlayer
from ..features.sos import LocationProvider, SOSService
from ..features.usage_control import UsageControlService

logger = logging.getLogger(__name__)


class ServiceContainer:
    """Owns the service instances of one running application."""

    def __init__(
        self,
        config: Optional[Config] = None,
        persist: bool = True,
        clock: Optional[Clock] = None,
        recorder: Optional[AudioRecorder] = None,
        consent_broker: Optional[ConsentBroker] = None,
        location_provider: Optional[LocationProvider] = None,
        sound_player: Optional[SoundPlayer] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.config = config or Config()
        self.persist = persist
        self.clock = clock or datetime.now
        self.started_at = self.clock()

        self.metrics = metrics or create_metrics_collector()
        self.notifications = NotificationCenter(
            max_history=self.config.notifications.max_history,
            enabled=self.config.notifications.enabled,
            clock=self.clock,
        )
        self.alerts = AlertLog(clock=self.clock)

        shared: Dict[str, Any] = {
            "notifications": self.notifications,
            "metrics": self.metrics,
            "clock": self.clock,
        }

        self.listening = EnvironmentListeningService(
            settings=self.config.listening,
            storage_path=self._storage("environment_listening"),
            recorder=recorder,
            consent_broker=consent_broker,
            **shared,
        )
        self.usage = UsageControlService(
            settings=self.config.usage,
            storage_path=self._storage("usage_control"),
            alerts=self.alerts,
            **shared,
        )
        self.call_filtering = CallFilteringService(
            settings=self.config.call_filtering,
            storage_path=self._storage("call_filtering"),
            alerts=self.alerts,
            **shared,
        )
        self.battery = BatteryMonitoringService(
            settings=self.config.battery,
            storage_path=self._storage("battery"),
            alerts=self.alerts,
            **shared,
        )
        self.sos = SOSService(
            settings=self.config.sos,
            storage_path=self._storage("sos"),
            location_provider=location_provider,
            contacts_provider=self._emergency_numbers,
            alerts=self.alerts,
            **shared,
        )
        self.remote_sound = RemoteSoundService(
            settings=self.config.remote_sound,
            storage_path=self._storage("remote_sound"),
            player=sound_player,
            **shared,
        )

    def _storage(self, service: str) -> Optional[Path]:
        return self.config.service_dir(service) if self.persist else None

    def _emergency_numbers(self, child_id: str) -> List[str]:
        return [c.phone_number for c in self.call_filtering.get_emergency_contacts()]

    @property
    def services(self) -> Dict[str, BaseDataManager]:
        return {
            "environment_listening": self.listening,
            "usage_control": self.usage,
            "call_filtering": self.call_filtering,
            "battery": self.battery,
            "sos": self.sos,
            "remote_sound": self.remote_sound,
        }

    async def initialize(self) -> None:
        for name, service in self.services.items():
            await service.initialize()
        logger.info(f"Initialized {len(self.services)} services")

    async def shutdown(self) -> None:
        """Stop timers and flush every service; one failure does not stop the rest."""
        for name, service in self.services.items():
            try:
                await service.shutdown()
            except Exception:
                logger.exception(f"Error shutting down {name}")
        logger.info("All services shut down")

    async def health(self) -> Dict[str, bool]:
        return {name: await s.health_check() for name, s in self.services.items()}

    async def run_maintenance(self) -> Dict[str, int]:
        """Periodic housekeeping: expired listening audio."""
        return {"expired_sessions": self.listening.cleanup_expired_sessions()}


def create_service_container(
    config: Optional[Config] = None, **kwargs: Any
) -> ServiceContainer:
    """Create a service container."""
    return ServiceContainer(config=config, **kwargs)
