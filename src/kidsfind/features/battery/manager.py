"""
Battery monitoring manager.

Records battery readings of the children's devices, raises throttled
low/critical/charging/full alerts and computes simple analytics over the
reading history.
"""

import asyncio
import logging
from dataclasses import asdict
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from ...core.alerts import Alert, AlertLog, AlertSeverity
from ...core.config.runtime import BatteryConfig
from ...core.events import ListenerRegistry, MonitoringEvent
from ...core.exceptions import ValidationError
from ...core.metrics import MetricsCollector
from ...core.notifications import NotificationCenter
from ...core.persistence.base_manager import BaseDataManager
from ...core.thresholds import BatteryStatus, evaluate_battery
from ...core.utils import Clock, merge_settings, settings_from_dict
from ...services.error_messages import NotificationTexts
from .source import BatterySource
from .types import BatteryAlertType, BatteryAnalytics, BatteryInfo

logger = logging.getLogger(__name__)

SERVICE_NAME = "battery"

_SEVERITY = {
    BatteryAlertType.LOW: AlertSeverity.MEDIUM,
    BatteryAlertType.CRITICAL: AlertSeverity.CRITICAL,
    BatteryAlertType.CHARGING: AlertSeverity.LOW,
    BatteryAlertType.FULL: AlertSeverity.LOW,
}


class BatteryMonitoringService(BaseDataManager):
    """Tracks battery state per child."""

    def __init__(
        self,
        settings: Optional[BatteryConfig] = None,
        storage_path: Optional[Path] = None,
        notifications: Optional[NotificationCenter] = None,
        alerts: Optional[AlertLog] = None,
        metrics: Optional[MetricsCollector] = None,
        clock: Optional[Clock] = None,
    ):
        super().__init__(storage_path, "BatteryMonitoringService")

        self.settings = settings or BatteryConfig()
        self.notifications = notifications
        self.metrics = metrics
        self.clock = clock or datetime.now
        self.alerts = alerts or AlertLog(prefix="battery_alert", clock=self.clock)

        self.history: Dict[str, List[BatteryInfo]] = {}
        self._unsaved = 0
        self._current: Dict[str, BatteryInfo] = {}
        self._listeners: ListenerRegistry[MonitoringEvent] = ListenerRegistry(
            "battery"
        )
        self._poll_tasks: Dict[str, "asyncio.Task[None]"] = {}

    # Persistence

    async def _load_data(self) -> None:
        stored = self.load_json_data("settings.json")
        if stored:
            self.settings = settings_from_dict(BatteryConfig, self.settings, stored)

        readings = self.load_records("history.json", BatteryInfo.from_dict)
        self.history = {}
        for info in readings:
            self.history.setdefault(info.child_id, []).append(info)
            self._current[info.child_id] = info
        for child_history in self.history.values():
            self._trim(child_history)
        logger.info(f"Loaded {len(readings)} battery readings")

    async def _save_data(self) -> None:
        self._save_settings()
        self._save_history()

    def _save_settings(self) -> None:
        self.save_json_data("settings.json", asdict(self.settings))

    def _save_history(self) -> None:
        readings = sorted(
            (info for child in self.history.values() for info in child),
            key=lambda info: info.timestamp,
        )
        self.save_records("history.json", readings)
        self._unsaved = 0

    def _trim(self, child_history: List[BatteryInfo]) -> None:
        """Keep the newest ``max_history`` readings of one child."""
        overflow = len(child_history) - self.settings.max_history
        if overflow > 0:
            del child_history[:overflow]

    async def _stop(self) -> None:
        await self.cleanup()

    # Readings

    def record_reading(
        self,
        child_id: str,
        level: float,
        is_charging: bool,
        temperature: Optional[float] = None,
        health_pct: Optional[float] = None,
    ) -> BatteryInfo:
        """Store a reading (level in percent) and raise any alerts it warrants."""
        if not child_id:
            raise ValidationError("child_id", child_id, "must not be empty")

        level = max(0.0, min(100.0, float(level)))
        status = evaluate_battery(
            level,
            is_charging,
            self.settings.low_threshold,
            self.settings.critical_threshold,
        )
        info = BatteryInfo(
            child_id=child_id,
            level=level,
            is_charging=is_charging,
            timestamp=self.clock(),
            temperature=temperature,
            health_pct=health_pct,
            status=status,
        )

        previous = self._current.get(child_id)
        self._current[child_id] = info
        child_history = self.history.setdefault(child_id, [])
        child_history.append(info)
        self._trim(child_history)

        self._unsaved += 1
        if self._unsaved >= self.settings.save_every:
            self._save_history()

        self._check_alerts(info, previous)
        self._listeners.notify(
            MonitoringEvent("battery_update", child_id, info, info.timestamp)
        )
        return info

    def _check_alerts(self, info: BatteryInfo, previous: Optional[BatteryInfo]) -> None:
        settings = self.settings
        if info.status == BatteryStatus.CRITICAL and settings.enable_critical_alerts:
            self._raise(BatteryAlertType.CRITICAL, info, level=round(info.level))
        elif info.status == BatteryStatus.LOW and settings.enable_low_alerts:
            self._raise(BatteryAlertType.LOW, info, level=round(info.level))
        elif info.status == BatteryStatus.FULL and settings.enable_full_alerts:
            self._raise(BatteryAlertType.FULL, info)

        if (
            previous is not None
            and previous.is_charging != info.is_charging
            and settings.enable_charging_alerts
        ):
            state = "en charge" if info.is_charging else "débranchée"
            self._raise(
                BatteryAlertType.CHARGING, info, state=state, level=round(info.level)
            )

    def _raise(
        self, alert_type: BatteryAlertType, info: BatteryInfo, **values: Any
    ) -> Optional[Alert]:
        kind = alert_type.alert_kind
        text = NotificationTexts.render(kind, **values)
        alert = self.alerts.raise_alert(
            kind,
            text["body"],
            severity=_SEVERITY[alert_type],
            subject_id=info.child_id,
            metadata={
                "alert_type": alert_type.value,
                "battery_level": info.level,
                "is_charging": info.is_charging,
            },
            throttle_key=f"{info.child_id}:{alert_type.value}",
            throttle_minutes=self.settings.alert_interval,
        )
        if alert is None:
            return None

        logger.info(f"Battery {alert_type.value} alert for {info.child_id}")
        if self.metrics:
            self.metrics.record_alert(SERVICE_NAME, kind)
        if self.notifications:
            priority = "high" if alert_type == BatteryAlertType.CRITICAL else "normal"
            self.notifications.send(
                kind,
                text["title"],
                text["body"],
                subject_id=info.child_id,
                priority=priority,
                data={"alert_id": alert.id},
            )
        self._listeners.notify(
            MonitoringEvent("battery_alert", info.child_id, alert, alert.timestamp)
        )
        return alert

    # Polling

    async def start_battery_monitoring(
        self, child_id: str, source: BatterySource
    ) -> bool:
        """Poll ``source`` every ``poll_interval`` seconds. False if it is unavailable."""
        if child_id in self._poll_tasks:
            return True
        if not await source.is_available():
            logger.warning(f"Battery source unavailable for {child_id}")
            return False

        await self._poll_once(child_id, source)
        self._poll_tasks[child_id] = asyncio.create_task(
            self._poll_loop(child_id, source)
        )
        logger.info(f"Battery monitoring started for {child_id}")
        return True

    async def _poll_once(self, child_id: str, source: BatterySource) -> None:
        reading = await source.read()
        self.record_reading(
            child_id,
            reading.level,
            reading.is_charging,
            temperature=reading.temperature,
            health_pct=reading.health_pct,
        )

    async def _poll_loop(self, child_id: str, source: BatterySource) -> None:
        while True:
            await asyncio.sleep(self.settings.poll_interval)
            try:
                await self._poll_once(child_id, source)
            except Exception:
                logger.exception(f"Battery poll failed for {child_id}")

    def stop_battery_monitoring(self, child_id: str) -> bool:
        task = self._poll_tasks.pop(child_id, None)
        if task is None:
            return False
        if task is not asyncio.current_task():
            task.cancel()
        self._save_history()
        logger.info(f"Battery monitoring stopped for {child_id}")
        return True

    def is_monitoring(self, child_id: str) -> bool:
        return child_id in self._poll_tasks

    # Queries

    def get_current_battery_info(self, child_id: str) -> Optional[BatteryInfo]:
        return self._current.get(child_id)

    def get_battery_history(self, child_id: str, days: float = 7) -> List[BatteryInfo]:
        """Readings for a child within ``days``, oldest first."""
        cutoff = self.clock() - timedelta(days=days)
        return [
            info
            for info in self.history.get(child_id, [])
            if info.timestamp >= cutoff
        ]

    def get_alert_history(
        self, child_id: Optional[str] = None, days: float = 30
    ) -> List[Alert]:
        return [
            a
            for a in self.alerts.list(subject_id=child_id, days=days)
            if a.kind.startswith("battery_")
        ]

    def acknowledge_alert(self, alert_id: str) -> bool:
        return self.alerts.acknowledge(alert_id)

    def get_battery_analytics(self, child_id: str, days: float = 7) -> BatteryAnalytics:
        history = self.get_battery_history(child_id, days)
        if not history:
            return BatteryAnalytics()

        levels = [h.level for h in history]
        charging = sum(1 for h in history if h.is_charging)

        cycles = 0
        was_charging = False
        for entry in history:
            if entry.is_charging and not was_charging:
                cycles += 1
            was_charging = entry.is_charging

        trend = "stable"
        third = len(history) // 3
        if third > 0:
            older = sum(levels[:third]) / third
            recent = sum(levels[-third:]) / third
            if recent > older + 5:
                trend = "improving"
            elif recent < older - 5:
                trend = "declining"

        return BatteryAnalytics(
            average_level=round(sum(levels) / len(levels)),
            time_charging=round(charging / len(history) * 100),
            lowest_level=min(levels),
            highest_level=max(levels),
            charging_cycles=cycles,
            battery_health_trend=trend,
            readings=len(history),
        )

    def clear_history(self) -> None:
        self.history.clear()
        self._save_history()

    # Settings

    def update_settings(self, **changes: Any) -> BatteryConfig:
        updated = merge_settings(self.settings, changes)
        if not 0 <= updated.critical_threshold < updated.low_threshold <= 100:
            raise ValidationError(
                "thresholds",
                f"{updated.critical_threshold}/{updated.low_threshold}",
                "expected 0 <= critical < low <= 100",
            )
        self.settings = updated
        self._save_settings()
        return self.settings

    def get_settings(self) -> BatteryConfig:
        return self.settings

    def add_battery_listener(
        self, callback: Callable[[MonitoringEvent], None]
    ) -> Callable[[], None]:
        return self._listeners.add(callback)

    async def cleanup(self) -> None:
        for child_id in list(self._poll_tasks):
            self.stop_battery_monitoring(child_id)
        self._listeners.clear()


def create_battery_monitoring_service(
    settings: Optional[BatteryConfig] = None, **kwargs: Any
) -> BatteryMonitoringService:
    """Create a battery monitoring service."""
    return BatteryMonitoringService(settings=settings, **kwargs)
