"""
SOS alert manager.

Handles emergency alerts triggered from a child device: locating the child,
notifying the parent, repeating follow-up notifications while the alert is
open and tracking the global emergency mode flag.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from ...core.alerts import AlertLog, AlertSeverity
from ...core.config.runtime import SOSConfig
from ...core.events import ListenerRegistry, MonitoringEvent
from ...core.exceptions import LocationUnavailableError, ValidationError
from ...core.lifecycle import SessionStatus, SessionTracker
from ...core.metrics import MetricsCollector
from ...core.notifications import NotificationCenter
from ...core.persistence.base_manager import BaseDataManager
from ...core.utils import Clock, generate_id
from ...services.error_messages import NotificationTexts
from .types import (
    EmergencyContactsProvider,
    Location,
    LocationProvider,
    SOSAlert,
    SOSSession,
    SOSStatus,
)

logger = logging.getLogger(__name__)

SERVICE_NAME = "sos"


class SOSService(BaseDataManager):
    """Emergency alert handling."""

    def __init__(
        self,
        settings: Optional[SOSConfig] = None,
        storage_path: Optional[Path] = None,
        location_provider: Optional[LocationProvider] = None,
        contacts_provider: Optional[EmergencyContactsProvider] = None,
        notifications: Optional[NotificationCenter] = None,
        alerts: Optional[AlertLog] = None,
        metrics: Optional[MetricsCollector] = None,
        clock: Optional[Clock] = None,
    ):
        super().__init__(storage_path, "SOSService")

        self.settings = settings or SOSConfig()
        self.location_provider = location_provider
        self.contacts_provider = contacts_provider
        self.notifications = notifications
        self.metrics = metrics
        self.clock = clock or datetime.now
        self.alerts = alerts or AlertLog(prefix="sos_alert", clock=self.clock)

        self.alert_history: List[SOSAlert] = []
        self.tracker: SessionTracker[SOSSession] = SessionTracker(
            max_history=self.settings.max_history
        )
        self._emergency_mode = False
        self._listeners: ListenerRegistry[MonitoringEvent] = ListenerRegistry("sos")
        self._follow_ups: Dict[str, "asyncio.Task[None]"] = {}

    # Persistence

    async def _load_data(self) -> None:
        """Load alert history. Alerts left open by a previous run are closed."""
        self.alert_history = self.load_records("alerts.json", SOSAlert.from_dict)
        now = self.clock()
        for alert in self.alert_history:
            if alert.is_active:
                alert.status = SOSStatus.CANCELLED
                alert.cancelled_at = now
                alert.cancelled_by = "system_restart"

        sessions = self.load_records("sessions.json", SOSSession.from_dict)
        for session in sessions:
            if not session.status.is_terminal:
                session.status = SessionStatus.CANCELLED
                session.end_time = now
                session.end_reason = "system_restart"
        self.tracker.load_history(sessions)
        logger.info(f"Loaded {len(self.alert_history)} SOS alerts")

    async def _save_data(self) -> None:
        self._save_history()

    def _save_history(self) -> None:
        self.save_records("alerts.json", self.alert_history, limit=self.settings.max_history)
        self.save_records(
            "sessions.json",
            reversed(self.tracker.history()),
            limit=self.settings.max_history,
        )

    async def _stop(self) -> None:
        await self.cleanup()

    # Alert management

    async def _current_location(self, child_id: str) -> Optional[Location]:
        if self.location_provider is None:
            return None
        return await self.location_provider.get_current_location(child_id)

    async def trigger_sos_alert(
        self,
        child_id: str,
        location: Optional[Location] = None,
        message: Optional[str] = None,
    ) -> SOSAlert:
        """Raise an SOS alert for a child and start the emergency protocol.

        Raises:
            LocationUnavailableError: no location given and none could be obtained
        """
        if not child_id:
            raise ValidationError("child_id", child_id, "must not be empty")

        current = location
        if current is None:
            try:
                current = await self._current_location(child_id)
            except Exception as e:
                logger.exception(f"Location lookup failed for {child_id}")
                raise LocationUnavailableError(child_id) from e
        if current is None:
            raise LocationUnavailableError(child_id)

        existing = self.tracker.get_active_for(child_id)
        if existing is not None:
            alert = self._find(existing.id)
            if alert is not None:
                alert.location = current
                existing.location = current
                logger.info(f"SOS already active for {child_id}: {alert.id}")
                return alert

        now = self.clock()
        alert = SOSAlert(
            id=generate_id("sos", now),
            child_id=child_id,
            location=current,
            timestamp=now,
            message=message or NotificationTexts.render("sos_triggered")["body"],
        )
        self.alert_history.append(alert)
        overflow = len(self.alert_history) - self.settings.max_history
        if overflow > 0:
            del self.alert_history[:overflow]

        contacts = self.contacts_provider(child_id) if self.contacts_provider else []
        session = SOSSession(
            id=alert.id,
            subject_id=child_id,
            reason="sos",
            start_time=now,
            location=current,
            emergency_contacts=list(contacts),
        )
        self.tracker.start(session, at=now)
        self._emergency_mode = True

        if self.metrics:
            self.metrics.record_session_started(SERVICE_NAME)
        self.alerts.raise_alert(
            "sos_triggered",
            alert.message,
            severity=AlertSeverity.CRITICAL,
            subject_id=child_id,
            metadata={"sos_id": alert.id},
        )
        if self.metrics:
            self.metrics.record_alert(SERVICE_NAME, "sos_triggered")

        self._send_emergency_notifications(alert, session)
        self._follow_ups[alert.id] = asyncio.create_task(self._follow_up_loop(alert))
        self._save_history()
        self._emit("sos_triggered", alert)
        logger.warning(f"SOS alert triggered: {alert.id} for {child_id}")
        return alert

    def _send_emergency_notifications(self, alert: SOSAlert, session: SOSSession) -> None:
        self._notify("sos_triggered", alert, alert_type="manual_trigger")
        for contact in session.emergency_contacts:
            logger.info(f"Emergency alert sent to contact: {contact}")
        session.parent_notified = True

    async def _follow_up_loop(self, alert: SOSAlert) -> None:
        while True:
            await asyncio.sleep(self.settings.follow_up_interval)
            session = self.tracker.get(alert.id)
            if session is None or not session.is_active:
                return

            session.alerts_sent += 1
            try:
                refreshed = await self._current_location(alert.child_id)
            except Exception:
                logger.exception(f"Location refresh failed for {alert.child_id}")
                refreshed = None
            if refreshed is not None:
                alert.location = refreshed
                session.location = refreshed

            self._notify(
                "sos_follow_up",
                alert,
                alert_type="follow_up",
                alerts_sent=session.alerts_sent,
            )
            self._emit("sos_follow_up", alert)

            if session.alerts_sent >= self.settings.max_follow_ups:
                logger.info(f"Follow-up limit reached for SOS {alert.id}")
                self._follow_ups.pop(alert.id, None)
                return

    def _find(self, alert_id: str) -> Optional[SOSAlert]:
        for alert in self.alert_history:
            if alert.id == alert_id:
                return alert
        return None

    def _close(
        self, alert_id: str, status: SOSStatus, by: str
    ) -> Optional[SOSAlert]:
        alert = self._find(alert_id)
        if alert is None or not alert.is_active:
            return None

        now = self.clock()
        alert.status = status
        if status == SOSStatus.RESOLVED:
            alert.resolved_at = now
            alert.resolved_by = by
            session_status = SessionStatus.COMPLETED
        else:
            alert.cancelled_at = now
            alert.cancelled_by = by
            session_status = SessionStatus.CANCELLED

        task = self._follow_ups.pop(alert_id, None)
        if task is not None and task is not asyncio.current_task():
            task.cancel()

        if self.tracker.finish(alert_id, session_status, reason=status.value, at=now):
            if self.metrics:
                self.metrics.record_session_ended(SERVICE_NAME, session_status.value)

        if not any(a.is_active for a in self.alert_history):
            self._emergency_mode = False
        self._save_history()
        return alert

    def resolve_sos_alert(self, alert_id: str, resolved_by: str) -> bool:
        """Resolve an active alert. Returns False if it is unknown or not active."""
        alert = self._close(alert_id, SOSStatus.RESOLVED, resolved_by)
        if alert is None:
            return False
        self._notify("sos_resolved", alert, alert_type="resolution", priority="normal")
        self._emit("sos_resolved", alert)
        logger.info(f"SOS alert resolved: {alert_id}")
        return True

    def cancel_sos_alert(self, alert_id: str, cancelled_by: str) -> bool:
        """Cancel an active alert. Returns False if it is unknown or not active."""
        alert = self._close(alert_id, SOSStatus.CANCELLED, cancelled_by)
        if alert is None:
            return False
        self._emit("sos_cancelled", alert)
        logger.info(f"SOS alert cancelled: {alert_id}")
        return True

    # Queries

    def get_active_alerts(self, child_id: Optional[str] = None) -> List[SOSAlert]:
        alerts = [
            a
            for a in self.alert_history
            if a.is_active and (child_id is None or a.child_id == child_id)
        ]
        return sorted(alerts, key=lambda a: a.timestamp, reverse=True)

    def get_alert_history(
        self, child_id: Optional[str] = None, days: float = 30
    ) -> List[SOSAlert]:
        cutoff = self.clock() - timedelta(days=days)
        alerts = [
            a
            for a in self.alert_history
            if a.timestamp >= cutoff and (child_id is None or a.child_id == child_id)
        ]
        return sorted(alerts, key=lambda a: a.timestamp, reverse=True)

    def get_alert_details(self, alert_id: str) -> Optional[Dict[str, Any]]:
        alert = self._find(alert_id)
        if alert is None:
            return None
        session = self.tracker.get(alert_id)
        return {"alert": alert, "session": session}

    def is_emergency_mode_active(self) -> bool:
        return self._emergency_mode

    def add_listener(
        self, callback: Callable[[MonitoringEvent], None]
    ) -> Callable[[], None]:
        return self._listeners.add(callback)

    async def cleanup(self) -> None:
        for task in self._follow_ups.values():
            if task is not asyncio.current_task():
                task.cancel()
        self._follow_ups.clear()
        self._listeners.clear()

    # Notifications

    def _emit(self, kind: str, alert: SOSAlert) -> None:
        self._listeners.notify(MonitoringEvent(kind, alert.child_id, alert, self.clock()))

    def _notify(
        self,
        kind: str,
        alert: SOSAlert,
        alert_type: str,
        priority: str = "max",
        **values: Any,
    ) -> None:
        if self.notifications is None:
            return
        text = NotificationTexts.render(kind, **values)
        self.notifications.send(
            kind,
            text["title"],
            text["body"],
            subject_id=alert.child_id,
            priority=priority,
            data={
                "sos_id": alert.id,
                "type": alert_type,
                "location": alert.location.to_dict(),
            },
        )


def create_sos_service(settings: Optional[SOSConfig] = None, **kwargs: Any) -> SOSService:
    """Create an SOS service."""
    return SOSService(settings=settings, **kwargs)
