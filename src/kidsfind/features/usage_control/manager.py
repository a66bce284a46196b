"""
Usage control manager.

Tracks screen time sessions against a daily allowance, enforces bedtime,
sends break reminders and applies per-app blocks and limits.
"""

import asyncio
import logging
from dataclasses import asdict
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from ...core.alerts import AlertLog, AlertSeverity
from ...core.config.runtime import UsageConfig
from ...core.events import ListenerRegistry, MonitoringEvent
from ...core.exceptions import ValidationError
from ...core.lifecycle import SessionStatus, SessionTracker
from ...core.metrics import MetricsCollector
from ...core.notifications import NotificationCenter
from ...core.persistence.base_manager import BaseDataManager
from ...core.thresholds import (
    evaluate_usage,
    is_weekend,
    is_within_window,
    parse_hhmm,
)
from ...core.utils import Clock, generate_id, merge_settings, settings_from_dict
from ...services.error_messages import NotificationTexts
from .types import (
    AppAction,
    AppCategory,
    AppControlRequest,
    AppUsageData,
    ScreenTimeSession,
    UsageSnapshot,
    WeeklyUsage,
)

logger = logging.getLogger(__name__)

SERVICE_NAME = "usage_control"


class UsageControlService(BaseDataManager):
    """Manages screen time monitoring and app control."""

    def __init__(
        self,
        settings: Optional[UsageConfig] = None,
        storage_path: Optional[Path] = None,
        notifications: Optional[NotificationCenter] = None,
        alerts: Optional[AlertLog] = None,
        metrics: Optional[MetricsCollector] = None,
        clock: Optional[Clock] = None,
    ):
        super().__init__(storage_path, "UsageControlService")

        self.settings = settings or UsageConfig()
        self.notifications = notifications
        self.metrics = metrics
        self.clock = clock or datetime.now
        self.alerts = alerts or AlertLog(prefix="usage_alert", clock=self.clock)

        self.tracker: SessionTracker[ScreenTimeSession] = SessionTracker(
            max_history=self.settings.max_history
        )
        # child_id -> package_name -> usage
        self.app_usage: Dict[str, Dict[str, AppUsageData]] = {}
        self._listeners: ListenerRegistry[MonitoringEvent] = ListenerRegistry("usage")
        self._tick_tasks: Dict[str, "asyncio.Task[None]"] = {}
        self._break_tasks: Dict[str, "asyncio.Task[None]"] = {}

    # Persistence

    async def _load_data(self) -> None:
        """Load settings, session history and app usage."""
        stored = self.load_json_data("settings.json")
        if stored:
            self.settings = settings_from_dict(UsageConfig, self.settings, stored)
            self.tracker.max_history = self.settings.max_history

        history = self.load_records("history.json", ScreenTimeSession.from_dict)
        self.tracker.load_history([s for s in history if s.status.is_terminal])

        apps = self.load_records("app_usage.json", AppUsageData.from_dict)
        self.app_usage = {}
        for app in apps:
            self.app_usage.setdefault(app.child_id, {})[app.package_name] = app
        logger.info(
            f"Loaded {len(history)} screen time sessions and {len(apps)} apps"
        )

    async def _save_data(self) -> None:
        self._save_settings()
        self._save_history()
        self._save_app_usage()

    def _save_settings(self) -> None:
        self.save_json_data("settings.json", asdict(self.settings))

    def _save_history(self) -> None:
        self.save_records(
            "history.json",
            reversed(self.tracker.history()),
            limit=self.settings.max_history,
        )

    def _save_app_usage(self) -> None:
        self.save_records(
            "app_usage.json",
            (app for apps in self.app_usage.values() for app in apps.values()),
        )

    async def _stop(self) -> None:
        await self.cleanup()

    # Limits

    def get_daily_limit(self, day: Optional[date] = None) -> int:
        """Base allowance plus the weekend extra on Saturday and Sunday."""
        moment = day or self.clock().date()
        extra = self.settings.weekend_extra_time if is_weekend(moment) else 0
        return self.settings.daily_screen_time_limit + extra

    def is_within_bedtime(self, now: Optional[datetime] = None) -> bool:
        return is_within_window(
            now or self.clock(), self.settings.bedtime_start, self.settings.bedtime_end
        )

    def _completed_minutes_today(self, child_id: str) -> int:
        today = self.clock().date()
        return sum(
            s.duration
            for s in self.tracker.history(subject_id=child_id)
            if s.start_time.date() == today
        )

    def _elapsed_minutes(self, session: ScreenTimeSession) -> int:
        return int((self.clock() - session.start_time).total_seconds() // 60)

    def _total_minutes_today(self, child_id: str) -> int:
        total = self._completed_minutes_today(child_id)
        active = self.tracker.get_active_for(child_id)
        if active is not None:
            total += self._elapsed_minutes(active)
        return total

    # Screen time monitoring

    async def start_screen_time_monitoring(
        self, child_id: str, device_type: str = "phone"
    ) -> bool:
        """Open a screen time session. Returns False during bedtime or over the limit."""
        if self.tracker.is_active(child_id):
            return True

        if self.is_within_bedtime():
            self._raise_alert("bedtime", child_id, AlertSeverity.MEDIUM)
            logger.info(f"Bedtime hours - screen time refused for {child_id}")
            return False

        limit = self.get_daily_limit()
        if self._total_minutes_today(child_id) >= limit:
            self._raise_alert(
                "screen_time_limit", child_id, AlertSeverity.HIGH, limit=limit
            )
            logger.info(f"Daily screen time limit reached for {child_id}")
            return False

        now = self.clock()
        session = ScreenTimeSession(
            id=generate_id("usage_session", now),
            subject_id=child_id,
            reason="screen_time",
            start_time=now,
            device_type=device_type,
        )
        self.tracker.start(session, at=now)
        if self.metrics:
            self.metrics.record_session_started(SERVICE_NAME)

        self._tick_tasks[child_id] = asyncio.create_task(self._tick_loop(child_id))
        if self.settings.break_reminders:
            self._break_tasks[child_id] = asyncio.create_task(
                self._break_loop(child_id)
            )

        self._listeners.notify(
            MonitoringEvent("session_started", child_id, session, now)
        )
        logger.info(f"Screen time monitoring started for {child_id}")
        return True

    async def _tick_loop(self, child_id: str) -> None:
        while True:
            await asyncio.sleep(self.settings.tick_interval)
            self.update_current_session(child_id)

    async def _break_loop(self, child_id: str) -> None:
        while True:
            await asyncio.sleep(self.settings.break_interval * 60)
            self.send_break_reminder(child_id)

    def send_break_reminder(self, child_id: str) -> None:
        if not self.tracker.is_active(child_id):
            return
        self._notify("break_reminder", child_id, priority="normal")
        self._listeners.notify(
            MonitoringEvent("break_reminder", child_id, None, self.clock())
        )

    def update_current_session(self, child_id: Optional[str] = None) -> None:
        """Recompute running session durations and flag the daily limit once."""
        for session in self.tracker.active_sessions():
            if child_id is not None and session.subject_id != child_id:
                continue

            session.duration = self._elapsed_minutes(session)
            limit = self.get_daily_limit()
            total = self._completed_minutes_today(session.subject_id) + session.duration
            if total >= limit and not session.limit_exceeded:
                session.limit_exceeded = True
                self._raise_alert(
                    "screen_time_limit",
                    session.subject_id,
                    AlertSeverity.HIGH,
                    limit=limit,
                )
                logger.info(f"Daily screen time limit exceeded for {session.subject_id}")

            self._listeners.notify(
                MonitoringEvent(
                    "session_update", session.subject_id, session, self.clock()
                )
            )

    async def stop_screen_time_monitoring(
        self, child_id: Optional[str] = None
    ) -> List[ScreenTimeSession]:
        """Finalize running sessions (one child, or all when ``child_id`` is None)."""
        stopped = []
        for session in self.tracker.active_sessions():
            if child_id is not None and session.subject_id != child_id:
                continue

            self._cancel_timers(session.subject_id)
            session.duration = self._elapsed_minutes(session)
            self.tracker.finish(session.id, SessionStatus.COMPLETED, at=self.clock())
            if self.metrics:
                self.metrics.record_session_ended(
                    SERVICE_NAME, SessionStatus.COMPLETED.value
                )
            self._listeners.notify(
                MonitoringEvent(
                    "session_ended", session.subject_id, session, self.clock()
                )
            )
            stopped.append(session)
            logger.info(
                f"Screen time monitoring stopped for {session.subject_id} "
                f"after {session.duration} min"
            )

        if stopped:
            self._save_history()
        return stopped

    def _cancel_timers(self, child_id: str) -> None:
        for tasks in (self._tick_tasks, self._break_tasks):
            task = tasks.pop(child_id, None)
            if task is not None and task is not asyncio.current_task():
                task.cancel()

    def is_monitoring_active(self, child_id: Optional[str] = None) -> bool:
        if child_id is None:
            return len(self.tracker) > 0
        return self.tracker.is_active(child_id)

    def get_current_session(self, child_id: str) -> Optional[ScreenTimeSession]:
        return self.tracker.get_active_for(child_id)

    # App control

    def _get_app(self, child_id: str, package_name: str) -> Optional[AppUsageData]:
        return self.app_usage.get(child_id, {}).get(package_name)

    def _app(self, child_id: str, package_name: str) -> AppUsageData:
        app = self._get_app(child_id, package_name)
        if app is None:
            app = AppUsageData(
                child_id=child_id,
                package_name=package_name,
                app_name=package_name,
                last_used=self.clock(),
            )
            self.app_usage.setdefault(child_id, {})[package_name] = app
        return app

    def apply_app_control(self, request: AppControlRequest) -> bool:
        """Dispatch a block / unblock / limit / unlimited request."""
        try:
            action = AppAction(request.action)
        except ValueError as e:
            raise ValidationError("action", request.action, "unknown app action") from e
        if action == AppAction.BLOCK:
            return self.block_app(request)
        if action == AppAction.UNBLOCK:
            return self.unblock_app(request.child_id, request.package_name)
        if action == AppAction.LIMIT:
            if request.time_limit is None or request.time_limit < 0:
                raise ValidationError(
                    "time_limit", request.time_limit, "required for limit action"
                )
            return self.set_app_time_limit(
                request.child_id, request.package_name, request.time_limit
            )
        return self.set_app_time_limit(request.child_id, request.package_name, None)

    def block_app(self, request: AppControlRequest) -> bool:
        app = self._app(request.child_id, request.package_name)
        app.is_blocked = True
        self._save_app_usage()
        self._notify(
            "app_blocked",
            request.child_id,
            priority="normal",
            package=request.package_name,
        )
        logger.info(f"App blocked for {request.child_id}: {request.package_name}")
        return True

    def unblock_app(self, child_id: str, package_name: str) -> bool:
        app = self._get_app(child_id, package_name)
        if app is not None:
            app.is_blocked = False
            self._save_app_usage()
        return True

    def set_app_time_limit(
        self, child_id: str, package_name: str, limit_minutes: Optional[int]
    ) -> bool:
        """Set (or with None, clear) a per-app daily limit for one child."""
        app = self._app(child_id, package_name)
        app.time_limit = limit_minutes
        self._save_app_usage()
        return True

    def record_app_usage(
        self,
        child_id: str,
        package_name: str,
        minutes: float,
        app_name: Optional[str] = None,
        category: Optional[str] = None,
        opens: int = 1,
    ) -> AppUsageData:
        """Ingest an app usage report from the child device."""
        if minutes < 0:
            raise ValidationError("minutes", minutes, "must not be negative")
        if category:
            try:
                parsed_category: Optional[AppCategory] = AppCategory(category)
            except ValueError as e:
                raise ValidationError("category", category, "unknown category") from e
        else:
            parsed_category = None

        now = self.clock()
        app = self._app(child_id, package_name)
        if app.last_used.date() != now.date():
            app.usage_time = 0.0
            app.open_count = 0
        if app_name:
            app.app_name = app_name
        if parsed_category is not None:
            app.category = parsed_category
        app.usage_time += minutes
        app.open_count += opens
        app.last_used = now
        self._save_app_usage()

        self._listeners.notify(MonitoringEvent("app_usage", child_id, app, now))
        return app

    def is_app_allowed(self, child_id: str, package_name: str) -> Tuple[bool, str]:
        """Return (allowed, reason) for the child launching an app now."""
        app = self._get_app(child_id, package_name)
        if app is not None and app.is_blocked:
            return False, "blocked"
        if package_name in self.settings.blocked_apps:
            return False, "blocked_by_settings"
        if app is None:
            return True, "allowed"
        if (
            self.settings.education_apps_unlimited
            and app.category == AppCategory.EDUCATION
        ):
            return True, "education_unlimited"
        if app.time_limit is not None:
            used_today = (
                app.usage_time if app.last_used.date() == self.clock().date() else 0.0
            )
            if used_today >= app.time_limit:
                return False, "time_limit_reached"
        return True, "allowed"

    def get_blocked_apps(self, child_id: str) -> List[str]:
        return sorted(
            app.package_name
            for app in self.app_usage.get(child_id, {}).values()
            if app.is_blocked
        )

    # Analytics

    def get_today_usage(self, child_id: str) -> UsageSnapshot:
        today = self.clock().date()
        sessions = [
            s
            for s in self.tracker.history(subject_id=child_id)
            if s.start_time.date() == today
        ]
        active = self.tracker.get_active_for(child_id)
        total = sum(s.duration for s in sessions)
        if active is not None:
            total += self._elapsed_minutes(active)
            sessions.append(active)

        child_apps = self.app_usage.get(child_id, {}).values()
        apps = sorted(
            (
                a
                for a in child_apps
                if a.last_used.date() == today and (a.usage_time or a.open_count)
            ),
            key=lambda a: a.usage_time,
            reverse=True,
        )
        limit = self.get_daily_limit(today)
        return UsageSnapshot(
            subject_id=child_id,
            date=today,
            total_screen_time=total,
            per_app_breakdown=apps,
            sessions_count=len(sessions),
            limit_minutes=limit,
            limit_status=evaluate_usage(total, limit, self.settings.warning_ratio),
        )

    def get_weekly_usage(self, child_id: str) -> WeeklyUsage:
        since = self.clock() - timedelta(days=7)
        daily: Dict[str, int] = {}
        for session in self.tracker.history(subject_id=child_id, since=since):
            key = session.start_time.date().isoformat()
            daily[key] = daily.get(key, 0) + session.duration

        total = sum(daily.values())
        top_apps = sorted(
            (a for a in self.app_usage.get(child_id, {}).values() if a.usage_time),
            key=lambda a: a.usage_time,
            reverse=True,
        )[:5]
        return WeeklyUsage(
            subject_id=child_id,
            daily_usage=daily,
            average_daily=total / 7,
            total_week=total,
            most_used_apps=top_apps,
        )

    # Settings

    def update_settings(self, **changes: Any) -> UsageConfig:
        for key in ("bedtime_start", "bedtime_end"):
            if key in changes:
                parse_hhmm(changes[key], key)
        self.settings = merge_settings(self.settings, changes)
        self.tracker.max_history = self.settings.max_history
        self._save_settings()
        return self.settings

    def get_settings(self) -> UsageConfig:
        return self.settings

    def add_usage_listener(
        self, callback: Callable[[MonitoringEvent], None]
    ) -> Callable[[], None]:
        return self._listeners.add(callback)

    async def cleanup(self) -> None:
        await self.stop_screen_time_monitoring()
        for child_id in list(self._tick_tasks) + list(self._break_tasks):
            self._cancel_timers(child_id)
        self._listeners.clear()

    # Alerts and notifications

    def _raise_alert(
        self, kind: str, child_id: str, severity: AlertSeverity, **values: Any
    ) -> None:
        text = NotificationTexts.render(kind, **values)
        alert = self.alerts.raise_alert(
            kind, text["body"], severity=severity, subject_id=child_id, metadata=values
        )
        if alert is not None and self.metrics:
            self.metrics.record_alert(SERVICE_NAME, kind)
        self._notify(kind, child_id, priority="high", **values)

    def _notify(
        self, kind: str, child_id: str, priority: str = "normal", **values: Any
    ) -> None:
        if self.notifications is None:
            return
        text = NotificationTexts.render(kind, **values)
        self.notifications.send(
            kind, text["title"], text["body"], subject_id=child_id, priority=priority
        )


def create_usage_control_service(
    settings: Optional[UsageConfig] = None, **kwargs: Any
) -> UsageControlService:
    """Create a usage control service."""
    return UsageControlService(settings=settings, **kwargs)
