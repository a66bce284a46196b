"""
Tests for the shared monitoring building blocks: lifecycle, listeners,
alerts, notifications and JSON persistence.
"""

from datetime import datetime, timedelta
from pathlib import Path
from typing import List

import pytest

from kidsfind.core.alerts import AlertLog, AlertSeverity
from kidsfind.core.config import BatteryConfig
from kidsfind.core.events import ListenerRegistry, MonitoringEvent
from kidsfind.core.exceptions import (
    SessionConflictError,
    SessionStateError,
    ValidationError,
)
from kidsfind.core.lifecycle import (
    MonitoringSession,
    SessionStatus,
    SessionTracker,
    can_transition,
)
from kidsfind.core.notifications import NotificationCenter
from kidsfind.core.persistence.json_manager import JSONRepository
from kidsfind.core.utils import from_iso, generate_id, merge_settings, to_iso
from testing_utilities import FakeClock


def _session(session_id: str, subject: str = "child-1") -> MonitoringSession:
    return MonitoringSession(id=session_id, subject_id=subject)


class TestLifecycle:
    """Test session status transitions."""

    def test_allowed_transitions(self) -> None:
        assert can_transition(SessionStatus.REQUESTED, SessionStatus.ACTIVE)
        assert can_transition(SessionStatus.REQUESTED, SessionStatus.CANCELLED)
        assert can_transition(SessionStatus.ACTIVE, SessionStatus.COMPLETED)
        assert not can_transition(SessionStatus.COMPLETED, SessionStatus.ACTIVE)
        assert not can_transition(SessionStatus.REQUESTED, SessionStatus.COMPLETED)

    def test_transition_sets_timestamps(self) -> None:
        session = _session("s1")
        started = datetime(2025, 1, 15, 10, 0)
        session.transition(SessionStatus.ACTIVE, at=started)
        assert session.activated_at == started
        assert session.is_active

        session.transition(
            SessionStatus.COMPLETED, at=started + timedelta(minutes=5), reason="done"
        )
        assert session.end_time == started + timedelta(minutes=5)
        assert session.end_reason == "done"
        assert session.status.is_terminal

    def test_terminal_sessions_cannot_move(self) -> None:
        session = _session("s1")
        session.transition(SessionStatus.CANCELLED)
        with pytest.raises(SessionStateError):
            session.transition(SessionStatus.ACTIVE)

    def test_tracker_one_active_per_subject(self) -> None:
        tracker: SessionTracker[MonitoringSession] = SessionTracker()
        tracker.start(_session("s1"))
        with pytest.raises(SessionConflictError):
            tracker.start(_session("s2"))
        tracker.start(_session("s3", subject="child-2"))
        assert len(tracker) == 2

    def test_tracker_finish_moves_to_history(self) -> None:
        tracker: SessionTracker[MonitoringSession] = SessionTracker()
        tracker.start(_session("s1"))
        finished = tracker.finish("s1", SessionStatus.COMPLETED, reason="done")

        assert finished is not None
        assert not tracker.is_active("child-1")
        assert tracker.get("s1") is finished
        assert tracker.finish("s1", SessionStatus.COMPLETED) is None

    def test_tracker_history_is_capped(self) -> None:
        tracker: SessionTracker[MonitoringSession] = SessionTracker(max_history=3)
        for i in range(5):
            tracker.start(_session(f"s{i}"))
            tracker.finish(f"s{i}", SessionStatus.COMPLETED)
        ids = {s.id for s in tracker.history()}
        assert ids == {"s2", "s3", "s4"}

    def test_session_round_trip(self) -> None:
        session = _session("s1")
        session.transition(SessionStatus.ACTIVE, at=datetime(2025, 1, 15, 10, 0))
        restored = MonitoringSession.from_dict(session.to_dict())
        assert restored.status == SessionStatus.ACTIVE
        assert restored.activated_at == datetime(2025, 1, 15, 10, 0)


class TestListenerRegistry:
    """Test listener fan-out."""

    def test_failing_listener_does_not_stop_others(self) -> None:
        registry: ListenerRegistry[int] = ListenerRegistry("test")
        received: List[int] = []

        def broken(event: int) -> None:
            raise RuntimeError("boom")

        registry.add(broken)
        registry.add(received.append)
        assert registry.notify(7) == 1
        assert received == [7]

    def test_unsubscribe(self) -> None:
        registry: ListenerRegistry[int] = ListenerRegistry()
        received: List[int] = []
        unsubscribe = registry.add(received.append)
        registry.add(received.append)
        assert len(registry) == 1

        unsubscribe()
        registry.notify(1)
        assert received == []
        assert registry.remove(received.append) is False

    def test_event_serializes_payload(self) -> None:
        event = MonitoringEvent("session_started", "child-1", _session("s1"))
        assert event.to_dict()["payload"]["id"] == "s1"


class TestAlertLog:
    """Test alert storage and throttling."""

    def test_throttle_by_key(self, clock: FakeClock) -> None:
        log = AlertLog(clock=clock)
        first = log.raise_alert(
            "battery_low", "low", throttle_key="c1:low", throttle_minutes=30
        )
        second = log.raise_alert(
            "battery_low", "low", throttle_key="c1:low", throttle_minutes=30
        )
        assert first is not None
        assert second is None

        clock.advance(minutes=30)
        assert (
            log.raise_alert(
                "battery_low", "low", throttle_key="c1:low", throttle_minutes=30
            )
            is not None
        )

    def test_list_filters_and_orders(self, clock: FakeClock) -> None:
        log = AlertLog(clock=clock)
        old = log.raise_alert("a", "old", subject_id="c1")
        clock.advance(days=2)
        new = log.raise_alert("b", "new", subject_id="c1", severity=AlertSeverity.HIGH)
        log.raise_alert("a", "other child", subject_id="c2")

        assert [a.id for a in log.list(subject_id="c1")] == [new.id, old.id]
        assert [a.id for a in log.list(subject_id="c1", days=1)] == [new.id]
        assert log.acknowledge(new.id)
        assert [a.id for a in log.list(subject_id="c1", unacknowledged_only=True)] == [
            old.id
        ]

    def test_max_history(self, clock: FakeClock) -> None:
        log = AlertLog(max_history=2, clock=clock)
        for i in range(3):
            log.raise_alert("a", str(i))
        assert [a.message for a in log.all()] == ["1", "2"]


class TestNotificationCenter:
    """Test parent notification outbox."""

    def test_send_list_and_read(self, clock: FakeClock) -> None:
        center = NotificationCenter(clock=clock)
        delivered = []
        center.add_listener(delivered.append)

        first = center.send("battery_low", "Batterie", "15%", subject_id="c1")
        clock.advance(seconds=1)
        second = center.send("sos_triggered", "SOS", "!", subject_id="c1", priority="max")

        assert [n.id for n in center.list("c1")] == [second.id, first.id]
        assert len(delivered) == 2
        assert center.unread_count("c1") == 2
        assert center.mark_read(first.id)
        assert center.unread_count("c1") == 1
        assert center.mark_all_read() == 1

    def test_disabled_center_drops(self) -> None:
        center = NotificationCenter(enabled=False)
        assert center.send("x", "t", "b") is None
        assert center.all() == []

    def test_unknown_priority_becomes_normal(self) -> None:
        center = NotificationCenter()
        assert center.send("x", "t", "b", priority="urgent").priority == "normal"


class TestPersistence:
    """Test JSON repository helpers."""

    def test_save_and_load_records(self, temp_dir: Path) -> None:
        path = temp_dir / "sessions.json"
        sessions = [_session("s1"), _session("s2"), _session("s3")]

        assert JSONRepository.save_records(path, sessions, limit=2)
        loaded = JSONRepository.load_records(path, MonitoringSession.from_dict)
        assert [s.id for s in loaded] == ["s2", "s3"]
        assert not path.with_suffix(".tmp").exists()

    def test_malformed_records_are_skipped(self, temp_dir: Path) -> None:
        path = temp_dir / "sessions.json"
        JSONRepository.save_json(
            path, {"items": [{"id": "ok", "subject_id": "c"}, {"nope": 1}, "text"]}
        )
        loaded = JSONRepository.load_records(path, MonitoringSession.from_dict)
        assert [s.id for s in loaded] == ["ok"]

    def test_corrupt_file_returns_default(self, temp_dir: Path) -> None:
        path = temp_dir / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        assert JSONRepository.load_json(path, {"fallback": True}) == {"fallback": True}


class TestUtils:
    def test_generate_id_format(self) -> None:
        moment = datetime(2025, 1, 15, 18, 0)
        identifier = generate_id("sos", moment)
        prefix, millis, suffix = identifier.split("_")
        assert prefix == "sos"
        assert int(millis) == int(moment.timestamp() * 1000)
        assert len(suffix) == 9

    def test_iso_helpers(self) -> None:
        moment = datetime(2025, 1, 15, 18, 0)
        assert from_iso(to_iso(moment)) == moment
        assert to_iso(None) is None
        assert from_iso("") is None

    def test_merge_settings_rejects_unknown(self) -> None:
        settings = BatteryConfig()
        assert merge_settings(settings, {"low_threshold": 30}).low_threshold == 30
        with pytest.raises(ValidationError):
            merge_settings(settings, {"bogus": 1})
