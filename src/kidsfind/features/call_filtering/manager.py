"""
Call filtering manager.

Screens incoming calls and text messages against the contact list, emergency
numbers and the time-of-day rules, logs every decision and handles the
child's whitelist requests.
"""

import logging
import re
from dataclasses import asdict
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from ...core.alerts import AlertLog, AlertSeverity
from ...core.config.base import EMERGENCY_NUMBERS
from ...core.config.runtime import CallFilterConfig
from ...core.events import ListenerRegistry, MonitoringEvent
from ...core.exceptions import NotFoundError, ValidationError
from ...core.metrics import MetricsCollector
from ...core.notifications import NotificationCenter
from ...core.persistence.base_manager import BaseDataManager
from ...core.thresholds import is_within_window, parse_hhmm
from ...core.utils import Clock, generate_id, merge_settings, settings_from_dict
from ...services.error_messages import NotificationTexts
from .types import (
    AllowedHours,
    BlockReason,
    CallLog,
    Contact,
    FilterDecision,
    MessageLog,
    Relationship,
    RequestStatus,
    WhitelistRequest,
)

logger = logging.getLogger(__name__)

SERVICE_NAME = "call_filtering"

_NON_DIALABLE = re.compile(r"[^\d+]")


def normalize_phone_number(number: str) -> str:
    """Strip everything but digits and ``+``."""
    return _NON_DIALABLE.sub("", number or "")


def is_emergency_number(number: str) -> bool:
    return normalize_phone_number(number) in EMERGENCY_NUMBERS


def _relationship(value: Any) -> Relationship:
    try:
        return Relationship(value)
    except ValueError as e:
        raise ValidationError("relationship", value, "unknown relationship") from e


class CallFilteringService(BaseDataManager):
    """Screens calls and messages for one child device."""

    def __init__(
        self,
        settings: Optional[CallFilterConfig] = None,
        storage_path: Optional[Path] = None,
        notifications: Optional[NotificationCenter] = None,
        alerts: Optional[AlertLog] = None,
        metrics: Optional[MetricsCollector] = None,
        clock: Optional[Clock] = None,
    ):
        super().__init__(storage_path, "CallFilteringService")

        self.settings = settings or CallFilterConfig()
        self.notifications = notifications
        self.metrics = metrics
        self.clock = clock or datetime.now
        self.alerts = alerts or AlertLog(prefix="call_alert", clock=self.clock)

        self.contacts: Dict[str, Contact] = {}
        self.call_logs: List[CallLog] = []
        self.message_logs: List[MessageLog] = []
        self.whitelist_requests: Dict[str, WhitelistRequest] = {}
        self._listeners: ListenerRegistry[MonitoringEvent] = ListenerRegistry(
            "call_filtering"
        )

    # Persistence

    async def _load_data(self) -> None:
        stored = self.load_json_data("settings.json")
        if stored:
            self.settings = settings_from_dict(CallFilterConfig, self.settings, stored)

        contacts = self.load_records("contacts.json", Contact.from_dict)
        self.contacts = {c.id: c for c in contacts}
        self.call_logs = self.load_records("call_logs.json", CallLog.from_dict)
        self.message_logs = self.load_records("message_logs.json", MessageLog.from_dict)
        requests = self.load_records(
            "whitelist_requests.json", WhitelistRequest.from_dict
        )
        self.whitelist_requests = {r.id: r for r in requests}
        logger.info(
            f"Loaded {len(self.contacts)} contacts, {len(self.call_logs)} call logs"
        )

    async def _save_data(self) -> None:
        self._save_settings()
        self._save_contacts()
        self._save_logs()
        self._save_requests()

    def _save_settings(self) -> None:
        self.save_json_data("settings.json", asdict(self.settings))

    def _save_contacts(self) -> None:
        self.save_records("contacts.json", self.contacts.values())

    def _save_logs(self) -> None:
        self.save_records("call_logs.json", self.call_logs)
        self.save_records("message_logs.json", self.message_logs)

    def _save_requests(self) -> None:
        self.save_records("whitelist_requests.json", self.whitelist_requests.values())

    async def _stop(self) -> None:
        await self.cleanup()

    # Screening

    def find_contact(self, number: str) -> Optional[Contact]:
        normalized = normalize_phone_number(number)
        if not normalized:
            return None
        for contact in self.contacts.values():
            if normalize_phone_number(contact.phone_number) == normalized:
                return contact
        return None

    def _screen_number(self, number: str, contact: Optional[Contact]) -> FilterDecision:
        settings = self.settings
        now = self.clock()

        if settings.allow_emergency_numbers and is_emergency_number(number):
            return FilterDecision(False, contact=contact)

        if contact is not None and contact.is_blocked:
            return FilterDecision(
                True, BlockReason.EXPLICITLY_BLOCKED.value, contact
            )

        if contact is not None and contact.is_whitelisted and contact.allow_calls:
            hours = contact.allowed_hours
            if hours and not is_within_window(now, hours.start, hours.end):
                return FilterDecision(True, BlockReason.OUTSIDE_HOURS.value, contact)
            return FilterDecision(False, contact=contact)

        if is_within_window(now, settings.quiet_hours_start, settings.quiet_hours_end):
            return FilterDecision(True, BlockReason.OUTSIDE_HOURS.value, contact)

        if (
            settings.allow_school_hours
            and now.weekday() < 5
            and is_within_window(
                now, settings.school_hours_start, settings.school_hours_end
            )
            and not (contact is not None and contact.is_trusted)
        ):
            return FilterDecision(True, BlockReason.OUTSIDE_HOURS.value, contact)

        if contact is None:
            if not normalize_phone_number(number) and settings.block_private_numbers:
                return FilterDecision(True, BlockReason.PRIVATE_NUMBER.value)
            if settings.allow_unknown_numbers:
                return FilterDecision(False)
            return FilterDecision(True, BlockReason.UNKNOWN_NUMBER.value)

        return FilterDecision(True, BlockReason.NOT_WHITELISTED.value, contact)

    def handle_incoming_call(
        self, phone_number: str, caller_name: Optional[str] = None
    ) -> FilterDecision:
        """Decide whether to block an incoming call and log the outcome."""
        if not self.settings.enable_call_filtering:
            return FilterDecision(False)

        contact: Optional[Contact] = None
        try:
            contact = self.find_contact(phone_number)
            decision = self._screen_number(phone_number, contact)
        except Exception:
            # Fail open, but still log the call
            logger.exception(f"Error screening call from {phone_number}")
            decision = FilterDecision(False, contact=contact)

        now = self.clock()
        if contact is not None:
            contact.last_contact = now
        entry = CallLog(
            id=generate_id("call", now),
            phone_number=phone_number,
            timestamp=now,
            was_blocked=decision.should_block,
            contact_id=contact.id if contact else None,
            contact_name=contact.name if contact else caller_name,
            block_reason=decision.reason,
        )
        self._append_call_log(entry)

        if self.metrics:
            self.metrics.record_screening("call", decision.should_block)
        self._alert_on_decision(phone_number, decision)
        logger.info(
            f"Call from {phone_number}: "
            f"{'blocked' if decision.should_block else 'allowed'}"
            + (f" ({decision.reason})" if decision.reason else "")
        )
        return decision

    def _alert_on_decision(self, phone_number: str, decision: FilterDecision) -> None:
        reason = decision.reason
        unknown = decision.contact is None and reason in (
            None,
            BlockReason.UNKNOWN_NUMBER.value,
            BlockReason.PRIVATE_NUMBER.value,
        )
        if unknown:
            if self.settings.alert_on_unknown_call and not is_emergency_number(
                phone_number
            ):
                self._raise_alert(
                    "unknown_call", AlertSeverity.MEDIUM, number=phone_number
                )
            return

        if decision.should_block and self.settings.alert_on_blocked_call:
            severity = (
                AlertSeverity.HIGH
                if reason == BlockReason.EXPLICITLY_BLOCKED.value
                else AlertSeverity.LOW
            )
            self._raise_alert(
                "blocked_call", severity, number=phone_number, reason=reason
            )

    def handle_incoming_message(
        self, phone_number: str, content: str, sender_name: Optional[str] = None
    ) -> FilterDecision:
        """Decide whether to block an incoming SMS and log the outcome."""
        if not self.settings.enable_sms_filtering:
            return FilterDecision(False)

        contact: Optional[Contact] = None
        has_blocked_words = False
        try:
            contact = self.find_contact(phone_number)
            has_blocked_words = self._contains_blocked_words(content)
            if has_blocked_words:
                decision = FilterDecision(
                    True, BlockReason.BLOCKED_WORDS.value, contact
                )
            elif contact is not None and contact.is_whitelisted and not contact.allow_sms:
                decision = FilterDecision(
                    True, BlockReason.SMS_NOT_ALLOWED.value, contact
                )
            else:
                decision = self._screen_number(phone_number, contact)
        except Exception:
            logger.exception(f"Error screening message from {phone_number}")
            decision = FilterDecision(False, contact=contact)

        now = self.clock()
        entry = MessageLog(
            id=generate_id("msg", now),
            phone_number=phone_number,
            content=content,
            timestamp=now,
            was_blocked=decision.should_block,
            contact_id=contact.id if contact else None,
            contact_name=contact.name if contact else sender_name,
            block_reason=decision.reason,
            contains_blocked_words=has_blocked_words,
        )
        self.message_logs.append(entry)
        self._cap(self.message_logs)
        self._save_logs()
        if self.metrics:
            self.metrics.record_screening("sms", decision.should_block)
        self._emit("message_logged", entry)
        return decision

    def _contains_blocked_words(self, content: str) -> bool:
        lowered = (content or "").lower()
        return any(word.lower() in lowered for word in self.settings.blocked_words)

    def _append_call_log(self, entry: CallLog) -> None:
        self.call_logs.append(entry)
        self._cap(self.call_logs)
        self._save_logs()
        self._emit("call_logged", entry)

    def _cap(self, logs: List[Any]) -> None:
        overflow = len(logs) - self.settings.max_logs
        if overflow > 0:
            del logs[:overflow]

    # Contacts

    @staticmethod
    def _allowed_hours(value: Any) -> Optional[AllowedHours]:
        if value is None:
            return None
        if isinstance(value, dict):
            try:
                value = AllowedHours(**value)
            except TypeError as e:
                raise ValidationError(
                    "allowed_hours", value, "expected start and end"
                ) from e
        if not isinstance(value, AllowedHours):
            raise ValidationError("allowed_hours", value, "expected start and end")
        parse_hhmm(value.start, "allowed_hours.start")
        parse_hhmm(value.end, "allowed_hours.end")
        return value

    def add_contact(
        self,
        name: str,
        phone_number: str,
        relationship: str = "other",
        added_by: str = "",
        **fields: Any,
    ) -> Contact:
        if not normalize_phone_number(phone_number):
            raise ValidationError("phone_number", phone_number, "invalid phone number")
        if not name:
            raise ValidationError("name", name, "must not be empty")
        hours = self._allowed_hours(fields.pop("allowed_hours", None))

        now = self.clock()
        contact = Contact(
            id=generate_id("contact", now),
            name=name,
            phone_number=phone_number,
            relationship=_relationship(relationship),
            allowed_hours=hours,
            added_by=added_by,
            added_at=now,
            **fields,
        )
        self.contacts[contact.id] = contact
        self._save_contacts()
        self._emit("contact_added", contact)
        logger.info(f"Contact added: {contact.name}")
        return contact

    _UPDATABLE = {
        "name",
        "phone_number",
        "email",
        "is_whitelisted",
        "is_blocked",
        "allow_calls",
        "allow_sms",
        "priority",
    }

    def update_contact(self, contact_id: str, **updates: Any) -> Contact:
        """Apply ``updates`` to a contact; nothing changes if any field is invalid."""
        contact = self.get_contact(contact_id)

        changes: Dict[str, Any] = {}
        for key, value in updates.items():
            if key == "relationship":
                changes[key] = _relationship(value)
            elif key == "allowed_hours":
                changes[key] = self._allowed_hours(value)
            elif key not in self._UPDATABLE:
                raise ValidationError(key, value, "unknown contact field")
            elif key == "phone_number" and not normalize_phone_number(value):
                raise ValidationError("phone_number", value, "invalid phone number")
            elif key == "name" and not value:
                raise ValidationError("name", value, "must not be empty")
            else:
                changes[key] = value

        for key, value in changes.items():
            setattr(contact, key, value)
        self._save_contacts()
        self._emit("contact_updated", contact)
        return contact

    def remove_contact(self, contact_id: str) -> bool:
        contact = self.contacts.pop(contact_id, None)
        if contact is None:
            return False
        self._save_contacts()
        self._emit("contact_removed", contact)
        return True

    def block_contact(self, contact_id: str) -> Contact:
        return self.update_contact(contact_id, is_blocked=True, is_whitelisted=False)

    def unblock_contact(self, contact_id: str) -> Contact:
        return self.update_contact(contact_id, is_blocked=False)

    def whitelist_contact(self, contact_id: str) -> Contact:
        return self.update_contact(contact_id, is_whitelisted=True, is_blocked=False)

    def get_contact(self, contact_id: str) -> Contact:
        contact = self.contacts.get(contact_id)
        if contact is None:
            raise NotFoundError("contact", contact_id)
        return contact

    def get_contacts(self) -> List[Contact]:
        return sorted(self.contacts.values(), key=lambda c: c.name.lower())

    def get_whitelisted_contacts(self) -> List[Contact]:
        return [c for c in self.get_contacts() if c.is_whitelisted]

    def get_blocked_contacts(self) -> List[Contact]:
        return [c for c in self.get_contacts() if c.is_blocked]

    def get_emergency_contacts(self) -> List[Contact]:
        return [
            c
            for c in self.get_contacts()
            if c.relationship in (Relationship.EMERGENCY, Relationship.PARENT)
        ]

    # Whitelist requests

    def request_whitelist(
        self, child_id: str, phone_number: str, name: str, reason: str = ""
    ) -> WhitelistRequest:
        if not normalize_phone_number(phone_number):
            raise ValidationError("phone_number", phone_number, "invalid phone number")

        now = self.clock()
        request = WhitelistRequest(
            id=generate_id("wl_request", now),
            child_id=child_id,
            requested_number=phone_number,
            requested_name=name,
            reason=reason,
            requested_at=now,
        )
        self.whitelist_requests[request.id] = request
        self._save_requests()
        self._notify(
            "whitelist_request",
            child_id,
            priority="normal",
            name=name,
            number=phone_number,
            reason=reason,
        )
        self._emit("whitelist_request_created", request, subject_id=child_id)
        return request

    def review_whitelist_request(
        self,
        request_id: str,
        approve: bool,
        reviewer_id: str,
        notes: Optional[str] = None,
    ) -> bool:
        """Approve or deny a pending request. Returns False if it was already reviewed."""
        request = self.whitelist_requests.get(request_id)
        if request is None:
            raise NotFoundError("whitelist request", request_id)
        if request.status != RequestStatus.PENDING:
            return False

        request.status = RequestStatus.APPROVED if approve else RequestStatus.DENIED
        request.reviewed_by = reviewer_id
        request.reviewed_at = self.clock()
        request.review_notes = notes

        if approve:
            self.add_contact(
                request.requested_name,
                request.requested_number,
                relationship=Relationship.FRIEND.value,
                added_by=reviewer_id,
                is_whitelisted=True,
                allow_calls=True,
                allow_sms=True,
                priority="medium",
            )

        self._save_requests()
        self._emit("whitelist_request_reviewed", request, subject_id=request.child_id)
        return True

    def get_pending_whitelist_requests(self) -> List[WhitelistRequest]:
        return [
            r
            for r in self.get_whitelist_request_history()
            if r.status == RequestStatus.PENDING
        ]

    def get_whitelist_request_history(self) -> List[WhitelistRequest]:
        return sorted(
            self.whitelist_requests.values(),
            key=lambda r: r.requested_at,
            reverse=True,
        )

    # Logs

    def get_call_logs(self, days: float = 7) -> List[CallLog]:
        cutoff = self.clock() - timedelta(days=days)
        return sorted(
            (log for log in self.call_logs if log.timestamp >= cutoff),
            key=lambda log: log.timestamp,
            reverse=True,
        )

    def get_message_logs(self, days: float = 7) -> List[MessageLog]:
        cutoff = self.clock() - timedelta(days=days)
        return sorted(
            (log for log in self.message_logs if log.timestamp >= cutoff),
            key=lambda log: log.timestamp,
            reverse=True,
        )

    def clear_logs(self) -> None:
        self.call_logs.clear()
        self.message_logs.clear()
        self._save_logs()

    # Settings

    def update_settings(self, **changes: Any) -> CallFilterConfig:
        for key in (
            "school_hours_start",
            "school_hours_end",
            "quiet_hours_start",
            "quiet_hours_end",
        ):
            if key in changes:
                parse_hhmm(changes[key], key)
        self.settings = merge_settings(self.settings, changes)
        self._save_settings()
        self._emit("settings_updated", self.settings)
        return self.settings

    def get_settings(self) -> CallFilterConfig:
        return self.settings

    def add_listener(
        self, callback: Callable[[MonitoringEvent], None]
    ) -> Callable[[], None]:
        return self._listeners.add(callback)

    async def cleanup(self) -> None:
        self._listeners.clear()

    # Events, alerts and notifications

    def _emit(self, kind: str, payload: Any, subject_id: Optional[str] = None) -> None:
        self._listeners.notify(MonitoringEvent(kind, subject_id, payload, self.clock()))

    def _raise_alert(self, kind: str, severity: AlertSeverity, **values: Any) -> None:
        text = NotificationTexts.render(kind, **values)
        alert = self.alerts.raise_alert(
            kind, text["body"], severity=severity, metadata=values
        )
        if alert is not None and self.metrics:
            self.metrics.record_alert(SERVICE_NAME, kind)
        priority = "high" if severity == AlertSeverity.HIGH else "normal"
        self._notify(kind, None, priority=priority, **values)

    def _notify(
        self, kind: str, child_id: Optional[str], priority: str = "normal", **values: Any
    ) -> None:
        if self.notifications is None:
            return
        text = NotificationTexts.render(kind, **values)
        self.notifications.send(
            kind, text["title"], text["body"], subject_id=child_id, priority=priority
        )


def create_call_filtering_service(
    settings: Optional[CallFilterConfig] = None, **kwargs: Any
) -> CallFilteringService:
    """Create a call filtering service."""
    return CallFilteringService(settings=settings, **kwargs)
