"""
Call filtering types and data structures.

Contains contacts, call/message logs, whitelist requests and the screening
decision returned for each incoming call or message.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from ...core.utils import from_iso, to_iso


class Relationship(Enum):
    """How a contact relates to the child."""

    PARENT = "parent"
    FAMILY = "family"
    FRIEND = "friend"
    EMERGENCY = "emergency"
    SCHOOL = "school"
    OTHER = "other"


class BlockReason(Enum):
    """Why a call or message was blocked."""

    NOT_WHITELISTED = "not_whitelisted"
    EXPLICITLY_BLOCKED = "explicitly_blocked"
    OUTSIDE_HOURS = "outside_hours"
    UNKNOWN_NUMBER = "unknown_number"
    PRIVATE_NUMBER = "private_number"
    BLOCKED_WORDS = "blocked_words"
    SMS_NOT_ALLOWED = "sms_not_allowed"


class RequestStatus(Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"


@dataclass
class AllowedHours:
    """Daily window in which a contact may call."""

    start: str  # HH:MM
    end: str  # HH:MM

    def to_dict(self) -> Dict[str, str]:
        return {"start": self.start, "end": self.end}


@dataclass
class Contact:
    """A phone contact known to the filter."""

    id: str
    name: str
    phone_number: str
    relationship: Relationship = Relationship.OTHER
    email: Optional[str] = None
    is_whitelisted: bool = False
    is_blocked: bool = False
    allow_calls: bool = True
    allow_sms: bool = True
    allowed_hours: Optional[AllowedHours] = None
    priority: str = "medium"  # high | medium | low
    added_by: str = ""
    added_at: datetime = field(default_factory=datetime.now)
    last_contact: Optional[datetime] = None

    @property
    def is_trusted(self) -> bool:
        """Parents and emergency contacts get through during school hours."""
        return self.relationship in (Relationship.PARENT, Relationship.EMERGENCY)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "name": self.name,
            "phone_number": self.phone_number,
            "relationship": self.relationship.value,
            "email": self.email,
            "is_whitelisted": self.is_whitelisted,
            "is_blocked": self.is_blocked,
            "allow_calls": self.allow_calls,
            "allow_sms": self.allow_sms,
            "allowed_hours": self.allowed_hours.to_dict()
            if self.allowed_hours
            else None,
            "priority": self.priority,
            "added_by": self.added_by,
            "added_at": to_iso(self.added_at),
            "last_contact": to_iso(self.last_contact),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Contact":
        """Create from dictionary."""
        hours = data.get("allowed_hours")
        return cls(
            id=data["id"],
            name=data["name"],
            phone_number=data["phone_number"],
            relationship=Relationship(data.get("relationship", "other")),
            email=data.get("email"),
            is_whitelisted=data.get("is_whitelisted", False),
            is_blocked=data.get("is_blocked", False),
            allow_calls=data.get("allow_calls", True),
            allow_sms=data.get("allow_sms", True),
            allowed_hours=AllowedHours(**hours) if hours else None,
            priority=data.get("priority", "medium"),
            added_by=data.get("added_by", ""),
            added_at=from_iso(data.get("added_at")) or datetime.now(),
            last_contact=from_iso(data.get("last_contact")),
        )


@dataclass
class CallLog:
    """One screened incoming call."""

    id: str
    phone_number: str
    timestamp: datetime
    was_blocked: bool
    call_type: str = "incoming"
    contact_id: Optional[str] = None
    contact_name: Optional[str] = None
    duration: int = 0  # seconds
    block_reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "phone_number": self.phone_number,
            "timestamp": to_iso(self.timestamp),
            "was_blocked": self.was_blocked,
            "type": self.call_type,
            "contact_id": self.contact_id,
            "contact_name": self.contact_name,
            "duration": self.duration,
            "block_reason": self.block_reason,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CallLog":
        return cls(
            id=data["id"],
            phone_number=data["phone_number"],
            timestamp=from_iso(data.get("timestamp")) or datetime.now(),
            was_blocked=data.get("was_blocked", False),
            call_type=data.get("type", "incoming"),
            contact_id=data.get("contact_id"),
            contact_name=data.get("contact_name"),
            duration=data.get("duration", 0),
            block_reason=data.get("block_reason"),
        )


@dataclass
class MessageLog:
    """One screened incoming SMS."""

    id: str
    phone_number: str
    content: str
    timestamp: datetime
    was_blocked: bool
    message_type: str = "received"
    contact_id: Optional[str] = None
    contact_name: Optional[str] = None
    block_reason: Optional[str] = None
    contains_blocked_words: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "phone_number": self.phone_number,
            "content": self.content,
            "timestamp": to_iso(self.timestamp),
            "was_blocked": self.was_blocked,
            "type": self.message_type,
            "contact_id": self.contact_id,
            "contact_name": self.contact_name,
            "block_reason": self.block_reason,
            "contains_blocked_words": self.contains_blocked_words,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MessageLog":
        return cls(
            id=data["id"],
            phone_number=data["phone_number"],
            content=data.get("content", ""),
            timestamp=from_iso(data.get("timestamp")) or datetime.now(),
            was_blocked=data.get("was_blocked", False),
            message_type=data.get("type", "received"),
            contact_id=data.get("contact_id"),
            contact_name=data.get("contact_name"),
            block_reason=data.get("block_reason"),
            contains_blocked_words=data.get("contains_blocked_words", False),
        )


@dataclass
class WhitelistRequest:
    """A child's request to add a number to the whitelist."""

    id: str
    child_id: str
    requested_number: str
    requested_name: str
    reason: str
    requested_at: datetime
    status: RequestStatus = RequestStatus.PENDING
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    review_notes: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "child_id": self.child_id,
            "requested_number": self.requested_number,
            "requested_name": self.requested_name,
            "reason": self.reason,
            "requested_at": to_iso(self.requested_at),
            "status": self.status.value,
            "reviewed_by": self.reviewed_by,
            "reviewed_at": to_iso(self.reviewed_at),
            "review_notes": self.review_notes,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WhitelistRequest":
        return cls(
            id=data["id"],
            child_id=data["child_id"],
            requested_number=data["requested_number"],
            requested_name=data.get("requested_name", ""),
            reason=data.get("reason", ""),
            requested_at=from_iso(data.get("requested_at")) or datetime.now(),
            status=RequestStatus(data.get("status", "pending")),
            reviewed_by=data.get("reviewed_by"),
            reviewed_at=from_iso(data.get("reviewed_at")),
            review_notes=data.get("review_notes"),
        )


@dataclass
class FilterDecision:
    """Outcome of screening one call or message."""

    should_block: bool
    reason: Optional[str] = None
    contact: Optional[Contact] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "should_block": self.should_block,
            "reason": self.reason,
            "contact": self.contact.to_dict() if self.contact else None,
        }
