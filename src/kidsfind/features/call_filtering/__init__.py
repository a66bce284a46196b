"""
Call filtering feature.

Screens incoming calls and SMS against contacts, emergency numbers and
time-of-day rules, and manages whitelist requests.
"""

from .manager import (
    CallFilteringService,
    create_call_filtering_service,
    is_emergency_number,
    normalize_phone_number,
)
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

__all__ = [
    "CallFilteringService",
    "create_call_filtering_service",
    "is_emergency_number",
    "normalize_phone_number",
    "AllowedHours",
    "BlockReason",
    "CallLog",
    "Contact",
    "FilterDecision",
    "MessageLog",
    "Relationship",
    "RequestStatus",
    "WhitelistRequest",
]
