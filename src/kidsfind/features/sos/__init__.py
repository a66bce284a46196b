"""
SOS alerts feature.

Emergency alerts from the child device with parent notification and
periodic follow-ups until the alert is resolved or cancelled.
"""

from .manager import SOSService, create_sos_service
from .types import (
    EmergencyContactsProvider,
    Location,
    LocationProvider,
    SOSAlert,
    SOSSession,
    SOSStatus,
    StaticLocationProvider,
)

__all__ = [
    "SOSService",
    "create_sos_service",
    "EmergencyContactsProvider",
    "Location",
    "LocationProvider",
    "SOSAlert",
    "SOSSession",
    "SOSStatus",
    "StaticLocationProvider",
]
