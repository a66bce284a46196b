"""
Features package for the monitoring services.

Each feature module owns one parental monitoring capability: environment
listening, usage control, call filtering, battery monitoring, SOS alerts and
remote sounds.
"""

from .battery import BatteryMonitoringService, create_battery_monitoring_service
from .call_filtering import CallFilteringService, create_call_filtering_service
from .environment_listening import (
    EnvironmentListeningService,
    create_environment_listening_service,
)
from .remote_sound import RemoteSoundService, create_remote_sound_service
from .sos import SOSService, create_sos_service
from .usage_control import UsageControlService, create_usage_control_service

__all__ = [
    "EnvironmentListeningService",
    "create_environment_listening_service",
    "UsageControlService",
    "create_usage_control_service",
    "CallFilteringService",
    "create_call_filtering_service",
    "BatteryMonitoringService",
    "create_battery_monitoring_service",
    "SOSService",
    "create_sos_service",
    "RemoteSoundService",
    "create_remote_sound_service",
]
