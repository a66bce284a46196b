"""FastAPI dependencies resolving services from the application container."""

from fastapi import Request

from ..features.battery import BatteryMonitoringService
from ..features.call_filtering import CallFilteringService
from ..features.environment_listening import EnvironmentListeningService
from ..features.remote_sound import RemoteSoundService
from ..features.sos import SOSService
from ..features.usage_control import UsageControlService
from ..services.container import ServiceContainer


def get_container(request: Request) -> ServiceContainer:
    container: ServiceContainer = request.app.state.container
    return container


def get_listening_service(request: Request) -> EnvironmentListeningService:
    return get_container(request).listening


def get_usage_service(request: Request) -> UsageControlService:
    return get_container(request).usage


def get_call_filtering_service(request: Request) -> CallFilteringService:
    return get_container(request).call_filtering


def get_battery_service(request: Request) -> BatteryMonitoringService:
    return get_container(request).battery


def get_sos_service(request: Request) -> SOSService:
    return get_container(request).sos


def get_remote_sound_service(request: Request) -> RemoteSoundService:
    return get_container(request).remote_sound
