"""
Configuration management for KidsFind Monitor.

Provides a clean public API for all configuration components.
"""

# Base infrastructure
from .base import EMERGENCY_NUMBERS, ENV_PREFIX, Environment

# Main configuration class
from .main import SECTIONS, Config

# Runtime configuration
from .runtime import (
    APIConfig,
    BatteryConfig,
    CallFilterConfig,
    ListeningConfig,
    MonitoringConfig,
    NotificationsConfig,
    RemoteSoundConfig,
    SOSConfig,
    UsageConfig,
)
from .yaml_loader import YAMLConfigLoader

# Public API
__all__ = [
    # Main class
    "Config",
    "SECTIONS",
    # Base
    "Environment",
    "ENV_PREFIX",
    "EMERGENCY_NUMBERS",
    # Runtime
    "APIConfig",
    "BatteryConfig",
    "CallFilterConfig",
    "ListeningConfig",
    "MonitoringConfig",
    "NotificationsConfig",
    "RemoteSoundConfig",
    "SOSConfig",
    "UsageConfig",
    # Loading
    "YAMLConfigLoader",
]
