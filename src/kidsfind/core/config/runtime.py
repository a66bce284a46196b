"""
Runtime configuration for KidsFind Monitor.

Contains the per-service settings sections and the API/monitoring sections.
"""

from dataclasses import dataclass, field
from typing import List


@dataclass
class MonitoringConfig:
    """Monitoring and metrics configuration."""

    enabled: bool = True
    prometheus_enabled: bool = True
    log_level: str = "INFO"
    structured_logging: bool = True
    json_logs: bool = True


@dataclass
class APIConfig:
    """API server configuration."""

    host: str = "127.0.0.1"
    port: int = 8000
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    prefix: str = "/api/v1"


@dataclass
class ListeningConfig:
    """Environment listening settings."""

    max_session_duration: int = 300  # seconds
    require_child_consent: bool = True
    emergency_override: bool = True
    audio_quality: str = "medium"  # low | medium | high
    auto_delete_after: int = 24  # hours
    encryption_enabled: bool = True
    allowed_reasons: List[str] = field(
        default_factory=lambda: ["emergency", "safety_check", "lost_child"]
    )
    daily_limit: int = 5
    cooldown_period: int = 30  # minutes
    consent_timeout: int = 60  # seconds
    require_premium: bool = True
    max_history: int = 100


@dataclass
class UsageConfig:
    """Screen time and app control settings."""

    daily_screen_time_limit: int = 120  # minutes
    bedtime_start: str = "21:00"
    bedtime_end: str = "07:00"
    allowed_apps: List[str] = field(default_factory=list)
    blocked_apps: List[str] = field(default_factory=list)
    education_apps_unlimited: bool = True
    weekend_extra_time: int = 60  # minutes
    break_reminders: bool = True
    break_interval: int = 30  # minutes
    warning_ratio: float = 0.8
    tick_interval: int = 60  # seconds
    max_history: int = 200


@dataclass
class CallFilterConfig:
    """Call and SMS filtering settings."""

    enable_call_filtering: bool = True
    enable_sms_filtering: bool = True
    allow_unknown_numbers: bool = False
    allow_emergency_numbers: bool = True
    block_private_numbers: bool = True
    allow_school_hours: bool = True
    school_hours_start: str = "08:00"
    school_hours_end: str = "16:00"
    quiet_hours_start: str = "21:00"
    quiet_hours_end: str = "07:00"
    allow_parent_override: bool = True
    blocked_words: List[str] = field(
        default_factory=lambda: ["spam", "promotion", "advertisement"]
    )
    alert_on_blocked_call: bool = True
    alert_on_unknown_call: bool = True
    log_all_activity: bool = True
    max_logs: int = 500


@dataclass
class BatteryConfig:
    """Battery monitoring settings."""

    low_threshold: int = 20
    critical_threshold: int = 5
    enable_low_alerts: bool = True
    enable_critical_alerts: bool = True
    enable_charging_alerts: bool = False
    enable_full_alerts: bool = False
    alert_interval: int = 30  # minutes between repeated alerts
    poll_interval: int = 120  # seconds
    max_history: int = 1000  # readings kept per child
    save_every: int = 10  # readings between history saves


@dataclass
class SOSConfig:
    """SOS alert settings."""

    follow_up_interval: int = 120  # seconds
    max_follow_ups: int = 10
    max_history: int = 100


@dataclass
class RemoteSoundConfig:
    """Remote sound settings."""

    default_sound: str = "alarm"
    default_duration: int = 30  # seconds
    min_duration: int = 5  # seconds
    max_duration: int = 300  # seconds
    volume: int = 80  # percent
    max_history: int = 100


@dataclass
class NotificationsConfig:
    """Parent notification outbox settings."""

    enabled: bool = True
    max_history: int = 500
