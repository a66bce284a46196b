"""
Main configuration class for KidsFind Monitor.

Contains the main Config class that orchestrates all configuration components.
"""

import logging
import os
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Type, TypeVar, Union

from ..exceptions import ConfigurationError
from .base import ENV_PREFIX, Environment
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

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Section name -> dataclass, in the order they are serialized
SECTIONS: Dict[str, Type[Any]] = {
    "api": APIConfig,
    "monitoring": MonitoringConfig,
    "listening": ListeningConfig,
    "usage": UsageConfig,
    "call_filtering": CallFilterConfig,
    "battery": BatteryConfig,
    "sos": SOSConfig,
    "remote_sound": RemoteSoundConfig,
    "notifications": NotificationsConfig,
}

# Timer values used by the testing environment
_TESTING_TIMERS = {
    "listening": {"consent_timeout": 1},
    "usage": {"tick_interval": 1},
    "battery": {"poll_interval": 1},
    "sos": {"follow_up_interval": 1},
}


def _build_section(cls: Type[T], data: Dict[str, Any], name: str) -> T:
    """Instantiate a section dataclass, rejecting unknown keys."""
    known = {f.name for f in fields(cls)}
    unknown = set(data) - known
    if unknown:
        raise ConfigurationError(
            f"Unknown keys in '{name}' section: {', '.join(sorted(unknown))}"
        )
    return cls(**data)


@dataclass
class Config:
    """Main configuration class for KidsFind Monitor."""

    # Environment
    environment: Environment = Environment.DEVELOPMENT
    debug: bool = False

    # API and monitoring
    api: APIConfig = field(default_factory=APIConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)

    # Feature services
    listening: ListeningConfig = field(default_factory=ListeningConfig)
    usage: UsageConfig = field(default_factory=UsageConfig)
    call_filtering: CallFilterConfig = field(default_factory=CallFilterConfig)
    battery: BatteryConfig = field(default_factory=BatteryConfig)
    sos: SOSConfig = field(default_factory=SOSConfig)
    remote_sound: RemoteSoundConfig = field(default_factory=RemoteSoundConfig)
    notifications: NotificationsConfig = field(default_factory=NotificationsConfig)

    # Service storage root, one subdirectory per service
    data_dir: Path = field(default_factory=lambda: Path.cwd() / "data")

    def __post_init__(self) -> None:
        """Apply environment-specific defaults."""
        self.data_dir = Path(self.data_dir)

        if self.environment == Environment.PRODUCTION:
            self.debug = False
            self.monitoring.enabled = True
            self.monitoring.json_logs = True
        elif self.environment == Environment.TESTING:
            self.debug = True
            self.monitoring.json_logs = False
            self._shrink_timers()

    def _shrink_timers(self) -> None:
        """Shorten timers that are still at their default value."""
        for section_name, overrides in _TESTING_TIMERS.items():
            section = getattr(self, section_name)
            defaults = SECTIONS[section_name]()
            for key, value in overrides.items():
                if getattr(section, key) == getattr(defaults, key):
                    setattr(section, key, value)

    def service_dir(self, service: str) -> Path:
        """Storage directory for one service."""
        return self.data_dir / service

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        """Build configuration from a plain dictionary."""
        try:
            environment = Environment(data.get("environment", "development"))
        except ValueError as e:
            raise ConfigurationError(f"Invalid environment: {e}") from e

        sections = {
            name: _build_section(section_cls, data.get(name) or {}, name)
            for name, section_cls in SECTIONS.items()
        }

        return cls(
            environment=environment,
            debug=bool(data.get("debug", False)),
            data_dir=Path(data.get("data_dir", Path.cwd() / "data")),
            **sections,
        )

    @classmethod
    def from_file(cls, config_path: Union[str, Path]) -> "Config":
        """Load configuration from YAML file."""
        config_path = Path(config_path)
        config = cls.from_dict(YAMLConfigLoader.load_yaml(config_path))
        logger.info(f"Loaded configuration from {config_path}")
        return config

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from KF_* environment variables.

        Section keys use ``KF_<SECTION>__<KEY>``, e.g. ``KF_BATTERY__LOW_THRESHOLD``.
        Lists are comma separated.
        """

        def getenv_bool(name: str, default: bool) -> bool:
            v = os.getenv(name)
            return default if v is None else v.lower() in {"1", "true", "yes", "on"}

        def getenv_str(name: str, default: str) -> str:
            return os.getenv(name, default)

        def coerce(name: str, raw: str, default: Any) -> Any:
            try:
                if isinstance(default, bool):
                    return getenv_bool(name, default)
                if isinstance(default, int):
                    return int(raw)
                if isinstance(default, float):
                    return float(raw)
                if isinstance(default, list):
                    return [item.strip() for item in raw.split(",") if item.strip()]
            except ValueError as e:
                raise ConfigurationError(f"Invalid value for {name}: {raw!r}") from e
            return raw

        def section_from_env(section_name: str, section_cls: Type[T]) -> T:
            section = section_cls()
            changes = {}
            for f in fields(section_cls):
                name = f"{ENV_PREFIX}{section_name.upper()}__{f.name.upper()}"
                raw = os.getenv(name)
                if raw is not None:
                    changes[f.name] = coerce(name, raw, getattr(section, f.name))
            return replace(section, **changes) if changes else section

        try:
            env = Environment(getenv_str(f"{ENV_PREFIX}ENV", "development"))
        except ValueError as e:
            raise ConfigurationError(f"Invalid environment: {e}") from e

        sections = {
            name: section_from_env(name, section_cls)
            for name, section_cls in SECTIONS.items()
        }

        return cls(
            environment=env,
            debug=getenv_bool(f"{ENV_PREFIX}DEBUG", False),
            data_dir=Path(
                getenv_str(f"{ENV_PREFIX}DATA_DIR", str(Path.cwd() / "data"))
            ),
            **sections,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        data: Dict[str, Any] = {
            "environment": self.environment.value,
            "debug": self.debug,
        }
        for name in SECTIONS:
            data[name] = asdict(getattr(self, name))
        data["data_dir"] = str(self.data_dir)
        return data

    def save(self, config_path: Union[str, Path]) -> None:
        """Save configuration to YAML file."""
        YAMLConfigLoader.save_yaml(self.to_dict(), Path(config_path))
