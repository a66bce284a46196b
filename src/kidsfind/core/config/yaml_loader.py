"""YAML reading and writing for configuration files."""

import logging
from pathlib import Path
from typing import Any, Dict

import yaml

from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class YAMLConfigLoader:
    """Reads and writes configuration mappings as YAML."""

    @staticmethod
    def load_yaml(path: Path) -> Dict[str, Any]:
        """
        Read a configuration mapping from ``path``.

        An empty file yields ``{}``. A missing file, a parse error or a
        top-level value that is not a mapping raises ``ConfigurationError``.
        """
        if not path.is_file():
            raise ConfigurationError(f"Configuration file not found: {path}")

        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
        except yaml.YAMLError as e:
            logger.error(f"Invalid YAML in {path}: {e}")
            raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Configuration file must contain a mapping, got {type(data).__name__}"
            )
        return data

    @staticmethod
    def dump_yaml(data: Dict[str, Any]) -> str:
        # Keep section order as declared in Config.to_dict
        return yaml.safe_dump(
            data, default_flow_style=False, sort_keys=False, allow_unicode=True
        )

    @classmethod
    def save_yaml(cls, data: Dict[str, Any], path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(cls.dump_yaml(data), encoding="utf-8")
        logger.debug(f"Wrote configuration to {path}")
