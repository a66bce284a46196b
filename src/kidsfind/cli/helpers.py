"""Shared helpers for CLI commands."""

from pathlib import Path
from typing import Optional

import click

from ..core.config import Config
from ..core.exceptions import KidsFindError


def load_config(config_path: Optional[str]) -> Config:
    """Load a YAML config file, or fall back to KF_* environment variables."""
    try:
        if config_path:
            return Config.from_file(Path(config_path))
        return Config.from_env()
    except KidsFindError as e:
        click.echo(f"Error loading configuration: {e.message}", err=True)
        raise click.Abort()
