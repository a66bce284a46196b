"""
Configuration management commands for the KidsFind CLI.

Provides Click-based commands for showing, saving and validating the
monitoring configuration.
"""

import json
import logging
from pathlib import Path
from typing import Optional

import click

from ..core.config import SECTIONS, Environment, YAMLConfigLoader
from .helpers import load_config

logger = logging.getLogger(__name__)


@click.group()
def config_commands() -> None:
    """Configuration management commands."""
    pass


@config_commands.command()
@click.option(
    "--format",
    type=click.Choice(["json", "yaml", "table"]),
    default="table",
    help="Output format",
)
@click.option("--section", help="Show specific configuration section")
@click.option("--config", "config_path", help="YAML configuration file")
def show(format: str, section: Optional[str], config_path: Optional[str]) -> None:
    """Show current configuration."""
    data = load_config(config_path).to_dict()

    if section:
        if section not in SECTIONS:
            click.echo(f"Unknown section: {section}", err=True)
            raise click.Abort()
        data = data[section]

    if format == "json":
        click.echo(json.dumps(data, indent=2, default=str))
    elif format == "yaml":
        click.echo(YAMLConfigLoader.dump_yaml(data))
    else:
        click.echo("KidsFind Monitor Configuration")
        click.echo("=" * 50)
        for key, value in data.items():
            if isinstance(value, dict):
                click.echo(f"\n{key.replace('_', ' ').title()}:")
                for sub_key, sub_value in value.items():
                    click.echo(f"  {sub_key}: {sub_value}")
            else:
                click.echo(f"{key}: {value}")


@config_commands.command()
@click.argument("file_path")
@click.option("--config", "config_path", help="YAML configuration file to copy from")
def save(file_path: str, config_path: Optional[str]) -> None:
    """Save current configuration to a YAML file."""
    config = load_config(config_path)
    output_path = Path(file_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    config.save(output_path)
    click.echo(f"✓ Configuration saved to {file_path}")


@config_commands.command()
@click.option("--config", "config_path", help="YAML configuration file")
def validate(config_path: Optional[str]) -> None:
    """Validate configuration values."""
    config = load_config(config_path)
    errors = []
    warnings = []

    battery = config.battery
    if not 0 <= battery.critical_threshold < battery.low_threshold <= 100:
        errors.append("battery: expected 0 <= critical_threshold < low_threshold <= 100")
    if config.listening.max_session_duration <= 0:
        errors.append("listening: max_session_duration must be positive")
    if config.usage.daily_screen_time_limit < 0:
        errors.append("usage: daily_screen_time_limit must not be negative")
    if config.api.host == "0.0.0.0" and config.environment == Environment.PRODUCTION:  # nosec B104
        warnings.append(
            "Binding to 0.0.0.0 in production may be insecure. Consider using a reverse proxy."
        )

    if errors:
        click.echo("✗ Configuration has errors")
        for error in errors:
            click.echo(f"  - {error}")
    else:
        click.echo("✓ Configuration is valid")
    for warning in warnings:
        click.echo(f"  ! {warning}")

    if errors:
        raise click.Abort()
