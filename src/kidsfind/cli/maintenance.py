"""Maintenance commands operating on the persisted service data."""

import asyncio
from pathlib import Path
from typing import Dict, Optional

import click

from ..core.config import Config
from ..services.container import create_service_container
from .helpers import load_config


@click.group()
def maintenance_commands() -> None:
    """Maintenance commands."""
    pass


async def _run_cleanup(config: Config) -> Dict[str, int]:
    container = create_service_container(config)
    await container.initialize()
    try:
        return await container.run_maintenance()
    finally:
        await container.shutdown()


@maintenance_commands.command()
@click.option("--data-dir", type=click.Path(file_okay=False), help="Service data root")
@click.option("--config", "config_path", help="YAML configuration file")
def cleanup(data_dir: Optional[str], config_path: Optional[str]) -> None:
    """Delete listening sessions (and their audio) past the retention period."""
    config = load_config(config_path)
    if data_dir:
        config.data_dir = Path(data_dir)

    results = asyncio.run(_run_cleanup(config))
    click.echo(f"✓ Removed {results['expired_sessions']} expired listening sessions")
