"""
Main CLI entry point for KidsFind Monitor.

Provides unified command-line interface with subcommands for serving the API,
inspecting configuration and maintenance.
"""

import logging
from typing import Optional

import click

from .. import __version__
from .config import config_commands
from .evaluate import evaluate_commands
from .helpers import load_config
from .maintenance import maintenance_commands

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.option("--debug", "-d", is_flag=True, help="Enable debug output")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, debug: bool) -> None:
    """
    KidsFind Monitor CLI

    Parental monitoring services: environment listening, screen time, call
    filtering, battery and SOS alerts.
    """
    ctx.ensure_object(dict)

    if debug:
        logging.getLogger().setLevel(logging.DEBUG)
    elif verbose:
        logging.getLogger().setLevel(logging.INFO)
    else:
        logging.getLogger().setLevel(logging.WARNING)

    ctx.obj["verbose"] = verbose
    ctx.obj["debug"] = debug


@cli.group()
def config() -> None:
    """Configuration management commands."""
    pass


@cli.group()
def evaluate() -> None:
    """Threshold evaluation commands."""
    pass


@cli.group()
def maintenance() -> None:
    """Maintenance commands."""
    pass


for command in config_commands.commands.values():
    config.add_command(command)
for command in evaluate_commands.commands.values():
    evaluate.add_command(command)
for command in maintenance_commands.commands.values():
    maintenance.add_command(command)


@cli.command()
@click.option("--host", default=None, help="Bind address (default from config)")
@click.option("--port", type=int, default=None, help="Port (default from config)")
@click.option("--config", "config_path", help="YAML configuration file")
@click.pass_context
def serve(
    ctx: click.Context,
    host: Optional[str],
    port: Optional[int],
    config_path: Optional[str],
) -> None:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    from ..web import create_app

    config = load_config(config_path)
    if ctx.obj.get("debug"):
        config.debug = True

    app = create_app(config)
    bind_host = host or config.api.host
    bind_port = port or config.api.port
    click.echo(f"Starting KidsFind Monitor on {bind_host}:{bind_port}")
    uvicorn.run(app, host=bind_host, port=bind_port, log_level="debug" if config.debug else "info")


def main() -> None:
    """Entry point for the ``kidsfind`` console script."""
    cli(obj={})


if __name__ == "__main__":
    main()
