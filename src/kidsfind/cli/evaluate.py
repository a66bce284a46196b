"""Threshold evaluation commands, handy when tuning alert settings."""

from typing import Optional

import click

from ..core.config import BatteryConfig, UsageConfig
from ..core.thresholds import evaluate_battery, evaluate_usage


@click.group()
def evaluate_commands() -> None:
    """Threshold evaluation commands."""
    pass


@evaluate_commands.command()
@click.option("--level", type=float, required=True, help="Battery level in percent")
@click.option("--charging", is_flag=True, help="Device is plugged in")
@click.option("--low", type=float, default=BatteryConfig.low_threshold, show_default=True)
@click.option(
    "--critical", type=float, default=BatteryConfig.critical_threshold, show_default=True
)
def battery(level: float, charging: bool, low: float, critical: float) -> None:
    """Classify a battery level."""
    status = evaluate_battery(level, charging, low, critical)
    click.echo(f"battery {level:g}% ({'charging' if charging else 'unplugged'}): {status.value}")


@evaluate_commands.command()
@click.option("--minutes", type=float, required=True, help="Minutes used today")
@click.option("--limit", type=float, default=None, help="Daily limit in minutes")
@click.option(
    "--warning-ratio",
    type=float,
    default=UsageConfig.warning_ratio,
    show_default=True,
)
def usage(minutes: float, limit: Optional[float], warning_ratio: float) -> None:
    """Classify screen time against a daily limit."""
    limit_minutes = limit if limit is not None else UsageConfig.daily_screen_time_limit
    status = evaluate_usage(minutes, limit_minutes, warning_ratio)
    click.echo(f"usage {minutes:g}/{limit_minutes:g} min: {status.value}")
