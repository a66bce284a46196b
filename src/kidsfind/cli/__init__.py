"""Command-line interface for KidsFind Monitor."""

from .main import cli

__all__ = ["cli"]
