"""HTTP API for KidsFind Monitor."""

from .app import create_app

__all__ = ["create_app"]
