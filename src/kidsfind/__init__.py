"""KidsFind Monitor: parental monitoring services and their HTTP API."""

__version__ = "0.1.0"
