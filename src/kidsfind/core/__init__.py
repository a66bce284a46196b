"""Core building blocks shared by the monitoring services."""
