"""
Base configuration infrastructure for KidsFind Monitor.

Contains the Environment enum and shared constants.
"""

from enum import Enum

# Prefix for environment variable overrides (KF_<SECTION>__<KEY>)
ENV_PREFIX = "KF_"

# Numbers that are never screened, whatever the filter settings say
EMERGENCY_NUMBERS = ("112", "911", "15", "17", "18", "196", "115")


class Environment(Enum):
    """Environment types for configuration."""

    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TESTING = "testing"
