"""
Testing utilities for KidsFind Monitor.

Provides a controllable clock and fake device sources for tests.
"""

from .clock import BASE_TIME, FakeClock
from .devices import FailingRecorder, FailingSoundPlayer, FlakyLocationProvider

__all__ = [
    "BASE_TIME",
    "FakeClock",
    "FailingRecorder",
    "FailingSoundPlayer",
    "FlakyLocationProvider",
]
