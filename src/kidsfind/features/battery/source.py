"""
Battery sources.

A source reads the battery of the child device. Device APIs report the level
as a 0-1 fraction; sources convert it to percent before handing a
:class:`BatteryReading` to the service.
"""

from enum import Enum
from typing import Optional, Protocol

from .types import BatteryReading


class BatteryState(Enum):
    UNKNOWN = 0
    CHARGING = 1
    UNPLUGGED = 2
    FULL = 3


class BatterySource(Protocol):
    """Protocol for reading a device battery."""

    async def is_available(self) -> bool:
        ...

    async def read(self) -> BatteryReading:
        ...


def fraction_to_percent(fraction: float) -> float:
    """Convert a 0-1 device level to a 0-100 percentage."""
    return round(max(0.0, min(1.0, fraction)) * 100, 1)


class MockBatterySource:
    """Battery source with settable values, used in tests and local runs."""

    def __init__(
        self,
        level: float = 0.75,
        state: BatteryState = BatteryState.CHARGING,
        available: bool = True,
        temperature: Optional[float] = None,
        health_pct: Optional[float] = None,
    ):
        self.level = level
        self.state = state
        self.available = available
        self.temperature = temperature
        self.health_pct = health_pct

    async def is_available(self) -> bool:
        return self.available

    async def read(self) -> BatteryReading:
        return BatteryReading(
            level=fraction_to_percent(self.level),
            is_charging=self.state in (BatteryState.CHARGING, BatteryState.FULL),
            temperature=self.temperature,
            health_pct=self.health_pct,
        )
