"""Controllable clock injected into services under test."""

from datetime import datetime, timedelta

# Wednesday, outside school hours, quiet hours and bedtime
BASE_TIME = datetime(2025, 1, 15, 18, 0, 0)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = BASE_TIME):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> datetime:
        self.now += timedelta(**delta)
        return self.now

    def set(self, moment: datetime) -> None:
        self.now = moment
