"""
Pytest configuration and fixtures for KidsFind Monitor.

Services run in memory (no storage path) unless a test asks for a
directory, and share a controllable clock so time-of-day rules are
deterministic.
"""

import shutil
import tempfile
from pathlib import Path
from typing import Generator

import pytest

from kidsfind.core.alerts import AlertLog
from kidsfind.core.config import Config, Environment
from kidsfind.core.notifications import NotificationCenter
from testing_utilities import FakeClock


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    path = Path(tempfile.mkdtemp())
    yield path
    shutil.rmtree(path, ignore_errors=True)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def test_config(temp_dir: Path) -> Config:
    cfg = Config(environment=Environment.TESTING)
    cfg.data_dir = temp_dir / "data"
    cfg.monitoring.json_logs = False
    return cfg


@pytest.fixture
def notifications(clock: FakeClock) -> NotificationCenter:
    return NotificationCenter(clock=clock)


@pytest.fixture
def alerts(clock: FakeClock) -> AlertLog:
    return AlertLog(clock=clock)
