"""Pytest configuration and shared fixtures."""

from datetime import datetime, timedelta
from pathlib import Path

import logfire
import pytest

from slimetodo.services.storage_service import StorageService
from slimetodo.services.task_service import TaskService
from slimetodo.services.undo_service import UndoService


# Wednesday
TEST_NOW = datetime(2024, 1, 10, 9, 0)


def pytest_configure(config: pytest.Config) -> None:
    """Keep Logfire fully local during tests."""
    logfire.configure(send_to_logfire=False, console=False)


class FakeClock:
    """Settable time source shared by every service under test."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> datetime:
        self.now += timedelta(**delta)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    """Clock frozen at 2024-01-10 09:00 until a test advances it."""
    return FakeClock(TEST_NOW)


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    """Empty application data directory."""
    return tmp_path / "data"


@pytest.fixture
def storage(data_dir: Path, clock: FakeClock) -> StorageService:
    """Store rooted in a temporary directory."""
    return StorageService(data_dir, backup_retention_days=7, clock=clock)


@pytest.fixture
def task_service(storage: StorageService, clock: FakeClock) -> TaskService:
    """Task engine over an empty store."""
    return TaskService(storage, clock=clock)


@pytest.fixture
def undo_service(task_service: TaskService, clock: FakeClock) -> UndoService:
    """Undo log with the default depth of 50."""
    return UndoService(task_service, clock=clock)
