"""Shared fixtures for pulsewatch tests."""

import copy
from datetime import datetime, timedelta, timezone

import pytest

from pulsewatch.config import DEFAULT_CONFIG
from pulsewatch.ledger import Ledger

T0 = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced clock returning aware UTC datetimes."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now

    def at(self, seconds: float) -> datetime:
        """Jump to *seconds* after T0."""
        self.now = T0 + timedelta(seconds=seconds)
        return self.now


class RecordingDispatcher:
    """Dispatcher double that records deliveries and can be told to fail."""

    def __init__(self, succeed: bool = True):
        self.succeed = succeed
        self.delivered = []

    def deliver(self, program_id: str) -> bool:
        self.delivered.append(program_id)
        return self.succeed


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def ledger(clock):
    return Ledger(clock=clock)


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def default_cfg():
    """Return a deep copy of the default config."""
    return copy.deepcopy(DEFAULT_CONFIG)


@pytest.fixture
def email_cfg():
    """Return a config with a complete email channel."""
    cfg = copy.deepcopy(DEFAULT_CONFIG)
    cfg["alerts"]["email"] = {
        "sender": "watchdog@example.com",
        "recipient": "ops@example.com",
        "server": "smtp.example.com",
        "port": "587",
        "password": "hunter2",
        "starttls": True,
    }
    return cfg
