"""
Pytest fixtures for tests.

Timer-driven behavior is tested deterministically: lobbies are built with a
FakeClock and a ManualTimerFactory, so tests advance time explicitly and
invoke the periodic tasks themselves. Only tests/test_timer_service.py and
the end-to-end module use real background threads.
"""

import pytest

from domain.models.lobby_type import LobbyTypeConfig, field_extractor
from services.lobby_registry_service import LobbyRegistryService
from services.lobby_service import Lobby


# =============================================================================
# CENTRALIZED CONSTANTS
# =============================================================================

START_TIME = 1_000.0
"""Fake clock reading at the start of every test."""

TEST_LOBBY_TYPE = "duel"


class FakeClock:
    """Callable time source that only moves when told to."""

    def __init__(self, start: float = START_TIME):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


class ManualTimer:
    """Stand-in for TimerService that records start/stop and fires on demand."""

    def __init__(self, interval, task, run_immediately=False, name=None):
        self.interval = interval
        self.task = task
        self.run_immediately = run_immediately
        self.name = name
        self.running = False
        self.start_count = 0
        self.stop_count = 0

    def start(self):
        if self.running:
            return
        self.running = True
        self.start_count += 1

    def stop(self, wait=False):
        if not self.running:
            return
        self.running = False
        self.stop_count += 1

    def fire(self):
        return self.task()


class ManualTimerFactory:
    """Timer factory that keeps every ManualTimer it builds."""

    def __init__(self):
        self.created: list[ManualTimer] = []

    def __call__(self, interval, task, run_immediately=False, name=None):
        timer = ManualTimer(interval, task, run_immediately=run_immediately, name=name)
        self.created.append(timer)
        return timer


def make_user(user_id, **extra) -> dict:
    return {"id": user_id, "name": f"user{user_id}", **extra}


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def timer_factory():
    return ManualTimerFactory()


@pytest.fixture
def users():
    """Ten distinct user records, ids 1..10."""
    return [make_user(i) for i in range(1, 11)]


@pytest.fixture
def lobby_type_factory():
    """Build a LobbyTypeConfig with test-friendly defaults."""

    def factory(**overrides) -> LobbyTypeConfig:
        settings = {
            "type_name": TEST_LOBBY_TYPE,
            "min_users": 2,
            "max_users": 4,
            "extract_id": field_extractor("id"),
            "user_id_field": "id",
            "user_timeout": 5.0,
            "ready_timeout": 30.0,
            "check_current_users_interval": 1.0,
            "check_closed_status_interval": 1.0,
            "closed_callback": None,
        }
        settings.update(overrides)
        return LobbyTypeConfig(**settings)

    return factory


@pytest.fixture
def lobby_factory(lobby_type_factory, clock, timer_factory):
    """Build a Lobby wired to the fake clock and manual timers."""
    created: list[Lobby] = []

    def factory(initial_users=None, **type_overrides) -> Lobby:
        lobby = Lobby(
            lobby_type_factory(**type_overrides),
            initial_users,
            clock=clock,
            timer_factory=timer_factory,
        )
        created.append(lobby)
        return lobby

    yield factory
    for lobby in created:
        lobby.shutdown()


@pytest.fixture
def registry(clock, timer_factory):
    """Registry on the fake clock with manual timers."""
    service = LobbyRegistryService(
        user_timeout=5.0,
        ready_timeout=30.0,
        check_current_users_interval=1.0,
        check_closed_status_interval=1.0,
        clock=clock,
        timer_factory=timer_factory,
    )
    yield service
    service.shutdown()
