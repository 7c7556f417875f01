"""
End-to-end tests with the real clock and real TimerService threads.

Timeouts are tens of milliseconds; every wait is bounded.
"""

import threading
import time

import pytest

from domain.models.lobby_state import UpdateKind
from services.lobby_registry_service import LobbyRegistryService
from tests.conftest import make_user

WAIT = 3.0


@pytest.fixture
def live_registry():
    registry = LobbyRegistryService(
        user_timeout=0.05,
        ready_timeout=0.05,
        check_current_users_interval=0.01,
        check_closed_status_interval=0.01,
    )
    yield registry
    registry.shutdown()


def wait_until(predicate, timeout=WAIT) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


def test_lobby_closes_on_its_own_after_ready_timeout(live_registry):
    closed = threading.Event()
    closed_lobbies = []

    def on_closed(lobby):
        closed_lobbies.append(lobby)
        closed.set()

    live_registry.register_type("pair", min_users=2, max_users=2, user_timeout=10.0, closed_callback=on_closed)
    alice, bob = make_user(1), make_user(2)
    lobby = live_registry.join("pair", alice)
    live_registry.join("pair", bob)

    assert closed.wait(WAIT)
    assert closed_lobbies == [lobby]
    assert lobby.is_closed is True
    assert wait_until(lambda: not lobby.closed_status_timer.running)
    assert lobby.current_users_timer.running is False


def test_silent_user_is_swept_out(live_registry):
    live_registry.register_type("squad", min_users=3, max_users=4)
    lobby = live_registry.join("squad", make_user(1))

    assert wait_until(lambda: lobby.user_count == 0)
    assert lobby.is_closed is False


def test_full_lifecycle_to_removable(live_registry):
    updates = []
    live_registry.register_type("pair", min_users=2, max_users=2, user_timeout=10.0)
    alice, bob = make_user(1), make_user(2)
    lobby = live_registry.join("pair", alice)
    lobby.subscribe(alice, lambda update: updates.append(update.kind))
    live_registry.join("pair", bob)

    assert wait_until(lambda: UpdateKind.LOBBY_CLOSED in updates)
    lobby.acknowledge_lobby_closure(alice)
    lobby.acknowledge_lobby_closure(bob)

    assert live_registry.get_removable() == [lobby]
    assert updates == [
        UpdateKind.USER_JOINED,
        UpdateKind.LOBBY_READY,
        UpdateKind.LOBBY_CLOSED,
        UpdateKind.LOBBY_READY_TO_ARCHIVE,
    ]
    assert live_registry.discard(lobby.id) is True
