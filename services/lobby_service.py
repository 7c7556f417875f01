"""
Lobby: a typed, bounded group of participants and its lifecycle.

State machine:
    FORMING <-> READY -> CLOSED -> REMOVABLE

Two periodic tasks drive the time-based transitions:
- the heartbeat sweep evicts participants whose heartbeat expired
- the closure check closes a lobby that stayed ready past its grace period

Thread Safety:
    Public operations and both timer callbacks share one reentrant lock per
    lobby. Update events and the closure callback produced during a
    transition are queued while the lock is held and dispatched after it is
    released. A second per-lobby lock serialises dispatch, so subscribers
    see one lobby's events in the order they were produced even when
    several threads mutate it.
"""

import logging
import threading
import time
import uuid
from collections import deque
from collections.abc import Callable, Hashable, Iterable
from contextlib import contextmanager
from functools import partial
from typing import Any, Generator

from domain.models.lobby_state import LobbyState, LobbyUpdate, UpdateKind
from domain.models.lobby_type import LobbyTypeConfig
from domain.models.participant import Participant
from services import error_codes
from services.errors import ValidationError
from services.interfaces import ILobby
from services.timer_service import TimerService
from services.update_channel import UpdateCallback, UpdateChannel

logger = logging.getLogger("matchmaker.services.lobby")

TimerFactory = Callable[..., TimerService]


def extract_user_id(config: LobbyTypeConfig, user: Any) -> Hashable:
    """
    Read user's identifier per the lobby type.

    Raises:
        ValidationError: If the record lacks the identifier, or the
            identifier cannot key a dict
    """
    try:
        user_id = config.extract_id(user)
    except (KeyError, AttributeError) as exc:
        raise ValidationError(
            f"User record has no {config.user_id_field!r} identifier",
            code=error_codes.USER_ID_MISSING,
        ) from exc
    try:
        hash(user_id)
    except TypeError as exc:
        raise ValidationError(
            f"User identifier {user_id!r} is not hashable",
            code=error_codes.USER_ID_UNHASHABLE,
        ) from exc
    return user_id


class Lobby(ILobby):
    """
    A single lobby instance.

    Routine outcomes (lobby full, lobby closed, user absent) are reported as
    False from the public operations. Only a user record without a usable
    identifier raises (ValidationError).
    """

    def __init__(
        self,
        config: LobbyTypeConfig,
        users: Iterable[Any] | None = None,
        *,
        clock: Callable[[], float] = time.time,
        timer_factory: TimerFactory = TimerService,
        lobby_id: str | None = None,
    ):
        """
        Args:
            config: Settings of the lobby's type
            users: Initial users, joined in order
            clock: Time source returning seconds
            timer_factory: Builds the two periodic tasks; called as
                ``timer_factory(interval, task, run_immediately=..., name=...)``
            lobby_id: Explicit identity, generated when omitted
        """
        initial_users = list(users or ())
        for user in initial_users:
            extract_user_id(config, user)

        self._config = config
        self._id = lobby_id or uuid.uuid4().hex
        self._clock = clock
        self._lock = threading.RLock()
        self._participants: dict[Hashable, Participant] = {}
        self._is_ready = False
        self._time_declared_ready: float | None = None
        self._is_closed = False
        self._time_closed: float | None = None
        self._can_remove = False
        self._outbox: deque[Callable[[], Any]] = deque()
        self._dispatch_lock = threading.RLock()
        self._updates = UpdateChannel()

        self._closed_status_timer = timer_factory(
            config.check_closed_status_interval,
            self.check_closed_status,
            run_immediately=False,
            name=f"closed-status-{self._id[:8]}",
        )
        self._current_users_timer = timer_factory(
            config.check_current_users_interval,
            self.check_current_users,
            run_immediately=True,
            name=f"current-users-{self._id[:8]}",
        )
        self._current_users_timer.start()

        logger.info(f"Created lobby {self._id} of type {config.type_name!r}")
        for user in initial_users:
            self.join(user)

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def id(self) -> str:
        return self._id

    @property
    def type(self) -> str:
        return self._config.type_name

    @property
    def config(self) -> LobbyTypeConfig:
        return self._config

    @property
    def users(self) -> list[Any]:
        """Wrapped user records in join order."""
        with self._lock:
            return [p.user for p in self._participants.values()]

    @property
    def participants(self) -> tuple[Participant, ...]:
        with self._lock:
            return tuple(self._participants.values())

    @property
    def user_count(self) -> int:
        with self._lock:
            return len(self._participants)

    @property
    def is_ready(self) -> bool:
        return self._is_ready

    @property
    def time_declared_ready(self) -> float | None:
        return self._time_declared_ready

    @property
    def is_closed(self) -> bool:
        return self._is_closed

    @property
    def time_closed(self) -> float | None:
        return self._time_closed

    @property
    def can_remove(self) -> bool:
        return self._can_remove

    @property
    def state(self) -> LobbyState:
        with self._lock:
            return LobbyState.from_flags(self._is_ready, self._is_closed, self._can_remove)

    @property
    def current_users_timer(self) -> TimerService:
        return self._current_users_timer

    @property
    def closed_status_timer(self) -> TimerService:
        return self._closed_status_timer

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, user: Any, callback: UpdateCallback) -> None:
        """Register callback for user's updates, replacing any previous one."""
        self._updates.subscribe(self._user_id(user), callback)

    def unsubscribe(self, user: Any) -> bool:
        return self._updates.unsubscribe(self._user_id(user))

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def join(self, user: Any, *, dispatch: bool = True) -> bool:
        """
        Add a user, or refresh the heartbeat of one already present.

        Expired participants are purged before the capacity check, so a slot
        held by a silent user frees up on the next join attempt.

        Args:
            user: User record
            dispatch: When False the resulting events stay queued until
                dispatch_pending() is called

        Returns:
            True if the user is a member afterwards
        """
        user_id = self._user_id(user)
        with self._transition(dispatch=dispatch):
            now = self._clock()
            existing = self._participants.get(user_id)
            if existing is not None:
                existing.check_in(now)
                return True

            self._evict_expired(now)
            if self._is_closed:
                logger.debug(f"Lobby {self._id}: rejected {user_id!r}, lobby closed")
                return False
            if len(self._participants) >= self._config.max_users:
                logger.debug(f"Lobby {self._id}: rejected {user_id!r}, lobby full")
                return False

            self._participants[user_id] = Participant(user=user, user_id=user_id, join_time=now)
            self._emit(UpdateKind.USER_JOINED, user)
            logger.debug(
                f"Lobby {self._id}: {user_id!r} joined "
                f"({len(self._participants)}/{self._config.max_users})"
            )
            if not self._is_ready:
                self._check_ready_status(now)
            return True

    def leave(self, user: Any) -> bool:
        user_id = self._user_id(user)
        with self._transition():
            if self._is_closed:
                return False
            participant = self._participants.get(user_id)
            if participant is None:
                return False
            self._remove_participant(participant, self._clock())
            logger.debug(f"Lobby {self._id}: {user_id!r} left")
            return True

    def check_in(self, user: Any) -> bool:
        user_id = self._user_id(user)
        with self._transition():
            participant = self._participants.get(user_id)
            if participant is None:
                return False
            participant.check_in(self._clock())
            return True

    def acknowledge_lobby_closure(self, user: Any) -> bool:
        user_id = self._user_id(user)
        with self._transition():
            if not self._is_closed:
                return False
            participant = self._participants.get(user_id)
            if participant is None:
                return False
            participant.acknowledge_closure()
            self._check_can_remove_status()
            return True

    def has_user(self, user: Any) -> bool:
        user_id = self._user_id(user)
        with self._lock:
            return user_id in self._participants

    def shutdown(self) -> None:
        """Stop both periodic tasks without touching lobby state."""
        self._current_users_timer.stop()
        self._closed_status_timer.stop()

    def dispatch_pending(self) -> None:
        """Deliver queued events and callbacks, oldest first."""
        with self._dispatch_lock:
            while True:
                with self._lock:
                    if not self._outbox:
                        return
                    action = self._outbox.popleft()
                action()

    # ------------------------------------------------------------------
    # Periodic tasks
    # ------------------------------------------------------------------

    def check_current_users(self) -> int:
        """
        Heartbeat sweep: evict every participant whose heartbeat expired.

        Returns:
            Number of participants evicted
        """
        with self._transition():
            return len(self._evict_expired(self._clock()))

    def check_closed_status(self) -> bool:
        """
        Closure check: close the lobby once it stayed ready past ready_timeout.

        Returns:
            True if this call closed the lobby
        """
        with self._transition():
            if not self._is_ready or self._is_closed:
                return False
            now = self._clock()
            if now <= self._time_declared_ready + self._config.ready_timeout:
                return False

            self._is_closed = True
            self._time_closed = now
            self._current_users_timer.stop()
            self._closed_status_timer.stop()
            self._emit(UpdateKind.LOBBY_CLOSED, self)
            if self._config.closed_callback is not None:
                self._outbox.append(partial(self._config.closed_callback, self))
            logger.info(
                f"Lobby {self._id} of type {self.type!r} closed with {len(self._participants)} users"
            )
            # Nobody is left to acknowledge an empty lobby
            self._check_can_remove_status()
            return True

    # ------------------------------------------------------------------
    # Internals (caller holds the lock)
    # ------------------------------------------------------------------

    @contextmanager
    def _transition(self, dispatch: bool = True) -> Generator[None, None, None]:
        with self._lock:
            yield
        if dispatch:
            self.dispatch_pending()

    def _emit(self, kind: UpdateKind, payload: Any) -> None:
        update = LobbyUpdate(kind=kind, payload=payload, lobby_id=self._id)
        self._outbox.append(partial(self._updates.publish, update))

    def _evict_expired(self, now: float) -> list[Participant]:
        # Eviction behaves like leave(): nothing leaves a closed lobby
        if self._is_closed:
            return []
        expired = [
            p for p in self._participants.values() if p.is_expired(now, self._config.user_timeout)
        ]
        for participant in expired:
            logger.warning(
                f"Lobby {self._id}: evicting {participant.user_id!r}, "
                f"no heartbeat for {now - participant.last_heartbeat:.3f}s"
            )
            self._remove_participant(participant, now)
        return expired

    def _remove_participant(self, participant: Participant, now: float) -> None:
        del self._participants[participant.user_id]
        self._emit(UpdateKind.USER_LEFT, participant.user)
        if self._is_ready:
            self._check_ready_status(now)

    def _check_ready_status(self, now: float) -> None:
        was_ready = self._is_ready
        if self._config.accepts_count(len(self._participants)):
            self._is_ready = True
            if self._time_declared_ready is None:
                self._time_declared_ready = now
        else:
            self._is_ready = False
            self._time_declared_ready = None

        if was_ready == self._is_ready:
            return
        if self._is_ready:
            self._closed_status_timer.start()
            self._emit(UpdateKind.LOBBY_READY, self)
            logger.info(f"Lobby {self._id} is ready with {len(self._participants)} users")
        else:
            self._closed_status_timer.stop()
            self._emit(UpdateKind.LOBBY_NOT_READY, self)
            logger.info(f"Lobby {self._id} is no longer ready ({len(self._participants)} users)")

    def _check_can_remove_status(self) -> None:
        if not (self._is_ready and self._is_closed) or self._can_remove:
            return
        if all(p.closure_acknowledged for p in self._participants.values()):
            self._can_remove = True
            self._emit(UpdateKind.LOBBY_READY_TO_ARCHIVE, self)
            logger.info(f"Lobby {self._id} is ready to be archived")

    def _user_id(self, user: Any) -> Hashable:
        return extract_user_id(self._config, user)

    def to_dict(self) -> dict:
        with self._lock:
            return {
                "id": self._id,
                "type": self.type,
                "state": LobbyState.from_flags(self._is_ready, self._is_closed, self._can_remove).value,
                "participants": [p.to_dict() for p in self._participants.values()],
                "is_ready": self._is_ready,
                "time_declared_ready": self._time_declared_ready,
                "is_closed": self._is_closed,
                "time_closed": self._time_closed,
                "can_remove": self._can_remove,
            }

    def __repr__(self) -> str:
        return f"Lobby(id={self._id!r}, type={self.type!r}, users={self.user_count}, state={self.state.value})"
