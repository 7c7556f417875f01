"""
LobbyRegistryService: lobby type registration and matchmaking.

A registry owns the configured lobby types and every live lobby. Callers hold
an explicit reference to it; there is no module-level singleton.

Thread Safety:
    The type map and lobby list are guarded by _state_lock and readers always
    receive copies, so an append during join() never disturbs a traversal in
    progress. join() additionally holds the creation lock of the requested
    type across the whole match-or-create step so two concurrent joins cannot
    each create a lobby for the same user. Joins of different types never
    contend, and the events a join produces are dispatched only after the
    creation lock is released.
"""

import logging
import threading
import time
from collections.abc import Callable, Hashable
from typing import Any

import config
from domain.models.lobby_type import LobbyTypeConfig, field_extractor
from services import error_codes
from services.errors import NotFoundError, RegistryIntegrityError, ValidationError
from services.interfaces import ILobbyRegistryService
from services.lobby_service import Lobby, TimerFactory, extract_user_id
from services.timer_service import TimerService

logger = logging.getLogger("matchmaker.services.lobby_registry")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _validate_timing(name: str, value: Any) -> float:
    if not _is_number(value) or value <= 0:
        raise ValidationError(f"{name} must be a positive number, got {value!r}", code=error_codes.INVALID_TIMING)
    return float(value)


def _validate_field_name(value: Any) -> str:
    if not isinstance(value, str) or not value:
        raise ValidationError(
            f"user_id_field must be a non-empty string, got {value!r}",
            code=error_codes.VALIDATION_ERROR,
        )
    return value


class LobbyRegistryService(ILobbyRegistryService):
    """
    Routes joining users to lobbies of the requested type.

    Matching is first-fit: open lobbies are tried in creation order and the
    first one that accepts the user wins. When none accepts, a new lobby
    seeded with the user is created and appended.
    """

    def __init__(
        self,
        *,
        user_id_field: str | None = None,
        user_timeout: float | None = None,
        ready_timeout: float | None = None,
        check_current_users_interval: float | None = None,
        check_closed_status_interval: float | None = None,
        clock: Callable[[], float] = time.time,
        timer_factory: TimerFactory = TimerService,
    ):
        """
        Initialize the registry. Omitted settings fall back to config.py.

        Args:
            user_id_field: Field read off user records to identify them
            user_timeout: Seconds without heartbeat before eviction
            ready_timeout: Seconds a lobby stays ready before closing
            check_current_users_interval: Seconds between heartbeat sweeps
            check_closed_status_interval: Seconds between closure checks
            clock: Time source shared by every lobby
            timer_factory: Periodic task builder shared by every lobby
        """
        self._default_user_id_field = _validate_field_name(
            config.LOBBY_USER_ID_FIELD if user_id_field is None else user_id_field
        )
        self._default_timings = {
            "user_timeout": _validate_timing(
                "user_timeout",
                config.LOBBY_USER_TIMEOUT_SECONDS if user_timeout is None else user_timeout,
            ),
            "ready_timeout": _validate_timing(
                "ready_timeout",
                config.LOBBY_READY_TIMEOUT_SECONDS if ready_timeout is None else ready_timeout,
            ),
            "check_current_users_interval": _validate_timing(
                "check_current_users_interval",
                config.LOBBY_CHECK_CURRENT_USERS_INTERVAL_SECONDS
                if check_current_users_interval is None
                else check_current_users_interval,
            ),
            "check_closed_status_interval": _validate_timing(
                "check_closed_status_interval",
                config.LOBBY_CHECK_CLOSED_STATUS_INTERVAL_SECONDS
                if check_closed_status_interval is None
                else check_closed_status_interval,
            ),
        }
        self._clock = clock
        self._timer_factory = timer_factory
        self._types: dict[str, LobbyTypeConfig] = {}
        self._lobbies: list[Lobby] = []
        self._state_lock = threading.RLock()
        self._creation_locks: dict[str, threading.RLock] = {}

    def creation_lock(self, type_name: str) -> threading.RLock:
        """Lock held across the match-or-create step of join() for one type."""
        with self._state_lock:
            lock = self._creation_locks.get(type_name)
            if lock is None:
                lock = self._creation_locks[type_name] = threading.RLock()
            return lock

    # ------------------------------------------------------------------
    # Lobby types
    # ------------------------------------------------------------------

    def register_type(
        self,
        type_name: str,
        min_users: int,
        max_users: int,
        *,
        user_id_field: str | None = None,
        extract_id: Callable[[Any], Hashable] | None = None,
        user_timeout: float | None = None,
        ready_timeout: float | None = None,
        check_current_users_interval: float | None = None,
        check_closed_status_interval: float | None = None,
        closed_callback: Callable[[Lobby], None] | None = None,
    ) -> bool:
        """
        Register (or re-register) a lobby type.

        Lobbies already created keep the settings they were created with.

        Args:
            type_name: Non-empty type name
            min_users: Participant count at which a lobby becomes ready
            max_users: Capacity of each lobby
            user_id_field: Field holding the user identifier
            extract_id: Explicit identifier extractor, overrides user_id_field
            user_timeout: Seconds without heartbeat before eviction
            ready_timeout: Seconds a lobby stays ready before closing
            check_current_users_interval: Seconds between heartbeat sweeps
            check_closed_status_interval: Seconds between closure checks
            closed_callback: Called once with the lobby when it closes

        Returns:
            True if registered, False if min_users > max_users

        Raises:
            ValidationError: If any field is malformed
        """
        if not isinstance(type_name, str) or not type_name:
            raise ValidationError(
                f"Lobby type must be a non-empty string, got {type_name!r}",
                code=error_codes.INVALID_LOBBY_TYPE,
            )
        for name, value in (("min_users", min_users), ("max_users", max_users)):
            if not isinstance(value, int) or isinstance(value, bool):
                raise ValidationError(f"{name} must be an integer, got {value!r}", code=error_codes.INVALID_USER_BOUNDS)
        if min_users < 0:
            raise ValidationError(f"min_users must not be negative, got {min_users}", code=error_codes.INVALID_USER_BOUNDS)
        if max_users < 1:
            raise ValidationError(f"max_users must be at least 1, got {max_users}", code=error_codes.INVALID_USER_BOUNDS)

        field_name = _validate_field_name(self._default_user_id_field if user_id_field is None else user_id_field)
        if extract_id is not None and not callable(extract_id):
            raise ValidationError("extract_id must be callable", code=error_codes.INVALID_CALLBACK)
        if closed_callback is not None and not callable(closed_callback):
            raise ValidationError("closed_callback must be callable", code=error_codes.INVALID_CALLBACK)

        overrides = {
            "user_timeout": user_timeout,
            "ready_timeout": ready_timeout,
            "check_current_users_interval": check_current_users_interval,
            "check_closed_status_interval": check_closed_status_interval,
        }
        timings = {
            name: self._default_timings[name] if value is None else _validate_timing(name, value)
            for name, value in overrides.items()
        }

        if max_users < min_users:
            logger.warning(f"Rejected lobby type {type_name!r}: max_users {max_users} < min_users {min_users}")
            return False

        lobby_type = LobbyTypeConfig(
            type_name=type_name,
            min_users=min_users,
            max_users=max_users,
            extract_id=extract_id or field_extractor(field_name),
            user_id_field=field_name,
            closed_callback=closed_callback,
            **timings,
        )
        with self._state_lock:
            replaced = type_name in self._types
            self._types[type_name] = lobby_type
        logger.info(
            f"{'Re-registered' if replaced else 'Registered'} lobby type {type_name!r} "
            f"(users {min_users}-{max_users}, ready_timeout={lobby_type.ready_timeout}s)"
        )
        return True

    def get_type(self, type_name: str) -> LobbyTypeConfig:
        with self._state_lock:
            lobby_type = self._types.get(type_name)
        if lobby_type is None:
            raise NotFoundError(f"Lobby type {type_name!r} not found", code=error_codes.LOBBY_TYPE_NOT_FOUND)
        return lobby_type

    def get_types(self) -> list[str]:
        with self._state_lock:
            return list(self._types)

    # ------------------------------------------------------------------
    # Matchmaking
    # ------------------------------------------------------------------

    def join(self, type_name: str, user: Any) -> Lobby:
        """
        Place user in a lobby of the given type.

        Returns the open lobby already holding the user if there is one,
        otherwise the first open lobby (in creation order) that accepts the
        user, otherwise a newly created lobby seeded with the user.

        Raises:
            NotFoundError: If the type is not registered
            ValidationError: If the user record lacks its identifier
        """
        lobby_type = self.get_type(type_name)
        user_id = extract_user_id(lobby_type, user)

        # Lobbies whose queued events must go out once the lock is released
        touched: list[Lobby] = []
        try:
            with self.creation_lock(type_name):
                return self._match_or_create(lobby_type, user, user_id, touched)
        finally:
            for lobby in touched:
                lobby.dispatch_pending()

    def _match_or_create(
        self, lobby_type: LobbyTypeConfig, user: Any, user_id: Hashable, touched: list[Lobby]
    ) -> Lobby:
        type_name = lobby_type.type_name
        open_lobbies = [lobby for lobby in self._snapshot() if lobby.type == type_name and not lobby.is_closed]
        for lobby in open_lobbies:
            if lobby.has_user(user):
                return lobby
        for lobby in open_lobbies:
            # A refused join may still have evicted expired participants
            touched.append(lobby)
            if lobby.join(user, dispatch=False):
                logger.debug(f"Matched {user_id!r} into lobby {lobby.id} of type {type_name!r}")
                return lobby

        lobby = Lobby(lobby_type, clock=self._clock, timer_factory=self._timer_factory)
        touched.append(lobby)
        lobby.join(user, dispatch=False)
        with self._state_lock:
            self._lobbies.append(lobby)
        logger.info(f"No open {type_name!r} lobby accepted {user_id!r}; created lobby {lobby.id}")
        return lobby

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, lobby_id: str) -> Lobby:
        """
        Raises:
            NotFoundError: If no lobby has this id
            RegistryIntegrityError: If more than one lobby has this id
        """
        matches = [lobby for lobby in self._snapshot() if lobby.id == lobby_id]
        if len(matches) == 1:
            return matches[0]
        if matches:
            logger.error(f"{len(matches)} lobbies share id {lobby_id!r}")
            raise RegistryIntegrityError(f"{len(matches)} lobbies share id {lobby_id!r}")
        raise NotFoundError(f"Lobby {lobby_id!r} not found", code=error_codes.LOBBY_NOT_FOUND)

    def get_all(self, user: Any | None = None) -> list[Lobby]:
        lobbies = self._snapshot()
        if user is None:
            return lobbies
        return [lobby for lobby in lobbies if lobby.has_user(user)]

    def get_removable(self) -> list[Lobby]:
        """Lobbies whose participants all acknowledged closure, ready for archival."""
        return [lobby for lobby in self._snapshot() if lobby.can_remove]

    # ------------------------------------------------------------------
    # Archival hooks and teardown
    # ------------------------------------------------------------------

    def discard(self, lobby_id: str) -> bool:
        """
        Drop a removable lobby once an archival collaborator is done with it.

        Returns:
            True if removed, False if the lobby is not removable yet

        Raises:
            NotFoundError: If no lobby has this id
        """
        with self._state_lock:
            lobby = self.get(lobby_id)
            if not lobby.can_remove:
                return False
            self._lobbies = [other for other in self._lobbies if other is not lobby]
        lobby.shutdown()
        logger.info(f"Discarded archived lobby {lobby_id}")
        return True

    def shutdown(self) -> None:
        """Stop the periodic tasks of every lobby."""
        for lobby in self._snapshot():
            lobby.shutdown()

    def _snapshot(self) -> list[Lobby]:
        with self._state_lock:
            return list(self._lobbies)


# Short alias used by callers that think of this as "the registry"
LobbyRegistry = LobbyRegistryService
