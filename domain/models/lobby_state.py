"""
Lobby lifecycle states and update events.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class LobbyState(Enum):
    """Lifecycle of a lobby. Only FORMING and READY may alternate."""

    FORMING = "forming"
    READY = "ready"
    CLOSED = "closed"
    REMOVABLE = "removable"

    @classmethod
    def from_flags(cls, is_ready: bool, is_closed: bool, can_remove: bool) -> "LobbyState":
        if can_remove:
            return cls.REMOVABLE
        if is_closed:
            return cls.CLOSED
        if is_ready:
            return cls.READY
        return cls.FORMING


class UpdateKind(Enum):
    """Kinds of events published to lobby subscribers."""

    USER_JOINED = "UserJoined"
    USER_LEFT = "UserLeft"
    LOBBY_READY = "LobbyReady"
    LOBBY_NOT_READY = "LobbyNotReady"
    LOBBY_CLOSED = "LobbyClosed"
    LOBBY_READY_TO_ARCHIVE = "LobbyReadyToArchive"

    @property
    def description(self) -> str:
        return _DESCRIPTIONS[self]


_DESCRIPTIONS = {
    UpdateKind.USER_JOINED: "User has joined lobby.",
    UpdateKind.USER_LEFT: "User has left lobby.",
    UpdateKind.LOBBY_READY: "Lobby is ready.",
    UpdateKind.LOBBY_NOT_READY: "Lobby is waiting for more users.",
    UpdateKind.LOBBY_CLOSED: "Lobby is closed.",
    UpdateKind.LOBBY_READY_TO_ARCHIVE: "Lobby is ready to be archived.",
}


@dataclass(frozen=True)
class LobbyUpdate:
    """
    A single change notification.

    payload is the affected user record for USER_JOINED and USER_LEFT, and
    the lobby itself for every other kind.
    """

    kind: UpdateKind
    payload: Any
    lobby_id: str

    @property
    def message(self) -> str:
        return self.kind.description
