"""
Application services layer.

Services run the lobby state machine and matchmaking on top of the domain
models.
"""

from services.errors import MatchmakerError, NotFoundError, RegistryIntegrityError, ValidationError
from services.interfaces import ILobby, ILobbyRegistryService
from services.lobby_registry_service import LobbyRegistry, LobbyRegistryService
from services.lobby_service import Lobby
from services.timer_service import TimerService
from services.update_channel import UpdateChannel

__all__ = [
    "ILobby",
    "ILobbyRegistryService",
    "Lobby",
    "LobbyRegistry",
    "LobbyRegistryService",
    "MatchmakerError",
    "NotFoundError",
    "RegistryIntegrityError",
    "TimerService",
    "UpdateChannel",
    "ValidationError",
]
