"""
Domain models - pure data structures representing lobby entities.

The Lobby state machine itself lives in services/lobby_service.py because it
owns timers and locks.
"""

from domain.models.lobby_state import LobbyState, LobbyUpdate, UpdateKind
from domain.models.lobby_type import LobbyTypeConfig, field_extractor
from domain.models.participant import Participant

__all__ = ["LobbyState", "LobbyTypeConfig", "LobbyUpdate", "Participant", "UpdateKind", "field_extractor"]
