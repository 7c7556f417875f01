"""
Service layer interfaces (ABCs).

These abstract base classes define the contracts consumed by the external
transport/session layer. Implementations inherit from them so tests can mock
against the same surface.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from domain.models.lobby_state import LobbyUpdate
    from domain.models.lobby_type import LobbyTypeConfig


class ILobby(ABC):
    """Interface for a single lobby's participant operations."""

    @abstractmethod
    def join(self, user: Any) -> bool:
        """Add user or refresh their heartbeat. False if closed or full."""
        ...

    @abstractmethod
    def leave(self, user: Any) -> bool:
        """Remove user. False if closed or user absent."""
        ...

    @abstractmethod
    def check_in(self, user: Any) -> bool:
        """Refresh user's heartbeat. False if user absent."""
        ...

    @abstractmethod
    def acknowledge_lobby_closure(self, user: Any) -> bool:
        """Record that user saw the closure. False if not closed or user absent."""
        ...

    @abstractmethod
    def has_user(self, user: Any) -> bool:
        ...

    @abstractmethod
    def subscribe(self, user: Any, callback: Callable[["LobbyUpdate"], None]) -> None:
        """Register user's update callback. A second subscribe replaces the first."""
        ...

    @abstractmethod
    def unsubscribe(self, user: Any) -> bool:
        ...


class ILobbyRegistryService(ABC):
    """Interface for lobby type registration and matchmaking."""

    @abstractmethod
    def register_type(self, type_name: str, min_users: int, max_users: int, **overrides: Any) -> bool:
        """Register a lobby type. False without registering if min_users > max_users."""
        ...

    @abstractmethod
    def get_type(self, type_name: str) -> "LobbyTypeConfig":
        ...

    @abstractmethod
    def join(self, type_name: str, user: Any) -> ILobby:
        """Place user in an open lobby of the type, creating one if needed."""
        ...

    @abstractmethod
    def get(self, lobby_id: str) -> ILobby:
        ...

    @abstractmethod
    def get_all(self, user: Any | None = None) -> list[ILobby]:
        """All lobbies in creation order, optionally only those holding user."""
        ...
