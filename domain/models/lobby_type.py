"""
Lobby type configuration.
"""

from collections.abc import Callable, Hashable, Mapping
from dataclasses import dataclass
from typing import Any


def field_extractor(field_name: str) -> Callable[[Any], Hashable]:
    """
    Build an identifier extractor reading ``field_name`` off a user record.

    Mappings are read by key, any other object by attribute. A missing field
    raises KeyError or AttributeError.
    """

    def extract(user: Any) -> Hashable:
        if isinstance(user, Mapping):
            return user[field_name]
        return getattr(user, field_name)

    extract.__name__ = f"extract_{field_name}"
    return extract


@dataclass(frozen=True)
class LobbyTypeConfig:
    """Settings shared by every lobby of one type."""

    type_name: str
    min_users: int
    max_users: int
    extract_id: Callable[[Any], Hashable]
    user_id_field: str
    user_timeout: float  # seconds
    ready_timeout: float  # seconds
    check_current_users_interval: float
    check_closed_status_interval: float
    closed_callback: Callable[[Any], None] | None = None

    def accepts_count(self, count: int) -> bool:
        """Readiness predicate: count lies within [min_users, max_users]."""
        return self.min_users <= count <= self.max_users

    def to_dict(self) -> dict:
        return {
            "type_name": self.type_name,
            "min_users": self.min_users,
            "max_users": self.max_users,
            "user_id_field": self.user_id_field,
            "user_timeout": self.user_timeout,
            "ready_timeout": self.ready_timeout,
            "check_current_users_interval": self.check_current_users_interval,
            "check_closed_status_interval": self.check_closed_status_interval,
        }
