"""
Participant domain model: a user record tracked inside a lobby.
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class Participant:
    """
    Wraps an opaque user record with heartbeat and closure bookkeeping.

    join_time is set once. last_heartbeat only moves forward and
    closure_acknowledged only goes from False to True.
    """

    user: Any
    user_id: Any
    join_time: float
    last_heartbeat: float = field(default=0.0)
    closure_acknowledged: bool = False

    def __post_init__(self) -> None:
        if self.last_heartbeat < self.join_time:
            self.last_heartbeat = self.join_time

    def check_in(self, now: float) -> None:
        """Refresh the heartbeat. Stale timestamps are ignored."""
        if now > self.last_heartbeat:
            self.last_heartbeat = now

    def acknowledge_closure(self) -> None:
        self.closure_acknowledged = True

    def is_expired(self, now: float, timeout: float) -> bool:
        """True when the last heartbeat is older than the timeout allows."""
        return self.last_heartbeat + timeout < now

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "join_time": self.join_time,
            "last_heartbeat": self.last_heartbeat,
            "closure_acknowledged": self.closure_acknowledged,
        }
