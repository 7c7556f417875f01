"""
UpdateChannel: per-lobby publish/subscribe registry.

Subscribers are keyed by participant identity. A key holds at most one
callback; subscribing again under the same key replaces the previous
callback. Updates published while a key has no callback are dropped for
that key, with no queueing or replay.
"""

import logging
import threading
from collections.abc import Callable, Hashable

from domain.models.lobby_state import LobbyUpdate
from services import error_codes
from services.errors import ValidationError

logger = logging.getLogger("matchmaker.services.update_channel")

UpdateCallback = Callable[[LobbyUpdate], None]


class UpdateChannel:
    def __init__(self):
        self._subscribers: dict[Hashable, UpdateCallback] = {}
        self._lock = threading.Lock()

    def subscribe(self, key: Hashable, callback: UpdateCallback) -> None:
        if not callable(callback):
            raise ValidationError("Update callback must be callable", code=error_codes.INVALID_CALLBACK)
        with self._lock:
            replaced = key in self._subscribers
            self._subscribers[key] = callback
        if replaced:
            logger.debug(f"Replaced update subscriber for {key!r}")

    def unsubscribe(self, key: Hashable) -> bool:
        """Remove the callback for key. Returns False if none was registered."""
        with self._lock:
            return self._subscribers.pop(key, None) is not None

    def has_subscriber(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._subscribers

    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def publish(self, update: LobbyUpdate) -> int:
        """
        Deliver update once to every current subscriber.

        A callback that raises is logged and skipped; delivery to the others
        continues.

        Returns:
            Number of callbacks that completed without raising
        """
        with self._lock:
            targets = list(self._subscribers.items())

        delivered = 0
        for key, callback in targets:
            try:
                callback(update)
                delivered += 1
            except Exception:
                logger.exception(
                    f"Subscriber {key!r} failed handling {update.kind.value} for lobby {update.lobby_id}"
                )
        return delivered
