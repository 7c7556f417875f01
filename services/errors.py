"""
Exception taxonomy for the matchmaker.

Routine matchmaking outcomes (lobby full, lobby closed, user absent) are
reported as False return values, never as exceptions. These types cover
caller mistakes and invariant violations only.
"""

from services import error_codes


class MatchmakerError(Exception):
    """Base class for all matchmaker errors."""

    default_code = error_codes.VALIDATION_ERROR

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.error_code = code or self.default_code


class ValidationError(MatchmakerError, ValueError):
    """Bad lobby type registration or malformed user record."""

    default_code = error_codes.VALIDATION_ERROR


class NotFoundError(MatchmakerError, LookupError):
    """Unknown lobby type or lobby id."""

    default_code = error_codes.NOT_FOUND


class RegistryIntegrityError(MatchmakerError, RuntimeError):
    """Registry state breaks an invariant, e.g. two lobbies share an id."""

    default_code = error_codes.DUPLICATE_LOBBY_ID
