"""
Standard error codes for the matchmaker service layer.

Each MatchmakerError carries one of these so callers can branch on the
condition without parsing message text.

Usage:
    from services import error_codes
    from services.errors import NotFoundError

    try:
        lobby = registry.get(lobby_id)
    except NotFoundError as exc:
        if exc.error_code == error_codes.LOBBY_NOT_FOUND:
            ...
"""

# General errors
VALIDATION_ERROR = "validation_error"
NOT_FOUND = "not_found"

# Lobby type errors
INVALID_LOBBY_TYPE = "invalid_lobby_type"
INVALID_USER_BOUNDS = "invalid_user_bounds"
INVALID_TIMING = "invalid_timing"
INVALID_CALLBACK = "invalid_callback"
LOBBY_TYPE_NOT_FOUND = "lobby_type_not_found"

# Lobby errors
LOBBY_NOT_FOUND = "lobby_not_found"
DUPLICATE_LOBBY_ID = "duplicate_lobby_id"

# User record errors
USER_ID_MISSING = "user_id_missing"
USER_ID_UNHASHABLE = "user_id_unhashable"
