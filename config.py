"""
Centralized configuration for the lobby matchmaker.

Values here are process-wide defaults. A LobbyRegistryService may override
them per registry, and each registered lobby type may override them again.
"""

from __future__ import annotations

import os

from dotenv import load_dotenv

load_dotenv()


def _parse_float(env_var: str, default: float) -> float:
    raw = os.getenv(env_var)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _parse_str(env_var: str, default: str) -> str:
    raw = os.getenv(env_var)
    if raw is None or not raw.strip():
        return default
    return raw.strip()


# Name of the field read off user records to identify them
LOBBY_USER_ID_FIELD = _parse_str("LOBBY_USER_ID_FIELD", "id")

# Seconds of inactivity before a participant is evicted
LOBBY_USER_TIMEOUT_SECONDS = _parse_float("LOBBY_USER_TIMEOUT_SECONDS", 5.0)
# Seconds a lobby stays ready before it is closed
LOBBY_READY_TIMEOUT_SECONDS = _parse_float("LOBBY_READY_TIMEOUT_SECONDS", 30.0)

LOBBY_CHECK_CURRENT_USERS_INTERVAL_SECONDS = _parse_float(
    "LOBBY_CHECK_CURRENT_USERS_INTERVAL_SECONDS", 1.0
)
LOBBY_CHECK_CLOSED_STATUS_INTERVAL_SECONDS = _parse_float(
    "LOBBY_CHECK_CLOSED_STATUS_INTERVAL_SECONDS", 1.0
)
