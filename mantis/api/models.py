"""
API Models - Framework-neutral request and response records.

The service speaks in these dataclasses; the FastAPI layer converts
them to its pydantic schemas. Game documents travel in their
persisted shape (camelCase dicts) so every client sees exactly what
the store holds.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class APIVersion(Enum):
    V1 = "v1"


# =============================================================================
# Requests
# =============================================================================

@dataclass
class LocalSeat:
    """One seat of a local game."""
    name: str
    is_bot: bool = False
    bot_difficulty: str | None = None


@dataclass
class CreateLocalGameRequest:
    controller_id: str
    players: list[LocalSeat] = field(default_factory=list)


# =============================================================================
# Responses
# =============================================================================

@dataclass
class ActionResponse:
    """
    Result of Score/Steal.

    `animation_hint` is the persisted hint dict, or None.
    """
    success: bool
    animation_hint: dict[str, Any] | None = None
    status: str | None = None
    current_player_index: int | None = None


@dataclass
class GameResponse:
    room_code: str
    version: int
    game: dict[str, Any]


@dataclass
class RoomResponse:
    """Returned by lobby calls that create a room or a seat."""
    room_code: str
    player_id: str | None = None


@dataclass
class ErrorResponse:
    """
    Error response.

    Returned for any 4xx or 5xx status.
    """
    error: str
    error_code: str
    details: dict[str, Any] | None = None
    api_version: str = APIVersion.V1.value
