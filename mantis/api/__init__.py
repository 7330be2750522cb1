"""
API Module - Client interface.

Exposes the engine over REST plus a WebSocket snapshot feed.
A client:
1. Creates or joins a room and fills it with players and bots
2. Starts the game
3. Follows snapshots and animates each animationHint
4. Submits Score/Steal on its turn (or a bot's staged move)

Game documents are returned in their stored, camelCase shape.
"""

from .models import (
    # Requests
    LocalSeat,
    CreateLocalGameRequest,
    # Responses
    ActionResponse,
    GameResponse,
    RoomResponse,
    ErrorResponse,
)
from .service import APIService
from .app import create_app, status_for

__all__ = [
    # Requests
    "LocalSeat",
    "CreateLocalGameRequest",
    # Responses
    "ActionResponse",
    "GameResponse",
    "RoomResponse",
    "ErrorResponse",
    # Service
    "APIService",
    "create_app",
    "status_for",
]
