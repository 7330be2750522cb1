"""
API Service - Business logic layer between transport and engine.

The service:
1. Translates transport requests to engine and lobby calls
2. Turns MantisError failures into ErrorResponse records
3. Serializes games to their persisted shape

This layer is framework-agnostic (can be used with FastAPI, Flask, etc.)
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Callable
import logging

from ..config import Settings
from ..engine_core.action import ActionRequest, ActionResult
from ..engine_core.engine import ActionEngine
from ..engine_core.errors import GameNotFound, MantisError
from ..engine_core.state import GameState
from ..session.manager import GameManager, LocalPlayerConfig
from ..store.base import GameStore
from ..store.memory import InMemoryGameStore
from .models import (
    ActionResponse,
    CreateLocalGameRequest,
    ErrorResponse,
    GameResponse,
    RoomResponse,
)

logger = logging.getLogger(__name__)


def _error(e: MantisError) -> ErrorResponse:
    return ErrorResponse(error=e.message, error_code=e.code)


def game_response(game: GameState) -> GameResponse:
    return GameResponse(room_code=game.room_code, version=game.version, game=game.to_dict())


@dataclass
class APIService:
    """
    Main API service.

    Usage:
        service = APIService()
        room = service.create_game("u1", "Alice")
        service.add_bot(room.room_code, "easy")
        service.start_game(room.room_code)
        response = service.perform_action(room.room_code, {"action": "score"}, "u1")
    """
    store: GameStore = field(default_factory=InMemoryGameStore)
    settings: Settings = field(default_factory=Settings)
    engine: ActionEngine | None = None
    manager: GameManager | None = None

    def __post_init__(self):
        if self.engine is None:
            self.engine = ActionEngine(self.store, settings=self.settings)
        if self.manager is None:
            self.manager = GameManager(self.store, self.engine)

    # =========================================================================
    # Play
    # =========================================================================

    def perform_action(
        self,
        room_code: str,
        payload: dict[str, Any],
        caller_id: str | None,
    ) -> ActionResponse | ErrorResponse:
        """
        Submit Score or Steal.

        `payload` uses the wire keys: action, targetPlayerId,
        botPlayerId, actionId. The room code comes from the path.
        """
        try:
            request = ActionRequest.from_dict({**payload, "gameId": room_code})
            result = self.engine.perform(request, caller_id=caller_id)
        except MantisError as e:
            logger.info("Rejected action on %s from %s: %s", room_code, caller_id, e)
            result = ActionResult.failure(e.message, e.code)

        if not result.success:
            return ErrorResponse(error=result.error, error_code=result.error_code)

        game = result.new_state
        return ActionResponse(
            success=True,
            animation_hint=result.animation_hint.to_dict() if result.animation_hint else None,
            status=game.status.value,
            current_player_index=game.current_player_index,
        )

    def get_game(self, room_code: str) -> GameResponse | ErrorResponse:
        game = self.store.get(room_code)
        if game is None:
            return _error(GameNotFound(f"Game {room_code} not found"))
        return game_response(game)

    def refresh_bot_turn(self, room_code: str) -> GameResponse | ErrorResponse:
        """Re-stage a bot move whose pending action lapsed."""
        try:
            game = self.engine.refresh_bot_turn(room_code)
        except MantisError as e:
            return _error(e)
        return game_response(game)

    def subscribe(self, room_code: str, callback: Callable[[GameState], None]) -> Callable[[], None]:
        return self.store.subscribe(room_code, callback)

    # =========================================================================
    # Lobby
    # =========================================================================

    def create_game(self, host_id: str, host_name: str) -> RoomResponse | ErrorResponse:
        try:
            room_code = self.manager.create_game(host_id, host_name)
        except MantisError as e:
            return _error(e)
        return RoomResponse(room_code=room_code, player_id=host_id)

    def create_local_game(self, request: CreateLocalGameRequest) -> RoomResponse | ErrorResponse:
        configs = [
            LocalPlayerConfig(name=s.name, is_bot=s.is_bot, bot_difficulty=s.bot_difficulty)
            for s in request.players
        ]
        try:
            room_code = self.manager.create_local_game(configs, request.controller_id)
        except MantisError as e:
            return _error(e)
        return RoomResponse(room_code=room_code, player_id=request.controller_id)

    def join_game(self, room_code: str, player_id: str, name: str) -> RoomResponse | ErrorResponse:
        try:
            room_code = self.manager.join_game(room_code, player_id, name)
        except MantisError as e:
            return _error(e)
        return RoomResponse(room_code=room_code, player_id=player_id)

    def add_bot(self, room_code: str, difficulty: str) -> RoomResponse | ErrorResponse:
        try:
            bot_id = self.manager.add_bot(room_code, difficulty)
        except MantisError as e:
            return _error(e)
        return RoomResponse(room_code=room_code, player_id=bot_id)

    def remove_bot(self, room_code: str, bot_id: str) -> GameResponse | ErrorResponse:
        try:
            self.manager.remove_bot(room_code, bot_id)
        except MantisError as e:
            return _error(e)
        return self.get_game(room_code)

    def change_bot_difficulty(
        self,
        room_code: str,
        bot_id: str,
        difficulty: str,
    ) -> GameResponse | ErrorResponse:
        try:
            self.manager.change_bot_difficulty(room_code, bot_id, difficulty)
        except MantisError as e:
            return _error(e)
        return self.get_game(room_code)

    def start_game(self, room_code: str) -> GameResponse | ErrorResponse:
        try:
            game = self.manager.start_game(room_code)
        except MantisError as e:
            return _error(e)
        return game_response(game)
