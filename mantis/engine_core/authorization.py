"""
Authorization - Who may act for the current turn.

One policy is resolved per call:
- BotExecutionPolicy: a client presents a bot's pending action
- LocalControllerPolicy: one device drives every human seat
- NetworkPolicy: each remote identity plays its own seat

Each policy returns the index of the acting player or raises.
Pending-action matching for bots lives in bots.pending.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass

from .action import ActionRequest
from .errors import AuthenticationRequired, TurnViolation
from .state import GameState


LOCAL_PLAYER_MARKER = "-local-"


def local_player_id(controller_id: str, seat: int) -> str:
    """Seat ids for local games are derived from the controller's identity."""
    return f"{controller_id}{LOCAL_PLAYER_MARKER}{seat}"


class AuthorizationPolicy(ABC):
    """Resolves the acting player index for a request."""

    @abstractmethod
    def resolve_actor(self, game: GameState, caller_id: str | None) -> int:
        pass

    def get_name(self) -> str:
        return self.__class__.__name__


@dataclass
class BotExecutionPolicy(AuthorizationPolicy):
    """The named bot must be seated and on turn."""
    bot_player_id: str

    def resolve_actor(self, game: GameState, caller_id: str | None) -> int:
        index = game.player_index(self.bot_player_id)
        if index < 0:
            raise TurnViolation("Bot not in game")
        if not game.players[index].is_bot:
            raise TurnViolation("Player is not a bot")
        if game.current_player_index != index:
            raise TurnViolation("Not bot's turn")
        return index


class LocalControllerPolicy(AuthorizationPolicy):
    """
    Local mode: the controller owns every `<caller>-local-<n>` seat
    and acts for whoever is on turn.
    """

    def resolve_actor(self, game: GameState, caller_id: str | None) -> int:
        if not caller_id:
            raise AuthenticationRequired("Unauthenticated - cannot perform action in local mode")
        prefix = f"{caller_id}{LOCAL_PLAYER_MARKER}"
        if not any(p.player_id.startswith(prefix) for p in game.players):
            raise TurnViolation("Not authorized to perform actions in this local game")
        if game.current_player.is_bot:
            raise TurnViolation("Bots act through their pending action")
        return game.current_player_index


class NetworkPolicy(AuthorizationPolicy):
    """Remote play: the caller must hold the current seat."""

    def resolve_actor(self, game: GameState, caller_id: str | None) -> int:
        if not caller_id:
            raise AuthenticationRequired("User must be authenticated")
        index = game.player_index(caller_id)
        if index < 0:
            raise TurnViolation("Player not in game")
        if game.players[index].is_bot:
            raise TurnViolation("Bots act through their pending action")
        if game.current_player_index != index:
            raise TurnViolation("Not your turn")
        return index


def resolve_policy(game: GameState, request: ActionRequest) -> AuthorizationPolicy:
    """Pick the policy once, up front."""
    if request.is_bot:
        return BotExecutionPolicy(bot_player_id=request.bot_player_id)
    if game.is_local_mode:
        return LocalControllerPolicy()
    return NetworkPolicy()
