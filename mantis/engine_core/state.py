"""
Game State - The shared game document and its parts.

Design principles:
- Immutable-friendly: the reducer builds new states, never edits in place
- Serializable: to_dict()/from_dict() produce the persisted record shape
  (camelCase keys, keyed by room code in the store)
- Hints and audit records are descriptive; rules never read them
"""

from __future__ import annotations
from dataclasses import dataclass, field
from copy import deepcopy
from enum import Enum
from typing import Any

from .cards import Card


class GameStatus(str, Enum):
    """Lifecycle. Only ever moves forward."""
    WAITING = "waiting"
    PLAYING = "playing"
    FINISHED = "finished"


class HintSequence(str, Enum):
    """Which presentation sequence a client should play."""
    SCORE_SUCCESS = "SCORE_SUCCESS"
    SCORE_FAIL = "SCORE_FAIL"
    STEAL_SUCCESS = "STEAL_SUCCESS"
    STEAL_FAIL = "STEAL_FAIL"

    @property
    def is_success(self) -> bool:
        return self in (HintSequence.SCORE_SUCCESS, HintSequence.STEAL_SUCCESS)

    @property
    def is_steal(self) -> bool:
        return self in (HintSequence.STEAL_SUCCESS, HintSequence.STEAL_FAIL)


@dataclass(frozen=True)
class AnimationHint:
    """
    What just happened, for presentation only.

    `timestamp` is strictly increasing per game so clients can
    deduplicate re-delivered snapshots.
    """
    sequence: HintSequence
    player_id: str
    affected_card_ids: tuple[str, ...]
    color: str
    timestamp: int
    target_player_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = {
            "sequence": self.sequence.value,
            "playerId": self.player_id,
            "affectedCardIds": list(self.affected_card_ids),
            "color": self.color,
            "timestamp": self.timestamp,
        }
        if self.target_player_id is not None:
            data["targetPlayerId"] = self.target_player_id
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AnimationHint:
        return cls(
            sequence=HintSequence(data["sequence"]),
            player_id=data["playerId"],
            affected_card_ids=tuple(data.get("affectedCardIds", [])),
            color=data["color"],
            timestamp=data["timestamp"],
            target_player_id=data.get("targetPlayerId"),
        )


@dataclass(frozen=True)
class LastAction:
    """Human-readable audit of the most recent action."""
    player: str
    action: str
    result: str
    result_symbol: str
    color: str
    timestamp: str
    target: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = {
            "player": self.player,
            "action": self.action,
            "result": self.result,
            "resultSymbol": self.result_symbol,
            "color": self.color,
            "timestamp": self.timestamp,
        }
        if self.target is not None:
            data["target"] = self.target
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LastAction:
        return cls(
            player=data["player"],
            action=data["action"],
            result=data["result"],
            result_symbol=data["resultSymbol"],
            color=data["color"],
            timestamp=data["timestamp"],
            target=data.get("target"),
        )


@dataclass(frozen=True)
class BotPendingAction:
    """
    A bot decision computed at commit time, executed later by a client.

    Times are epoch milliseconds.
    """
    action: str
    action_id: str
    bot_player_id: str
    computed_at: int
    expires_at: int
    target_player_id: str | None = None
    consumed: bool = False

    def is_expired(self, now_ms: int) -> bool:
        return self.expires_at < now_ms

    def is_live(self, now_ms: int) -> bool:
        return not self.consumed and not self.is_expired(now_ms)

    def mark_consumed(self) -> BotPendingAction:
        return BotPendingAction(
            action=self.action,
            action_id=self.action_id,
            bot_player_id=self.bot_player_id,
            computed_at=self.computed_at,
            expires_at=self.expires_at,
            target_player_id=self.target_player_id,
            consumed=True,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "action": self.action,
            "targetPlayerId": self.target_player_id,
            "actionId": self.action_id,
            "botPlayerId": self.bot_player_id,
            "computedAt": self.computed_at,
            "expiresAt": self.expires_at,
            "consumed": self.consumed,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BotPendingAction:
        return cls(
            action=data["action"],
            action_id=data["actionId"],
            bot_player_id=data["botPlayerId"],
            computed_at=data["computedAt"],
            expires_at=data["expiresAt"],
            target_player_id=data.get("targetPlayerId"),
            consumed=data.get("consumed", False),
        )


@dataclass
class PlayerState:
    """
    A seat at the table.

    `tank` holds drawn, unscored cards. Scored cards leave the game
    and only `score_count` remembers them.
    """
    player_id: str
    name: str
    tank: list[Card] = field(default_factory=list)
    score_count: int = 0
    is_bot: bool = False
    bot_difficulty: str | None = None

    @property
    def tank_ids(self) -> list[str]:
        return [c.id for c in self.tank]

    def _copy_with(self, **kwargs) -> PlayerState:
        return PlayerState(
            player_id=kwargs.get("player_id", self.player_id),
            name=kwargs.get("name", self.name),
            tank=kwargs.get("tank", self.tank),
            score_count=kwargs.get("score_count", self.score_count),
            is_bot=kwargs.get("is_bot", self.is_bot),
            bot_difficulty=kwargs.get("bot_difficulty", self.bot_difficulty),
        )

    def to_dict(self) -> dict[str, Any]:
        data = {
            "id": self.player_id,
            "name": self.name,
            "tank": [c.to_dict() for c in self.tank],
            "scoreCount": self.score_count,
            "isBot": self.is_bot,
        }
        if self.bot_difficulty is not None:
            data["botDifficulty"] = self.bot_difficulty
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PlayerState:
        return cls(
            player_id=data["id"],
            name=data["name"],
            tank=[Card.from_dict(c) for c in data.get("tank", [])],
            score_count=data.get("scoreCount", 0),
            is_bot=data.get("isBot", False),
            bot_difficulty=data.get("botDifficulty"),
        )


@dataclass
class GameState:
    """
    Complete game document at a point in time.

    This is the canonical state the engine operates on. All mutations
    go through the action engine; `version` is the store's concurrency
    token and carries no game meaning.
    """
    room_code: str
    status: GameStatus = GameStatus.WAITING
    players: list[PlayerState] = field(default_factory=list)
    draw_pile: list[Card] = field(default_factory=list)
    current_player_index: int = 0

    last_action: LastAction | None = None
    animation_hint: AnimationHint | None = None
    bot_pending_action: BotPendingAction | None = None

    is_local_mode: bool = False
    created_at: str | None = None
    version: int = 0

    @property
    def current_player(self) -> PlayerState:
        return self.players[self.current_player_index]

    @property
    def num_players(self) -> int:
        return len(self.players)

    @property
    def top_card(self) -> Card | None:
        """Next card to be drawn (last element of the pile)."""
        return self.draw_pile[-1] if self.draw_pile else None

    def get_player(self, player_id: str) -> PlayerState | None:
        for p in self.players:
            if p.player_id == player_id:
                return p
        return None

    def player_index(self, player_id: str | None) -> int:
        """Index of the player, or -1."""
        for i, p in enumerate(self.players):
            if p.player_id == player_id:
                return i
        return -1

    def total_cards(self) -> int:
        return (
            len(self.draw_pile)
            + sum(len(p.tank) for p in self.players)
            + sum(p.score_count for p in self.players)
        )

    def _copy_with(self, **kwargs) -> GameState:
        """Create a copy with some fields replaced."""
        return GameState(
            room_code=kwargs.get("room_code", self.room_code),
            status=kwargs.get("status", self.status),
            players=kwargs.get("players", self.players),
            draw_pile=kwargs.get("draw_pile", self.draw_pile),
            current_player_index=kwargs.get("current_player_index", self.current_player_index),
            last_action=kwargs.get("last_action", self.last_action),
            animation_hint=kwargs.get("animation_hint", self.animation_hint),
            bot_pending_action=kwargs.get("bot_pending_action", self.bot_pending_action),
            is_local_mode=kwargs.get("is_local_mode", self.is_local_mode),
            created_at=kwargs.get("created_at", self.created_at),
            version=kwargs.get("version", self.version),
        )

    def clone(self) -> GameState:
        """Deep copy the state."""
        return deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        """Persisted record shape."""
        top = self.top_card
        return {
            "roomCode": self.room_code,
            "status": self.status.value,
            "players": [p.to_dict() for p in self.players],
            "drawPile": [c.to_dict() for c in self.draw_pile],
            "topCardBack": top.to_dict() if top else None,
            "currentPlayerIndex": self.current_player_index,
            "lastAction": self.last_action.to_dict() if self.last_action else None,
            "animationHint": self.animation_hint.to_dict() if self.animation_hint else None,
            "botPendingAction": (
                self.bot_pending_action.to_dict() if self.bot_pending_action else None
            ),
            "isLocalMode": self.is_local_mode,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], version: int = 0) -> GameState:
        return cls(
            room_code=data["roomCode"],
            status=GameStatus(data.get("status", GameStatus.WAITING.value)),
            players=[PlayerState.from_dict(p) for p in data.get("players", [])],
            draw_pile=[Card.from_dict(c) for c in data.get("drawPile", [])],
            current_player_index=data.get("currentPlayerIndex", 0),
            last_action=(
                LastAction.from_dict(data["lastAction"]) if data.get("lastAction") else None
            ),
            animation_hint=(
                AnimationHint.from_dict(data["animationHint"])
                if data.get("animationHint") else None
            ),
            bot_pending_action=(
                BotPendingAction.from_dict(data["botPendingAction"])
                if data.get("botPendingAction") else None
            ),
            is_local_mode=data.get("isLocalMode", False),
            created_at=data.get("createdAt"),
            version=version,
        )
