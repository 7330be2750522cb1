"""
Action System - Requests and results.

An ActionRequest is the RPC-equivalent payload a client submits.
The caller's identity travels separately (it comes from the session,
not from the payload).
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .errors import InvalidAction


class ActionType(str, Enum):
    """The two player actions."""
    SCORE = "score"
    STEAL = "steal"


@dataclass(frozen=True)
class ActionRequest:
    """
    A complete action submission.

    Bot-authored requests carry `bot_player_id` and the `action_id`
    of the live pending bot action.
    """
    game_id: str
    action: ActionType
    target_player_id: str | None = None
    bot_player_id: str | None = None
    action_id: str | None = None

    @property
    def is_bot(self) -> bool:
        return self.bot_player_id is not None

    def validate(self):
        """Shape checks that need no game state."""
        if not self.game_id:
            raise InvalidAction("Missing game id")
        if self.action == ActionType.STEAL and not self.target_player_id:
            raise InvalidAction("Target player required for steal")

    @classmethod
    def score(cls, game_id: str, **kwargs) -> ActionRequest:
        """Factory for score action."""
        return cls(game_id=game_id, action=ActionType.SCORE, **kwargs)

    @classmethod
    def steal(cls, game_id: str, target_player_id: str, **kwargs) -> ActionRequest:
        """Factory for steal action."""
        return cls(
            game_id=game_id,
            action=ActionType.STEAL,
            target_player_id=target_player_id,
            **kwargs,
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ActionRequest:
        try:
            action = ActionType(data.get("action"))
        except ValueError:
            raise InvalidAction(f"Invalid action type: {data.get('action')!r}")
        return cls(
            game_id=data.get("gameId", ""),
            action=action,
            target_player_id=data.get("targetPlayerId"),
            bot_player_id=data.get("botPlayerId"),
            action_id=data.get("actionId"),
        )


@dataclass
class ActionResult:
    """
    Result of applying an action.

    Contains:
    - Whether the action succeeded
    - The committed state and its animation hint (on success)
    - Error code and message (on failure)
    """
    success: bool
    new_state: Any | None = None  # GameState
    animation_hint: Any | None = None  # AnimationHint
    error: str | None = None
    error_code: str | None = None

    @classmethod
    def failure(cls, error: str, error_code: str | None = None) -> ActionResult:
        """Create a failure result."""
        return cls(success=False, error=error, error_code=error_code)

    @classmethod
    def success_with_state(cls, state: Any, hint: Any) -> ActionResult:
        """Create a success result with new state."""
        return cls(success=True, new_state=state, animation_hint=hint)
