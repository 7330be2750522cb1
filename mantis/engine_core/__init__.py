"""
Engine Core - Deterministic Mantis game rules and state.

The engine core provides:
1. The 105-card deck and dealing
2. Turn order and win thresholds
3. GameState and its persisted document shape
4. The reducer that resolves Score and Steal
5. Authorization of who may act

The transactional ActionEngine lives in engine_core.engine; it depends
on the bots package and is imported from there directly.
"""

from .cards import Card, Color, COLORS, generate_deck, shuffle_deck
from .state import (
    GameState,
    GameStatus,
    PlayerState,
    AnimationHint,
    HintSequence,
    LastAction,
    BotPendingAction,
)
from .action import ActionType, ActionRequest, ActionResult
from .reducer import apply_action, apply_hint
from .errors import MantisError

__all__ = [
    "Card",
    "Color",
    "COLORS",
    "generate_deck",
    "shuffle_deck",
    "GameState",
    "GameStatus",
    "PlayerState",
    "AnimationHint",
    "HintSequence",
    "LastAction",
    "BotPendingAction",
    "ActionType",
    "ActionRequest",
    "ActionResult",
    "apply_action",
    "apply_hint",
    "MantisError",
]
