"""
Pending bot actions - Precomputed bot intents.

When a commit hands the turn to a bot, the engine decides the bot's
move right away and stores it on the game. A client plays it later,
once its animations allow, by presenting the same action id. The
record expires after a fixed TTL and can be consumed only once.
"""

from __future__ import annotations
import logging
import random
import string
from typing import TYPE_CHECKING

from ..engine_core.action import ActionRequest, ActionType
from ..engine_core.errors import BotActionConsumed, BotActionExpired, BotActionMismatch
from ..engine_core.state import BotPendingAction
from .policy import decide

if TYPE_CHECKING:
    from ..engine_core.state import GameState

logger = logging.getLogger(__name__)

DEFAULT_TTL_MS = 30_000

_ID_ALPHABET = string.digits + string.ascii_lowercase


def new_action_id(now_ms: int, rng: random.Random) -> str:
    suffix = "".join(rng.choice(_ID_ALPHABET) for _ in range(9))
    return f"bot-{now_ms}-{suffix}"


def create_pending_action(
    game: GameState,
    bot_index: int,
    rng: random.Random,
    now_ms: int,
    ttl_ms: int = DEFAULT_TTL_MS,
) -> BotPendingAction:
    """Decide for the bot at `bot_index` and wrap it as a pending action."""
    bot = game.players[bot_index]
    decision = decide(game, bot_index, bot.bot_difficulty, rng)
    target_id = None
    if decision.target_player is not None:
        target_id = game.players[decision.target_player].player_id

    return BotPendingAction(
        action=decision.action.value,
        target_player_id=target_id,
        action_id=new_action_id(now_ms, rng),
        bot_player_id=bot.player_id,
        computed_at=now_ms,
        expires_at=now_ms + ttl_ms,
        consumed=False,
    )


def validate_pending_action(
    pending: BotPendingAction | None,
    request: ActionRequest,
    now_ms: int,
):
    """
    Check a bot-authored request against the live pending action.

    Raises:
        BotActionMismatch: nothing pending, or id/bot/action/target differ
        BotActionConsumed: already executed once
        BotActionExpired: past its TTL
    """
    context = {
        "bot": request.bot_player_id,
        "action_id": request.action_id,
        "pending": pending.to_dict() if pending else None,
    }
    if pending is None:
        logger.warning("Bot action validation failed - no pending bot action %s", context)
        raise BotActionMismatch("No pending bot action")
    if not request.action_id or pending.action_id != request.action_id:
        logger.warning("Bot action validation failed - action id mismatch %s", context)
        raise BotActionMismatch("Invalid bot action id")
    if pending.consumed:
        logger.warning("Bot action validation failed - already consumed %s", context)
        raise BotActionConsumed("Bot action already consumed")
    if pending.is_expired(now_ms):
        logger.warning("Bot action validation failed - expired %s", context)
        raise BotActionExpired("Bot action expired")
    if pending.bot_player_id != request.bot_player_id:
        logger.warning("Bot action validation failed - bot mismatch %s", context)
        raise BotActionMismatch("Bot action not for this bot")
    if pending.action != request.action.value:
        raise BotActionMismatch("Requested action does not match pending bot action")
    if (pending.target_player_id or None) != (request.target_player_id or None):
        raise BotActionMismatch("Requested target does not match pending bot action")


def request_for(game_id: str, pending: BotPendingAction) -> ActionRequest:
    """The request a client sends to execute a pending action."""
    return ActionRequest(
        game_id=game_id,
        action=ActionType(pending.action),
        target_player_id=pending.target_player_id,
        bot_player_id=pending.bot_player_id,
        action_id=pending.action_id,
    )
