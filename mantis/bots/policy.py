"""
Bot Policy - Chooses Score or Steal for a bot seat.

Bots only see what every player sees: the three back colors of the
top card and everyone's tanks and scores. Strategies are tiered by
difficulty:
- easy: weighted coin flip, random target
- medium: score on a decent own chance, else rob the biggest tank
- hard: compares own chance with every opponent's and blocks a
        leader who is likely to match

decide() never raises: a bot must never stall the turn, so bad
input falls back to Score.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Callable, TYPE_CHECKING
import logging
import random

from ..engine_core.action import ActionType

if TYPE_CHECKING:
    from ..engine_core.cards import Card
    from ..engine_core.state import GameState

logger = logging.getLogger(__name__)


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


EASY_SCORE_CHANCE = 0.6
MEDIUM_SCORE_THRESHOLD = 0.33
HARD_SCORE_THRESHOLD = 0.5
HARD_BLOCK_THRESHOLD = 0.66
HARD_STEAL_THRESHOLD = 0.5

THINKING_TIME_MS = {
    Difficulty.EASY: 1500,
    Difficulty.MEDIUM: 2000,
    Difficulty.HARD: 3000,
}


@dataclass(frozen=True)
class BotDecision:
    """
    A decision made by a bot.

    `target_player` is a player index, set only for steals.
    """
    action: ActionType
    target_player: int | None = None
    explanation: str = ""

    @classmethod
    def score(cls, explanation: str = "") -> BotDecision:
        return cls(action=ActionType.SCORE, explanation=explanation)

    @classmethod
    def steal(cls, target_player: int, explanation: str = "") -> BotDecision:
        return cls(action=ActionType.STEAL, target_player=target_player, explanation=explanation)


def match_probability(tank: list[Card], back_colors: tuple[str, ...] | list[str]) -> float:
    """Share of the 3 back colors already present in the tank."""
    if not tank:
        return 0.0
    tank_colors = {c.color for c in tank}
    return len(tank_colors & set(back_colors)) / 3


def find_leading_opponent(game: GameState, bot_index: int) -> int | None:
    """Opponent with the highest score; earliest seat wins ties."""
    max_score = -1
    leader = None
    for index, player in enumerate(game.players):
        if index != bot_index and player.score_count > max_score:
            max_score = player.score_count
            leader = index
    return leader


def find_player_with_most_cards(game: GameState, bot_index: int) -> int | None:
    """Opponent with the biggest tank; earliest seat wins ties."""
    max_cards = -1
    target = None
    for index, player in enumerate(game.players):
        if index != bot_index and len(player.tank) > max_cards:
            max_cards = len(player.tank)
            target = index
    return target


def easy_strategy(game: GameState, bot_index: int, rng: random.Random) -> BotDecision:
    opponents = [i for i in range(len(game.players)) if i != bot_index]
    # heads-up easy bots never steal
    if len(opponents) <= 1 or rng.random() < EASY_SCORE_CHANCE:
        return BotDecision.score("coin flip")
    return BotDecision.steal(rng.choice(opponents), "coin flip")


def medium_strategy(game: GameState, bot_index: int, rng: random.Random) -> BotDecision:
    bot = game.players[bot_index]
    score_prob = match_probability(bot.tank, game.top_card.back_colors)

    if score_prob >= MEDIUM_SCORE_THRESHOLD:
        return BotDecision.score(f"own chance {score_prob:.2f}")

    target = find_player_with_most_cards(game, bot_index)
    if target is None:
        return BotDecision.score("no opponents")
    return BotDecision.steal(target, "biggest tank")


def hard_strategy(game: GameState, bot_index: int, rng: random.Random) -> BotDecision:
    bot = game.players[bot_index]
    back_colors = game.top_card.back_colors
    score_prob = match_probability(bot.tank, back_colors)

    best_target = None
    best_prob = 0.0
    for index, player in enumerate(game.players):
        if index == bot_index:
            continue
        prob = match_probability(player.tank, back_colors)
        if prob > best_prob:
            best_prob = prob
            best_target = index

    if score_prob >= HARD_SCORE_THRESHOLD:
        return BotDecision.score(f"own chance {score_prob:.2f}")

    leader = find_leading_opponent(game, bot_index)
    if best_target is not None and best_target == leader and best_prob >= HARD_BLOCK_THRESHOLD:
        return BotDecision.steal(best_target, f"blocking leader at {best_prob:.2f}")

    if best_target is not None and best_prob >= HARD_STEAL_THRESHOLD:
        return BotDecision.steal(best_target, f"opponent chance {best_prob:.2f}")

    if score_prob > 0:
        return BotDecision.score(f"own chance {score_prob:.2f}")

    target = find_player_with_most_cards(game, bot_index)
    if target is None:
        return BotDecision.score("no opponents")
    return BotDecision.steal(target, "biggest tank")


STRATEGIES: dict[Difficulty, Callable[[GameState, int, random.Random], BotDecision]] = {
    Difficulty.EASY: easy_strategy,
    Difficulty.MEDIUM: medium_strategy,
    Difficulty.HARD: hard_strategy,
}


def parse_difficulty(value: str | Difficulty | None) -> Difficulty:
    """Unknown or missing difficulties play as medium."""
    try:
        return Difficulty(value)
    except ValueError:
        return Difficulty.MEDIUM


def decide(
    game: GameState,
    bot_index: int,
    difficulty: str | Difficulty | None = Difficulty.MEDIUM,
    rng: random.Random | None = None,
) -> BotDecision:
    """
    Main bot decision function.

    Args:
        game: Current game snapshot
        bot_index: Seat of the bot
        difficulty: easy, medium or hard
        rng: Random source (only the easy strategy draws from it)

    Returns:
        BotDecision; Score whenever the input cannot be used
    """
    if game is None or not game.players or not 0 <= bot_index < len(game.players):
        logger.warning("Invalid game state or bot index %r", bot_index)
        return BotDecision.score("fallback")
    if game.top_card is None:
        logger.warning("No cards in draw pile for %s", game.room_code)
        return BotDecision.score("fallback")

    strategy = STRATEGIES[parse_difficulty(difficulty)]
    try:
        decision = strategy(game, bot_index, rng or random.Random())
    except Exception:
        logger.exception("Bot decision error in %s", game.room_code)
        return BotDecision.score("fallback")

    if decision.action == ActionType.STEAL and (
        decision.target_player is None
        or decision.target_player == bot_index
        or not 0 <= decision.target_player < len(game.players)
    ):
        return BotDecision.score("fallback")
    return decision


def bot_thinking_time_ms(difficulty: str | Difficulty | None = Difficulty.MEDIUM) -> int:
    """How long a client should pause before playing a bot's move."""
    return THINKING_TIME_MS[parse_difficulty(difficulty)]
