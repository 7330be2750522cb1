"""
Rules - Turn rotation and win conditions.

Pure functions only. The reducer and the bots both read these;
nothing in here touches the store.
"""

from __future__ import annotations
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .state import GameState, PlayerState


MIN_PLAYERS = 2
MAX_PLAYERS = 6

WIN_CONDITION_STANDARD = 10
WIN_CONDITION_TWO_PLAYER = 15


def next_player_index(current_index: int, num_players: int) -> int:
    """Cyclic turn order."""
    return (current_index + 1) % num_players


def win_threshold(num_players: int) -> int:
    return WIN_CONDITION_TWO_PLAYER if num_players == 2 else WIN_CONDITION_STANDARD


def check_win_condition(score_count: int, num_players: int) -> bool:
    return score_count >= win_threshold(num_players)


def has_winner(players: list[PlayerState]) -> bool:
    return any(check_win_condition(p.score_count, len(players)) for p in players)


def find_winner(game: GameState) -> PlayerState | None:
    """First player (in turn order) at or over the threshold."""
    for player in game.players:
        if check_win_condition(player.score_count, len(game.players)):
            return player
    return None


def is_player_turn(game: GameState, player_index: int) -> bool:
    return game.current_player_index == player_index


def determine_tiebreaker(players: list[PlayerState]) -> PlayerState | None:
    """
    Pick a winner when the draw pile runs out.

    Highest score wins; ties go to the most cards still in tank,
    then to the earliest seat.
    """
    if not players:
        return None
    max_score = max(p.score_count for p in players)
    leaders = [p for p in players if p.score_count == max_score]
    if len(leaders) == 1:
        return leaders[0]
    max_tank = max(len(p.tank) for p in leaders)
    return next(p for p in leaders if len(p.tank) == max_tank)
