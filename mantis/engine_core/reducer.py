"""
Reducer - Resolves Score and Steal against a game state.

The reducer is the single place where the rules mutate state.
It does no validation of who is calling; the engine checks turn
ownership, bot intents and preconditions before calling in here.

Design principles:
- Pure function: (state, actor, target?, now) -> (new_state, hint)
- Never edits the input state
- Clients reuse the same resolution to predict the outcome of a hint
"""

from __future__ import annotations
from datetime import datetime, timezone

from .action import ActionType
from .cards import find_matching_cards
from .errors import EmptyDeck, InvalidTarget
from .rules import has_winner, next_player_index
from .state import (
    AnimationHint,
    GameState,
    GameStatus,
    HintSequence,
    LastAction,
)


def next_hint_timestamp(state: GameState, now_ms: int) -> int:
    """Hint timestamps never repeat within a game."""
    if state.animation_hint is None:
        return now_ms
    return max(now_ms, state.animation_hint.timestamp + 1)


def _iso(now_ms: int) -> str:
    return datetime.fromtimestamp(now_ms / 1000, tz=timezone.utc).isoformat()


def _finish_if_over(state: GameState) -> GameState:
    """Only reaching the win threshold ends the game."""
    if state.status != GameStatus.PLAYING:
        return state
    if has_winner(state.players):
        return state._copy_with(status=GameStatus.FINISHED)
    return state


def resolve_score(
    state: GameState,
    player_index: int,
    now_ms: int,
) -> tuple[GameState, AnimationHint]:
    """
    Draw into your own tank.

    Two or more cards of the drawn color (counting the drawn card)
    leave the tank and are added to the score count.
    """
    if not state.draw_pile:
        raise EmptyDeck("Deck is empty")

    draw_pile = list(state.draw_pile)
    drawn = draw_pile.pop()
    player = state.players[player_index]
    tank = [*player.tank, drawn]

    matching = find_matching_cards(tank, drawn.color)
    success = len(matching) >= 2

    if success:
        matched_ids = {c.id for c in matching}
        new_player = player._copy_with(
            tank=[c for c in tank if c.id not in matched_ids],
            score_count=player.score_count + len(matching),
        )
        affected = tuple(c.id for c in matching)
    else:
        new_player = player._copy_with(tank=tank)
        affected = (drawn.id,)

    players = list(state.players)
    players[player_index] = new_player

    hint = AnimationHint(
        sequence=HintSequence.SCORE_SUCCESS if success else HintSequence.SCORE_FAIL,
        player_id=player.player_id,
        affected_card_ids=affected,
        color=drawn.color,
        timestamp=next_hint_timestamp(state, now_ms),
    )
    last_action = LastAction(
        player=player.name,
        action=ActionType.SCORE.value,
        result="success" if success else "no match",
        result_symbol="MATCH" if success else "NO_MATCH",
        color=drawn.color,
        timestamp=_iso(now_ms),
    )

    new_state = state._copy_with(
        players=players,
        draw_pile=draw_pile,
        current_player_index=next_player_index(player_index, len(players)),
        animation_hint=hint,
        last_action=last_action,
    )
    return _finish_if_over(new_state), hint


def resolve_steal(
    state: GameState,
    player_index: int,
    target_index: int,
    now_ms: int,
) -> tuple[GameState, AnimationHint]:
    """
    Draw into an opponent's tank.

    On a match the matching cards move into the stealer's tank;
    they are not scored. In a two-player game a successful steal
    keeps the turn with the stealer.
    """
    if not state.draw_pile:
        raise EmptyDeck("Deck is empty")
    if target_index == player_index or not 0 <= target_index < len(state.players):
        raise InvalidTarget("Invalid target player")

    draw_pile = list(state.draw_pile)
    drawn = draw_pile.pop()
    player = state.players[player_index]
    target = state.players[target_index]
    target_tank = [*target.tank, drawn]

    matching = find_matching_cards(target_tank, drawn.color)
    success = len(matching) >= 2

    players = list(state.players)
    if success:
        matched_ids = {c.id for c in matching}
        players[target_index] = target._copy_with(
            tank=[c for c in target_tank if c.id not in matched_ids],
        )
        players[player_index] = player._copy_with(tank=[*player.tank, *matching])
        affected = tuple(c.id for c in matching)
    else:
        players[target_index] = target._copy_with(tank=target_tank)
        affected = (drawn.id,)

    next_index = next_player_index(player_index, len(players))
    if len(players) == 2 and success:
        next_index = player_index  # chain steal

    hint = AnimationHint(
        sequence=HintSequence.STEAL_SUCCESS if success else HintSequence.STEAL_FAIL,
        player_id=player.player_id,
        target_player_id=target.player_id,
        affected_card_ids=affected,
        color=drawn.color,
        timestamp=next_hint_timestamp(state, now_ms),
    )
    last_action = LastAction(
        player=player.name,
        action=ActionType.STEAL.value,
        target=target.name,
        result="success" if success else "no match",
        result_symbol="MATCH" if success else "NO_MATCH",
        color=drawn.color,
        timestamp=_iso(now_ms),
    )

    new_state = state._copy_with(
        players=players,
        draw_pile=draw_pile,
        current_player_index=next_index,
        animation_hint=hint,
        last_action=last_action,
    )
    return _finish_if_over(new_state), hint


def apply_action(
    state: GameState,
    action: ActionType,
    player_index: int,
    target_index: int | None,
    now_ms: int,
) -> tuple[GameState, AnimationHint]:
    """Dispatch to the resolver for the action type."""
    if action == ActionType.SCORE:
        return resolve_score(state, player_index, now_ms)
    if target_index is None:
        raise InvalidTarget("Target player required for steal")
    return resolve_steal(state, player_index, target_index, now_ms)


def apply_hint(state: GameState, hint: AnimationHint) -> GameState:
    """
    Predict the authoritative state a hint describes.

    Re-runs the resolution on a client's visible state. Raises
    ValueError when the outcome disagrees with the hint, which means
    the visible state was already out of sync.
    """
    player_index = state.player_index(hint.player_id)
    if player_index < 0:
        raise ValueError(f"Hint actor {hint.player_id} not in game")

    if hint.sequence.is_steal:
        target_index = state.player_index(hint.target_player_id)
        if target_index < 0:
            raise ValueError(f"Hint target {hint.target_player_id} not in game")
        predicted, predicted_hint = resolve_steal(
            state, player_index, target_index, hint.timestamp
        )
    else:
        predicted, predicted_hint = resolve_score(state, player_index, hint.timestamp)

    if (
        predicted_hint.sequence != hint.sequence
        or predicted_hint.affected_card_ids != hint.affected_card_ids
    ):
        raise ValueError(
            f"Visible state predicts {predicted_hint.sequence.value} "
            f"{list(predicted_hint.affected_card_ids)}, "
            f"hint says {hint.sequence.value} {list(hint.affected_card_ids)}"
        )
    # keep the authoritative hint (and its timestamp) on the prediction
    return predicted._copy_with(animation_hint=hint)
