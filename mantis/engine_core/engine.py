"""
Action Engine - Executes Score and Steal against the shared store.

Every call is one transaction:
1. Read the game snapshot and its version
2. Validate (state, bot intent, authorization, deck, target)
3. Resolve via the reducer and stage the next bot move
4. Write back only if the version is unchanged, else retry

A failed validation raises before anything is written. A commit
broadcasts the full snapshot to every subscriber of the room.
"""

from __future__ import annotations
from typing import Callable
import logging
import random
import time

from ..bots.pending import create_pending_action, request_for, validate_pending_action
from ..config import Settings
from ..store.base import GameStore, run_transaction
from .action import ActionRequest, ActionResult, ActionType
from .authorization import resolve_policy
from .cards import deal_initial_hands, generate_deck, shuffle_deck
from .errors import (
    EmptyDeck,
    GameFinished,
    GameNotStarted,
    InvalidTarget,
    LobbyError,
)
from .reducer import apply_action
from .rules import MAX_PLAYERS, MIN_PLAYERS
from .state import AnimationHint, BotPendingAction, GameState, GameStatus

logger = logging.getLogger(__name__)


def wall_clock_ms() -> int:
    return int(time.time() * 1000)


class ActionEngine:
    """
    The only writer of live games.

    Usage:
        engine = ActionEngine(store)
        result = engine.score("ABCD", "player-1")
        result = engine.steal("ABCD", "player-1", "player-2")
    """

    def __init__(
        self,
        store: GameStore,
        clock: Callable[[], int] | None = None,
        rng: random.Random | None = None,
        settings: Settings | None = None,
    ):
        self.store = store
        self.clock = clock or wall_clock_ms
        self.rng = rng or random.Random()
        self.settings = settings or Settings()

    # =========================================================================
    # Entry points
    # =========================================================================

    def score(self, game_id: str, acting_player_id: str | None) -> ActionResult:
        return self.perform(ActionRequest.score(game_id), caller_id=acting_player_id)

    def steal(
        self,
        game_id: str,
        acting_player_id: str | None,
        target_player_id: str,
    ) -> ActionResult:
        return self.perform(
            ActionRequest.steal(game_id, target_player_id),
            caller_id=acting_player_id,
        )

    def execute_pending(self, game_id: str, pending: BotPendingAction) -> ActionResult:
        """Play a bot's staged move by presenting its action id."""
        return self.perform(request_for(game_id, pending), caller_id=pending.bot_player_id)

    def perform(self, request: ActionRequest, caller_id: str | None = None) -> ActionResult:
        """
        Validate and commit one action.

        Raises a MantisError subclass on any rule or authorization
        failure; the stored game is untouched in that case.
        """
        request.validate()

        def mutate(game: GameState) -> tuple[GameState, AnimationHint]:
            return self._resolve(game, request, caller_id)

        committed, hint = run_transaction(
            self.store,
            request.game_id,
            mutate,
            max_retries=self.settings.txn_max_retries,
        )
        logger.info(
            "Committed %s in %s: %s by %s%s (v%d)",
            request.action.value,
            request.game_id,
            hint.sequence.value,
            hint.player_id,
            f" on {hint.target_player_id}" if hint.target_player_id else "",
            committed.version,
        )
        if committed.status == GameStatus.FINISHED:
            logger.info("Game %s finished", request.game_id)
        return ActionResult.success_with_state(committed, hint)

    def start_game(self, room_code: str, rng: random.Random | None = None) -> GameState:
        """Shuffle, deal 4 cards each and open play."""
        deal_rng = rng or self.rng

        def mutate(game: GameState) -> tuple[GameState, None]:
            if game.status != GameStatus.WAITING:
                raise LobbyError("Game already started")
            if not MIN_PLAYERS <= game.num_players <= MAX_PLAYERS:
                raise LobbyError(
                    f"Need {MIN_PLAYERS}-{MAX_PLAYERS} players, have {game.num_players}"
                )
            deck = shuffle_deck(generate_deck(), deal_rng)
            hands, remaining = deal_initial_hands(deck, game.num_players)
            players = [p._copy_with(tank=hand) for p, hand in zip(game.players, hands)]
            started = game._copy_with(
                status=GameStatus.PLAYING,
                players=players,
                draw_pile=remaining,
                current_player_index=0,
            )
            return self._stage_bot_turn(started, self.clock()), None

        committed, _ = run_transaction(
            self.store, room_code, mutate, max_retries=self.settings.txn_max_retries
        )
        logger.info("Game %s started with %d players", room_code, committed.num_players)
        return committed

    def refresh_bot_turn(self, room_code: str) -> GameState:
        """
        Re-stage the current bot's move when its pending action lapsed.

        A pending action that expired unplayed would otherwise leave the
        bot's turn with nothing valid to execute. Returns the stored game,
        unchanged when the bot already has a live action.
        """
        current = self.store.get(room_code)
        if (
            current is not None
            and current.status == GameStatus.PLAYING
            and not self._needs_restage(current, self.clock())
        ):
            return current

        def mutate(game: GameState) -> tuple[GameState, None]:
            if game.status == GameStatus.FINISHED:
                raise GameFinished(f"Game {game.room_code} is finished")
            if game.status == GameStatus.WAITING:
                raise GameNotStarted(f"Game {game.room_code} has not started")
            now = self.clock()
            if not self._needs_restage(game, now):
                return game, None
            return self._stage_bot_turn(game, now), None

        committed, _ = run_transaction(
            self.store, room_code, mutate, max_retries=self.settings.txn_max_retries
        )
        logger.info("Re-staged bot turn in %s (v%d)", room_code, committed.version)
        return committed

    # =========================================================================
    # Transaction body
    # =========================================================================

    def _resolve(
        self,
        game: GameState,
        request: ActionRequest,
        caller_id: str | None,
    ) -> tuple[GameState, AnimationHint]:
        if game.status == GameStatus.FINISHED:
            raise GameFinished(f"Game {game.room_code} is finished")
        if game.status == GameStatus.WAITING:
            raise GameNotStarted(f"Game {game.room_code} has not started")

        now = self.clock()
        if request.is_bot:
            validate_pending_action(game.bot_pending_action, request, now)

        policy = resolve_policy(game, request)
        actor = policy.resolve_actor(game, caller_id)

        if not game.draw_pile:
            raise EmptyDeck("Deck is empty")

        target = None
        if request.action == ActionType.STEAL:
            target = game.player_index(request.target_player_id)
            if target < 0 or target == actor:
                raise InvalidTarget("Invalid target player")

        new_state, hint = apply_action(game, request.action, actor, target, now)

        if request.is_bot and new_state.bot_pending_action is not None:
            new_state = new_state._copy_with(
                bot_pending_action=new_state.bot_pending_action.mark_consumed()
            )
        return self._stage_bot_turn(new_state, now), hint

    @staticmethod
    def _needs_restage(game: GameState, now: int) -> bool:
        if game.status != GameStatus.PLAYING or not game.players or not game.draw_pile:
            return False
        bot = game.current_player
        if not bot.is_bot:
            return False
        pending = game.bot_pending_action
        return (
            pending is None
            or pending.bot_player_id != bot.player_id
            or not pending.is_live(now)
        )

    def _stage_bot_turn(self, game: GameState, now: int) -> GameState:
        """Precompute the next move when the turn lands on a bot."""
        if game.status != GameStatus.PLAYING or not game.players or not game.draw_pile:
            return game
        index = game.current_player_index
        if not game.players[index].is_bot:
            return game
        pending = create_pending_action(
            game, index, self.rng, now, ttl_ms=self.settings.bot_action_ttl_ms
        )
        logger.debug("Staged %s for bot %s in %s", pending.action, pending.bot_player_id, game.room_code)
        return game._copy_with(bot_pending_action=pending)
