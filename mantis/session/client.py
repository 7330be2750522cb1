"""
Game Client - One player's view of a live game.

Wires the pieces a client needs:
- the store's change feed (authoritative snapshots)
- the AnimationCoordinator (what to show, and when)
- the StateReconciler (when a buffered snapshot may replace the view)
- the ActionEngine (where actions are submitted)

The visible state only moves in three ways:
1. Adopted directly while there is nothing to animate (first load, lobby)
2. Advanced by predicting each hint's outcome as its playback settles
3. Replaced by a buffered snapshot that the reconciler accepts
"""

from __future__ import annotations
from typing import Callable
import logging

from ..bots.policy import bot_thinking_time_ms
from ..config import AnimationTimings, Settings
from ..engine_core.action import ActionResult
from ..engine_core.engine import ActionEngine
from ..engine_core.errors import InvalidAction, MantisError
from ..engine_core.reducer import apply_hint
from ..engine_core.state import AnimationHint, GameState, GameStatus
from ..store.base import GameStore
from .coordinator import AnimationCoordinator
from .reconciler import StateReconciler
from .scheduler import LogicalScheduler

logger = logging.getLogger(__name__)


class GameClient:
    """
    Usage:
        client = GameClient(store, engine, "ABCD", "player-1")
        client.connect()
        client.score()
        client.scheduler.advance(6000)
    """

    def __init__(
        self,
        store: GameStore,
        engine: ActionEngine,
        room_code: str,
        player_id: str,
        scheduler: LogicalScheduler | None = None,
        timings: AnimationTimings | None = None,
        settings: Settings | None = None,
    ):
        self.store = store
        self.engine = engine
        self.room_code = room_code
        self.player_id = player_id
        self.scheduler = scheduler or LogicalScheduler()
        self.reconciler = StateReconciler(settings or engine.settings)
        self.coordinator = AnimationCoordinator(
            self.scheduler,
            timings=timings,
            on_idle=self._on_idle,
            on_hint_settled=self._on_hint_settled,
        )

        self.visible: GameState | None = None
        self._last_version = 0
        self._listeners: list[Callable[[GameState], None]] = []
        self._unsubscribe: Callable[[], None] | None = None

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def connect(self):
        """Subscribe to the room and load the current snapshot."""
        if self._unsubscribe is not None:
            return
        self._unsubscribe = self.store.subscribe(self.room_code, self.on_snapshot)
        snapshot = self.store.get(self.room_code)
        if snapshot is not None:
            self.on_snapshot(snapshot)

    def close(self):
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.coordinator.reset()
        self._last_version = 0

    def add_listener(self, listener: Callable[[GameState], None]):
        self._listeners.append(listener)

    # =========================================================================
    # Feed
    # =========================================================================

    def on_snapshot(self, snapshot: GameState):
        """Entry point for every authoritative snapshot."""
        if snapshot.version <= self._last_version:
            # the feed may redeliver or reorder; only newer versions count
            logger.debug(
                "Dropped snapshot v%d of %s (have v%d)",
                snapshot.version, self.room_code, self._last_version,
            )
            return
        self._last_version = snapshot.version

        if self.visible is None or self.visible.status == GameStatus.WAITING:
            # Nothing on screen to animate against yet.
            if snapshot.animation_hint is not None:
                self.coordinator.seen_hint(snapshot.animation_hint.timestamp)
            self._show(snapshot)
            return

        self.coordinator.on_hint(snapshot.animation_hint)
        self.coordinator.on_snapshot(snapshot)

    def _on_idle(self, snapshot: GameState | None):
        if snapshot is None:
            return
        shown = self.reconciler.reconcile(self.visible, snapshot)
        if shown is not self.visible:
            self._show(shown)

    def _on_hint_settled(self, hint: AnimationHint):
        if self.visible is None:
            return
        try:
            predicted = apply_hint(self.visible, hint)
        except (ValueError, MantisError) as e:
            logger.warning("Could not apply hint %s to visible state: %s", hint.sequence.value, e)
            return
        self._show(predicted)

    def _show(self, state: GameState):
        self.visible = state
        for listener in list(self._listeners):
            listener(state)

    # =========================================================================
    # Actions
    # =========================================================================

    @property
    def actions_enabled(self) -> bool:
        return self.coordinator.is_idle and self.coordinator.queued == 0

    def score(self) -> ActionResult:
        return self._act(lambda: self.engine.score(self.room_code, self.player_id))

    def steal(self, target_player_id: str) -> ActionResult:
        return self._act(
            lambda: self.engine.steal(self.room_code, self.player_id, target_player_id)
        )

    def run_pending_bot_action(self) -> ActionResult | None:
        """
        Play the bot move staged on the visible game, if one is due.

        Returns None when nothing is due: the coordinator is busy, the
        deck is empty, there is no live pending action, or the bot is
        still "thinking". A lapsed action is re-staged on the server and
        the fresh one arrives through the feed.
        """
        game = self.visible
        if game is None or game.status != GameStatus.PLAYING or not self.actions_enabled:
            return None
        if not game.draw_pile:
            return None
        pending = game.bot_pending_action
        now = self.engine.clock()
        if pending is None or not pending.is_live(now):
            if game.current_player.is_bot:
                self.engine.refresh_bot_turn(self.room_code)
            return None
        bot = game.get_player(pending.bot_player_id)
        if bot is None or game.current_player.player_id != bot.player_id:
            return None
        if now < pending.computed_at + bot_thinking_time_ms(bot.bot_difficulty):
            return None
        return self._act(lambda: self.engine.execute_pending(self.room_code, pending))

    def _act(self, submit: Callable[[], ActionResult]) -> ActionResult:
        if self.visible is None:
            raise InvalidAction("Not connected to a game")
        if not self.coordinator.begin_action(self.visible.top_card):
            raise InvalidAction("Actions are disabled while animations play")

        # A failed submit leaves the flip to finish on its own and the
        # turn unresolved.
        result = submit()
        self.coordinator.on_hint(result.animation_hint)
        return result
