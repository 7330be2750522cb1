"""
Animation Coordinator - Orders optimistic effects and server hints.

A player who acts sees the top card flip at once, before the server
answers. The server's hint for that action (and hints for everyone
else's actions) arrive through the change feed at arbitrary times.
The coordinator serializes all of it:

    IDLE
      -> OPTIMISTIC_FLIP (HALF1 -> HOLD -> FADE)
      -> HINT_PLAYBACK   (HIGHLIGHT -> MOVE -> SETTLE)   per queued hint
      -> IDLE

Rules:
- A new action may only start from IDLE with nothing queued
- Hints are deduplicated by timestamp and played strictly in order
- Snapshots arriving while busy are buffered, latest wins, and handed
  over when the coordinator returns to IDLE

All timing goes through a LogicalScheduler, so the machine is fully
deterministic under test.
"""

from __future__ import annotations
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, TYPE_CHECKING
import logging

from ..config import AnimationTimings
from .scheduler import LogicalScheduler, TimerHandle

if TYPE_CHECKING:
    from ..engine_core.cards import Card
    from ..engine_core.state import AnimationHint, GameState

logger = logging.getLogger(__name__)


class CoordinatorState(str, Enum):
    IDLE = "idle"
    OPTIMISTIC_FLIP = "optimistic_flip"
    HINT_PLAYBACK = "hint_playback"


class Phase(str, Enum):
    """Sub-phase within the current state."""
    NONE = "none"
    # Optimistic flip
    HALF1 = "half1"
    HOLD = "hold"
    FADE = "fade"
    # Hint playback
    HIGHLIGHT = "highlight"
    MOVE = "move"
    SETTLE = "settle"


@dataclass(frozen=True)
class ViewState:
    """What a renderer needs to draw the current moment."""
    state: CoordinatorState
    phase: Phase
    flipping_card: Card | None = None
    highlighted_card_ids: frozenset[str] = field(default_factory=frozenset)
    moving_card_ids: frozenset[str] = field(default_factory=frozenset)
    hint: AnimationHint | None = None

    @property
    def actions_enabled(self) -> bool:
        return self.state == CoordinatorState.IDLE


Listener = Callable[[ViewState], None]


class AnimationCoordinator:
    """
    Presentation state machine for one client.

    Callbacks:
        on_idle(snapshot): called on every return to IDLE with the
            buffered snapshot (or None)
        on_hint_settled(hint): called when a hint's playback reaches
            the end of SETTLE, before the next queued item starts
    """

    def __init__(
        self,
        scheduler: LogicalScheduler,
        timings: AnimationTimings | None = None,
        on_idle: Callable[[GameState | None], None] | None = None,
        on_hint_settled: Callable[[AnimationHint], None] | None = None,
    ):
        self.scheduler = scheduler
        self.timings = timings or AnimationTimings()
        self.on_idle = on_idle
        self.on_hint_settled = on_hint_settled

        self._listeners: list[Listener] = []
        self._queue: deque[AnimationHint] = deque()
        self._timer: TimerHandle | None = None
        self._buffered: GameState | None = None
        self._last_hint_ts: int | None = None

        self._view = ViewState(CoordinatorState.IDLE, Phase.NONE)

    # =========================================================================
    # Inspection
    # =========================================================================

    @property
    def view(self) -> ViewState:
        return self._view

    @property
    def state(self) -> CoordinatorState:
        return self._view.state

    @property
    def phase(self) -> Phase:
        return self._view.phase

    @property
    def is_idle(self) -> bool:
        return self._view.state == CoordinatorState.IDLE

    @property
    def queued(self) -> int:
        return len(self._queue)

    @property
    def buffered_snapshot(self) -> GameState | None:
        return self._buffered

    @property
    def last_hint_timestamp(self) -> int | None:
        return self._last_hint_ts

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    # =========================================================================
    # Inputs
    # =========================================================================

    def begin_action(self, top_card: Card | None) -> bool:
        """
        Start the optimistic flip of `top_card`.

        Returns False (and changes nothing) unless the coordinator is
        idle with an empty queue.
        """
        if not self.is_idle or self._queue:
            return False
        self._enter(
            CoordinatorState.OPTIMISTIC_FLIP,
            Phase.HALF1,
            flipping_card=top_card,
        )
        self._schedule(self.timings.transition_timeout_ms, self._end_half1)
        return True

    def on_transition_end(self):
        """The renderer finished the first half of the flip."""
        if self._view.phase == Phase.HALF1:
            self._end_half1()

    def on_hint(self, hint: AnimationHint | None) -> bool:
        """
        Accept a server hint. Returns False for duplicates.

        Only a strictly newer timestamp than any hint seen before is
        accepted; re-delivered snapshots therefore never replay.
        """
        if hint is None:
            return False
        if self._last_hint_ts is not None and hint.timestamp <= self._last_hint_ts:
            return False
        self._last_hint_ts = hint.timestamp

        if self.is_idle:
            self._play(hint)
        else:
            self._queue.append(hint)
            logger.debug("Queued hint %s (%d waiting)", hint.sequence.value, len(self._queue))
        return True

    def on_snapshot(self, snapshot: GameState):
        """Buffer while busy, hand over immediately when idle."""
        if self.is_idle:
            if self.on_idle:
                self.on_idle(snapshot)
            return
        self._buffered = snapshot

    def seen_hint(self, timestamp: int):
        """Mark hints up to `timestamp` as already shown."""
        if self._last_hint_ts is None or timestamp > self._last_hint_ts:
            self._last_hint_ts = timestamp

    def reset(self):
        """Drop all timers, queued hints and the buffered snapshot."""
        self.scheduler.cancel(self._timer)
        self._timer = None
        self._queue.clear()
        self._buffered = None
        self._enter(CoordinatorState.IDLE, Phase.NONE)

    # =========================================================================
    # Optimistic flip
    # =========================================================================

    def _end_half1(self):
        if self._view.phase != Phase.HALF1:
            return
        self._enter(
            CoordinatorState.OPTIMISTIC_FLIP,
            Phase.HOLD,
            flipping_card=self._view.flipping_card,
        )
        self._schedule(self.timings.hold_ms, self._start_fade)

    def _start_fade(self):
        self._enter(
            CoordinatorState.OPTIMISTIC_FLIP,
            Phase.FADE,
            flipping_card=self._view.flipping_card,
        )
        self._schedule(self.timings.fade_ms, self._finish_sequence)

    # =========================================================================
    # Hint playback
    # =========================================================================

    def _play(self, hint: AnimationHint):
        affected = frozenset(hint.affected_card_ids)
        if hint.sequence.is_success:
            self._enter(
                CoordinatorState.HINT_PLAYBACK,
                Phase.HIGHLIGHT,
                highlighted_card_ids=affected,
                hint=hint,
            )
            self._schedule(self.timings.highlight_ms, lambda: self._move(hint))
        else:
            self._move(hint)

    def _move(self, hint: AnimationHint):
        self._enter(
            CoordinatorState.HINT_PLAYBACK,
            Phase.MOVE,
            moving_card_ids=frozenset(hint.affected_card_ids),
            hint=hint,
        )
        duration = self.timings.move_ms if hint.sequence.is_success else self.timings.fail_move_ms
        self._schedule(duration, lambda: self._settle(hint))

    def _settle(self, hint: AnimationHint):
        self._enter(CoordinatorState.HINT_PLAYBACK, Phase.SETTLE, hint=hint)
        self._schedule(self.timings.settle_ms, lambda: self._end_playback(hint))

    def _end_playback(self, hint: AnimationHint):
        if self.on_hint_settled:
            self.on_hint_settled(hint)
        self._finish_sequence()

    # =========================================================================
    # Sequencing
    # =========================================================================

    def _finish_sequence(self):
        self._timer = None
        if self._queue:
            self._play(self._queue.popleft())
            return

        self._enter(CoordinatorState.IDLE, Phase.NONE)
        snapshot, self._buffered = self._buffered, None
        if self.on_idle:
            self.on_idle(snapshot)

    def _schedule(self, delay_ms: int, callback: Callable[[], None]):
        self.scheduler.cancel(self._timer)
        self._timer = self.scheduler.call_later(delay_ms, callback)

    def _enter(self, state: CoordinatorState, phase: Phase, **view):
        self._view = ViewState(state=state, phase=phase, **view)
        for listener in list(self._listeners):
            listener(self._view)
