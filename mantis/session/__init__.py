"""
Session Module - Lobby management and the client-side view of a game.

A game is shared by every client through the store:
- The GameManager seats players and starts the game
- Each GameClient watches the room's change feed
- Snapshots are held back while animations run and only adopted
  once the reconciler agrees with what the player already sees

Timing is virtual: a LogicalScheduler drives every animation phase.
"""

from .manager import GameManager, LocalPlayerConfig
from .scheduler import LogicalScheduler
from .coordinator import AnimationCoordinator, CoordinatorState, Phase, ViewState
from .reconciler import Discrepancy, DiscrepancyKind, StateReconciler, diff, should_adopt
from .client import GameClient

__all__ = [
    "GameManager",
    "LocalPlayerConfig",
    "LogicalScheduler",
    "AnimationCoordinator",
    "CoordinatorState",
    "Phase",
    "ViewState",
    "Discrepancy",
    "DiscrepancyKind",
    "StateReconciler",
    "diff",
    "should_adopt",
    "GameClient",
]
