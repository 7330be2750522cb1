"""
Game Store - Interface to the shared transactional document store.

The store:
- Holds one document per game, keyed by room code
- Versions every document (optimistic concurrency)
- Accepts a write only if the version is unchanged since the read
- Pushes the full new snapshot to subscribers after every write

The action engine is the only writer during play; nothing else
should call compare_and_swap on a live game.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Callable, TypeVar
import logging

from ..engine_core.errors import GameNotFound, TransactionConflict
from ..engine_core.state import GameState

logger = logging.getLogger(__name__)

T = TypeVar("T")

Subscriber = Callable[[GameState], None]
Unsubscribe = Callable[[], None]


class ConflictError(Exception):
    """A concurrent write happened between read and write."""

    def __init__(self, room_code: str, expected: int, actual: int):
        self.room_code = room_code
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Version conflict on {room_code}: expected {expected}, found {actual}"
        )


class GameStore(ABC):
    """
    Abstract document store.

    Implementations must make compare_and_swap atomic per room.
    """

    @abstractmethod
    def get(self, room_code: str) -> GameState | None:
        """Read a snapshot. `version` on the result is the read version."""
        pass

    @abstractmethod
    def create(self, game: GameState) -> GameState:
        """Insert a new document. Raises ValueError if the code is taken."""
        pass

    @abstractmethod
    def compare_and_swap(self, game: GameState, expected_version: int) -> GameState:
        """
        Write `game` if the stored version equals `expected_version`.

        Returns the stored snapshot with its new version.
        Raises ConflictError otherwise.
        """
        pass

    @abstractmethod
    def subscribe(self, room_code: str, callback: Subscriber) -> Unsubscribe:
        """Receive every committed snapshot for the room."""
        pass

    def exists(self, room_code: str) -> bool:
        return self.get(room_code) is not None


def run_transaction(
    store: GameStore,
    room_code: str,
    mutate: Callable[[GameState], tuple[GameState, T]],
    max_retries: int = 5,
) -> tuple[GameState, T]:
    """
    Read-modify-write with retry.

    `mutate` receives a fresh snapshot on every attempt and returns
    (new_state, result). It may raise to abort; nothing is written then.
    """
    for attempt in range(max_retries + 1):
        snapshot = store.get(room_code)
        if snapshot is None:
            raise GameNotFound(f"Game {room_code} not found")

        new_state, result = mutate(snapshot)
        try:
            committed = store.compare_and_swap(new_state, snapshot.version)
        except ConflictError as e:
            logger.debug("Retrying transaction on %s (attempt %d): %s", room_code, attempt + 1, e)
            continue
        return committed, result

    raise TransactionConflict(
        f"Gave up on {room_code} after {max_retries + 1} conflicting attempts"
    )
