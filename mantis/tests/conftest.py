"""
Pytest fixtures for Mantis tests.
"""

import random

import pytest

from ..config import Settings
from ..engine_core.cards import Card, back_color_combinations
from ..engine_core.engine import ActionEngine
from ..engine_core.state import GameState, GameStatus, PlayerState
from ..store.memory import InMemoryGameStore


START_MS = 1_700_000_000_000


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, now: int = START_MS):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int):
        self.now += ms


def make_card(card_id: str, color: str, back_colors=None) -> Card:
    """A card with the given face; backs default to the first legal combo."""
    if back_colors is None:
        back_colors = next(c for c in back_color_combinations() if color in c)
    return Card(id=card_id, color=color, back_colors=tuple(back_colors))


def filler(count: int, color: str = "pink") -> list[Card]:
    """Cards to sit under the top card so the pile never runs dry mid-test."""
    return [make_card(f"filler-{i}", color) for i in range(count)]


def make_game(
    tanks,
    draw_pile,
    current: int = 0,
    scores=None,
    bots=None,
    room_code: str = "TEST",
    is_local_mode: bool = False,
    player_ids=None,
) -> GameState:
    """
    A playing game.

    `tanks` holds one card list per seat; seats are named A, B, C...
    `draw_pile` is bottom-first, so its last card is drawn next.
    """
    scores = scores or [0] * len(tanks)
    bots = bots or {}
    players = []
    for i, tank in enumerate(tanks):
        name = "ABCDEF"[i]
        pid = player_ids[i] if player_ids else name
        players.append(PlayerState(
            player_id=pid,
            name=name,
            tank=list(tank),
            score_count=scores[i],
            is_bot=i in bots,
            bot_difficulty=bots.get(i),
        ))
    return GameState(
        room_code=room_code,
        status=GameStatus.PLAYING,
        players=players,
        draw_pile=list(draw_pile),
        current_player_index=current,
        is_local_mode=is_local_mode,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def rng() -> random.Random:
    """Seeded random source."""
    return random.Random(1234)


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def store() -> InMemoryGameStore:
    return InMemoryGameStore()


@pytest.fixture
def engine(store, clock, rng, settings) -> ActionEngine:
    return ActionEngine(store, clock=clock, rng=rng, settings=settings)


@pytest.fixture
def two_player_game() -> GameState:
    """A holds one red; the next card is a red."""
    top = make_card("red-1", "red", ("red", "blue", "green"))
    return make_game(
        tanks=[[make_card("red-0", "red")], [make_card("blue-0", "blue")]],
        draw_pile=[*filler(5), top],
    )


@pytest.fixture
def stored_two_player_game(store, two_player_game) -> GameState:
    return store.create(two_player_game)
