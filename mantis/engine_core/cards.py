"""
Cards - Card definitions and deck construction.

The deck:
- 7 colors, 15 cards per color (105 total)
- Each card back shows 3 colors, one of which is the face color
- Back combinations cycle through every 3-color combination that
  contains the card's own color

Cards are immutable once created. Shuffling takes an explicit
random source so games can be replayed from a seed.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from itertools import combinations
import random


class Color(str, Enum):
    """Card face colors. Declaration order drives back-color combinations."""
    RED = "red"
    BLUE = "blue"
    GREEN = "green"
    YELLOW = "yellow"
    PURPLE = "purple"
    ORANGE = "orange"
    PINK = "pink"


COLORS: tuple[str, ...] = tuple(c.value for c in Color)

CARDS_PER_COLOR = 15
DECK_SIZE = CARDS_PER_COLOR * len(COLORS)
INITIAL_HAND_SIZE = 4

ROOM_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"  # no 0/O, 1/I
ROOM_CODE_LENGTH = 4


@dataclass(frozen=True)
class Card:
    """
    A single card.

    `back_colors` is what every player can see while the card is
    face down on the draw pile.
    """
    id: str
    color: str
    back_colors: tuple[str, str, str]

    def __post_init__(self):
        if len(set(self.back_colors)) != 3:
            raise ValueError(f"Card {self.id} needs 3 distinct back colors")
        if self.color not in self.back_colors:
            raise ValueError(f"Card {self.id} back colors must include {self.color}")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "color": self.color,
            "backColors": list(self.back_colors),
        }

    @classmethod
    def from_dict(cls, data: dict) -> Card:
        return cls(
            id=data["id"],
            color=data["color"],
            back_colors=tuple(data["backColors"]),
        )


def card_id(color: str, index: int) -> str:
    return f"{color}-{index}"


def back_color_combinations() -> list[tuple[str, str, str]]:
    """All 35 three-color combinations, in color index order."""
    return list(combinations(COLORS, 3))


def generate_deck() -> list[Card]:
    """
    Build the full, unshuffled 105-card deck.

    Cards are grouped by color; within a color the i-th card takes the
    (i mod n)-th back combination containing that color.
    """
    combos = back_color_combinations()
    deck = []
    for color in COLORS:
        valid_backs = [combo for combo in combos if color in combo]
        for i in range(CARDS_PER_COLOR):
            deck.append(Card(
                id=card_id(color, i),
                color=color,
                back_colors=valid_backs[i % len(valid_backs)],
            ))
    return deck


def shuffle_deck(deck: list[Card], rng: random.Random) -> list[Card]:
    """Return a shuffled copy (Fisher-Yates)."""
    shuffled = list(deck)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def find_matching_cards(tank: list[Card], color: str) -> list[Card]:
    """Cards in the tank with the given face color, in tank order."""
    return [card for card in tank if card.color == color]


def deal_initial_hands(
    deck: list[Card],
    num_players: int,
    hand_size: int = INITIAL_HAND_SIZE,
) -> tuple[list[list[Card]], list[Card]]:
    """
    Deal round-robin from the end of the deck.

    Returns (hands, remaining_deck). The remaining deck keeps its order,
    so its last element is the next card drawn.
    """
    hands: list[list[Card]] = [[] for _ in range(num_players)]
    remaining = list(deck)
    for _ in range(hand_size):
        for hand in hands:
            if remaining:
                hand.append(remaining.pop())
    return hands, remaining


def generate_room_code(rng: random.Random, length: int = ROOM_CODE_LENGTH) -> str:
    """Short human-shareable room code."""
    return "".join(rng.choice(ROOM_CODE_ALPHABET) for _ in range(length))
