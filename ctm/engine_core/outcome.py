"""
Outcome Resolver - Maps two kept hands to a single winner.

Standard cyclic dominance: Rock beats Scissors, Paper beats Rock,
Scissors beats Paper. Equal hands go to player A; there is no draw.
"""

from __future__ import annotations
from enum import Enum

from .state import Hand


class Winner(Enum):
    PLAYER_A = "player_a"
    PLAYER_B = "player_b"


_BEATS = {
    (Hand.ROCK, Hand.SCISSORS),
    (Hand.PAPER, Hand.ROCK),
    (Hand.SCISSORS, Hand.PAPER),
}


def beats(hand: int, other: int) -> bool:
    """True when `hand` beats `other`."""
    return (Hand(hand), Hand(other)) in _BEATS


def resolve(kept_a: int, kept_b: int) -> Winner:
    """
    Resolve the final duel.

    Raises ValueError for values outside {0, 1, 2}.
    """
    kept_a, kept_b = Hand(kept_a), Hand(kept_b)
    if kept_a == kept_b or beats(kept_a, kept_b):
        return Winner.PLAYER_A
    return Winner.PLAYER_B
