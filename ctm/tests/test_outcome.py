"""
Tests for the outcome resolver.
"""

import pytest

from ..engine_core.outcome import Winner, beats, resolve
from ..engine_core.state import Hand

R, P, S = Hand.ROCK, Hand.PAPER, Hand.SCISSORS


class TestOutcomeTable:
    """All nine pairs of kept hands."""

    @pytest.mark.parametrize("hand", [R, P, S])
    def test_ties_go_to_player_a(self, hand):
        assert resolve(hand, hand) is Winner.PLAYER_A

    @pytest.mark.parametrize("a, b", [(R, S), (P, R), (S, P)])
    def test_a_wins_by_dominance(self, a, b):
        assert resolve(a, b) is Winner.PLAYER_A

    @pytest.mark.parametrize("a, b", [(S, R), (R, P), (P, S)])
    def test_b_wins_by_dominance(self, a, b):
        assert resolve(a, b) is Winner.PLAYER_B

    def test_accepts_plain_ints(self):
        assert resolve(0, 2) is Winner.PLAYER_A
        assert resolve(0, 1) is Winner.PLAYER_B


class TestBeats:
    """Tests for the dominance relation."""

    def test_cyclic(self):
        assert beats(R, S) and beats(S, P) and beats(P, R)

    def test_irreflexive(self):
        assert not any(beats(h, h) for h in Hand)

    def test_antisymmetric(self):
        for a in Hand:
            for b in Hand:
                assert not (beats(a, b) and beats(b, a))


class TestInvalidHands:

    @pytest.mark.parametrize("value", [-1, 3, 255])
    def test_out_of_range_rejected(self, value):
        with pytest.raises(ValueError):
            resolve(value, 0)
        with pytest.raises(ValueError):
            resolve(0, value)
