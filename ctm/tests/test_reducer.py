"""
Tests for the reducer (phase transitions).

Tests:
- Each transition and its events
- Every rejection code, and the order checks run in
- Phase advancement only when both players have acted
- Rejected calls leave the record untouched
"""

import pytest

from ..engine_core.action import Call
from ..engine_core.commitment import ChoiceSecret, hands_commitment
from ..engine_core.errors import GameError
from ..engine_core.events import EventType
from ..engine_core.reducer import Reducer, apply_call
from ..engine_core.state import Hand, Phase
from .conftest import STAKE, apply_all


class TestCreateSession:
    """Tests for create_session."""

    def test_creates_record(self, alice, bob):
        result = apply_call(None, Call.create_session(7, alice.address, bob.address, 10, 20))
        assert result.success
        session = result.new_session
        assert session.session_id == 7
        assert session.phase is Phase.COMMIT_HANDS
        assert (session.stake_a, session.stake_b) == (10, 20)
        assert [e.event_type for e in result.events] == [EventType.SESSION_CREATED]

    def test_active_session_id_taken(self, created, alice, bob):
        result = apply_call(created, Call.create_session(42, alice.address, bob.address, 1, 1))
        assert result.error_code is GameError.SESSION_EXISTS

    def test_completed_session_id_reusable(self, completed, alice, bob):
        result = apply_call(completed, Call.create_session(42, bob.address, alice.address, 1, 1))
        assert result.success
        assert result.new_session.player_a == bob.address

    def test_self_play_rejected(self, alice):
        result = apply_call(None, Call.create_session(1, alice.address, alice.address, 1, 1))
        assert result.error_code is GameError.SELF_PLAY_NOT_ALLOWED

    @pytest.mark.parametrize("stake_a, stake_b", [(0, 1), (1, 0), (-5, 1), (1, 2**127)])
    def test_invalid_stake(self, alice, bob, stake_a, stake_b):
        result = apply_call(None, Call.create_session(1, alice.address, bob.address, stake_a, stake_b))
        assert result.error_code is GameError.INVALID_STAKE


class TestCommitHands:
    """Tests for commit_hands."""

    def test_first_commit_does_not_advance(self, created, alice, hands_a):
        result = apply_call(created, Call.commit_hands(42, alice.address, hands_a.commitment()))
        assert result.success
        assert result.new_session.phase is Phase.COMMIT_HANDS
        assert result.new_session.commit_a == hands_a.commitment()
        assert result.new_session.commit_b is None

    def test_second_commit_advances(self, hands_committed):
        assert hands_committed.phase is Phase.REVEAL_HANDS

    def test_event_carries_new_phase(self, created, alice, bob, hands_a, hands_b):
        once = apply_all(created, Call.commit_hands(42, alice.address, hands_a.commitment()))
        result = apply_call(once, Call.commit_hands(42, bob.address, hands_b.commitment()))
        event = result.events[0]
        assert event.event_type is EventType.HANDS_COMMITTED
        assert event.data == {"player": bob.address, "phase": 2}

    def test_duplicate_commit(self, created, alice, hands_a):
        once = apply_all(created, Call.commit_hands(42, alice.address, hands_a.commitment()))
        result = apply_call(once, Call.commit_hands(42, alice.address, bytes(32)))
        assert result.error_code is GameError.ALREADY_COMMITTED
        assert once.commit_a == hands_a.commitment()

    def test_not_player(self, created, carol):
        result = apply_call(created, Call.commit_hands(42, carol.address, bytes(32)))
        assert result.error_code is GameError.NOT_PLAYER

    def test_missing_session(self, alice):
        result = apply_call(None, Call.commit_hands(99, alice.address, bytes(32)))
        assert result.error_code is GameError.GAME_NOT_FOUND

    def test_reveal_blocked_until_both_committed(self, created, alice, bob, hands_a, hands_b):
        """After only A commits, reveal_hands from either player is WRONG_PHASE."""
        once = apply_all(created, Call.commit_hands(42, alice.address, hands_a.commitment()))
        for player, secret in ((alice, hands_a), (bob, hands_b)):
            result = apply_call(
                once, Call.reveal_hands(42, player.address, secret.left, secret.right, secret.salt),
            )
            assert result.error_code is GameError.WRONG_PHASE


class TestRevealHands:
    """Tests for reveal_hands."""

    def test_valid_reveal_stores_hands(self, hands_committed, alice, hands_a):
        result = apply_call(
            hands_committed,
            Call.reveal_hands(42, alice.address, hands_a.left, hands_a.right, hands_a.salt),
        )
        assert result.success
        assert (result.new_session.left_a, result.new_session.right_a) == (Hand.ROCK, Hand.PAPER)
        assert result.new_session.phase is Phase.REVEAL_HANDS

    def test_both_reveals_advance(self, hands_revealed):
        assert hands_revealed.phase is Phase.COMMIT_CHOICE
        assert hands_revealed.left_b is Hand.SCISSORS

    def test_hash_mismatch_is_retryable(self, hands_committed, alice, hands_a):
        wrong = Call.reveal_hands(42, alice.address, hands_a.left, hands_a.right, bytes(32))
        result = apply_call(hands_committed, wrong)
        assert result.error_code is GameError.HASH_MISMATCH
        assert result.error_code.retryable
        assert hands_committed.left_a is None

        fixed = Call.reveal_hands(42, alice.address, hands_a.left, hands_a.right, hands_a.salt)
        assert apply_call(hands_committed, fixed).success

    def test_single_bit_flip_in_salt(self, hands_committed, alice, hands_a):
        salt = bytearray(hands_a.salt)
        salt[31] ^= 0x01
        result = apply_call(
            hands_committed, Call.reveal_hands(42, alice.address, hands_a.left, hands_a.right, bytes(salt)),
        )
        assert result.error_code is GameError.HASH_MISMATCH

    def test_swapped_hands_mismatch(self, hands_committed, alice, hands_a):
        result = apply_call(
            hands_committed, Call.reveal_hands(42, alice.address, hands_a.right, hands_a.left, hands_a.salt),
        )
        assert result.error_code is GameError.HASH_MISMATCH

    @pytest.mark.parametrize("left, right", [(3, 0), (0, 3), (-1, 1), (255, 1)])
    def test_invalid_hand(self, hands_committed, alice, hands_a, left, right):
        result = apply_call(hands_committed, Call.reveal_hands(42, alice.address, left, right, hands_a.salt))
        assert result.error_code is GameError.INVALID_HAND

    @pytest.mark.parametrize("hand", [0, 1, 2])
    def test_equal_hands_always_rejected(self, created, alice, bob, hands_b, hand):
        """A player who committed to two equal hands can never reveal them."""
        salt = bytes([7]) * 32
        committed = apply_all(
            created,
            Call.commit_hands(42, alice.address, hands_commitment(hand, hand, salt)),
            Call.commit_hands(42, bob.address, hands_b.commitment()),
        )
        result = apply_call(committed, Call.reveal_hands(42, alice.address, hand, hand, salt))
        assert result.error_code is GameError.HANDS_MUST_DIFFER

    def test_second_reveal_rejected(self, hands_committed, alice, hands_a):
        call = Call.reveal_hands(42, alice.address, hands_a.left, hands_a.right, hands_a.salt)
        once = apply_all(hands_committed, call)
        assert apply_call(once, call).error_code is GameError.ALREADY_COMMITTED

    def test_membership_checked_before_ranges(self, hands_committed, carol):
        result = apply_call(hands_committed, Call.reveal_hands(42, carol.address, 9, 9, bytes(32)))
        assert result.error_code is GameError.NOT_PLAYER

    def test_phase_checked_before_ranges(self, created, alice):
        result = apply_call(created, Call.reveal_hands(42, alice.address, 9, 9, bytes(32)))
        assert result.error_code is GameError.WRONG_PHASE


class TestCommitChoice:
    """Tests for commit_choice."""

    def test_both_commits_advance(self, choices_committed):
        assert choices_committed.phase is Phase.REVEAL_CHOICE

    def test_wrong_phase(self, hands_committed, alice, choice_a):
        result = apply_call(hands_committed, Call.commit_choice(42, alice.address, choice_a.commitment()))
        assert result.error_code is GameError.WRONG_PHASE

    def test_duplicate(self, hands_revealed, alice, choice_a):
        once = apply_all(hands_revealed, Call.commit_choice(42, alice.address, choice_a.commitment()))
        result = apply_call(once, Call.commit_choice(42, alice.address, choice_a.commitment()))
        assert result.error_code is GameError.ALREADY_COMMITTED


class TestRevealChoice:
    """Tests for reveal_choice and resolution."""

    def test_first_reveal_stores_kept_hand(self, choices_committed, alice, choice_a):
        result = apply_call(
            choices_committed, Call.reveal_choice(42, alice.address, choice_a.index, choice_a.salt),
        )
        assert result.success
        assert result.new_session.kept_a is Hand.ROCK
        assert result.new_session.phase is Phase.REVEAL_CHOICE
        assert result.new_session.winner is None

    def test_second_reveal_resolves(self, completed, alice):
        assert completed.phase is Phase.COMPLETE
        assert completed.kept_a is Hand.ROCK
        assert completed.kept_b is Hand.SCISSORS
        assert completed.winner == alice.address

    def test_completion_events(self, choices_committed, alice, bob, choice_a, choice_b):
        once = apply_all(choices_committed, Call.reveal_choice(42, alice.address, choice_a.index, choice_a.salt))
        result = apply_call(once, Call.reveal_choice(42, bob.address, choice_b.index, choice_b.salt))
        assert [e.event_type for e in result.events] == [
            EventType.CHOICE_REVEALED,
            EventType.SESSION_COMPLETED,
        ]
        assert result.events[1].data == {
            "winner": alice.address,
            "player_a_won": True,
            "kept_a": 0,
            "kept_b": 2,
        }

    def test_player_b_can_win(self, hands_revealed, alice, bob):
        """A keeps Paper, B keeps Scissors."""
        keep_a = ChoiceSecret(1, bytes([5]) * 32)
        keep_b = ChoiceSecret(0, bytes([6]) * 32)
        done = apply_all(
            hands_revealed,
            Call.commit_choice(42, alice.address, keep_a.commitment()),
            Call.commit_choice(42, bob.address, keep_b.commitment()),
            Call.reveal_choice(42, alice.address, keep_a.index, keep_a.salt),
            Call.reveal_choice(42, bob.address, keep_b.index, keep_b.salt),
        )
        assert done.winner == bob.address

    def test_tie_goes_to_player_a(self, hands_revealed, alice, bob):
        """A keeps Rock (left), B keeps Rock (right)."""
        keep_a = ChoiceSecret(0, bytes([5]) * 32)
        keep_b = ChoiceSecret(1, bytes([6]) * 32)
        done = apply_all(
            hands_revealed,
            Call.commit_choice(42, alice.address, keep_a.commitment()),
            Call.commit_choice(42, bob.address, keep_b.commitment()),
            Call.reveal_choice(42, bob.address, keep_b.index, keep_b.salt),
            Call.reveal_choice(42, alice.address, keep_a.index, keep_a.salt),
        )
        assert done.kept_a == done.kept_b == Hand.ROCK
        assert done.winner == alice.address

    @pytest.mark.parametrize("index", [2, 3, -1])
    def test_invalid_choice(self, choices_committed, alice, choice_a, index):
        result = apply_call(choices_committed, Call.reveal_choice(42, alice.address, index, choice_a.salt))
        assert result.error_code is GameError.INVALID_CHOICE

    def test_wrong_index_is_hash_mismatch(self, choices_committed, alice, choice_a):
        result = apply_call(choices_committed, Call.reveal_choice(42, alice.address, 1, choice_a.salt))
        assert result.error_code is GameError.HASH_MISMATCH


class TestCompletedSession:
    """Every call against a finished session is GAME_ALREADY_ENDED."""

    def test_player_calls(self, completed, alice, choice_a):
        calls = [
            Call.commit_hands(42, alice.address, bytes(32)),
            Call.reveal_hands(42, alice.address, 0, 1, bytes(32)),
            Call.commit_choice(42, alice.address, bytes(32)),
            Call.reveal_choice(42, alice.address, choice_a.index, choice_a.salt),
        ]
        for call in calls:
            assert apply_call(completed, call).error_code is GameError.GAME_ALREADY_ENDED

    def test_ended_checked_before_membership(self, completed, carol):
        result = apply_call(completed, Call.commit_hands(42, carol.address, bytes(32)))
        assert result.error_code is GameError.GAME_ALREADY_ENDED


class TestReducer:
    """Tests for the Reducer object itself."""

    def test_stateless(self, created, alice, hands_a):
        reducer = Reducer()
        call = Call.commit_hands(42, alice.address, hands_a.commitment())
        first = reducer.apply(created, call)
        second = reducer.apply(created, call)
        assert first.new_session == second.new_session

    def test_failure_has_no_session(self, created, carol):
        result = Reducer().apply(created, Call.commit_hands(42, carol.address, bytes(32)))
        assert not result.success
        assert result.new_session is None
        assert result.events == []

    def test_stakes_preserved(self, completed):
        assert completed.stake_a == completed.stake_b == STAKE
