"""
Reducer - Applies calls to session records.

The reducer is the single point of session mutation.
All state changes must go through apply_call().

Design principles:
- Pure function: (session, call) -> CallResult
- Validates before applying; a rejected call returns the failure and
  leaves the input record untouched
- A phase advances in the same transition that fills the second
  player's field, so no half-migrated record ever exists
- Authorization and escrow are the host's job, not the reducer's
"""

from __future__ import annotations
from dataclasses import dataclass
import hmac

from .action import Call, CallType, CallResult
from .commitment import SALT_SIZE, hands_commitment, choice_commitment
from .errors import GameError
from .events import Event, EventType
from .outcome import Winner, resolve
from .state import GameSession, Hand, Phase, PlayerSide

# Phase each call type is allowed in
REQUIRED_PHASE = {
    CallType.COMMIT_HANDS: Phase.COMMIT_HANDS,
    CallType.REVEAL_HANDS: Phase.REVEAL_HANDS,
    CallType.COMMIT_CHOICE: Phase.COMMIT_CHOICE,
    CallType.REVEAL_CHOICE: Phase.REVEAL_CHOICE,
}

I128_MAX = 2**127 - 1


@dataclass
class Reducer:
    """
    Reducer applies calls to a session record.

    Stateless - all state is in GameSession.
    """

    def apply(self, session: GameSession | None, call: Call) -> CallResult:
        """
        Apply a call to the current record (None if the session does not exist).

        Returns CallResult with the new record or an error code.
        """
        if call.call_type is CallType.CREATE_SESSION:
            return self._handle_create(session, call)

        error = self._validate_call(session, call)
        if error:
            return CallResult.failure(error)

        handler = self._get_handler(call.call_type)
        return handler(session, call)

    def _validate_call(self, session: GameSession | None, call: Call) -> GameError | None:
        """
        Checks shared by all phase transitions, in order:
        existence, finished game, membership, phase.
        """
        if session is None:
            return GameError.GAME_NOT_FOUND
        if session.is_complete:
            return GameError.GAME_ALREADY_ENDED
        if session.side_of(call.payload.player) is None:
            return GameError.NOT_PLAYER
        if session.phase is not REQUIRED_PHASE[call.call_type]:
            return GameError.WRONG_PHASE
        return None

    def _get_handler(self, call_type: CallType):
        """Get the handler function for a call type."""
        handlers = {
            CallType.COMMIT_HANDS: self._handle_commit_hands,
            CallType.REVEAL_HANDS: self._handle_reveal_hands,
            CallType.COMMIT_CHOICE: self._handle_commit_choice,
            CallType.REVEAL_CHOICE: self._handle_reveal_choice,
        }
        return handlers[call_type]

    # =========================================================================
    # Handlers
    # =========================================================================

    def _handle_create(self, session: GameSession | None, call: Call) -> CallResult:
        """Handle create_session."""
        p = call.payload
        if session is not None and not session.is_complete:
            return CallResult.failure(
                GameError.SESSION_EXISTS, f"Session {call.session_id} is already active",
            )
        if p.player_a == p.player_b:
            return CallResult.failure(
                GameError.SELF_PLAY_NOT_ALLOWED,
                "Cannot play against yourself: player A and player B must differ",
            )
        for stake in (p.stake_a, p.stake_b):
            if not isinstance(stake, int) or stake <= 0 or stake > I128_MAX:
                return CallResult.failure(GameError.INVALID_STAKE, f"Stake must be positive, got {stake}")

        new_session = GameSession.create(
            session_id=call.session_id,
            player_a=p.player_a,
            player_b=p.player_b,
            stake_a=p.stake_a,
            stake_b=p.stake_b,
        )
        event = Event(
            EventType.SESSION_CREATED,
            call.session_id,
            {"player_a": p.player_a, "player_b": p.player_b, "stake_a": p.stake_a, "stake_b": p.stake_b},
        )
        return CallResult.success_with_session(
            new_session,
            events=[event],
            changes=[f"Session {call.session_id} created"],
        )

    def _handle_commit_hands(self, session: GameSession, call: Call) -> CallResult:
        """Handle commit_hands."""
        return self._store_commitment(session, call, "commit", EventType.HANDS_COMMITTED)

    def _handle_commit_choice(self, session: GameSession, call: Call) -> CallResult:
        """Handle commit_choice."""
        return self._store_commitment(session, call, "choice_commit", EventType.CHOICE_COMMITTED)

    def _store_commitment(
        self, session: GameSession, call: Call, field_name: str, event_type: EventType
    ) -> CallResult:
        side = session.side_of(call.payload.player)
        if session.get(field_name, side) is not None:
            return CallResult.failure(GameError.ALREADY_COMMITTED)

        new_session = session.with_player_fields(side, **{field_name: call.payload.commitment})
        return self._finish(session, new_session, field_name, event_type, side)

    def _handle_reveal_hands(self, session: GameSession, call: Call) -> CallResult:
        """Handle reveal_hands."""
        p = call.payload
        if not _is_hand(p.left) or not _is_hand(p.right):
            return CallResult.failure(GameError.INVALID_HAND)
        if p.left == p.right:
            return CallResult.failure(GameError.HANDS_MUST_DIFFER)

        side = session.side_of(p.player)
        if session.get("left", side) is not None:
            return CallResult.failure(GameError.ALREADY_COMMITTED, "Hands already revealed")

        if not _is_salt(p.salt):
            return CallResult.failure(GameError.HASH_MISMATCH)
        computed = hands_commitment(p.left, p.right, p.salt)
        if not hmac.compare_digest(computed, session.get("commit", side)):
            return CallResult.failure(GameError.HASH_MISMATCH)

        new_session = session.with_player_fields(side, left=Hand(p.left), right=Hand(p.right))
        return self._finish(
            session, new_session, "left", EventType.HANDS_REVEALED, side,
            data={"left": p.left, "right": p.right},
        )

    def _handle_reveal_choice(self, session: GameSession, call: Call) -> CallResult:
        """Handle reveal_choice, resolving the duel once both have revealed."""
        p = call.payload
        if p.index not in (0, 1) or isinstance(p.index, bool):
            return CallResult.failure(GameError.INVALID_CHOICE)

        side = session.side_of(p.player)
        if session.get("kept", side) is not None:
            return CallResult.failure(GameError.ALREADY_COMMITTED, "Choice already revealed")

        if not _is_salt(p.salt):
            return CallResult.failure(GameError.HASH_MISMATCH)
        computed = choice_commitment(p.index, p.salt)
        if not hmac.compare_digest(computed, session.get("choice_commit", side)):
            return CallResult.failure(GameError.HASH_MISMATCH)

        kept = session.hands(side)[p.index]
        new_session = session.with_player_fields(side, kept=kept)
        result = self._finish(
            session, new_session, "kept", EventType.CHOICE_REVEALED, side,
            data={"index": p.index, "kept": int(kept)},
        )
        if result.new_session.phase is not Phase.COMPLETE:
            return result

        done = result.new_session
        winner = resolve(done.kept_a, done.kept_b)
        winner_address = done.player_a if winner is Winner.PLAYER_A else done.player_b
        done = done._copy_with(winner=winner_address)
        result.new_session = done
        result.events.append(Event(
            EventType.SESSION_COMPLETED,
            session.session_id,
            {
                "winner": winner_address,
                "player_a_won": winner is Winner.PLAYER_A,
                "kept_a": int(done.kept_a),
                "kept_b": int(done.kept_b),
            },
        ))
        result.state_changes.append(f"Session {session.session_id} won by {winner.value}")
        return result

    def _finish(
        self,
        session: GameSession,
        new_session: GameSession,
        field_name: str,
        event_type: EventType,
        side: PlayerSide,
        data: dict | None = None,
    ) -> CallResult:
        """Advance the phase if both players have now filled `field_name`."""
        changes = [f"{side.name} {event_type.value}"]
        if new_session.both_set(field_name):
            new_session = new_session._copy_with(phase=session.phase.next())
            changes.append(f"Phase advanced to {new_session.phase.name}")

        event = Event(
            event_type,
            session.session_id,
            {"player": session.player(side), "phase": new_session.phase.wire, **(data or {})},
        )
        return CallResult.success_with_session(new_session, events=[event], changes=changes)


def _is_hand(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= 2


def _is_salt(value) -> bool:
    return isinstance(value, bytes) and len(value) == SALT_SIZE


def apply_call(session: GameSession | None, call: Call) -> CallResult:
    """
    Convenience function to apply a call.

    Creates a Reducer and applies the call.
    """
    return Reducer().apply(session, call)
