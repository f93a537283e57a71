"""
Session State - The authoritative per-session record.

Design principles:
- Immutable: every transition returns a new GameSession via _copy_with()
- Phase is an enum; integers 1-5 exist only in the wire codec
- Fields for phase N+1 stay None until both players filled phase N
"""

from __future__ import annotations
from dataclasses import dataclass, fields
from enum import Enum, IntEnum
from typing import Any


class Hand(IntEnum):
    """Hand values as they appear in commitments and on the wire."""
    ROCK = 0
    PAPER = 1
    SCISSORS = 2


class Phase(Enum):
    """Session phases, strictly forward-only."""
    COMMIT_HANDS = "commit_hands"      # Created, waiting for both hand commitments
    REVEAL_HANDS = "reveal_hands"      # HandsCommitted
    COMMIT_CHOICE = "commit_choice"    # HandsRevealed
    REVEAL_CHOICE = "reveal_choice"    # ChoiceCommitted
    COMPLETE = "complete"

    @property
    def wire(self) -> int:
        return _PHASE_TO_WIRE[self]

    @classmethod
    def from_wire(cls, value: int) -> Phase:
        try:
            return _WIRE_TO_PHASE[int(value)]
        except KeyError:
            raise ValueError(f"Unknown phase number: {value}") from None

    def next(self) -> Phase:
        if self is Phase.COMPLETE:
            raise ValueError("Complete is the final phase")
        return _WIRE_TO_PHASE[self.wire + 1]


_PHASE_TO_WIRE = {
    Phase.COMMIT_HANDS: 1,
    Phase.REVEAL_HANDS: 2,
    Phase.COMMIT_CHOICE: 3,
    Phase.REVEAL_CHOICE: 4,
    Phase.COMPLETE: 5,
}
_WIRE_TO_PHASE = {v: k for k, v in _PHASE_TO_WIRE.items()}


class PlayerSide(Enum):
    """Which seat an address occupies in a session."""
    A = "a"
    B = "b"

    @property
    def other(self) -> PlayerSide:
        return PlayerSide.B if self is PlayerSide.A else PlayerSide.A


# Per-phase fields, per side. Used to check the "no half migration" invariant.
PHASE_FIELDS: dict[Phase, tuple[str, ...]] = {
    Phase.COMMIT_HANDS: ("commit",),
    Phase.REVEAL_HANDS: ("left", "right"),
    Phase.COMMIT_CHOICE: ("choice_commit",),
    Phase.REVEAL_CHOICE: ("kept",),
}


@dataclass(frozen=True)
class GameSession:
    """
    A single game instance.

    Created by a co-signed create_session call, then mutated only through
    the four phase transitions in the reducer.
    """
    session_id: int
    player_a: str
    player_b: str
    stake_a: int
    stake_b: int
    phase: Phase = Phase.COMMIT_HANDS

    # Phase 1 - hands commitments
    commit_a: bytes | None = None
    commit_b: bytes | None = None

    # Phase 2+ - revealed hands
    left_a: Hand | None = None
    right_a: Hand | None = None
    left_b: Hand | None = None
    right_b: Hand | None = None

    # Phase 3 - choice commitments
    choice_commit_a: bytes | None = None
    choice_commit_b: bytes | None = None

    # Phase 4+ - kept hands and winner
    kept_a: Hand | None = None
    kept_b: Hand | None = None
    winner: str | None = None

    @classmethod
    def create(
        cls,
        session_id: int,
        player_a: str,
        player_b: str,
        stake_a: int,
        stake_b: int,
    ) -> GameSession:
        return cls(
            session_id=session_id,
            player_a=player_a,
            player_b=player_b,
            stake_a=stake_a,
            stake_b=stake_b,
        )

    @property
    def is_complete(self) -> bool:
        return self.phase is Phase.COMPLETE

    @property
    def players(self) -> tuple[str, str]:
        return self.player_a, self.player_b

    def side_of(self, address: str) -> PlayerSide | None:
        """Return the seat of an address, or None for non-players."""
        if address == self.player_a:
            return PlayerSide.A
        if address == self.player_b:
            return PlayerSide.B
        return None

    def player(self, side: PlayerSide) -> str:
        return self.player_a if side is PlayerSide.A else self.player_b

    def get(self, name: str, side: PlayerSide) -> Any:
        """Read a per-player field, e.g. get("commit", PlayerSide.A)."""
        return getattr(self, f"{name}_{side.value}")

    def hands(self, side: PlayerSide) -> tuple[Hand, Hand] | None:
        left = self.get("left", side)
        if left is None:
            return None
        return left, self.get("right", side)

    def both_set(self, name: str) -> bool:
        return self.get(name, PlayerSide.A) is not None and self.get(name, PlayerSide.B) is not None

    def with_player_fields(self, side: PlayerSide, **values: Any) -> GameSession:
        """Return new session with per-player fields set for one side."""
        return self._copy_with(**{f"{k}_{side.value}": v for k, v in values.items()})

    def _copy_with(self, **kwargs) -> GameSession:
        """Create a copy with some fields replaced."""
        current = {f.name: getattr(self, f.name) for f in fields(self)}
        unknown = set(kwargs) - set(current)
        if unknown:
            raise AttributeError(f"Unknown session fields: {sorted(unknown)}")
        current.update(kwargs)
        return GameSession(**current)

    # =========================================================================
    # Wire codec
    # =========================================================================

    def to_wire(self) -> dict[str, Any]:
        """Plain dict with integer phase, integer hands and hex commitments."""
        def _hex(value: bytes | None) -> str | None:
            return value.hex() if value is not None else None

        def _int(value: Hand | None) -> int | None:
            return int(value) if value is not None else None

        return {
            "session_id": self.session_id,
            "player_a": self.player_a,
            "player_b": self.player_b,
            "stake_a": self.stake_a,
            "stake_b": self.stake_b,
            "phase": self.phase.wire,
            "commit_a": _hex(self.commit_a),
            "commit_b": _hex(self.commit_b),
            "left_a": _int(self.left_a),
            "right_a": _int(self.right_a),
            "left_b": _int(self.left_b),
            "right_b": _int(self.right_b),
            "choice_commit_a": _hex(self.choice_commit_a),
            "choice_commit_b": _hex(self.choice_commit_b),
            "kept_a": _int(self.kept_a),
            "kept_b": _int(self.kept_b),
            "winner": self.winner,
        }

    @classmethod
    def from_wire(cls, data: dict[str, Any]) -> GameSession:
        """Decode a wire dict, rejecting records whose fields contradict the phase."""
        def _bytes(value: str | None) -> bytes | None:
            return bytes.fromhex(value) if value is not None else None

        def _hand(value: int | None) -> Hand | None:
            return Hand(value) if value is not None else None

        session = cls(
            session_id=int(data["session_id"]),
            player_a=data["player_a"],
            player_b=data["player_b"],
            stake_a=int(data["stake_a"]),
            stake_b=int(data["stake_b"]),
            phase=Phase.from_wire(data["phase"]),
            commit_a=_bytes(data.get("commit_a")),
            commit_b=_bytes(data.get("commit_b")),
            left_a=_hand(data.get("left_a")),
            right_a=_hand(data.get("right_a")),
            left_b=_hand(data.get("left_b")),
            right_b=_hand(data.get("right_b")),
            choice_commit_a=_bytes(data.get("choice_commit_a")),
            choice_commit_b=_bytes(data.get("choice_commit_b")),
            kept_a=_hand(data.get("kept_a")),
            kept_b=_hand(data.get("kept_b")),
            winner=data.get("winner"),
        )
        problem = session.consistency_error()
        if problem:
            raise ValueError(f"Inconsistent session record: {problem}")
        return session

    def consistency_error(self) -> str | None:
        """
        Check the phase/field invariant.

        Every phase before the current one must be filled for both players;
        every phase after it must be empty for both.
        """
        for phase, names in PHASE_FIELDS.items():
            for name in names:
                for side in PlayerSide:
                    value = self.get(name, side)
                    if phase.wire < self.phase.wire and value is None:
                        return f"{name}_{side.value} missing in {self.phase.name}"
                    if phase.wire > self.phase.wire and value is not None:
                        return f"{name}_{side.value} set early in {self.phase.name}"
        if (self.winner is not None) != self.is_complete:
            return "winner must be set exactly when complete"
        return None
