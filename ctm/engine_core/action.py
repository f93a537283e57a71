"""
Call System - Contract calls, payloads, and results.

Calls represent the ledger-callable methods of the game contract.
All session state changes flow through calls applied by the reducer.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .errors import GameError
from .events import Event


class CallType(Enum):
    """Ledger-callable methods. Values are the on-ledger method names."""
    CREATE_SESSION = "create_session"
    COMMIT_HANDS = "commit_hands"
    REVEAL_HANDS = "reveal_hands"
    COMMIT_CHOICE = "commit_choice"
    REVEAL_CHOICE = "reveal_choice"


@dataclass(frozen=True)
class CallPayload:
    """
    Arguments of a call.

    Different call types use different fields; validation happens in the
    reducer.
    """
    player: str | None = None

    # create_session
    player_a: str | None = None
    player_b: str | None = None
    stake_a: int | None = None
    stake_b: int | None = None

    # commits
    commitment: bytes | None = None

    # reveals
    left: int | None = None
    right: int | None = None
    index: int | None = None
    salt: bytes | None = None


@dataclass(frozen=True)
class Call:
    """
    A complete call against one session.

    Calls are:
    - Built by clients (or decoded from a transaction)
    - Validated before application
    - Applied atomically by the host
    """
    call_type: CallType
    session_id: int
    payload: CallPayload

    @classmethod
    def create_session(
        cls, session_id: int, player_a: str, player_b: str, stake_a: int, stake_b: int
    ) -> Call:
        """Factory for session creation."""
        return cls(
            call_type=CallType.CREATE_SESSION,
            session_id=session_id,
            payload=CallPayload(
                player_a=player_a, player_b=player_b, stake_a=stake_a, stake_b=stake_b,
            ),
        )

    @classmethod
    def commit_hands(cls, session_id: int, player: str, commitment: bytes) -> Call:
        """Factory for hands commitment."""
        return cls(
            call_type=CallType.COMMIT_HANDS,
            session_id=session_id,
            payload=CallPayload(player=player, commitment=bytes(commitment)),
        )

    @classmethod
    def reveal_hands(cls, session_id: int, player: str, left: int, right: int, salt: bytes) -> Call:
        """Factory for hands reveal."""
        return cls(
            call_type=CallType.REVEAL_HANDS,
            session_id=session_id,
            payload=CallPayload(player=player, left=left, right=right, salt=bytes(salt)),
        )

    @classmethod
    def commit_choice(cls, session_id: int, player: str, commitment: bytes) -> Call:
        """Factory for choice commitment."""
        return cls(
            call_type=CallType.COMMIT_CHOICE,
            session_id=session_id,
            payload=CallPayload(player=player, commitment=bytes(commitment)),
        )

    @classmethod
    def reveal_choice(cls, session_id: int, player: str, index: int, salt: bytes) -> Call:
        """Factory for choice reveal."""
        return cls(
            call_type=CallType.REVEAL_CHOICE,
            session_id=session_id,
            payload=CallPayload(player=player, index=index, salt=bytes(salt)),
        )

    @property
    def signers(self) -> list[str]:
        """Addresses whose authorization this call requires."""
        if self.call_type is CallType.CREATE_SESSION:
            return [self.payload.player_a, self.payload.player_b]
        return [self.payload.player]


@dataclass
class CallResult:
    """
    Result of applying a call.

    Contains:
    - Whether the call succeeded
    - New session record (if succeeded)
    - Error code (if failed)
    - Events to publish
    """
    success: bool
    new_session: Any | None = None  # GameSession
    error: str | None = None
    error_code: GameError | None = None

    events: list[Event] = field(default_factory=list)
    state_changes: list[str] = field(default_factory=list)

    @classmethod
    def failure(cls, error_code: GameError, error: str | None = None) -> CallResult:
        """Create a failure result."""
        return cls(success=False, error=error or error_code.name, error_code=error_code)

    @classmethod
    def success_with_session(
        cls,
        session: Any,
        events: list[Event] | None = None,
        changes: list[str] | None = None,
    ) -> CallResult:
        """Create a success result with the new session."""
        return cls(
            success=True,
            new_session=session,
            events=events or [],
            state_changes=changes or [],
        )
