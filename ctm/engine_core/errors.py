"""
Errors - Stable error codes and the exception hierarchy.

Contract errors carry numeric codes that are part of the external
interface; any two implementations of the game must agree on them.

Two classes of rejection:
- Structural (identity, phase, argument range): deterministic, mutate nothing
- Cryptographic (HASH_MISMATCH): the only one where resubmitting corrected
  secret inputs is the expected recovery
"""

from __future__ import annotations
from enum import IntEnum


class GameError(IntEnum):
    """Contract error codes."""
    GAME_NOT_FOUND = 1
    NOT_PLAYER = 2
    WRONG_PHASE = 3
    ALREADY_COMMITTED = 4
    INVALID_HAND = 5
    HANDS_MUST_DIFFER = 6
    HASH_MISMATCH = 7
    INVALID_CHOICE = 8
    GAME_ALREADY_ENDED = 9

    # Host-side rejections of create_session
    SESSION_EXISTS = 10
    SELF_PLAY_NOT_ALLOWED = 11
    INVALID_STAKE = 12

    @property
    def retryable(self) -> bool:
        return self is GameError.HASH_MISMATCH


class CtmError(Exception):
    """Base class for all package errors."""
    pass


class ContractError(CtmError):
    """A contract call was rejected with a stable error code."""

    def __init__(self, code: GameError, message: str | None = None):
        self.code = GameError(code)
        super().__init__(message or f"{self.code.name} ({int(self.code)})")

    @property
    def retryable(self) -> bool:
        return self.code.retryable


class AuthorizationError(CtmError):
    """Missing, invalid, expired or replayed authorization at submit time."""
    pass


class MalformedInvocation(CtmError):
    """Unknown method, wrong argument count or wrong argument types."""
    pass


# ============ Bootstrap protocol ============

class BootstrapError(CtmError):
    """Base class for session bootstrap failures."""
    pass


class ArtifactParseError(BootstrapError):
    """The exported artifact is malformed or not a create_session authorization."""
    pass


class SelfPlayError(BootstrapError):
    """The importing player is the player who drafted the artifact."""
    pass


class InvocationMismatch(BootstrapError):
    """The signed authorization does not match the rebuilt request."""
    pass


class AuthorizationExpired(BootstrapError):
    """An authorization entry is past its expiration ledger."""

    def __init__(self, expiration_ledger: int, current_ledger: int):
        self.expiration_ledger = expiration_ledger
        self.current_ledger = current_ledger
        super().__init__(
            f"Authorization expired at ledger {expiration_ledger} "
            f"(current ledger {current_ledger}); draft a fresh artifact"
        )
