"""
Engine Core - Deterministic session state and phase transitions.

The engine is the logic the ledger executes:
1. Commitments bind players to hidden hands and choices
2. The reducer validates and applies calls to a session record
3. The outcome resolver picks the winner once both kept hands are known

Nothing in here performs I/O or holds mutable state.
"""

from .state import GameSession, Hand, Phase, PlayerSide
from .action import Call, CallType, CallPayload, CallResult
from .reducer import Reducer, apply_call
from .commitment import (
    HandsSecret,
    ChoiceSecret,
    choice_commitment,
    generate_salt,
    hands_commitment,
    keccak256,
)
from .outcome import Winner, beats, resolve
from .events import Event, EventType
from .errors import GameError, CtmError, ContractError

__all__ = [
    "GameSession",
    "Hand",
    "Phase",
    "PlayerSide",
    "Call",
    "CallType",
    "CallPayload",
    "CallResult",
    "Reducer",
    "apply_call",
    "HandsSecret",
    "ChoiceSecret",
    "choice_commitment",
    "generate_salt",
    "hands_commitment",
    "keccak256",
    "Winner",
    "beats",
    "resolve",
    "Event",
    "EventType",
    "GameError",
    "CtmError",
    "ContractError",
]
