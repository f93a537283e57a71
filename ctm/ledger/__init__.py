"""
Ledger - The host that executes the game contract.

Provides:
- Accounts, typed invocations and signed authorization entries
- The transaction envelope
- The game contract (method dispatch, auth requirements, storage)
- An in-process ledger for simulation and submission
- The escrow hub interface
"""

from .auth import (
    Account,
    AuthorizationEntry,
    Invocation,
    ScArg,
    ScType,
    is_valid_address,
    placeholder_address,
)
from .transaction import Transaction
from .escrow import Escrow, EscrowError, InMemoryGameHub
from .storage import SessionStore
from .contract import (
    METHODS,
    CtmContract,
    InvokeOutcome,
    call_from_invocation,
    create_session_auth_invocation,
    invocation_for_call,
)
from .localnet import LocalLedger, SimulationResult, TransactionReceipt, TransactionStatus

__all__ = [
    "Account",
    "AuthorizationEntry",
    "Invocation",
    "ScArg",
    "ScType",
    "is_valid_address",
    "placeholder_address",
    "Transaction",
    "Escrow",
    "EscrowError",
    "InMemoryGameHub",
    "SessionStore",
    "METHODS",
    "CtmContract",
    "InvokeOutcome",
    "call_from_invocation",
    "create_session_auth_invocation",
    "invocation_for_call",
    "LocalLedger",
    "SimulationResult",
    "TransactionReceipt",
    "TransactionStatus",
]
