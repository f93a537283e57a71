"""
Local Ledger - An in-process ledger host for the game contract.

RESPONSIBILITIES:
1. Simulate invocations (dry-run + list the authorizations they need)
2. Verify submitted transactions: envelope signature, auth entries,
   expiration ledgers, nonce replay
3. Execute the contract and record its events
4. Advance the ledger sequence

CONCURRENCY:
- A ledger-wide lock protects the sequence counter, nonce set and event log
- Session records are serialized by the contract's per-session locks, so
  distinct sessions never wait on each other while executing

This is not a consensus system. It exists so the contract can be executed,
tested and driven from the client and API layers.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any
import hashlib
import logging
import secrets
import threading

from algosdk import encoding

from ..config import NETWORK_PASSPHRASE
from ..engine_core.errors import (
    AuthorizationError,
    ContractError,
    CtmError,
    GameError,
    MalformedInvocation,
)
from ..engine_core.events import Event
from ..engine_core.state import GameSession
from .auth import AuthorizationEntry, Invocation
from .contract import CtmContract, check_invocation
from .transaction import Transaction

logger = logging.getLogger(__name__)


class TransactionStatus(Enum):
    SUCCESS = "success"
    FAILED = "failed"


@dataclass
class TransactionReceipt:
    """Outcome of a submitted transaction."""
    tx_id: str
    status: TransactionStatus
    ledger: int
    value: Any = None
    error: str | None = None
    error_code: GameError | None = None
    events: list[Event] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.status is TransactionStatus.SUCCESS

    def raise_for_status(self) -> TransactionReceipt:
        """Raise ContractError (or CtmError without a code) if the transaction failed."""
        if self.success:
            return self
        if self.error_code is not None:
            raise ContractError(self.error_code, self.error)
        raise CtmError(self.error or "Transaction failed")


@dataclass
class SimulationResult:
    """
    Dry-run of an invocation against current state.

    `required_auth` holds one unsigned entry per address that must
    authorize the invocation, each with a fresh nonce.
    """
    success: bool
    latest_ledger: int
    value: Any = None
    error: str | None = None
    error_code: GameError | None = None
    required_auth: list[AuthorizationEntry] = field(default_factory=list)
    events: list[Event] = field(default_factory=list)

    def entry_for(self, address: str) -> AuthorizationEntry | None:
        """The unsigned entry addressed to `address`, if any."""
        for entry in self.required_auth:
            if entry.address == address:
                return entry
        return None

    def raise_for_status(self) -> SimulationResult:
        if self.success:
            return self
        if self.error_code is not None:
            raise ContractError(self.error_code, self.error)
        raise CtmError(self.error or "Simulation failed")


class LocalLedger:
    """
    Single-process ledger.

    Usage:
        ledger = LocalLedger()
        contract_id = ledger.deploy(CtmContract(admin=admin.address, hub=hub))
        sim = ledger.simulate(invocation)
        receipt = ledger.submit(signed_tx)
    """

    def __init__(
        self,
        network_passphrase: str = NETWORK_PASSPHRASE,
        start_sequence: int = 1,
        auto_close: bool = True,
    ):
        self.network_passphrase = network_passphrase
        self.auto_close = auto_close
        self._sequence = start_sequence
        self._contracts: dict[str, CtmContract] = {}
        self._used_nonces: set[tuple[str, int]] = set()
        self._events: list[Event] = []
        self._lock = threading.Lock()

    @property
    def sequence(self) -> int:
        """The current (open) ledger sequence."""
        return self._sequence

    def close_ledgers(self, count: int = 1) -> int:
        """Advance the sequence by `count` ledgers. Returns the new sequence."""
        if count < 0:
            raise ValueError("Cannot close a negative number of ledgers")
        with self._lock:
            self._sequence += count
            return self._sequence

    # =========================================================================
    # Contracts
    # =========================================================================

    def deploy(self, contract: CtmContract) -> str:
        """Register a contract and return its id."""
        with self._lock:
            seed = f"{self.network_passphrase}:{len(self._contracts)}".encode("utf-8")
            contract_id = encoding.encode_address(hashlib.sha256(seed).digest())
            contract.contract_id = contract_id
            self._contracts[contract_id] = contract
        logger.info(f"Deployed contract {contract_id}")
        return contract_id

    def contract(self, contract_id: str) -> CtmContract:
        try:
            return self._contracts[contract_id]
        except KeyError:
            raise MalformedInvocation(f"No contract deployed at {contract_id}") from None

    # =========================================================================
    # Simulation
    # =========================================================================

    def simulate(self, invocation: Invocation) -> SimulationResult:
        """
        Dry-run an invocation.

        Raises MalformedInvocation for unknown contracts, methods or
        argument shapes. Contract rejections come back as an unsuccessful
        result, not an exception.
        """
        contract = self.contract(invocation.contract_id)
        check_invocation(invocation)
        sequence = self._sequence
        outcome = contract.simulate(invocation, sequence)
        required = [
            AuthorizationEntry(address=address, nonce=secrets.randbits(63), invocation=inv)
            for address, inv in contract.required_auth(invocation)
        ]
        logger.debug(
            f"Simulated {invocation.function_name} at ledger {sequence}: "
            f"{'ok' if outcome.success else outcome.error}"
        )
        return SimulationResult(
            success=outcome.success,
            latest_ledger=sequence,
            value=outcome.value,
            error=outcome.error,
            error_code=outcome.error_code,
            required_auth=required,
            events=outcome.events,
        )

    # =========================================================================
    # Submission
    # =========================================================================

    def submit(self, tx: Transaction) -> TransactionReceipt:
        """
        Verify and execute a transaction.

        Raises MalformedInvocation or AuthorizationError when the
        transaction is rejected before execution. Contract rejections
        produce a FAILED receipt.
        """
        contract = self.contract(tx.invocation.contract_id)
        check_invocation(tx.invocation)
        if not tx.verify_signature(self.network_passphrase):
            raise AuthorizationError(f"Invalid envelope signature for source {tx.source}")

        tx_id = tx.tx_id(self.network_passphrase)
        with self._lock:
            sequence = self._sequence
            nonces = self._check_auth(contract, tx, sequence)
            self._used_nonces.update(nonces)

        outcome = contract.invoke(tx.invocation, sequence)

        with self._lock:
            if not outcome.success:
                self._used_nonces.difference_update(nonces)
                logger.warning(f"Transaction {tx_id[:12]} failed: {outcome.error}")
                return TransactionReceipt(
                    tx_id=tx_id,
                    status=TransactionStatus.FAILED,
                    ledger=sequence,
                    error=outcome.error,
                    error_code=outcome.error_code,
                )
            events = [event.at_ledger(sequence) for event in outcome.events]
            self._events.extend(events)
            if self.auto_close:
                self._sequence += 1

        logger.info(f"Transaction {tx_id[:12]} {tx.invocation.function_name} applied in ledger {sequence}")
        return TransactionReceipt(
            tx_id=tx_id,
            status=TransactionStatus.SUCCESS,
            ledger=sequence,
            value=outcome.value,
            events=events,
        )

    def _check_auth(self, contract: CtmContract, tx: Transaction, sequence: int) -> list[tuple[str, int]]:
        """Match each required signer to its entry by address and verify it."""
        nonces = []
        for address, invocation in contract.required_auth(tx.invocation):
            entry = tx.auth_for(address)
            if entry is None:
                raise AuthorizationError(f"Missing authorization for {address}")
            if entry.invocation != invocation:
                raise AuthorizationError(f"Authorization for {address} covers a different invocation")
            if entry.expiration_ledger < sequence:
                logger.warning(
                    f"Expired authorization for {address}: "
                    f"expired at {entry.expiration_ledger}, ledger is {sequence}"
                )
                raise AuthorizationError(
                    f"Authorization for {address} expired at ledger {entry.expiration_ledger}"
                )
            if not entry.verify(self.network_passphrase):
                raise AuthorizationError(f"Invalid signature on authorization for {address}")
            key = (address, entry.nonce)
            if key in self._used_nonces or key in nonces:
                raise AuthorizationError(f"Nonce {entry.nonce} already used by {address}")
            nonces.append(key)
        return nonces

    # =========================================================================
    # Reads
    # =========================================================================

    def get_session(self, contract_id: str, session_id: int) -> GameSession | None:
        return self.contract(contract_id).read_session(session_id, self._sequence)

    def session_ids(self, contract_id: str) -> list[int]:
        return self.contract(contract_id).session_ids(self._sequence)

    def events(self, since: int | None = None, session_id: int | None = None) -> list[Event]:
        """Events in emission order, optionally from ledger `since` onwards."""
        with self._lock:
            events = list(self._events)
        return [
            e for e in events
            if (since is None or e.ledger >= since)
            and (session_id is None or e.session_id == session_id)
        ]

    def collect_expired(self) -> dict[str, list[int]]:
        """Evict expired session records from every contract."""
        return {
            contract_id: contract.collect_expired(self._sequence)
            for contract_id, contract in list(self._contracts.items())
        }
