"""
Client - The caller-side workflow for playing a session.

The client:
- Builds each game call, simulates it, signs the caller's authorization
  entry and the envelope, and submits
- Draws commitment secrets and keeps them in a SecretStore until reveal
- Polls the ledger while waiting for the opponent

All waiting happens here. The contract and the ledger never block.
"""

from __future__ import annotations
from enum import Enum
import logging
import re
import secrets
import time

from ..config import (
    DEFAULT_AUTH_TTL_MINUTES,
    POINT_DECIMALS,
    POLL_INTERVAL_SECONDS,
    POLL_TIMEOUT_SECONDS,
)
from ..bootstrap.artifact import valid_until_ledger
from ..bootstrap.protocol import SessionBootstrap
from ..engine_core.action import Call
from ..engine_core.commitment import ChoiceSecret, HandsSecret
from ..engine_core.errors import AuthorizationError, ContractError, CtmError, GameError
from ..engine_core.state import GameSession, Hand, Phase
from ..ledger.auth import Account, Invocation, ScArg
from ..ledger.contract import invocation_for_call
from ..ledger.localnet import LocalLedger, TransactionReceipt
from ..ledger.transaction import Transaction
from .secrets import SecretStore

logger = logging.getLogger(__name__)


# =============================================================================
# Helpers
# =============================================================================

def random_session_id() -> int:
    """A random non-zero u32 session id."""
    value = 0
    while value == 0:
        value = secrets.randbits(32)
    return value


def parse_points(text: str) -> int | None:
    """
    Parse a decimal point amount into integer units (7 decimals).

    Characters other than digits and '.' are ignored; extra fraction
    digits are truncated. Returns None when nothing numeric remains.
    """
    cleaned = re.sub(r"[^\d.]", "", text)
    if not cleaned or cleaned == ".":
        return None
    whole, _, fraction = cleaned.partition(".")
    if "." in fraction:
        return None
    fraction = fraction.ljust(POINT_DECIMALS, "0")[:POINT_DECIMALS]
    return int((whole or "0") + fraction)


def format_points(units: int, places: int = 2) -> str:
    """Format integer units as a decimal point amount."""
    return f"{units / 10 ** POINT_DECIMALS:.{places}f}"


class PlayerStep(Enum):
    """What a given player should do next in a session."""
    COMMIT_HANDS = "commit_hands"
    WAITING_COMMITS = "waiting_commits"
    REVEAL_HANDS = "reveal_hands"
    WAITING_REVEALS = "waiting_reveals"
    COMMIT_CHOICE = "commit_choice"
    WAITING_CHOICES = "waiting_choices"
    REVEAL_CHOICE = "reveal_choice"
    WAITING_FINAL = "waiting_final"
    COMPLETE = "complete"


_STEPS = {
    Phase.COMMIT_HANDS: ("commit", PlayerStep.COMMIT_HANDS, PlayerStep.WAITING_COMMITS),
    Phase.REVEAL_HANDS: ("left", PlayerStep.REVEAL_HANDS, PlayerStep.WAITING_REVEALS),
    Phase.COMMIT_CHOICE: ("choice_commit", PlayerStep.COMMIT_CHOICE, PlayerStep.WAITING_CHOICES),
    Phase.REVEAL_CHOICE: ("kept", PlayerStep.REVEAL_CHOICE, PlayerStep.WAITING_FINAL),
}


def next_step(session: GameSession, address: str) -> PlayerStep:
    """Derive a player's next step from the session record."""
    if session.is_complete:
        return PlayerStep.COMPLETE
    side = session.side_of(address)
    if side is None:
        raise ContractError(GameError.NOT_PLAYER, f"{address} is not a player in session {session.session_id}")
    field_name, act, wait = _STEPS[session.phase]
    return wait if session.get(field_name, side) is not None else act


# =============================================================================
# Client
# =============================================================================

class CtmClient:
    """
    Plays sessions on one deployed contract.

    Usage:
        client = CtmClient(ledger, contract_id)
        client.commit_hands(42, alice, Hand.ROCK, Hand.PAPER)
        client.wait_for_phase(42, Phase.REVEAL_HANDS)
        client.reveal_hands(42, alice)
    """

    def __init__(
        self,
        ledger: LocalLedger,
        contract_id: str,
        secret_store: SecretStore | None = None,
        poll_interval: float = POLL_INTERVAL_SECONDS,
        poll_timeout: float = POLL_TIMEOUT_SECONDS,
    ):
        self.ledger = ledger
        self.contract_id = contract_id
        self.secrets = secret_store or SecretStore()
        self.poll_interval = poll_interval
        self.poll_timeout = poll_timeout
        self.bootstrap = SessionBootstrap(ledger, contract_id)

    # =========================================================================
    # Reads
    # =========================================================================

    def get_session(self, session_id: int) -> GameSession | None:
        """Read a session through the contract. None when not found."""
        invocation = Invocation(self.contract_id, "get_session", (ScArg.u32(session_id),))
        result = self.ledger.simulate(invocation)
        if result.error_code is GameError.GAME_NOT_FOUND:
            return None
        return result.raise_for_status().value

    def load_session(self, session_id: int, address: str) -> GameSession:
        """Read a session the caller plays in."""
        session = self.get_session(session_id)
        if session is None:
            raise ContractError(GameError.GAME_NOT_FOUND, f"Session {session_id} not found")
        if session.side_of(address) is None:
            raise ContractError(GameError.NOT_PLAYER, f"{address} is not a player in session {session_id}")
        return session

    # =========================================================================
    # Game actions
    # =========================================================================

    def send(self, account: Account, call: Call, ttl_minutes: float | None = None) -> TransactionReceipt:
        """Simulate, sign and submit a single-signer game call."""
        passphrase = self.ledger.network_passphrase
        invocation = invocation_for_call(self.contract_id, call)
        simulation = self.ledger.simulate(invocation).raise_for_status()

        expiration = valid_until_ledger(simulation.latest_ledger, ttl_minutes or DEFAULT_AUTH_TTL_MINUTES)
        entries = []
        for entry in simulation.required_auth:
            if entry.address != account.address:
                raise AuthorizationError(f"{call.call_type.value} also needs authorization from {entry.address}")
            entries.append(entry.sign(account, expiration, passphrase))

        tx = Transaction(source=account.address, invocation=invocation, auth=tuple(entries))
        receipt = self.ledger.submit(tx.sign(account, passphrase)).raise_for_status()
        logger.info(f"{account.address[:8]} {call.call_type.value} on session {call.session_id}")
        return receipt

    def commit_hands(self, session_id: int, account: Account, left: int, right: int) -> HandsSecret:
        """
        Draw a hands secret, store it, and commit to it.

        A pair the contract would refuse at reveal (out of range or equal
        hands) is rejected here, before anything is drawn, stored or sent.
        """
        if left not in tuple(Hand) or right not in tuple(Hand):
            raise ContractError(GameError.INVALID_HAND, f"Hands must be 0-2, got {left} and {right}")
        if left == right:
            raise ContractError(GameError.HANDS_MUST_DIFFER, f"Both hands are {Hand(left).name}")
        secret = HandsSecret.draw(left, right)
        self.secrets.save_hands(session_id, account.address, secret)
        self.send(account, Call.commit_hands(session_id, account.address, secret.commitment()))
        return secret

    def reveal_hands(self, session_id: int, account: Account) -> TransactionReceipt:
        secret = self.secrets.load_hands(session_id, account.address)
        if secret is None:
            raise CtmError(f"No stored hands for {account.address} in session {session_id}")
        return self.send(
            account, Call.reveal_hands(session_id, account.address, secret.left, secret.right, secret.salt),
        )

    def commit_choice(self, session_id: int, account: Account, index: int) -> ChoiceSecret:
        """Draw a choice secret (never reusing the hands salt), store it, and commit."""
        if index not in (0, 1):
            raise ContractError(GameError.INVALID_CHOICE, f"Choice must be 0 (left) or 1 (right), got {index}")
        previous = self.secrets.load_hands(session_id, account.address)
        secret = ChoiceSecret.draw(index, previous=previous)
        self.secrets.save_choice(session_id, account.address, secret)
        self.send(account, Call.commit_choice(session_id, account.address, secret.commitment()))
        return secret

    def reveal_choice(self, session_id: int, account: Account) -> TransactionReceipt:
        secret = self.secrets.load_choice(session_id, account.address)
        if secret is None:
            raise CtmError(f"No stored choice for {account.address} in session {session_id}")
        return self.send(
            account, Call.reveal_choice(session_id, account.address, secret.index, secret.salt),
        )

    # =========================================================================
    # Waiting
    # =========================================================================

    def wait_for_session(self, session_id: int, timeout: float | None = None) -> GameSession:
        """Poll until the session exists. Raises TimeoutError."""
        return self._poll(session_id, lambda s: s is not None, timeout, "to be created")

    def wait_for_phase(self, session_id: int, phase: Phase, timeout: float | None = None) -> GameSession:
        """Poll until the session has reached `phase` (or a later one)."""
        return self._poll(
            session_id,
            lambda s: s is not None and s.phase.wire >= phase.wire,
            timeout,
            f"to reach {phase.name}",
        )

    def _poll(self, session_id, done, timeout, description) -> GameSession:
        deadline = time.monotonic() + (self.poll_timeout if timeout is None else timeout)
        while True:
            session = self.get_session(session_id)
            if done(session):
                return session
            if time.monotonic() >= deadline:
                raise TimeoutError(f"Timed out waiting for session {session_id} {description}")
            time.sleep(self.poll_interval)

    # =========================================================================
    # Quickstart
    # =========================================================================

    def quickstart(
        self,
        account_a: Account,
        account_b: Account,
        stake: int,
        session_id: int | None = None,
    ) -> GameSession:
        """
        Bootstrap a session between two local accounts and play a scripted
        game: A shows Rock+Paper, B shows Scissors+Rock, both keep left.
        Rock beats Scissors, so A wins.
        """
        session_id = session_id or random_session_id()
        artifact = self.bootstrap.draft(session_id, account_a.address, stake, account_a)
        tx_text = self.bootstrap.import_and_sign(artifact.to_text(), account_b.address, stake, account_b)
        self.bootstrap.finalize(tx_text)
        logger.info(f"Quickstart session {session_id} created")

        self.commit_hands(session_id, account_a, Hand.ROCK, Hand.PAPER)
        self.commit_hands(session_id, account_b, Hand.SCISSORS, Hand.ROCK)
        self.reveal_hands(session_id, account_a)
        self.reveal_hands(session_id, account_b)
        self.commit_choice(session_id, account_a, 0)
        self.commit_choice(session_id, account_b, 0)
        self.reveal_choice(session_id, account_a)
        self.reveal_choice(session_id, account_b)

        session = self.load_session(session_id, account_a.address)
        for account in (account_a, account_b):
            self.secrets.clear(session_id, account.address)
        return session

