"""
Pytest fixtures for CTM tests.
"""

import pytest

from ..bootstrap import SessionBootstrap
from ..client import CtmClient, SecretStore
from ..engine_core.action import Call
from ..engine_core.commitment import ChoiceSecret, HandsSecret
from ..engine_core.reducer import apply_call
from ..engine_core.state import GameSession, Hand
from ..ledger import Account, CtmContract, InMemoryGameHub, LocalLedger

STAKE = 100


# =============================================================================
# Accounts
# =============================================================================

@pytest.fixture(scope="session")
def alice() -> Account:
    return Account.generate()


@pytest.fixture(scope="session")
def bob() -> Account:
    return Account.generate()


@pytest.fixture(scope="session")
def carol() -> Account:
    """A third account that plays in no session."""
    return Account.generate()


@pytest.fixture(scope="session")
def admin() -> Account:
    return Account.generate()


# =============================================================================
# Secrets (fixed salts so failures are reproducible)
# =============================================================================

@pytest.fixture
def hands_a() -> HandsSecret:
    """A shows Rock + Paper."""
    return HandsSecret(Hand.ROCK, Hand.PAPER, bytes([0x11]) * 32)


@pytest.fixture
def hands_b() -> HandsSecret:
    """B shows Scissors + Rock."""
    return HandsSecret(Hand.SCISSORS, Hand.ROCK, bytes([0x22]) * 32)


@pytest.fixture
def choice_a() -> ChoiceSecret:
    return ChoiceSecret(0, bytes([0x33]) * 32)


@pytest.fixture
def choice_b() -> ChoiceSecret:
    return ChoiceSecret(0, bytes([0x44]) * 32)


# =============================================================================
# Sessions in each phase (pure reducer, no ledger)
# =============================================================================

def apply_all(session, *calls):
    """Apply calls in order, failing the test on any rejection."""
    for call in calls:
        result = apply_call(session, call)
        assert result.success, f"{call.call_type.value} rejected: {result.error}"
        session = result.new_session
    return session


@pytest.fixture
def created(alice, bob) -> GameSession:
    return apply_all(None, Call.create_session(42, alice.address, bob.address, STAKE, STAKE))


@pytest.fixture
def hands_committed(created, alice, bob, hands_a, hands_b) -> GameSession:
    return apply_all(
        created,
        Call.commit_hands(42, alice.address, hands_a.commitment()),
        Call.commit_hands(42, bob.address, hands_b.commitment()),
    )


@pytest.fixture
def hands_revealed(hands_committed, alice, bob, hands_a, hands_b) -> GameSession:
    return apply_all(
        hands_committed,
        Call.reveal_hands(42, alice.address, hands_a.left, hands_a.right, hands_a.salt),
        Call.reveal_hands(42, bob.address, hands_b.left, hands_b.right, hands_b.salt),
    )


@pytest.fixture
def choices_committed(hands_revealed, alice, bob, choice_a, choice_b) -> GameSession:
    return apply_all(
        hands_revealed,
        Call.commit_choice(42, alice.address, choice_a.commitment()),
        Call.commit_choice(42, bob.address, choice_b.commitment()),
    )


@pytest.fixture
def completed(choices_committed, alice, bob, choice_a, choice_b) -> GameSession:
    return apply_all(
        choices_committed,
        Call.reveal_choice(42, alice.address, choice_a.index, choice_a.salt),
        Call.reveal_choice(42, bob.address, choice_b.index, choice_b.salt),
    )


# =============================================================================
# Ledger
# =============================================================================

@pytest.fixture
def hub() -> InMemoryGameHub:
    return InMemoryGameHub()


@pytest.fixture
def contract(admin, hub) -> CtmContract:
    return CtmContract(admin=admin.address, hub=hub)


@pytest.fixture
def ledger() -> LocalLedger:
    return LocalLedger()


@pytest.fixture
def contract_id(ledger, contract) -> str:
    return ledger.deploy(contract)


@pytest.fixture
def bootstrap(ledger, contract_id) -> SessionBootstrap:
    return SessionBootstrap(ledger, contract_id)


@pytest.fixture
def client(ledger, contract_id) -> CtmClient:
    return CtmClient(ledger, contract_id, SecretStore(), poll_interval=0.01, poll_timeout=0.2)


@pytest.fixture
def live_session(bootstrap, alice, bob) -> int:
    """Session 42 created on the ledger through the full bootstrap."""
    artifact = bootstrap.draft(42, alice.address, STAKE, alice)
    tx_text = bootstrap.import_and_sign(artifact.to_text(), bob.address, STAKE, bob)
    bootstrap.finalize(tx_text)
    return 42
