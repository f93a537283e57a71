"""
Session Bootstrap - Two players co-authorize create_session without being
online at the same time.

FLOW:
1. draft            Player A simulates create_session against a placeholder
                    opponent, signs only A's entry, exports it
2. import_and_sign  Player B parses and verifies the artifact, rebuilds the
                    request with B's real identity and stake, signs B's entry,
                    merges both into one transaction and signs the envelope
                    as fee payer
3. finalize         Anyone re-checks the transaction and submits it

Every step is a pure function of its inputs plus ledger reads. Nothing is
stored between steps; the artifact and the transaction text are the only
messages.

Entries are always matched to signers by address, never by position.
"""

from __future__ import annotations
import logging

from ..config import MULTI_SIG_AUTH_TTL_MINUTES
from ..engine_core.errors import (
    ArtifactParseError,
    AuthorizationExpired,
    BootstrapError,
    InvocationMismatch,
    SelfPlayError,
)
from ..ledger.auth import Account, Invocation, ScArg, placeholder_address
from ..ledger.contract import METHODS, create_session_auth_invocation
from ..ledger.localnet import LocalLedger, SimulationResult, TransactionReceipt
from ..ledger.transaction import Transaction
from .artifact import ExportedArtifact, parse_artifact, valid_until_ledger

logger = logging.getLogger(__name__)


def create_session_invocation(
    contract_id: str,
    session_id: int,
    player_a: str,
    player_b: str,
    stake_a: int,
    stake_b: int,
) -> Invocation:
    return Invocation(contract_id, "create_session", (
        ScArg.u32(session_id),
        ScArg.address(player_a),
        ScArg.address(player_b),
        ScArg.i128(stake_a),
        ScArg.i128(stake_b),
    ))


class SessionBootstrap:
    """
    Drives the three bootstrap steps against one deployed contract.

    Usage:
        bootstrap = SessionBootstrap(ledger, contract_id)
        artifact = bootstrap.draft(7, alice.address, 100, alice)
        tx_text = bootstrap.import_and_sign(artifact.to_text(), bob.address, 100, bob)
        receipt = bootstrap.finalize(tx_text)
    """

    def __init__(self, ledger: LocalLedger, contract_id: str):
        self.ledger = ledger
        self.contract_id = contract_id

    # =========================================================================
    # Step 1 - draft
    # =========================================================================

    def draft(
        self,
        session_id: int,
        player_a: str,
        stake_a: int,
        signer_a: Account,
        stake_b: int | None = None,
        ttl_minutes: float | None = None,
    ) -> ExportedArtifact:
        """Simulate with a placeholder opponent and sign A's entry only."""
        invocation = create_session_invocation(
            self.contract_id,
            session_id,
            player_a,
            placeholder_address(),
            stake_a,
            stake_a if stake_b is None else stake_b,
        )
        simulation = self._simulate(invocation)
        entry = simulation.entry_for(player_a)
        if entry is None:
            raise BootstrapError(f"Simulation does not require authorization from {player_a}")

        expiration = valid_until_ledger(simulation.latest_ledger, ttl_minutes or MULTI_SIG_AUTH_TTL_MINUTES)
        signed = entry.sign(signer_a, expiration, self.ledger.network_passphrase)
        logger.info(f"Drafted session {session_id} for {player_a}, valid until ledger {expiration}")
        return ExportedArtifact(session_id=session_id, player_a=player_a, stake_a=stake_a, entry=signed)

    # =========================================================================
    # Step 2 - import and sign
    # =========================================================================

    def import_and_sign(
        self,
        artifact_text: str,
        player_b: str,
        stake_b: int,
        signer_b: Account,
        ttl_minutes: float | None = None,
    ) -> str:
        """
        Countersign A's artifact.

        A's signature and expiration are checked before B signs anything.
        Returns the fully authorized, envelope-signed transaction as text.
        """
        artifact = parse_artifact(artifact_text)
        if player_b == artifact.player_a:
            raise SelfPlayError("Cannot play against yourself: the artifact was drafted by this account")

        expected = create_session_auth_invocation(self.contract_id, artifact.session_id, artifact.stake_a)
        if artifact.entry.invocation != expected:
            raise InvocationMismatch(
                f"Artifact authorizes contract {artifact.contract_id}, expected {self.contract_id}"
            )
        if not artifact.entry.verify(self.ledger.network_passphrase):
            raise ArtifactParseError(f"Signature on the artifact does not verify for {artifact.player_a}")
        current = self.ledger.sequence
        if artifact.expiration_ledger < current:
            logger.warning(f"Refusing to import session {artifact.session_id}: authorization expired")
            raise AuthorizationExpired(artifact.expiration_ledger, current)

        invocation = create_session_invocation(
            self.contract_id,
            artifact.session_id,
            artifact.player_a,
            player_b,
            artifact.stake_a,
            stake_b,
        )
        simulation = self._simulate(invocation)
        required_a = simulation.entry_for(artifact.player_a)
        if required_a is None or required_a.invocation != artifact.entry.invocation:
            raise InvocationMismatch("Rebuilt request does not match the authorization in the artifact")
        entry_b = simulation.entry_for(player_b)
        if entry_b is None:
            raise BootstrapError(f"Simulation does not require authorization from {player_b}")

        expiration = valid_until_ledger(simulation.latest_ledger, ttl_minutes or MULTI_SIG_AUTH_TTL_MINUTES)
        signed_b = entry_b.sign(signer_b, expiration, self.ledger.network_passphrase)

        tx = Transaction(source=player_b, invocation=invocation, auth=(artifact.entry, signed_b))
        tx = tx.sign(signer_b, self.ledger.network_passphrase)
        logger.info(f"Imported session {artifact.session_id}: {player_b} countersigned {artifact.player_a}")
        return tx.to_text()

    # =========================================================================
    # Step 3 - finalize
    # =========================================================================

    def finalize(self, tx_text: str, submitter: Account | None = None) -> TransactionReceipt:
        """
        Re-check and submit the co-signed transaction.

        `submitter` re-signs the envelope; it must be the transaction's
        source account.
        """
        try:
            tx = Transaction.from_text(tx_text)
        except ValueError as e:
            raise BootstrapError(f"Malformed transaction: {e}") from e

        invocation = tx.invocation
        if invocation.function_name != "create_session":
            raise InvocationMismatch(f"Unexpected function: {invocation.function_name}")
        if invocation.arg_types != METHODS["create_session"]:
            raise InvocationMismatch(f"Expected 5 create_session args, got {len(invocation.args)}")
        if invocation.contract_id != self.contract_id:
            raise InvocationMismatch(f"Transaction targets contract {invocation.contract_id}")

        current = self.ledger.sequence
        for entry in tx.auth:
            if entry.expiration_ledger < current:
                logger.warning(f"Refusing to finalize session {invocation.values()[0]}: authorization expired")
                raise AuthorizationExpired(entry.expiration_ledger, current)

        self._simulate(invocation)
        if submitter is not None:
            tx = tx.sign(submitter, self.ledger.network_passphrase)

        receipt = self.ledger.submit(tx)
        receipt.raise_for_status()
        logger.info(f"Finalized session {invocation.values()[0]} in ledger {receipt.ledger}")
        return receipt

    def _simulate(self, invocation: Invocation) -> SimulationResult:
        return self.ledger.simulate(invocation).raise_for_status()

