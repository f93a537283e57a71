"""
Tests for the session bootstrap protocol.

Tests:
- draft / import_and_sign / finalize (session 7)
- Self-play and malformed artifacts fail before anything is signed
- Tampering and expiry
- Share links
"""

from dataclasses import replace
from unittest import mock

import pytest

from ..bootstrap import (
    ExportedArtifact,
    SessionBootstrap,
    artifact_from_link,
    parse_artifact,
    valid_until_ledger,
)
from ..bootstrap.protocol import create_session_invocation
from ..config import MULTI_SIG_AUTH_TTL_MINUTES
from ..engine_core.errors import (
    ArtifactParseError,
    AuthorizationError,
    AuthorizationExpired,
    BootstrapError,
    ContractError,
    GameError,
    InvocationMismatch,
    SelfPlayError,
)
from ..engine_core.state import Phase
from ..ledger import Account, CtmContract, InMemoryGameHub, Invocation, ScArg, Transaction
from ..ledger.auth import AuthorizationEntry
from ..ledger.contract import create_session_auth_invocation


class TestValidUntil:
    """Tests for TTL-to-ledger conversion (5 second ledgers)."""

    def test_minutes_to_ledgers(self):
        assert valid_until_ledger(100, 5) == 160
        assert valid_until_ledger(100, 60) == 820

    def test_rounds_up(self):
        assert valid_until_ledger(0, 0.05) == 1

    def test_positive_only(self):
        with pytest.raises(ValueError):
            valid_until_ledger(100, 0)


class TestDraft:
    """Step 1: player A drafts and signs."""

    def test_artifact_fields(self, bootstrap, ledger, alice):
        artifact = bootstrap.draft(7, alice.address, 100, alice)
        assert (artifact.session_id, artifact.player_a, artifact.stake_a) == (7, alice.address, 100)
        assert artifact.contract_id == bootstrap.contract_id
        assert artifact.expiration_ledger == valid_until_ledger(ledger.sequence, MULTI_SIG_AUTH_TTL_MINUTES)

    def test_entry_binds_only_id_and_own_stake(self, bootstrap, alice):
        entry = bootstrap.draft(7, alice.address, 100, alice).entry
        assert entry.invocation.function_name == "create_session"
        assert entry.invocation.values() == [7, 100]
        assert entry.address == alice.address
        assert entry.verify(bootstrap.ledger.network_passphrase)

    def test_custom_ttl(self, bootstrap, ledger, alice):
        artifact = bootstrap.draft(7, alice.address, 100, alice, ttl_minutes=1)
        assert artifact.expiration_ledger == ledger.sequence + 12

    def test_active_session_id(self, bootstrap, live_session, alice):
        with pytest.raises(ContractError) as exc_info:
            bootstrap.draft(live_session, alice.address, 100, alice)
        assert exc_info.value.code is GameError.SESSION_EXISTS

    def test_draft_does_not_create_session(self, bootstrap, ledger, contract_id, alice):
        bootstrap.draft(7, alice.address, 100, alice)
        assert ledger.get_session(contract_id, 7) is None


class TestImportAndSign:
    """Step 2: player B countersigns."""

    @pytest.fixture
    def artifact(self, bootstrap, alice) -> ExportedArtifact:
        return bootstrap.draft(7, alice.address, 100, alice)

    def test_produces_cosigned_transaction(self, bootstrap, artifact, alice, bob):
        tx = Transaction.from_text(bootstrap.import_and_sign(artifact.to_text(), bob.address, 50, bob))
        passphrase = bootstrap.ledger.network_passphrase
        assert tx.source == bob.address
        assert tx.invocation.values() == [7, alice.address, bob.address, 100, 50]
        assert tx.auth_for(alice.address) == artifact.entry
        assert tx.auth_for(bob.address).invocation.values() == [7, 50]
        assert all(entry.verify(passphrase) for entry in tx.auth)
        assert tx.verify_signature(passphrase)

    def test_self_play_rejected_before_signing(self, bootstrap, artifact, alice):
        signer = mock.Mock(spec=Account, address=alice.address)
        with pytest.raises(SelfPlayError):
            bootstrap.import_and_sign(artifact.to_text(), alice.address, 100, signer)
        signer.sign.assert_not_called()

    @pytest.mark.parametrize("text", ["", "not base64!", "aGVsbG8="])
    def test_garbage_rejected_before_signing(self, bootstrap, bob, text):
        signer = mock.Mock(spec=Account, address=bob.address)
        with pytest.raises(ArtifactParseError):
            bootstrap.import_and_sign(text, bob.address, 100, signer)
        signer.sign.assert_not_called()

    def test_wrong_function_rejected(self, bootstrap, alice, bob):
        invocation = Invocation(bootstrap.contract_id, "commit_hands", (ScArg.u32(7), ScArg.i128(100)))
        entry = AuthorizationEntry(alice.address, 1, invocation).sign(alice, 99, "net")
        with pytest.raises(ArtifactParseError, match="Unexpected function"):
            bootstrap.import_and_sign(entry.to_text(), bob.address, 100, bob)

    def test_wrong_arg_count_rejected(self, bootstrap, alice, bob):
        invocation = Invocation(bootstrap.contract_id, "create_session", (ScArg.u32(7),))
        entry = AuthorizationEntry(alice.address, 1, invocation).sign(alice, 99, "net")
        with pytest.raises(ArtifactParseError, match="Expected 2 args"):
            bootstrap.import_and_sign(entry.to_text(), bob.address, 100, bob)

    def test_unsigned_artifact_rejected(self, bootstrap, artifact, bob):
        unsigned = replace(artifact.entry, signature=None)
        with pytest.raises(ArtifactParseError, match="not signed"):
            bootstrap.import_and_sign(unsigned.to_text(), bob.address, 100, bob)

    def test_forged_signature_rejected_before_signing(self, bootstrap, artifact, bob):
        """A stake edited after A signed no longer matches A's signature."""
        forged = replace(
            artifact.entry,
            invocation=create_session_auth_invocation(bootstrap.contract_id, 7, 999),
        )
        signer = mock.Mock(spec=Account, address=bob.address)
        with pytest.raises(ArtifactParseError, match="does not verify"):
            bootstrap.import_and_sign(forged.to_text(), bob.address, 100, signer)
        signer.sign.assert_not_called()

    def test_expired_artifact_rejected_before_signing(self, bootstrap, ledger, alice, bob):
        artifact = bootstrap.draft(7, alice.address, 100, alice, ttl_minutes=1)
        ledger.close_ledgers(13)
        signer = mock.Mock(spec=Account, address=bob.address)
        with pytest.raises(AuthorizationExpired) as exc_info:
            bootstrap.import_and_sign(artifact.to_text(), bob.address, 100, signer)
        assert exc_info.value.expiration_ledger == artifact.expiration_ledger
        assert exc_info.value.current_ledger == ledger.sequence
        signer.sign.assert_not_called()

    def test_artifact_valid_through_its_expiration_ledger(self, bootstrap, ledger, alice, bob):
        artifact = bootstrap.draft(7, alice.address, 100, alice, ttl_minutes=1)
        ledger.close_ledgers(12)
        assert ledger.sequence == artifact.expiration_ledger
        tx = Transaction.from_text(bootstrap.import_and_sign(artifact.to_text(), bob.address, 100, bob))
        assert tx.auth_for(alice.address) == artifact.entry

    def test_foreign_contract_rejected(self, ledger, admin, artifact, bob):
        other_id = ledger.deploy(CtmContract(admin=admin.address, hub=InMemoryGameHub()))
        with pytest.raises(InvocationMismatch):
            SessionBootstrap(ledger, other_id).import_and_sign(artifact.to_text(), bob.address, 100, bob)


class TestFinalize:
    """Step 3: submit the co-signed transaction."""

    def test_session_7(self, bootstrap, client, hub, alice, bob):
        """A drafts session 7, B imports with their own stake, anyone finalizes."""
        artifact = bootstrap.draft(7, alice.address, 100, alice)
        tx_text = bootstrap.import_and_sign(artifact.to_text(), bob.address, 60, bob)
        receipt = bootstrap.finalize(tx_text)

        assert receipt.success
        session = client.get_session(7)
        assert session.phase is Phase.COMMIT_HANDS
        assert session.players == (alice.address, bob.address)
        assert (session.stake_a, session.stake_b) == (100, 60)
        assert hub.locked[7].total == 160

    def test_expired_authorization(self, bootstrap, ledger, alice, bob):
        artifact = bootstrap.draft(7, alice.address, 100, alice, ttl_minutes=1)
        tx_text = bootstrap.import_and_sign(artifact.to_text(), bob.address, 100, bob)
        ledger.close_ledgers(13)
        with pytest.raises(AuthorizationExpired) as exc_info:
            bootstrap.finalize(tx_text)
        assert exc_info.value.expiration_ledger == artifact.expiration_ledger
        assert "draft a fresh artifact" in str(exc_info.value)
        assert ledger.get_session(bootstrap.contract_id, 7) is None

    def test_expired_artifact_rejected_by_ledger_too(self, bootstrap, ledger, alice, bob):
        artifact = bootstrap.draft(7, alice.address, 100, alice, ttl_minutes=1)
        tx_text = bootstrap.import_and_sign(artifact.to_text(), bob.address, 100, bob)
        ledger.close_ledgers(13)
        with pytest.raises(AuthorizationError, match="expired"):
            ledger.submit(Transaction.from_text(tx_text))

    def test_tampered_stake_rejected(self, bootstrap, alice, bob):
        """B cannot raise A's stake after A signed."""
        artifact = bootstrap.draft(7, alice.address, 100, alice)
        tx = Transaction.from_text(bootstrap.import_and_sign(artifact.to_text(), bob.address, 100, bob))
        inflated = create_session_invocation(bootstrap.contract_id, 7, alice.address, bob.address, 999, 100)
        tampered = replace(tx, invocation=inflated).sign(bob, bootstrap.ledger.network_passphrase)
        with pytest.raises(AuthorizationError, match="different invocation"):
            bootstrap.finalize(tampered.to_text())

    def test_wrong_function_rejected(self, bootstrap, ledger, bob):
        tx = Transaction(source=bob.address, invocation=Invocation(bootstrap.contract_id, "get_admin"))
        with pytest.raises(InvocationMismatch):
            bootstrap.finalize(tx.sign(bob, ledger.network_passphrase).to_text())

    def test_malformed_text(self, bootstrap):
        with pytest.raises(BootstrapError):
            bootstrap.finalize("garbage")

    def test_finalize_twice(self, bootstrap, alice, bob):
        artifact = bootstrap.draft(7, alice.address, 100, alice)
        tx_text = bootstrap.import_and_sign(artifact.to_text(), bob.address, 100, bob)
        bootstrap.finalize(tx_text)
        with pytest.raises(ContractError) as exc_info:
            bootstrap.finalize(tx_text)
        assert exc_info.value.code is GameError.SESSION_EXISTS


class TestShareLinks:
    """Tests for the ?auth= deep link."""

    def test_link_round_trip(self, bootstrap, alice):
        artifact = bootstrap.draft(7, alice.address, 100, alice)
        link = artifact.share_link("https://play.example/ctm")
        assert link.startswith("https://play.example/ctm?auth=")
        assert "+" not in link.split("?auth=")[1]
        assert artifact_from_link(link) == artifact

    def test_link_with_existing_query(self, bootstrap, alice):
        artifact = bootstrap.draft(7, alice.address, 100, alice)
        link = artifact.share_link("https://play.example/?game=ctm")
        assert "?game=ctm&auth=" in link
        assert artifact_from_link(link).session_id == 7

    def test_link_without_artifact(self):
        with pytest.raises(ArtifactParseError):
            artifact_from_link("https://play.example/ctm?game=ctm")

    def test_parse_text(self, bootstrap, alice):
        artifact = bootstrap.draft(7, alice.address, 100, alice)
        assert parse_artifact(artifact.to_text()) == artifact
