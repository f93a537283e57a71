"""
Exported Artifact - The partially-signed authorization player A hands to B.

The artifact is player A's signed authorization entry for
create_session(session_id, stake_a). It is self-describing: the signer
address is player A, the invocation arguments carry the session id and
A's stake. It travels as text, optionally inside a share link.
"""

from __future__ import annotations
from dataclasses import dataclass
from urllib.parse import parse_qs, quote, urlsplit
import math

from ..config import LEDGER_CLOSE_SECONDS, SHARE_BASE_URL
from ..engine_core.errors import ArtifactParseError
from ..ledger.auth import AuthorizationEntry
from ..ledger.contract import CREATE_AUTH_TYPES

SHARE_PARAM = "auth"


def valid_until_ledger(current_ledger: int, ttl_minutes: float) -> int:
    """Ledger height `ttl_minutes` from now, rounding up to whole ledgers."""
    if ttl_minutes <= 0:
        raise ValueError(f"TTL must be positive, got {ttl_minutes}")
    return current_ledger + math.ceil(ttl_minutes * 60 / LEDGER_CLOSE_SECONDS)


@dataclass(frozen=True)
class ExportedArtifact:
    """Player A's half of a session bootstrap."""
    session_id: int
    player_a: str
    stake_a: int
    entry: AuthorizationEntry

    @property
    def contract_id(self) -> str:
        return self.entry.invocation.contract_id

    @property
    def expiration_ledger(self) -> int:
        return self.entry.expiration_ledger

    def to_text(self) -> str:
        return self.entry.to_text()

    def share_link(self, base_url: str = SHARE_BASE_URL) -> str:
        """Deep link carrying the artifact in its `auth` query parameter."""
        separator = "&" if "?" in base_url else "?"
        return f"{base_url}{separator}{SHARE_PARAM}={quote(self.to_text(), safe='')}"

    def to_dict(self) -> dict:
        return {
            "session_id": self.session_id,
            "player_a": self.player_a,
            "stake_a": self.stake_a,
            "contract_id": self.contract_id,
            "expiration_ledger": self.expiration_ledger,
        }


def parse_auth_entry(entry: AuthorizationEntry) -> ExportedArtifact:
    """
    Read the bootstrap parameters out of a signed create_session entry.

    Raises ArtifactParseError unless the entry authorizes exactly
    create_session(u32, i128) and carries a signature.
    """
    invocation = entry.invocation
    if invocation.function_name != "create_session":
        raise ArtifactParseError(f"Unexpected function: {invocation.function_name}")
    if len(invocation.args) != len(CREATE_AUTH_TYPES):
        raise ArtifactParseError(f"Expected {len(CREATE_AUTH_TYPES)} args, got {len(invocation.args)}")
    if invocation.arg_types != CREATE_AUTH_TYPES:
        raise ArtifactParseError("Expected (u32 session_id, i128 stake) arguments")
    if not entry.is_signed:
        raise ArtifactParseError("Authorization entry is not signed")
    session_id, stake_a = invocation.values()
    return ExportedArtifact(session_id=session_id, player_a=entry.address, stake_a=stake_a, entry=entry)


def parse_artifact(text: str) -> ExportedArtifact:
    """Decode artifact text. Raises ArtifactParseError on anything malformed."""
    try:
        entry = AuthorizationEntry.from_text(text)
    except ValueError as e:
        raise ArtifactParseError(f"Malformed artifact: {e}") from e
    return parse_auth_entry(entry)


def artifact_from_link(url: str) -> ExportedArtifact:
    """Extract and parse the artifact from a share link."""
    values = parse_qs(urlsplit(url).query).get(SHARE_PARAM)
    if not values:
        raise ArtifactParseError(f"Link has no '{SHARE_PARAM}' parameter")
    return parse_artifact(values[0])
