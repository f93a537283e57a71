"""
Transaction - The envelope submitted to the ledger.

A transaction carries one invocation, the authorization entries the
invocation needs, and the fee payer's (source account's) signature over
the transaction hash. The hash covers the auth entries, so any change to
them invalidates the envelope signature.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Any
import hashlib

from algosdk import util

from .auth import (
    Account,
    AuthorizationEntry,
    Invocation,
    canonical_bytes,
    decode_text,
    encode_text,
    is_valid_address,
    network_id,
)

BASE_FEE = 100


@dataclass(frozen=True)
class Transaction:
    """A single-invocation transaction."""
    source: str
    invocation: Invocation
    auth: tuple[AuthorizationEntry, ...] = ()
    fee: int = BASE_FEE
    memo: str = ""
    signature: str | None = None

    def body(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "fee": self.fee,
            "memo": self.memo,
            "invocation": self.invocation.to_dict(),
            "auth": [entry.to_dict() for entry in self.auth],
        }

    def hash(self, network_passphrase: str) -> bytes:
        return hashlib.sha256(
            network_id(network_passphrase) + canonical_bytes(self.body())
        ).digest()

    def tx_id(self, network_passphrase: str) -> str:
        return self.hash(network_passphrase).hex()

    def with_auth(self, entries: list[AuthorizationEntry]) -> Transaction:
        """Return a copy with new auth entries. Drops any envelope signature."""
        return replace(self, auth=tuple(entries), signature=None)

    def auth_for(self, address: str) -> AuthorizationEntry | None:
        """Find the entry addressed to a signer (by address, not position)."""
        for entry in self.auth:
            if entry.address == address:
                return entry
        return None

    def sign(self, signer: Account, network_passphrase: str) -> Transaction:
        if signer.address != self.source:
            raise ValueError(f"Only the source account {self.source} can sign the envelope")
        return replace(self, signature=signer.sign(self.hash(network_passphrase)))

    def verify_signature(self, network_passphrase: str) -> bool:
        if not self.signature:
            return False
        return util.verify_bytes(self.hash(network_passphrase), self.signature, self.source)

    def to_dict(self) -> dict[str, Any]:
        return {**self.body(), "signature": self.signature}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Transaction:
        try:
            source = data["source"]
            invocation = Invocation.from_dict(data["invocation"])
            auth = tuple(AuthorizationEntry.from_dict(e) for e in data["auth"])
            fee = data.get("fee", BASE_FEE)
            memo = data.get("memo", "")
            signature = data.get("signature")
        except (KeyError, TypeError) as e:
            raise ValueError(f"Malformed transaction: {e}") from e
        if not is_valid_address(source):
            raise ValueError(f"Invalid source account: {source!r}")
        return cls(
            source=source,
            invocation=invocation,
            auth=auth,
            fee=fee,
            memo=memo,
            signature=signature,
        )

    def to_text(self) -> str:
        return encode_text(self.to_dict())

    @classmethod
    def from_text(cls, text: str) -> Transaction:
        return cls.from_dict(decode_text(text))
