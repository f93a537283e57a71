"""
Authorization - Accounts, typed invocation arguments, and signed
authorization entries.

An authorization entry scopes one signer's approval to one exact
invocation (contract, method, typed arguments) plus a nonce and an
expiration ledger. Entries are matched to signers by address, never by
position.

Signing uses ed25519 keys and addresses from the Algorand SDK; the signed
preimage is the canonical msgpack encoding of
{network id, nonce, expiration ledger, invocation}.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any
import base64
import hashlib

import msgpack
from algosdk import account, encoding, util

from ..engine_core.errors import AuthorizationError

U32_MAX = 2**32 - 1
I128_MIN = -(2**127)
I128_MAX = 2**127 - 1


def network_id(network_passphrase: str) -> bytes:
    return hashlib.sha256(network_passphrase.encode("utf-8")).digest()


def _sorted(value: Any) -> Any:
    if isinstance(value, dict):
        return {key: _sorted(value[key]) for key in sorted(value)}
    if isinstance(value, (list, tuple)):
        return [_sorted(item) for item in value]
    return value


def canonical_bytes(payload: dict[str, Any]) -> bytes:
    """
    Canonical msgpack bytes of a dict: keys sorted at every level.

    Empty and zero values are kept, so every field survives a round trip.
    """
    return msgpack.packb(_sorted(payload), use_bin_type=True)


def encode_text(payload: dict[str, Any]) -> str:
    """Base64 canonical msgpack, for out-of-band transfer."""
    return base64.b64encode(canonical_bytes(payload)).decode("ascii")


def decode_text(text: str) -> dict[str, Any]:
    """Inverse of encode_text. Raises ValueError on malformed input."""
    try:
        raw = base64.b64decode(text.strip(), validate=True)
        payload = msgpack.unpackb(raw, raw=False)
    except (ValueError, TypeError) as e:
        raise ValueError(f"Not a valid encoded payload: {e}") from e
    if not isinstance(payload, dict):
        raise ValueError("Encoded payload is not a mapping")
    return payload


# =============================================================================
# Accounts
# =============================================================================

@dataclass(frozen=True)
class Account:
    """
    A signing account (ed25519 key pair).

    Key management UX is out of scope; this is just enough to sign
    transactions and authorization entries.
    """
    address: str
    private_key: str = field(repr=False)

    @classmethod
    def generate(cls) -> Account:
        private_key, address = account.generate_account()
        return cls(address=address, private_key=private_key)

    @classmethod
    def from_private_key(cls, private_key: str) -> Account:
        return cls(address=account.address_from_private_key(private_key), private_key=private_key)

    def sign(self, message: bytes) -> str:
        return util.sign_bytes(message, self.private_key)


def is_valid_address(address: Any) -> bool:
    return isinstance(address, str) and encoding.is_valid_address(address)


def placeholder_address() -> str:
    """
    A syntactically valid address nobody controls (the all-zero key).

    Used to simulate a request before the counterparty is known.
    """
    return encoding.encode_address(bytes(32))


# =============================================================================
# Typed arguments
# =============================================================================

class ScType(Enum):
    U32 = "u32"
    I128 = "i128"
    ADDRESS = "address"
    BYTES32 = "bytes32"


@dataclass(frozen=True)
class ScArg:
    """A typed contract argument."""
    sc_type: ScType
    value: Any

    @classmethod
    def u32(cls, value: int) -> ScArg:
        if not isinstance(value, int) or isinstance(value, bool) or not 0 <= value <= U32_MAX:
            raise ValueError(f"u32 out of range: {value!r}")
        return cls(ScType.U32, value)

    @classmethod
    def i128(cls, value: int) -> ScArg:
        if not isinstance(value, int) or isinstance(value, bool) or not I128_MIN <= value <= I128_MAX:
            raise ValueError(f"i128 out of range: {value!r}")
        return cls(ScType.I128, value)

    @classmethod
    def address(cls, value: str) -> ScArg:
        if not is_valid_address(value):
            raise ValueError(f"Invalid address: {value!r}")
        return cls(ScType.ADDRESS, value)

    @classmethod
    def bytes32(cls, value: bytes) -> ScArg:
        if not isinstance(value, (bytes, bytearray)) or len(value) != 32:
            raise ValueError("bytes32 must be exactly 32 bytes")
        return cls(ScType.BYTES32, bytes(value))

    def to_dict(self) -> dict[str, Any]:
        # i128 travels as a decimal string; msgpack ints stop at 64 bits
        value = str(self.value) if self.sc_type is ScType.I128 else self.value
        return {"t": self.sc_type.value, "v": value}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ScArg:
        try:
            sc_type = ScType(data["t"])
            value = data["v"]
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Malformed argument: {data!r}") from e
        if sc_type is ScType.U32:
            return cls.u32(value)
        if sc_type is ScType.I128:
            if not isinstance(value, str):
                raise ValueError("i128 must be encoded as a decimal string")
            return cls.i128(int(value))
        if sc_type is ScType.ADDRESS:
            return cls.address(value)
        return cls.bytes32(value)


@dataclass(frozen=True)
class Invocation:
    """A contract method call: which contract, which method, which arguments."""
    contract_id: str
    function_name: str
    args: tuple[ScArg, ...] = ()

    @property
    def arg_types(self) -> tuple[ScType, ...]:
        return tuple(a.sc_type for a in self.args)

    def values(self) -> list[Any]:
        return [a.value for a in self.args]

    def to_dict(self) -> dict[str, Any]:
        return {
            "contract": self.contract_id,
            "fn": self.function_name,
            "args": [a.to_dict() for a in self.args],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Invocation:
        try:
            contract_id = data["contract"]
            function_name = data["fn"]
            raw_args = data["args"]
        except (KeyError, TypeError) as e:
            raise ValueError(f"Malformed invocation: {e}") from e
        if not isinstance(contract_id, str) or not isinstance(function_name, str) or not isinstance(raw_args, list):
            raise ValueError("Malformed invocation")
        return cls(
            contract_id=contract_id,
            function_name=function_name,
            args=tuple(ScArg.from_dict(a) for a in raw_args),
        )


# =============================================================================
# Authorization entries
# =============================================================================

@dataclass(frozen=True)
class AuthorizationEntry:
    """
    One signer's approval of one invocation.

    Unsigned entries come out of simulation; the signer fills in the
    expiration ledger and signature.
    """
    address: str
    nonce: int
    invocation: Invocation
    expiration_ledger: int = 0
    signature: str | None = None

    @property
    def is_signed(self) -> bool:
        return self.signature is not None

    def signing_preimage(self, network_passphrase: str) -> bytes:
        return canonical_bytes({
            "network": network_id(network_passphrase),
            "nonce": self.nonce,
            "expiration": self.expiration_ledger,
            "invocation": self.invocation.to_dict(),
        })

    def sign(self, signer: Account, expiration_ledger: int, network_passphrase: str) -> AuthorizationEntry:
        """Return a signed copy valid through `expiration_ledger`."""
        if signer.address != self.address:
            raise AuthorizationError(
                f"Entry is addressed to {self.address}, not to signer {signer.address}"
            )
        unsigned = replace(self, expiration_ledger=expiration_ledger, signature=None)
        return replace(unsigned, signature=signer.sign(unsigned.signing_preimage(network_passphrase)))

    def verify(self, network_passphrase: str) -> bool:
        if not self.signature:
            return False
        return util.verify_bytes(self.signing_preimage(network_passphrase), self.signature, self.address)

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "nonce": self.nonce,
            "expiration": self.expiration_ledger,
            "invocation": self.invocation.to_dict(),
            "signature": self.signature,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AuthorizationEntry:
        try:
            address = data["address"]
            nonce = data["nonce"]
            expiration = data["expiration"]
            invocation = Invocation.from_dict(data["invocation"])
            signature = data.get("signature")
        except (KeyError, TypeError, AttributeError) as e:
            raise ValueError(f"Malformed authorization entry: {e}") from e
        if not is_valid_address(address):
            raise ValueError(f"Invalid signer address: {address!r}")
        if not isinstance(nonce, int) or not isinstance(expiration, int):
            raise ValueError("Nonce and expiration must be integers")
        if signature is not None and not isinstance(signature, str):
            raise ValueError("Signature must be a base64 string")
        return cls(
            address=address,
            nonce=nonce,
            invocation=invocation,
            expiration_ledger=expiration,
            signature=signature,
        )

    def to_text(self) -> str:
        return encode_text(self.to_dict())

    @classmethod
    def from_text(cls, text: str) -> AuthorizationEntry:
        return cls.from_dict(decode_text(text))
