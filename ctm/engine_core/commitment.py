"""
Commitment Engine - Binding, hiding commitments over fixed preimages.

Preimage layouts are part of the external contract:

    hands:   left(1) || right(1) || salt(32)    34 bytes
    choice:  index(1) || salt(32)               33 bytes

No length prefixes, no padding. The hash is always Keccak-256; it is not
configurable per call. A layout mismatch is indistinguishable from
cheating and fails the reveal with HASH_MISMATCH.
"""

from __future__ import annotations
from dataclasses import dataclass, field
import secrets

from Cryptodome.Hash import keccak

SALT_SIZE = 32
COMMITMENT_SIZE = 32


def keccak256(data: bytes) -> bytes:
    """Keccak-256 digest (original Keccak padding, not SHA3-256)."""
    return keccak.new(data=data, digest_bits=256).digest()


def generate_salt() -> bytes:
    """Draw a fresh 32-byte salt from the OS CSPRNG."""
    return secrets.token_bytes(SALT_SIZE)


def _byte(value: int, name: str) -> bytes:
    if not 0 <= value <= 0xFF:
        raise ValueError(f"{name} must fit in one byte, got {value}")
    return bytes([value])


def _check_salt(salt: bytes) -> bytes:
    salt = bytes(salt)
    if len(salt) != SALT_SIZE:
        raise ValueError(f"salt must be {SALT_SIZE} bytes, got {len(salt)}")
    return salt


def hands_preimage(left: int, right: int, salt: bytes) -> bytes:
    return _byte(left, "left") + _byte(right, "right") + _check_salt(salt)


def choice_preimage(index: int, salt: bytes) -> bytes:
    return _byte(index, "index") + _check_salt(salt)


def hands_commitment(left: int, right: int, salt: bytes) -> bytes:
    """Commitment to a pair of hands."""
    return keccak256(hands_preimage(left, right, salt))


def choice_commitment(index: int, salt: bytes) -> bytes:
    """Commitment to which hand (0 = left, 1 = right) is kept."""
    return keccak256(choice_preimage(index, salt))


@dataclass(frozen=True)
class HandsSecret:
    """
    The secret behind a hands commitment.

    Use HandsSecret.draw() so every commitment gets its own salt.
    """
    left: int
    right: int
    salt: bytes = field(repr=False)

    @classmethod
    def draw(cls, left: int, right: int) -> HandsSecret:
        return cls(left=int(left), right=int(right), salt=generate_salt())

    def commitment(self) -> bytes:
        return hands_commitment(self.left, self.right, self.salt)

    def to_dict(self) -> dict:
        return {"left": self.left, "right": self.right, "salt": self.salt.hex()}

    @classmethod
    def from_dict(cls, data: dict) -> HandsSecret:
        return cls(left=int(data["left"]), right=int(data["right"]), salt=bytes.fromhex(data["salt"]))


@dataclass(frozen=True)
class ChoiceSecret:
    """The secret behind a choice commitment."""
    index: int
    salt: bytes = field(repr=False)

    @classmethod
    def draw(cls, index: int, previous: HandsSecret | None = None) -> ChoiceSecret:
        """
        Draw a choice secret with a fresh salt.

        Passing the hands secret of the same session guards against the
        (astronomically unlikely) case of the two salts colliding.
        """
        salt = generate_salt()
        while previous is not None and salt == previous.salt:
            salt = generate_salt()
        return cls(index=int(index), salt=salt)

    @classmethod
    def with_salt(cls, index: int, salt: bytes, previous: HandsSecret | None = None) -> ChoiceSecret:
        """Build a choice secret from an explicit salt, refusing hands-salt reuse."""
        salt = _check_salt(salt)
        if previous is not None and salt == previous.salt:
            raise ValueError("choice salt must not reuse the hands salt")
        return cls(index=int(index), salt=salt)

    def commitment(self) -> bytes:
        return choice_commitment(self.index, self.salt)

    def to_dict(self) -> dict:
        return {"index": self.index, "salt": self.salt.hex()}

    @classmethod
    def from_dict(cls, data: dict) -> ChoiceSecret:
        return cls(index=int(data["index"]), salt=bytes.fromhex(data["salt"]))
