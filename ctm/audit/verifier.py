"""
Audit - Optional proof attachments for finished or running sessions.

A player may attach a proof about their commitment (e.g. a zero-knowledge
proof that a committed hand pair is valid) for others to check. The board
records each attachment with its verifier's verdict.

Nothing in the contract, the ledger or the client calls this module.
A proof never changes a session's outcome.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any
import hmac
import threading

from ..engine_core.commitment import COMMITMENT_SIZE, keccak256


class ProofVerifier(ABC):
    """Checks a proof against its public inputs."""

    name: str = "verifier"

    @abstractmethod
    def verify(self, proof: bytes, public_inputs: dict[str, Any]) -> bool:
        """Return True if the proof is valid for the public inputs."""
        pass


class PreimageOpeningVerifier(ProofVerifier):
    """
    Reference verifier whose "proof" is the commitment opening itself.

    public_inputs: {"commitment": <hex of the 32-byte commitment>}
    proof:         the raw preimage (34 bytes for hands, 33 for a choice)

    Reveals the secret, so it is only meaningful after the reveal phase.
    """

    name = "preimage-opening"

    def verify(self, proof: bytes, public_inputs: dict[str, Any]) -> bool:
        try:
            commitment = bytes.fromhex(public_inputs["commitment"])
        except (KeyError, TypeError, ValueError):
            return False
        if len(commitment) != COMMITMENT_SIZE:
            return False
        return hmac.compare_digest(keccak256(bytes(proof)), commitment)


@dataclass(frozen=True)
class ProofAttachment:
    session_id: int
    player: str
    proof: bytes = field(repr=False)
    public_inputs: dict[str, Any] = field(default_factory=dict)
    verifier: str = ""
    verified: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "player": self.player,
            "proof": self.proof.hex(),
            "public_inputs": dict(self.public_inputs),
            "verifier": self.verifier,
            "verified": self.verified,
        }


class ProofBoard:
    """Append-only record of proof attachments per session."""

    def __init__(self, verifier: ProofVerifier):
        self.verifier = verifier
        self._attachments: dict[int, list[ProofAttachment]] = {}
        self._lock = threading.Lock()

    def attach(self, session_id: int, player: str, proof: bytes, public_inputs: dict[str, Any]) -> ProofAttachment:
        attachment = ProofAttachment(
            session_id=session_id,
            player=player,
            proof=bytes(proof),
            public_inputs=dict(public_inputs),
            verifier=self.verifier.name,
            verified=self.verifier.verify(proof, public_inputs),
        )
        with self._lock:
            self._attachments.setdefault(session_id, []).append(attachment)
        return attachment

    def attachments(self, session_id: int) -> list[ProofAttachment]:
        with self._lock:
            return list(self._attachments.get(session_id, []))
