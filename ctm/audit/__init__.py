"""
Audit - Pluggable proof verification, kept outside the game core.
"""

from .verifier import PreimageOpeningVerifier, ProofAttachment, ProofBoard, ProofVerifier

__all__ = [
    "PreimageOpeningVerifier",
    "ProofAttachment",
    "ProofBoard",
    "ProofVerifier",
]
