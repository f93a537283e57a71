"""
Bootstrap - Asynchronous two-party authorization of create_session.
"""

from .artifact import (
    ExportedArtifact,
    artifact_from_link,
    parse_artifact,
    parse_auth_entry,
    valid_until_ledger,
)
from .protocol import SessionBootstrap, create_session_invocation

__all__ = [
    "ExportedArtifact",
    "artifact_from_link",
    "parse_artifact",
    "parse_auth_entry",
    "valid_until_ledger",
    "SessionBootstrap",
    "create_session_invocation",
]
