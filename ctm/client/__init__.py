"""
Client - Caller-side game workflow: signing, secrets, polling.
"""

from .secrets import SecretStore
from .service import (
    CtmClient,
    PlayerStep,
    format_points,
    next_step,
    parse_points,
    random_session_id,
)

__all__ = [
    "SecretStore",
    "CtmClient",
    "PlayerStep",
    "format_points",
    "next_step",
    "parse_points",
    "random_session_id",
]
