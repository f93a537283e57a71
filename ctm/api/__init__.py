"""
API Module - REST interface over the game contract.

Clients use it to:
1. Read sessions in wire form
2. Submit signed game transactions
3. Parse exported bootstrap artifacts
4. Follow contract events
"""

from .schemas import (
    ArtifactView,
    CallResponse,
    ErrorCode,
    ErrorResponse,
    EventListResponse,
    EventView,
    ParseArtifactRequest,
    SessionListResponse,
    SessionView,
    SubmitCallRequest,
)
from .service import APIService, ServiceError
from .app import create_app

__all__ = [
    "ArtifactView",
    "CallResponse",
    "ErrorCode",
    "ErrorResponse",
    "EventListResponse",
    "EventView",
    "ParseArtifactRequest",
    "SessionListResponse",
    "SessionView",
    "SubmitCallRequest",
    "APIService",
    "ServiceError",
    "create_app",
]
