"""
Pydantic Schemas for API - Request/response models for OpenAPI.

Sessions are exposed in their wire form: phase as an integer 1-5,
hands as integers 0-2, commitments as hex strings.

Error Codes:
- GAME_NOT_FOUND ... GAME_ALREADY_ENDED: the stable contract codes 1-9
- SESSION_EXISTS, SELF_PLAY_NOT_ALLOWED, INVALID_STAKE: create-time rejections
- MALFORMED_TRANSACTION: transaction text or invocation shape is invalid
- AUTHORIZATION_FAILED: missing, invalid, expired or replayed authorization
- INVALID_ARTIFACT: exported artifact could not be parsed
- ESCROW_REJECTED: the points hub refused to lock or settle
"""

from enum import Enum
from typing import Optional, Any
from pydantic import BaseModel, Field


# =============================================================================
# Enums
# =============================================================================

class ErrorCode(str, Enum):
    """Structured error codes."""
    GAME_NOT_FOUND = "GAME_NOT_FOUND"
    NOT_PLAYER = "NOT_PLAYER"
    WRONG_PHASE = "WRONG_PHASE"
    ALREADY_COMMITTED = "ALREADY_COMMITTED"
    INVALID_HAND = "INVALID_HAND"
    HANDS_MUST_DIFFER = "HANDS_MUST_DIFFER"
    HASH_MISMATCH = "HASH_MISMATCH"
    INVALID_CHOICE = "INVALID_CHOICE"
    GAME_ALREADY_ENDED = "GAME_ALREADY_ENDED"
    SESSION_EXISTS = "SESSION_EXISTS"
    SELF_PLAY_NOT_ALLOWED = "SELF_PLAY_NOT_ALLOWED"
    INVALID_STAKE = "INVALID_STAKE"
    MALFORMED_TRANSACTION = "MALFORMED_TRANSACTION"
    AUTHORIZATION_FAILED = "AUTHORIZATION_FAILED"
    INVALID_ARTIFACT = "INVALID_ARTIFACT"
    ESCROW_REJECTED = "ESCROW_REJECTED"
    VALIDATION_ERROR = "VALIDATION_ERROR"


# =============================================================================
# Shared Models
# =============================================================================

class SessionView(BaseModel):
    """A session record in wire form."""
    session_id: int
    player_a: str
    player_b: str
    stake_a: int
    stake_b: int
    phase: int = Field(..., ge=1, le=5, description="1 Created ... 5 Complete")
    phase_name: str
    commit_a: Optional[str] = Field(None, description="Hex hands commitment")
    commit_b: Optional[str] = None
    left_a: Optional[int] = Field(None, ge=0, le=2)
    right_a: Optional[int] = Field(None, ge=0, le=2)
    left_b: Optional[int] = Field(None, ge=0, le=2)
    right_b: Optional[int] = Field(None, ge=0, le=2)
    choice_commit_a: Optional[str] = None
    choice_commit_b: Optional[str] = None
    kept_a: Optional[int] = Field(None, ge=0, le=2)
    kept_b: Optional[int] = Field(None, ge=0, le=2)
    winner: Optional[str] = None

    model_config = {"from_attributes": True}


class EventView(BaseModel):
    """A contract event."""
    event_type: str
    session_id: int
    ledger: Optional[int] = None
    data: dict[str, Any] = Field(default_factory=dict)


# =============================================================================
# Request Models
# =============================================================================

class SubmitCallRequest(BaseModel):
    """A signed game transaction to submit."""
    transaction: str = Field(..., min_length=1, description="Base64 signed transaction text")


class ParseArtifactRequest(BaseModel):
    """An exported bootstrap artifact, as text or as a share link."""
    artifact: Optional[str] = Field(None, description="Artifact text")
    link: Optional[str] = Field(None, description="Share link carrying ?auth=")


# =============================================================================
# Response Models
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str = Field(..., description="Human-readable error message")
    error_code: ErrorCode = Field(..., description="Machine-readable error code")
    contract_code: Optional[int] = Field(None, description="Numeric contract error code, if any")
    retryable: bool = Field(False, description="True only for HASH_MISMATCH")
    details: Optional[dict[str, Any]] = Field(None, description="Additional error context")
    api_version: str = Field("v1", description="API version")


class CallResponse(BaseModel):
    """Result of a submitted transaction."""
    success: bool
    tx_id: str
    ledger: int
    function: str
    session: Optional[SessionView] = None
    events: list[EventView] = Field(default_factory=list)
    api_version: str = "v1"


class ArtifactView(BaseModel):
    """Parameters carried by an exported artifact."""
    session_id: int
    player_a: str
    stake_a: int
    contract_id: str
    expiration_ledger: int
    expired: bool = False
    api_version: str = "v1"


class SessionListResponse(BaseModel):
    """Response listing active sessions."""
    sessions: list[int]
    count: int


class EventListResponse(BaseModel):
    """Events emitted from a ledger onwards."""
    events: list[EventView]
    count: int
    latest_ledger: int


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    service: str
    version: str
    ledger: int
