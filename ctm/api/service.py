"""
API Service - Business logic layer between the REST API and the ledger.

The service:
1. Reads sessions and events from the ledger
2. Decodes and submits signed game transactions
3. Parses exported bootstrap artifacts for display
4. Maps every failure to a structured error code

This layer is framework-agnostic (can be used with FastAPI, Flask, etc.)
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any
import logging

from .schemas import (
    ArtifactView,
    CallResponse,
    ErrorCode,
    EventListResponse,
    EventView,
    ParseArtifactRequest,
    SessionListResponse,
    SessionView,
    SubmitCallRequest,
)
from ..bootstrap.artifact import artifact_from_link, parse_artifact
from ..engine_core.action import CallType
from ..engine_core.errors import (
    ArtifactParseError,
    AuthorizationError,
    GameError,
    MalformedInvocation,
)
from ..engine_core.events import Event
from ..engine_core.state import GameSession
from ..ledger.auth import Account
from ..ledger.contract import CtmContract
from ..ledger.escrow import InMemoryGameHub
from ..ledger.localnet import LocalLedger
from ..ledger.transaction import Transaction

logger = logging.getLogger(__name__)

GAME_METHODS = {call_type.value for call_type in CallType}


@dataclass
class ServiceError:
    """A failed service call."""
    error_code: ErrorCode
    error: str
    status_code: int = 400
    contract_code: int | None = None
    details: dict[str, Any] | None = None

    @property
    def retryable(self) -> bool:
        return self.contract_code == GameError.HASH_MISMATCH

    @classmethod
    def from_game_error(cls, code: GameError, message: str | None = None) -> ServiceError:
        status = 404 if code is GameError.GAME_NOT_FOUND else 400
        return cls(ErrorCode(code.name), message or code.name, status, contract_code=int(code))


def session_view(session: GameSession) -> SessionView:
    return SessionView(**session.to_wire(), phase_name=session.phase.name)


def event_view(event: Event) -> EventView:
    return EventView(**event.to_dict())


@dataclass
class APIService:
    """
    API service over one deployed game contract.

    Usage:
        service = APIService()                        # fresh local ledger
        service = APIService(ledger, contract_id)     # existing deployment

        view = service.get_session(42)
        response = service.submit_call(42, SubmitCallRequest(transaction=text))
    """
    ledger: LocalLedger = field(default_factory=LocalLedger)
    contract_id: str | None = None

    def __post_init__(self):
        if self.contract_id is None:
            contract = CtmContract(admin=Account.generate().address, hub=InMemoryGameHub())
            self.contract_id = self.ledger.deploy(contract)

    # =========================================================================
    # Sessions
    # =========================================================================

    def get_session(self, session_id: int) -> SessionView | ServiceError:
        session = self.ledger.get_session(self.contract_id, session_id)
        if session is None:
            return ServiceError.from_game_error(GameError.GAME_NOT_FOUND, f"Session {session_id} not found")
        return session_view(session)

    def list_sessions(self) -> SessionListResponse:
        sessions = self.ledger.session_ids(self.contract_id)
        return SessionListResponse(sessions=sessions, count=len(sessions))

    def submit_call(self, session_id: int, request: SubmitCallRequest) -> CallResponse | ServiceError:
        """
        Submit a signed game transaction against a session.

        The transaction must invoke one of the game methods on this
        contract, with `session_id` as its first argument.
        """
        try:
            tx = Transaction.from_text(request.transaction)
        except ValueError as e:
            return ServiceError(ErrorCode.MALFORMED_TRANSACTION, str(e))

        invocation = tx.invocation
        if invocation.contract_id != self.contract_id:
            return ServiceError(ErrorCode.MALFORMED_TRANSACTION, f"Unknown contract {invocation.contract_id}")
        if invocation.function_name not in GAME_METHODS:
            return ServiceError(ErrorCode.VALIDATION_ERROR, f"Not a game method: {invocation.function_name}")
        values = invocation.values()
        if not values or values[0] != session_id:
            return ServiceError(
                ErrorCode.VALIDATION_ERROR,
                f"Transaction targets session {values[0] if values else None}, not {session_id}",
            )

        try:
            receipt = self.ledger.submit(tx)
        except MalformedInvocation as e:
            return ServiceError(ErrorCode.MALFORMED_TRANSACTION, str(e))
        except AuthorizationError as e:
            logger.warning(f"Rejected {invocation.function_name} on session {session_id}: {e}")
            return ServiceError(ErrorCode.AUTHORIZATION_FAILED, str(e), status_code=403)

        if not receipt.success:
            if receipt.error_code is None:
                return ServiceError(ErrorCode.ESCROW_REJECTED, receipt.error or "Rejected", status_code=409)
            return ServiceError.from_game_error(receipt.error_code, receipt.error)

        session = receipt.value if isinstance(receipt.value, GameSession) else None
        return CallResponse(
            success=True,
            tx_id=receipt.tx_id,
            ledger=receipt.ledger,
            function=invocation.function_name,
            session=session_view(session) if session else None,
            events=[event_view(e) for e in receipt.events],
        )

    # =========================================================================
    # Bootstrap artifacts
    # =========================================================================

    def parse_artifact(self, request: ParseArtifactRequest) -> ArtifactView | ServiceError:
        try:
            if request.link:
                artifact = artifact_from_link(request.link)
            elif request.artifact:
                artifact = parse_artifact(request.artifact)
            else:
                return ServiceError(ErrorCode.VALIDATION_ERROR, "Provide either an artifact or a link")
        except ArtifactParseError as e:
            return ServiceError(ErrorCode.INVALID_ARTIFACT, str(e))

        return ArtifactView(
            **artifact.to_dict(),
            expired=artifact.expiration_ledger < self.ledger.sequence,
        )

    # =========================================================================
    # Events
    # =========================================================================

    def events(self, since: int | None = None, session_id: int | None = None) -> EventListResponse:
        events = [event_view(e) for e in self.ledger.events(since=since, session_id=session_id)]
        return EventListResponse(events=events, count=len(events), latest_ledger=self.ledger.sequence)
