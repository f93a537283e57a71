"""
FastAPI Application - REST API over the game contract.

Endpoints:
    GET    /health                          Health check
    GET    /api/v1/sessions                 List active session ids
    GET    /api/v1/sessions/{id}            Get a session (wire form)
    POST   /api/v1/sessions/{id}/calls      Submit a signed game transaction
    POST   /api/v1/artifacts/parse          Parse an exported bootstrap artifact
    GET    /api/v1/events?since=N           Contract events from ledger N on

All responses are JSON with explicit Pydantic schemas. Contract rejections
return the stable error code name plus its numeric value.
"""

from typing import Annotated, Optional, Union

from ..config import ALLOWED_ORIGINS
from .. import __version__


def create_app(service=None):
    """
    Create the FastAPI application.

    Args:
        service: Optional APIService instance (creates one over a fresh
            local ledger if not provided)

    Returns:
        FastAPI application instance
    """
    from fastapi import FastAPI, Query
    from fastapi.middleware.cors import CORSMiddleware
    from fastapi.responses import JSONResponse

    from .service import APIService, ServiceError
    from .schemas import (
        ArtifactView,
        CallResponse,
        ErrorResponse,
        EventListResponse,
        HealthResponse,
        ParseArtifactRequest,
        SessionListResponse,
        SessionView,
        SubmitCallRequest,
    )

    app = FastAPI(
        title="Commit-Turn-Move API",
        description="""
Two-player commit-reveal double rock-paper-scissors.

## Phases

| Wire | Phase |
|------|-------|
| 1 | Created (commit hands) |
| 2 | HandsCommitted (reveal hands) |
| 3 | HandsRevealed (commit choice) |
| 4 | ChoiceCommitted (reveal choice) |
| 5 | Complete |

## Error Codes

| Code | Value |
|------|-------|
| `GAME_NOT_FOUND` | 1 |
| `NOT_PLAYER` | 2 |
| `WRONG_PHASE` | 3 |
| `ALREADY_COMMITTED` | 4 |
| `INVALID_HAND` | 5 |
| `HANDS_MUST_DIFFER` | 6 |
| `HASH_MISMATCH` | 7 (retryable) |
| `INVALID_CHOICE` | 8 |
| `GAME_ALREADY_ENDED` | 9 |
        """,
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    api_service = service or APIService()

    # =========================================================================
    # Error helpers
    # =========================================================================

    def make_error_response(error: ServiceError) -> JSONResponse:
        """Create a standardized error response."""
        return JSONResponse(
            status_code=error.status_code,
            content=ErrorResponse(
                error=error.error,
                error_code=error.error_code,
                contract_code=error.contract_code,
                retryable=error.retryable,
                details=error.details,
            ).model_dump(mode="json"),
        )

    # =========================================================================
    # Sessions
    # =========================================================================

    @app.get(
        "/api/v1/sessions",
        response_model=SessionListResponse,
        tags=["Sessions"],
        summary="List active sessions",
    )
    async def list_sessions() -> SessionListResponse:
        """List all active session ids."""
        return api_service.list_sessions()

    @app.get(
        "/api/v1/sessions/{session_id}",
        response_model=SessionView,
        responses={404: {"model": ErrorResponse}},
        tags=["Sessions"],
        summary="Get a session",
    )
    async def get_session(session_id: int) -> Union[SessionView, JSONResponse]:
        """Get a session record in wire form."""
        response = api_service.get_session(session_id)
        if isinstance(response, ServiceError):
            return make_error_response(response)
        return response

    @app.post(
        "/api/v1/sessions/{session_id}/calls",
        response_model=CallResponse,
        responses={400: {"model": ErrorResponse}, 403: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
        tags=["Sessions"],
        summary="Submit a signed game transaction",
    )
    async def submit_call(session_id: int, request: SubmitCallRequest) -> Union[CallResponse, JSONResponse]:
        """
        Submit a signed transaction invoking a game method on this session.

        Contract rejections return 400 with the stable error code.
        """
        response = api_service.submit_call(session_id, request)
        if isinstance(response, ServiceError):
            return make_error_response(response)
        return response

    # =========================================================================
    # Bootstrap
    # =========================================================================

    @app.post(
        "/api/v1/artifacts/parse",
        response_model=ArtifactView,
        responses={400: {"model": ErrorResponse}},
        tags=["Bootstrap"],
        summary="Parse an exported artifact",
    )
    async def parse_artifact(request: ParseArtifactRequest) -> Union[ArtifactView, JSONResponse]:
        """Show the session id, player and stake an artifact carries."""
        response = api_service.parse_artifact(request)
        if isinstance(response, ServiceError):
            return make_error_response(response)
        return response

    # =========================================================================
    # Events
    # =========================================================================

    @app.get(
        "/api/v1/events",
        response_model=EventListResponse,
        tags=["Events"],
        summary="List contract events",
    )
    async def list_events(
        since: Annotated[Optional[int], Query(ge=0, description="First ledger to include")] = None,
        session_id: Annotated[Optional[int], Query(description="Only this session")] = None,
    ) -> EventListResponse:
        """Contract events in emission order."""
        return api_service.events(since=since, session_id=session_id)

    # =========================================================================
    # Health Check
    # =========================================================================

    @app.get(
        "/health",
        response_model=HealthResponse,
        tags=["System"],
        summary="Health check",
    )
    async def health_check() -> HealthResponse:
        """Health check endpoint for load balancers."""
        return HealthResponse(
            status="healthy",
            service="ctm",
            version=__version__,
            ledger=api_service.ledger.sequence,
        )

    @app.get("/", tags=["System"])
    async def root():
        """Root endpoint with API info."""
        return {
            "name": "Commit-Turn-Move API",
            "version": __version__,
            "docs": "/api/docs",
            "health": "/health",
        }

    return app


# For running directly: uvicorn ctm.api.app:app
app = create_app()
