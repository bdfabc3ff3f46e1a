"""
FastAPI Application - REST API for game clients.

Endpoints:
    GET    /api/v1/cards                          Card catalog
    POST   /api/v1/sessions                       Create game session
    GET    /api/v1/sessions                       List active sessions
    GET    /api/v1/sessions/{id}                  Get session status
    DELETE /api/v1/sessions/{id}                  End session
    POST   /api/v1/sessions/{id}/rematch          New session, same players
    GET    /api/v1/sessions/{id}/state            Get game state
    GET    /api/v1/sessions/{id}/actions          Legal actions
    POST   /api/v1/sessions/{id}/play             Play a card
    POST   /api/v1/sessions/{id}/attack           Attack with a unit
    POST   /api/v1/sessions/{id}/end-turn         End the turn
    POST   /api/v1/sessions/{id}/targeting/click    Toggle a target
    POST   /api/v1/sessions/{id}/targeting/confirm  Confirm the selection
    POST   /api/v1/sessions/{id}/targeting/cancel   Cancel the selection
    WS     /api/v1/sessions/{id}/ws               WebSocket for real-time updates

Targeting Flow:
    1. POST /play (a spell with targets) or POST /attack (no target given)
    2. Response has completed=false and a `targeting` block listing the
       legal targets
    3. POST /targeting/click until satisfied, then /targeting/confirm
       (attacks resolve on the first legal click), or /targeting/cancel
    4. The final response has completed=true and the action's outcome

All bodies are JSON with explicit Pydantic schemas.
"""

from typing import Optional, Union
import json
import logging

from ..config import ALLOWED_ORIGINS, SKIRMISH_ENV, configure_logging
from .. import __version__

logger = logging.getLogger(__name__)


def create_app(service=None):
    """
    Create the FastAPI application.

    Args:
        service: Optional APIService instance (creates new if not provided)

    Returns:
        FastAPI application instance
    """
    try:
        from fastapi import FastAPI, WebSocket, WebSocketDisconnect, Body, Query
        from fastapi.middleware.cors import CORSMiddleware
        from fastapi.responses import JSONResponse
    except ImportError:
        raise ImportError(
            "FastAPI not installed. Install with: pip install fastapi uvicorn"
        )

    from .service import APIService
    from .schemas import (
        # Request models
        AttackRequest,
        ConfirmTargetsRequest,
        CreateSessionRequest,
        EndTurnRequest,
        PlayCardRequest,
        RematchRequest,
        TargetClickRequest,
        # Response models
        ActionResponse,
        CardListResponse,
        EndSessionResponse,
        ErrorResponse,
        GameStateResponse,
        HealthResponse,
        LegalActionsResponse,
        SessionListResponse,
        SessionResponse,
        # Enums
        ErrorCode,
    )

    configure_logging()

    app = FastAPI(
        title="Skirmish Engine API",
        description="""
Turn-based card game rule engine.

## Targeting

Spells with targets and attacks without a target return `completed=false`
and an open `targeting` block. Drive it with the `/targeting/*` endpoints.

## Error Codes

| Code | Description |
|------|-------------|
| `SESSION_NOT_FOUND` | Session does not exist |
| `TARGETING_ACTIVE` | A selection is open; finish it first |
| `NO_TARGETING` | No selection is open |
| `INVALID_TARGET` | Target is malformed or illegal |
| `VALIDATION_ERROR` | Request parameters are invalid |

Rule rejections come back as `success=false` with the engine's `error_code`.
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

    # WebSocket connections
    ws_connections: dict[str, list[WebSocket]] = {}

    # =========================================================================
    # Error helpers
    # =========================================================================

    status_codes = {
        ErrorCode.SESSION_NOT_FOUND: 404,
        ErrorCode.TARGETING_ACTIVE: 409,
        ErrorCode.NO_TARGETING: 409,
        ErrorCode.INVALID_TARGET: 400,
        ErrorCode.VALIDATION_ERROR: 400,
        ErrorCode.INTERNAL_ERROR: 500,
    }

    def make_error_response(
        error_code: ErrorCode,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[dict] = None,
    ) -> JSONResponse:
        """Create a standardized error response."""
        return JSONResponse(
            status_code=status_code or status_codes.get(error_code, 400),
            content=ErrorResponse(
                error=message,
                error_code=error_code,
                details=details,
            ).model_dump(mode="json"),
        )

    def from_error(response: ErrorResponse) -> JSONResponse:
        return make_error_response(response.error_code, response.error, details=response.details)

    async def broadcast_to_session(session_id: str, message: dict):
        """Broadcast a message to all WebSocket connections for a session."""
        if session_id in ws_connections:
            dead_connections = []
            for ws in ws_connections[session_id]:
                try:
                    await ws.send_json(message)
                except Exception:
                    logger.debug("Dropping dead websocket for session %s", session_id)
                    dead_connections.append(ws)
            for ws in dead_connections:
                ws_connections[session_id].remove(ws)

    async def publish(session_id: str, response):
        """Send the outcome of an action to subscribers, or convert an error."""
        if isinstance(response, ErrorResponse):
            return from_error(response)
        await broadcast_to_session(session_id, {
            "type": "targeting" if not response.completed else "state_update",
            "payload": response.model_dump(mode="json"),
        })
        return response

    # =========================================================================
    # Catalog
    # =========================================================================

    @app.get(
        "/api/v1/cards",
        response_model=CardListResponse,
        tags=["Cards"],
        summary="List the card catalog",
    )
    async def list_cards() -> CardListResponse:
        return api_service.list_cards()

    # =========================================================================
    # Session Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/sessions",
        response_model=SessionResponse,
        responses={400: {"model": ErrorResponse, "description": "Invalid players or rules"}},
        tags=["Sessions"],
        summary="Create a new game session",
    )
    async def create_session(
        request: CreateSessionRequest,
    ) -> Union[SessionResponse, JSONResponse]:
        """
        Create a new game session.

        The game is set up with a shuffled standard deck and started:
        opening hands are dealt and the first player is on turn.
        """
        response = api_service.create_session(request)
        if isinstance(response, ErrorResponse):
            return from_error(response)
        return response

    @app.get(
        "/api/v1/sessions",
        response_model=SessionListResponse,
        tags=["Sessions"],
        summary="List active sessions",
    )
    async def list_sessions() -> SessionListResponse:
        sessions = api_service.list_sessions()
        return SessionListResponse(sessions=sessions, count=len(sessions))

    @app.get(
        "/api/v1/sessions/{session_id}",
        response_model=SessionResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Sessions"],
        summary="Get session status",
    )
    async def get_session(session_id: str) -> Union[SessionResponse, JSONResponse]:
        """Get the current status of a game session."""
        response = api_service.get_session(session_id)
        if isinstance(response, ErrorResponse):
            return from_error(response)
        return response

    @app.delete(
        "/api/v1/sessions/{session_id}",
        response_model=EndSessionResponse,
        tags=["Sessions"],
        summary="End a game session",
    )
    async def end_session(
        session_id: str,
        reason: str = Query("user_ended", description="Reason for ending"),
    ) -> EndSessionResponse:
        """End a game session and release resources."""
        success = api_service.end_session(session_id, reason)
        ws_connections.pop(session_id, None)
        return EndSessionResponse(success=success, session_id=session_id)

    @app.post(
        "/api/v1/sessions/{session_id}/rematch",
        response_model=SessionResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Sessions"],
        summary="Start a rematch",
    )
    async def rematch(
        session_id: str,
        request: Optional[RematchRequest] = Body(None),
    ) -> Union[SessionResponse, JSONResponse]:
        """Create a fresh session with the same players and rules."""
        response = api_service.rematch(session_id, request)
        if isinstance(response, ErrorResponse):
            return from_error(response)
        return response

    @app.get(
        "/api/v1/sessions/{session_id}/state",
        response_model=GameStateResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Game"],
        summary="Get game state",
    )
    async def get_game_state(session_id: str) -> Union[GameStateResponse, JSONResponse]:
        response = api_service.get_game_state(session_id)
        if isinstance(response, ErrorResponse):
            return from_error(response)
        return response

    @app.get(
        "/api/v1/sessions/{session_id}/actions",
        response_model=LegalActionsResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Game"],
        summary="List legal actions for the current player",
    )
    async def get_legal_actions(session_id: str) -> Union[LegalActionsResponse, JSONResponse]:
        response = api_service.get_legal_actions(session_id)
        if isinstance(response, ErrorResponse):
            return from_error(response)
        return response

    # =========================================================================
    # Player Actions
    # =========================================================================

    @app.post(
        "/api/v1/sessions/{session_id}/play",
        response_model=ActionResponse,
        responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
        tags=["Game"],
        summary="Play a card from hand",
    )
    async def play_card(
        session_id: str, request: PlayCardRequest
    ) -> Union[ActionResponse, JSONResponse]:
        """
        Play a card.

        Creatures and artifacts enter the battlefield. Spells with targets
        return an open selection (`completed=false`).
        """
        response = await api_service.play_card(session_id, request)
        return await publish(session_id, response)

    @app.post(
        "/api/v1/sessions/{session_id}/attack",
        response_model=ActionResponse,
        responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
        tags=["Game"],
        summary="Attack with a unit",
    )
    async def attack(
        session_id: str, request: AttackRequest
    ) -> Union[ActionResponse, JSONResponse]:
        """Attack a given target, or open a selection when `target` is omitted."""
        response = await api_service.attack(session_id, request)
        return await publish(session_id, response)

    @app.post(
        "/api/v1/sessions/{session_id}/end-turn",
        response_model=ActionResponse,
        responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
        tags=["Game"],
        summary="End the current turn",
    )
    async def end_turn(
        session_id: str, request: EndTurnRequest
    ) -> Union[ActionResponse, JSONResponse]:
        response = await api_service.end_turn(session_id, request)
        return await publish(session_id, response)

    # =========================================================================
    # Targeting
    # =========================================================================

    @app.post(
        "/api/v1/sessions/{session_id}/targeting/click",
        response_model=ActionResponse,
        responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
        tags=["Targeting"],
        summary="Toggle a target in the open selection",
    )
    async def click_target(
        session_id: str, request: TargetClickRequest
    ) -> Union[ActionResponse, JSONResponse]:
        response = await api_service.click_target(session_id, request)
        return await publish(session_id, response)

    @app.post(
        "/api/v1/sessions/{session_id}/targeting/confirm",
        response_model=ActionResponse,
        responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
        tags=["Targeting"],
        summary="Confirm the open selection",
    )
    async def confirm_targets(
        session_id: str,
        request: Optional[ConfirmTargetsRequest] = Body(None),
    ) -> Union[ActionResponse, JSONResponse]:
        response = await api_service.confirm_targets(session_id, request)
        return await publish(session_id, response)

    @app.post(
        "/api/v1/sessions/{session_id}/targeting/cancel",
        response_model=ActionResponse,
        responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
        tags=["Targeting"],
        summary="Cancel the open selection",
    )
    async def cancel_targeting(session_id: str) -> Union[ActionResponse, JSONResponse]:
        response = await api_service.cancel_targeting(session_id)
        return await publish(session_id, response)

    # =========================================================================
    # WebSocket
    # =========================================================================

    @app.websocket("/api/v1/sessions/{session_id}/ws")
    async def websocket_endpoint(websocket: WebSocket, session_id: str):
        """
        WebSocket for real-time updates.

        Messages from server:
        - state_update: An action completed
        - targeting: A selection is open or changed
        - error: Error occurred

        Messages from client:
        - ping: Keep-alive
        """
        await websocket.accept()
        ws_connections.setdefault(session_id, []).append(websocket)

        try:
            # Send initial state
            response = api_service.get_game_state(session_id)
            if not isinstance(response, ErrorResponse):
                await websocket.send_json({
                    "type": "state_update",
                    "payload": response.model_dump(mode="json"),
                })

            # Listen for messages
            while True:
                data = await websocket.receive_text()
                try:
                    message = json.loads(data)
                    if message.get("type") == "ping":
                        await websocket.send_json({"type": "pong"})
                except json.JSONDecodeError:
                    await websocket.send_json({
                        "type": "error",
                        "payload": {"message": "Invalid JSON"},
                    })

        except WebSocketDisconnect:
            logger.debug("Websocket closed for session %s", session_id)
        finally:
            if websocket in ws_connections.get(session_id, []):
                ws_connections[session_id].remove(websocket)

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
            service="skirmish-engine",
            version=__version__,
        )

    @app.get("/", tags=["System"])
    async def root():
        return {
            "service": "skirmish-engine",
            "environment": SKIRMISH_ENV,
            "docs": "/api/docs",
        }

    return app


# For running directly: uvicorn skirmish.api.app:app
app = create_app()
