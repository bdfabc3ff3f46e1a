"""
API Module - HTTP interface to the engine.

Exposes the engine via REST API. A client:
1. Creates a game session
2. Plays cards, attacks and ends turns
3. Drives target selection when a spell or attack needs it
4. Receives state updates over a WebSocket

All state is session-scoped. No persistent user accounts required.
"""

from .schemas import (
    # Requests
    CreateSessionRequest,
    PlayCardRequest,
    AttackRequest,
    EndTurnRequest,
    TargetClickRequest,
    ConfirmTargetsRequest,
    RematchRequest,
    # Responses
    ActionResponse,
    SessionResponse,
    GameStateResponse,
    LegalActionsResponse,
    CardListResponse,
    ErrorResponse,
    # Shared
    CardInfo,
    PlayerInfo,
    TargetInfo,
    TargetingInfo,
    ErrorCode,
)
from .service import APIService
from .app import create_app

__all__ = [
    # Requests
    "CreateSessionRequest",
    "PlayCardRequest",
    "AttackRequest",
    "EndTurnRequest",
    "TargetClickRequest",
    "ConfirmTargetsRequest",
    "RematchRequest",
    # Responses
    "ActionResponse",
    "SessionResponse",
    "GameStateResponse",
    "LegalActionsResponse",
    "CardListResponse",
    "ErrorResponse",
    # Shared
    "CardInfo",
    "PlayerInfo",
    "TargetInfo",
    "TargetingInfo",
    "ErrorCode",
    # Service
    "APIService",
    "create_app",
]
