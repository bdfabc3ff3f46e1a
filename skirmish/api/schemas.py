"""
Pydantic Schemas for API - Request/response models for OpenAPI.

These models define the contract between clients and the engine.
All responses include explicit types for OpenAPI schema generation.

Error Codes:
- SESSION_NOT_FOUND: Session does not exist or has expired
- TARGETING_ACTIVE: A selection is open; click, confirm or cancel it first
- NO_TARGETING: No selection is open
- INVALID_TARGET: A target is malformed or not a legal choice
- VALIDATION_ERROR: Request parameters are invalid
- INTERNAL_ERROR: Unexpected server error

Rule rejections (wrong turn, not enough energy, illegal attack, ...) are
not HTTP errors: they come back as an ActionResponse with success=false
and the engine's error_code.
"""

from enum import Enum
from typing import Optional, Any
from pydantic import BaseModel, Field


# =============================================================================
# Enums
# =============================================================================

class SessionStatus(str, Enum):
    """Session status values."""
    ACTIVE = "active"
    TARGETING = "targeting"
    GAME_OVER = "game_over"


class TargetType(str, Enum):
    """Kinds of things a selection can point at."""
    PLAYER = "player"
    CREATURE = "creature"
    ARTIFACT = "artifact"


class ErrorCode(str, Enum):
    """Structured error codes."""
    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    TARGETING_ACTIVE = "TARGETING_ACTIVE"
    NO_TARGETING = "NO_TARGETING"
    INVALID_TARGET = "INVALID_TARGET"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


# =============================================================================
# Shared Models
# =============================================================================

class TargetInfo(BaseModel):
    """A player or a unit on a battlefield."""
    type: TargetType
    player_id: str
    instance_id: Optional[str] = Field(None, description="Required for creatures and artifacts")


class AttackTargetingInfo(BaseModel):
    """Which defenders a creature may attack."""
    can_target_players: bool = True
    can_target_creatures: bool = True
    can_target_artifacts: bool = True

    model_config = {"from_attributes": True}


class CardInfo(BaseModel):
    """Card information for display."""
    card_id: str
    name: str
    cost: int
    card_type: str = Field(description="creature, spell, artifact")
    attack: Optional[int] = None
    health: Optional[int] = None
    description: str = ""
    rarity: str = "common"
    has_script: bool = False
    abilities: list[str] = Field(default_factory=list, description="Trigger names")
    attack_targeting: Optional[AttackTargetingInfo] = None


class BattlefieldCardInfo(BaseModel):
    """A card instance in play."""
    instance_id: str
    card_id: str
    name: str
    card_type: str
    attack: Optional[int] = None
    current_health: int
    max_health: Optional[int] = None
    sapped: bool = False


class PlayerInfo(BaseModel):
    """Player information for display."""
    player_id: str
    health: int
    max_health: int
    energy: int
    max_energy: int
    is_current_turn: bool = False
    hand: list[str] = Field(default_factory=list)
    battlefield: list[BattlefieldCardInfo] = Field(default_factory=list)


class LogEntryInfo(BaseModel):
    """One entry of the game log."""
    player_id: str
    action: str
    description: str
    card_id: Optional[str] = None
    timestamp: float


class TargetingInfo(BaseModel):
    """An open selection waiting for clicks."""
    mode: str = Field(description="spell or attack")
    player_id: str
    card_id: Optional[str] = None
    attacker_instance_id: Optional[str] = None
    description: str = ""
    target_type: str = "any"
    target_count: int = 1
    selection: list[TargetInfo] = Field(default_factory=list)
    legal_targets: list[TargetInfo] = Field(default_factory=list)


class ActionInfo(BaseModel):
    """A legal action for the current player."""
    action_type: str
    player_id: Optional[str] = None
    card_id: Optional[str] = None
    attacker_instance_id: Optional[str] = None
    target: Optional[TargetInfo] = None


# =============================================================================
# Request Models
# =============================================================================

class CreateSessionRequest(BaseModel):
    """Request to create a new game session."""
    player_ids: list[str] = Field(..., min_length=1, description="Players in seat order")
    seed: Optional[int] = Field(None, description="Seed for deterministic shuffling")
    starting_health: Optional[int] = Field(None, ge=1)
    starting_energy: Optional[int] = Field(None, ge=0)
    max_energy_cap: Optional[int] = Field(None, ge=1)
    starting_hand_size: Optional[int] = Field(None, ge=0)


class RematchRequest(BaseModel):
    """Request for a rematch with the same players and rules."""
    seed: Optional[int] = None


class PlayCardRequest(BaseModel):
    """Play a card from hand; spells may open a selection."""
    player_id: str
    card_id: str


class AttackRequest(BaseModel):
    """
    Attack with a unit.

    Without a target a selection is opened and driven through the
    targeting endpoints.
    """
    player_id: str
    attacker_instance_id: str
    target: Optional[TargetInfo] = None


class EndTurnRequest(BaseModel):
    """End the current turn."""
    player_id: str


class TargetClickRequest(BaseModel):
    """Toggle one target in the open selection."""
    target: TargetInfo


class ConfirmTargetsRequest(BaseModel):
    """Confirm the current selection, or an explicit list of targets."""
    targets: Optional[list[TargetInfo]] = None


# =============================================================================
# Response Models
# =============================================================================

class GameStateResponse(BaseModel):
    """Current game state."""
    session_id: str
    status: str = Field(description="waiting, playing, finished")
    turn: int
    current_player_id: str
    deck_size: int
    graveyard: list[str] = Field(default_factory=list)
    players: list[PlayerInfo]
    winner_id: Optional[str] = None
    game_log: list[LogEntryInfo] = Field(default_factory=list)

    api_version: str = "v1"


class SessionResponse(BaseModel):
    """Response for session operations."""
    session_id: str
    status: SessionStatus
    players: list[str]
    created_at: float
    rematch_of: Optional[str] = None
    game_state: Optional[GameStateResponse] = None

    api_version: str = "v1"


class ActionResponse(BaseModel):
    """
    Outcome of a player intent or a targeting step.

    completed is false while a selection is open; `targeting` then
    describes it.
    """
    session_id: str
    success: bool
    completed: bool = True
    status: SessionStatus
    error: Optional[str] = None
    error_code: Optional[str] = None
    changes: list[str] = Field(default_factory=list)
    targeting: Optional[TargetingInfo] = None
    game_state: Optional[GameStateResponse] = None

    api_version: str = "v1"


class LegalActionsResponse(BaseModel):
    """Legal actions for the current player."""
    session_id: str
    current_player_id: str
    actions: list[ActionInfo]


class CardListResponse(BaseModel):
    """The card catalog."""
    cards: list[CardInfo]
    count: int


class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
    error_code: ErrorCode
    details: Optional[dict[str, Any]] = None

    api_version: str = "v1"


class SessionListResponse(BaseModel):
    """Response listing active sessions."""
    sessions: list[str]
    count: int


class EndSessionResponse(BaseModel):
    """Response after ending a session."""
    success: bool
    session_id: str


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    service: str
    version: str
