"""
Engine Core - Deterministic game state management and effect resolution.

The engine is the runtime that:
1. Holds the GameState document in a store
2. Generates legal actions
3. Applies actions via the reducer
4. Interprets spell and ability scripts step-by-step
5. Drives human target selection
"""

from .state import (
    BattlefieldCard,
    GameState,
    GameStatus,
    LogEntry,
    PlayerState,
    Target,
)
from .store import DocumentStore, InMemoryDocumentStore
from .action import Action, ActionType, ActionPayload, ActionResult
from .reducer import Reducer, apply_action
from .action_generator import ActionGenerator, legal_actions
from .effect_resolver import (
    EffectContext,
    EffectExecutionError,
    EffectResolver,
    PendingTargetChoice,
    SpellOperation,
    StagingAPI,
)
from .targeting import TargetingError, TargetingPhase, TargetingResolver
from .triggers import TriggerDispatcher
from .engine import GameEngine

__all__ = [
    "BattlefieldCard",
    "GameState",
    "GameStatus",
    "LogEntry",
    "PlayerState",
    "Target",
    "DocumentStore",
    "InMemoryDocumentStore",
    "Action",
    "ActionType",
    "ActionPayload",
    "ActionResult",
    "Reducer",
    "apply_action",
    "ActionGenerator",
    "legal_actions",
    "EffectContext",
    "EffectExecutionError",
    "EffectResolver",
    "PendingTargetChoice",
    "SpellOperation",
    "StagingAPI",
    "TargetingError",
    "TargetingPhase",
    "TargetingResolver",
    "TriggerDispatcher",
    "GameEngine",
]
