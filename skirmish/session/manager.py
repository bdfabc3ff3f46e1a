"""
Session Manager - Creates and manages game sessions.

LIFECYCLE:
1. Client creates a session -> game set up in the waiting status and started
2. During the game:
   - Players submit intents through the session's GameEngine
   - A spell or attack that needs a selection parks its coroutine in
     `pending_task` until the targeting session is confirmed or cancelled
3. Game ends -> session stays readable until ended or cleaned up
4. Client can request a rematch (same players and rules, fresh deck)

PERSISTENCE RULES:
- Sessions are in-memory only
- The document store is the single mutation point for a session's game
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any
import asyncio
import logging
import time
import uuid

from ..config import GameRules, SESSION_TTL_HOURS
from ..engine_core.engine import GameEngine
from ..engine_core.state import GameState, GameStatus
from ..engine_core.store import InMemoryDocumentStore
from ..games.scifi.setup import create_game

logger = logging.getLogger(__name__)


class SessionState(Enum):
    """State of a game session."""
    ACTIVE = "active"  # Game in progress
    GAME_OVER = "game_over"  # Game completed
    ABANDONED = "abandoned"  # Ended before completion


@dataclass
class GameSession:
    """
    One game and the engine that drives it.

    Contains:
    - The document store holding the game
    - The engine (reducer, triggers, targeting resolver)
    - A parked spell/attack coroutine while a selection is open
    - Session metadata
    """
    session_id: str
    engine: GameEngine
    players: tuple[str, ...]
    rules: GameRules
    created_at: float
    seed: int | None = None

    state: SessionState = SessionState.ACTIVE
    pending_task: asyncio.Task | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def store(self) -> InMemoryDocumentStore:
        return self.engine.store

    @property
    def game(self) -> GameState:
        """Snapshot of the current game document."""
        return self.engine.state

    def is_active(self) -> bool:
        """Check if session is still active."""
        if self.state != SessionState.ACTIVE:
            return False
        return self.game.status != GameStatus.FINISHED


class SessionManager:
    """
    Manages game sessions.

    Responsibilities:
    - Create sessions with a started game
    - Track active sessions
    - Create rematches
    - Clean up old sessions

    No persistence - sessions are in-memory only.
    """

    def __init__(self, rules: GameRules | None = None):
        self._sessions: dict[str, GameSession] = {}
        self.default_rules = rules

    def create_session(
        self,
        player_ids: list[str],
        rules: GameRules | None = None,
        seed: int | None = None,
    ) -> GameSession:
        """
        Create a new game session and start the game.

        Args:
            player_ids: Players in seat order
            rules: Starting values (manager default, then environment)
            seed: Seed for deterministic shuffling

        Raises:
            ValueError: If the player list is invalid
        """
        session_id = str(uuid.uuid4())
        rules = rules or self.default_rules or GameRules.from_env()

        state = create_game(player_ids, rules=rules, game_id=session_id, seed=seed)
        engine = GameEngine(InMemoryDocumentStore(state))
        result = engine.start_game()
        if not result.success:
            raise ValueError(f"Could not start game: {result.error}")

        session = GameSession(
            session_id=session_id,
            engine=engine,
            players=tuple(player_ids),
            rules=rules,
            created_at=time.time(),
            seed=seed,
        )
        self._sessions[session_id] = session
        logger.info("Created session %s (%d players)", session_id, len(player_ids))
        return session

    def get_session(self, session_id: str) -> GameSession | None:
        """Get a session by ID."""
        return self._sessions.get(session_id)

    def end_session(self, session_id: str, reason: str = "completed") -> bool:
        """
        End a session and remove it from memory.

        A parked spell/attack coroutine is cancelled.
        """
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False

        if session.pending_task is not None and not session.pending_task.done():
            session.pending_task.cancel()
        session.pending_task = None

        if reason == "completed":
            session.state = SessionState.GAME_OVER
        else:
            session.state = SessionState.ABANDONED
        logger.info("Ended session %s (%s)", session_id, reason)
        return True

    def create_rematch(self, session_id: str, seed: int | None = None) -> GameSession | None:
        """Start a fresh session with the same players and rules."""
        session = self._sessions.get(session_id)
        if session is None:
            return None
        rematch = self.create_session(list(session.players), rules=session.rules, seed=seed)
        rematch.metadata["rematch_of"] = session_id
        return rematch

    def list_active_sessions(self) -> list[str]:
        """List IDs of active sessions."""
        return [
            sid for sid, session in self._sessions.items()
            if session.is_active()
        ]

    def cleanup_stale_sessions(self, max_age_seconds: float | None = None) -> int:
        """
        Remove sessions older than max_age.

        Called periodically to free memory. Returns the number removed.
        """
        if max_age_seconds is None:
            max_age_seconds = SESSION_TTL_HOURS * 3600
        current_time = time.time()
        to_remove = [
            session_id
            for session_id, session in self._sessions.items()
            if current_time - session.created_at > max_age_seconds
        ]

        for session_id in to_remove:
            self.end_session(session_id, reason="stale")
        return len(to_remove)
