"""
Session Module - Manages in-memory game sessions.

A session represents one play-through of a game:
- Created when a client starts a game
- Holds the document store and the engine
- Parks a spell/attack while its targeting session is open
- Removed when ended or stale
"""

from .manager import SessionManager, GameSession, SessionState

__all__ = [
    "SessionManager",
    "GameSession",
    "SessionState",
]
