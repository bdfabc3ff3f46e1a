"""
Configuration - Environment-driven settings for the engine and API.

All values are read once at import time from environment variables.
Game rule overrides are grouped in GameRules so a game can carry its own
copy (sessions may be created with non-default rules).
"""

from __future__ import annotations
from dataclasses import dataclass
import logging
import os

# Environment configuration
SKIRMISH_ENV = os.getenv("SKIRMISH_ENV", "development")
SKIRMISH_LOG_LEVEL = os.getenv("SKIRMISH_LOG_LEVEL", "INFO")
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "*").split(",")
SESSION_TTL_HOURS = float(os.getenv("SKIRMISH_SESSION_TTL_HOURS", "6"))


@dataclass(frozen=True)
class GameRules:
    """Start-of-game values and per-round energy growth limits."""
    starting_health: int = 25
    starting_energy: int = 1
    max_energy_cap: int = 10
    starting_hand_size: int = 5

    @classmethod
    def from_env(cls) -> GameRules:
        """Build rules from SKIRMISH_* overrides, falling back to defaults."""
        defaults = cls()
        return cls(
            starting_health=int(os.getenv("SKIRMISH_STARTING_HEALTH", defaults.starting_health)),
            starting_energy=int(os.getenv("SKIRMISH_STARTING_ENERGY", defaults.starting_energy)),
            max_energy_cap=int(os.getenv("SKIRMISH_MAX_ENERGY", defaults.max_energy_cap)),
            starting_hand_size=int(os.getenv("SKIRMISH_HAND_SIZE", defaults.starting_hand_size)),
        )


def configure_logging(level: str | None = None) -> None:
    """Configure root logging for the CLI and the API process."""
    logging.basicConfig(
        level=(level or SKIRMISH_LOG_LEVEL).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
