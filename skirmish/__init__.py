"""
Skirmish - Turn-based collectible card game rule engine.

A deterministic rules engine for a sci-fi card game. It provides:
- An atomic mutation API over a shared game document
- Interactive, cancelable target selection
- Declarative spell and artifact scripts resolved by two-phase commit
- Combat, triggered abilities and turn sequencing
"""

__version__ = "0.1.0"
