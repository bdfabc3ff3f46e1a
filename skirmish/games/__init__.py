"""
Games module - Card set implementations.

Each card set has its own subpackage with:
- Card definitions and scripts
- Deck construction
- Game setup
"""
