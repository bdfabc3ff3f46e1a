"""
Document Store - The serialization point for game state changes.

The engine never mutates a published document. Every change runs against
a private working copy of the latest version and is published only if the
mutator returns normally; an exception discards the working copy, so a
failed change is never observable.

DocumentStore is the contract a replicated/persistent store must meet.
InMemoryDocumentStore is the single-process implementation used by
sessions and tests.
"""

from __future__ import annotations
from typing import Callable, Protocol, TypeVar, TYPE_CHECKING
import logging

from .state import GameState

if TYPE_CHECKING:
    from .action import ActionResult

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DocumentStore(Protocol):
    """Read the current document; apply a mutation against the latest version."""

    @property
    def version(self) -> int: ...

    def read(self) -> GameState: ...

    def change(self, mutator: Callable[[GameState], T]) -> T: ...

    def apply(self, reduce: Callable[[GameState], ActionResult]) -> ActionResult: ...


class InMemoryDocumentStore:
    """
    Holds one game document in memory.

    Usage:
        store = InMemoryDocumentStore(state)
        ok = store.change(lambda doc: spend_energy(doc, "alice", 2))
        snapshot = store.read()
    """

    def __init__(self, state: GameState):
        self._state = state.clone()
        self._version = 0
        self._listeners: list[Callable[[GameState, int], None]] = []

    @property
    def version(self) -> int:
        return self._version

    def read(self) -> GameState:
        """Return a private snapshot of the latest version."""
        return self._state.clone()

    def change(self, mutator: Callable[[GameState], T]) -> T:
        """
        Apply `mutator` to a working copy of the latest version.

        The working copy is published after the mutator returns. If the
        mutator raises, nothing is published and the exception propagates.
        """
        working = self._state.clone()
        outcome = mutator(working)
        self._publish(working)
        return outcome

    def apply(self, reduce: Callable[[GameState], ActionResult]) -> ActionResult:
        """
        Run a reducer against the latest version.

        The reducer must not mutate its input. If the result carries a
        new_state, that document becomes the next version.
        """
        result = reduce(self._state)
        if result.new_state is not None:
            self._publish(result.new_state.clone())
        return result

    def subscribe(self, listener: Callable[[GameState, int], None]) -> Callable[[], None]:
        """Register a listener called after each publish. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self, state: GameState) -> None:
        self._state = state
        self._version += 1
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._state.clone(), self._version)
            except Exception:
                logger.exception("Store listener failed (game %s)", self._state.game_id)
