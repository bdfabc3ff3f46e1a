"""
Tests for the in-memory document store.
"""

import pytest

from ..engine_core import mutations
from ..engine_core.action import ActionResult
from ..engine_core.store import InMemoryDocumentStore


class TestChange:
    """Tests for mutator-based changes."""

    def test_change_publishes(self, playing_state):
        store = InMemoryDocumentStore(playing_state)

        ok = store.change(lambda doc: mutations.spend_energy(doc, "alice", 3))

        assert ok
        assert store.version == 1
        assert store.read().get_player_state("alice").energy == 7

    def test_failed_change_publishes_nothing(self, playing_state):
        """A mutator that raises leaves the published document untouched."""
        store = InMemoryDocumentStore(playing_state)

        def mutator(doc):
            mutations.spend_energy(doc, "alice", 3)
            mutations.deal_damage_to_player(doc, "bob", 5)
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            store.change(mutator)

        assert store.version == 0
        snapshot = store.read()
        assert snapshot.get_player_state("alice").energy == 10
        assert snapshot.get_player_state("bob").health == 25

    def test_snapshots_are_private(self, playing_state):
        store = InMemoryDocumentStore(playing_state)
        snapshot = store.read()
        snapshot.get_player_state("alice").energy = 0
        snapshot.hands["alice"].clear()

        assert store.read().get_player_state("alice").energy == 10
        assert len(store.read().get_hand("alice")) == 5

    def test_initial_state_is_copied(self, playing_state):
        store = InMemoryDocumentStore(playing_state)
        playing_state.get_player_state("bob").health = 1
        assert store.read().get_player_state("bob").health == 25


class TestApply:
    """Tests for reducer-based changes."""

    def test_publishes_new_state(self, playing_state):
        store = InMemoryDocumentStore(playing_state)

        def reduce(doc):
            new_state = doc.clone()
            new_state.turn = 5
            return ActionResult.success_with_state(new_state)

        assert store.apply(reduce).success
        assert store.version == 1
        assert store.read().turn == 5

    def test_failure_without_state_publishes_nothing(self, playing_state):
        store = InMemoryDocumentStore(playing_state)
        result = store.apply(lambda doc: ActionResult.failure("nope"))
        assert not result.success
        assert store.version == 0


class TestSubscribe:
    """Tests for change listeners."""

    def test_listener_called_on_publish(self, playing_state):
        store = InMemoryDocumentStore(playing_state)
        seen = []
        store.subscribe(lambda state, version: seen.append((version, state.turn)))

        store.change(lambda doc: setattr(doc, "turn", 2))

        assert seen == [(1, 2)]

    def test_unsubscribe(self, playing_state):
        store = InMemoryDocumentStore(playing_state)
        seen = []
        unsubscribe = store.subscribe(lambda state, version: seen.append(version))

        unsubscribe()
        store.change(lambda doc: None)

        assert seen == []

    def test_failing_listener_does_not_block_publish(self, playing_state):
        store = InMemoryDocumentStore(playing_state)
        seen = []

        def broken(state, version):
            raise ValueError("listener bug")

        store.subscribe(broken)
        store.subscribe(lambda state, version: seen.append(version))

        store.change(lambda doc: None)

        assert store.version == 1
        assert seen == [1]
