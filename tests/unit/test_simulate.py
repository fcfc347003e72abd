"""Unit tests for synthetic visit generation."""

from __future__ import annotations

import random

from landingstats.core.fingerprint import resolve_fingerprint
from landingstats.simulate import random_environment, simulate_visits
from landingstats.storage.store import MemoryBackend, PersistenceStore


class TestSimulateVisits:
    """Tests for simulate_visits."""

    def test_one_visitor_and_session_per_visit(self):
        store = PersistenceStore(MemoryBackend())
        total = simulate_visits(store, visitors=5, seed=42)

        assert len(store.read(store.visitors_key)) == 5
        assert len(store.read(store.sessions_key)) == 5
        assert total == len(store.read(store.events_key))

    def test_every_visit_starts_and_ends(self):
        store = PersistenceStore(MemoryBackend())
        simulate_visits(store, visitors=3, seed=7)
        types = [e["type"] for e in store.read(store.events_key)]
        assert types.count("page_view") == 3
        assert types.count("page_exit") == 3
        assert types[0] == "page_view"
        assert types[-1] == "page_exit"

    def test_scroll_milestones_never_repeat_within_a_session(self):
        store = PersistenceStore(MemoryBackend())
        simulate_visits(store, visitors=10, seed=11)
        per_session: dict[str, list[int]] = {}
        for event in store.read(store.events_key):
            if event["type"] == "scroll_depth":
                per_session.setdefault(event["session_id"], []).append(event["data"]["depth"])
        assert per_session
        for depths in per_session.values():
            assert depths == sorted(set(depths))

    def test_seed_is_repeatable(self):
        """Same seed, same journeys (session ids and timestamps aside)."""

        def shape(seed):
            store = PersistenceStore(MemoryBackend())
            simulate_visits(store, visitors=4, seed=seed)
            return [(e["type"], sorted(e["data"])) for e in store.read(store.events_key)]

        assert shape(3) == shape(3)

    def test_tracking_options_passed_through(self):
        store = PersistenceStore(MemoryBackend())
        simulate_visits(store, visitors=5, seed=1, milestones=(50,), position_threshold=101)
        events = store.read(store.events_key)
        depths = {e["data"]["depth"] for e in events if e["type"] == "scroll_depth"}
        assert depths <= {50}
        assert not [e for e in events if e["type"] == "scroll_position"]


class TestRandomEnvironment:
    """Tests for random_environment."""

    def test_resolves_to_known_tags(self):
        rng = random.Random(0)
        for _ in range(20):
            fingerprint = resolve_fingerprint(random_environment(rng))
            assert fingerprint.device in {"mobile", "tablet", "desktop"}
            assert fingerprint.browser in {"Chrome", "Firefox", "Safari"}
            assert fingerprint.os in {"Windows", "macOS", "Linux", "iOS"}
