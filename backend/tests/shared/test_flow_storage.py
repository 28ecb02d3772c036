"""Tests for shared/flow_storage.py."""

from shared.flow_storage import FlowStorage, PENDING_EMAIL


class TestFlowStorage:
    def test_set_and_get(self, clock):
        storage = FlowStorage(ttl_seconds=60, clock=clock.monotonic)
        storage.set(PENDING_EMAIL, "a@inst.edu")
        assert storage.get(PENDING_EMAIL) == "a@inst.edu"
        assert PENDING_EMAIL in storage

    def test_missing_key_returns_default(self, clock):
        storage = FlowStorage(clock=clock.monotonic)
        assert storage.get("nope") is None
        assert storage.get("nope", "fallback") == "fallback"

    def test_entries_expire(self, clock):
        """Entries disappear once their TTL has passed."""
        storage = FlowStorage(ttl_seconds=60, clock=clock.monotonic)
        storage.set(PENDING_EMAIL, "a@inst.edu")

        clock.advance(60)

        assert storage.get(PENDING_EMAIL) is None
        assert PENDING_EMAIL not in storage

    def test_per_key_ttl(self, clock):
        storage = FlowStorage(ttl_seconds=60, clock=clock.monotonic)
        storage.set("short", 1, ttl_seconds=5)
        storage.set("long", 2)

        clock.advance(10)

        assert storage.get("short") is None
        assert storage.get("long") == 2

    def test_pop_delete_clear(self, clock):
        storage = FlowStorage(clock=clock.monotonic)
        storage.set("a", 1)
        storage.set("b", 2)
        storage.set("c", 3)

        assert storage.pop("a") == 1
        assert storage.get("a") is None
        storage.delete("b")
        storage.delete("missing")
        assert storage.get("b") is None
        storage.clear()
        assert storage.get("c") is None
