"""Tests for the per-entry TTL store."""

from reelcritic.cache.store import TtlStore


class FakeTimer:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class TestTtlStore:
    """Test TtlStore reads, writes and expiry."""

    def test_set_then_get(self) -> None:
        """A stored value is returned until it expires."""
        store = TtlStore(60, timer=FakeTimer())
        assert store.set("a", {"title": "X"})
        assert store.get("a") == {"title": "X"}

    def test_missing_key_reads_as_none(self) -> None:
        store = TtlStore(60, timer=FakeTimer())
        assert store.get("nope") is None

    def test_default_ttl_applies(self) -> None:
        """Entries without an explicit TTL use the namespace default."""
        timer = FakeTimer()
        store = TtlStore(60, timer=timer)
        store.set("a", 1)
        timer.now = 59
        assert store.get("a") == 1
        timer.now = 61
        assert store.get("a") is None

    def test_each_entry_has_its_own_ttl(self) -> None:
        """Short and long lived entries coexist in one store."""
        timer = FakeTimer()
        store = TtlStore(60, timer=timer)
        store.set("short", 1, ttl=10)
        store.set("long", 2, ttl=1000)
        timer.now = 11
        assert store.get("short") is None
        assert store.get("long") == 2
        assert store.keys() == ["long"]

    def test_non_positive_ttl_is_refused(self) -> None:
        """A zero or negative TTL stores nothing."""
        store = TtlStore(60, timer=FakeTimer())
        assert store.set("a", 1, ttl=0) is False
        assert store.set("b", 1, ttl=-5) is False
        assert store.get("a") is None
        assert len(store) == 0

    def test_delete(self) -> None:
        """Deleting reports whether something was removed and never raises."""
        store = TtlStore(60, timer=FakeTimer())
        store.set("a", 1)
        assert store.delete("a") is True
        assert store.delete("a") is False
        assert store.get("a") is None

    def test_invalidate_pattern_counts_removed_keys(self) -> None:
        """Every key containing the substring is removed."""
        store = TtlStore(60, timer=FakeTimer())
        for key in ("reviews_5_1_10", "reviews_5_2_10", "reviews_50_1_10"):
            store.set(key, [])
        assert store.invalidate_pattern("reviews_5_") == 2
        assert store.keys() == ["reviews_50_1_10"]

    def test_stats_track_hits_and_misses(self) -> None:
        store = TtlStore(60, timer=FakeTimer())
        store.set("a", 1)
        store.get("a")
        store.get("a")
        store.get("b")
        assert store.stats().to_dict() == {"hits": 2, "misses": 1, "keys": 1}

    def test_flush(self) -> None:
        store = TtlStore(60, timer=FakeTimer())
        store.set("a", 1)
        store.set("b", 2)
        store.flush()
        assert len(store) == 0
