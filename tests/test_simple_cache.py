"""Unit tests for the :mod:`rideboard.utils.cache` module."""
from rideboard.utils.cache import SimpleCache


def test_simple_cache_expires_items(monkeypatch):
    """Expired entries should be evicted on access."""

    from rideboard.utils import cache as cache_module

    current = 100.0

    def fake_time():
        return current

    monkeypatch.setattr(cache_module.time, "time", fake_time)

    cache = SimpleCache(default_ttl=5.0)

    cache.set("profile:a", "alice")
    assert cache.get("profile:a") == "alice"

    current = 200.0

    assert cache.get("profile:a") is None
    assert "profile:a" not in cache._cache


def test_per_entry_ttl_overrides_default(monkeypatch):
    from rideboard.utils import cache as cache_module

    current = 100.0
    monkeypatch.setattr(cache_module.time, "time", lambda: current)

    cache = SimpleCache(default_ttl=5.0)
    cache.set("profile:short", "s")
    cache.set("profile:long", "l", ttl=60.0)

    current = 110.0

    assert cache.get("profile:short") is None
    assert cache.get("profile:long") == "l"


def test_clear_removes_everything():
    cache = SimpleCache(default_ttl=60)
    cache.set("profile:a", "alice")
    cache.set("profile:b", "bob")

    cache.clear()

    assert cache.get("profile:a") is None
    assert cache.get("profile:b") is None
