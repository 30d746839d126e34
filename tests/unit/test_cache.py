"""Unit tests for the server cache."""
from __future__ import annotations

import pytest

from conftest import FakeClock
from hedge_risk.services.cache import CacheKeys, ServerCache


class TestServerCache:
    def test_miss_returns_none(self, cache: ServerCache) -> None:
        assert cache.get("nothing") is None

    def test_set_then_get(self, cache: ServerCache, clock: FakeClock) -> None:
        entry = cache.set(CacheKeys.OBLIGATION_PDAS, ["a", "b"], 300)
        assert entry.scanned_at == clock.now
        assert entry.expires_at == clock.now + 300_000
        assert cache.get(CacheKeys.OBLIGATION_PDAS) == entry

    def test_entry_valid_at_expiry_instant(self, cache: ServerCache, clock: FakeClock) -> None:
        cache.set("k", 1, 10)
        clock.advance(10)
        assert cache.get("k") is not None

    def test_expired_entry_evicted(self, cache: ServerCache, clock: FakeClock) -> None:
        cache.set("k", 1, 10)
        clock.advance(11)
        assert cache.get("k") is None
        clock.now -= 5_000
        # evicted, not merely hidden
        assert cache.get("k") is None

    def test_set_replaces_whole_value(self, cache: ServerCache) -> None:
        cache.set("k", ["old"], 10)
        cache.set("k", ["new"], 10)
        assert cache.get("k").data == ["new"]

    @pytest.mark.parametrize("ttl", [0, -1])
    def test_non_positive_ttl_rejected(self, cache: ServerCache, ttl: int) -> None:
        with pytest.raises(ValueError):
            cache.set("k", 1, ttl)

    def test_clear_and_clear_all(self, cache: ServerCache) -> None:
        cache.set("a", 1, 10)
        cache.set("b", 2, 10)
        cache.clear("a")
        assert cache.get("a") is None
        assert cache.get("b") is not None
        cache.clear_all()
        assert cache.get("b") is None

    def test_independent_instances(self) -> None:
        first, second = ServerCache(), ServerCache()
        first.set("k", 1, 60)
        assert second.get("k") is None

    def test_default_clock_is_epoch_ms(self) -> None:
        entry = ServerCache().set("k", 1, 60)
        assert entry.scanned_at > 1_600_000_000_000
        assert entry.expires_at - entry.scanned_at == 60_000
