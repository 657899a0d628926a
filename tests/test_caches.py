"""Tests for the TTL cache and the per-station event cache."""

from datetime import UTC, datetime

import pytest

from rail_live.adapters.cache import UNKNOWN_STATION, StationEventCache, TTLCache
from rail_live.domain.models.movement_event import MovementEvent


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def _event(code: str | None, sequence: int) -> MovementEvent:
    return MovementEvent(
        location_code=code,
        location_identifier=code,
        received_at=datetime(2024, 1, 15, 10, 0, sequence % 60, tzinfo=UTC),
        payload={"seq": sequence},
    )


class TestTTLCache:
    """Tests for TTL expiry."""

    def test_when_within_ttl_then_value_returned(self) -> None:
        """Given a fresh entry, when reading before expiry, then the value is returned."""
        clock = FakeClock()
        cache = TTLCache(default_ttl_seconds=30, clock=clock)
        cache.set("departures:KGX", "board")

        clock.now += 29.9

        assert cache.get("departures:KGX") == "board"

    def test_when_ttl_elapsed_then_entry_dropped(self) -> None:
        """Given an entry at its TTL, when reading, then None is returned and the entry removed."""
        clock = FakeClock()
        cache = TTLCache(default_ttl_seconds=30, clock=clock)
        cache.set("departures:KGX", "board")

        clock.now += 30

        assert cache.get("departures:KGX") is None
        assert len(cache) == 0

    def test_when_custom_ttl_then_it_overrides_default(self) -> None:
        """Given a per-entry TTL, when the default would have expired it, then it is still live."""
        clock = FakeClock()
        cache = TTLCache(default_ttl_seconds=1, clock=clock)
        cache.set("corpus", {"YORK": "YRK"}, ttl_seconds=3600)

        clock.now += 60

        assert cache.get("corpus") == {"YORK": "YRK"}

    def test_when_purging_then_only_expired_removed(self) -> None:
        """Given live and expired entries, when purging, then only expired ones go."""
        clock = FakeClock()
        cache = TTLCache(default_ttl_seconds=10, clock=clock)
        cache.set("old", 1)
        clock.now += 5
        cache.set("new", 2)
        clock.now += 6

        assert cache.purge_expired() == 1
        assert cache.get("new") == 2

    def test_when_many_keys_expire_then_next_write_sweeps_them(self) -> None:
        """Given a thousand expired keys never read again, when writing once more, then only it remains."""
        clock = FakeClock()
        cache = TTLCache(default_ttl_seconds=30, clock=clock)
        for index in range(1000):
            cache.set(f"service:{index}", index)

        clock.now += 3600
        cache.set("service:fresh", "details")

        assert len(cache) == 1
        assert cache.get("service:fresh") == "details"

    def test_when_writes_within_ttl_then_no_sweep_needed(self) -> None:
        """Given writes inside one TTL period, when counting, then every live entry is kept."""
        clock = FakeClock()
        cache = TTLCache(default_ttl_seconds=30, clock=clock)
        cache.set("a", 1)
        clock.now += 10
        cache.set("b", 2)

        assert len(cache) == 2

    def test_when_ttl_not_positive_then_rejected(self) -> None:
        """Given a zero TTL, when constructing, then ValueError is raised."""
        with pytest.raises(ValueError):
            TTLCache(default_ttl_seconds=0)


class TestStationEventCache:
    """Tests for the bounded event buffers."""

    def test_when_capacity_exceeded_then_oldest_evicted(self) -> None:
        """Given capacity 3, when five events arrive, then the three newest remain newest first."""
        cache = StationEventCache(capacity=3)

        for sequence in range(5):
            cache.append(_event("KGX", sequence))

        assert [e.payload["seq"] for e in cache.recent("KGX")] == [4, 3, 2]

    def test_when_limit_given_then_truncated(self) -> None:
        """Given ten events, when asking for two, then the two most recent are returned."""
        cache = StationEventCache(capacity=10)
        for sequence in range(10):
            cache.append(_event("YRK", sequence))

        assert [e.payload["seq"] for e in cache.recent("yrk", limit=2)] == [9, 8]

    def test_when_event_unresolved_then_kept_under_unknown(self) -> None:
        """Given an event without a station code, when appending, then it lands under UNKNOWN."""
        cache = StationEventCache()

        cache.append(_event(None, 1))

        assert cache.station_codes() == {UNKNOWN_STATION}
        assert len(cache.recent(UNKNOWN_STATION)) == 1

    def test_when_station_never_seen_then_empty(self) -> None:
        """Given no events for a station, when reading, then an empty list is returned."""
        assert StationEventCache().recent("EDB") == []

    def test_when_capacity_zero_then_rejected(self) -> None:
        """Given capacity 0, when constructing, then ValueError is raised."""
        with pytest.raises(ValueError):
            StationEventCache(capacity=0)
