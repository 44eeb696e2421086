from __future__ import annotations

import threading

import pytest

from skyfleet.constants import CapacityType
from skyfleet.providers.aws.unavailable import OfferingsCache, UnavailableOfferings

pytestmark = [pytest.mark.xdist_group("unit")]


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class TestUnavailableOfferings:
    def test_marked_offering_is_unavailable(self):
        cache = UnavailableOfferings(ttl=60, clock=FakeClock())
        cache.mark_unavailable("m5.large", "us-east-1a", CapacityType.SPOT)
        assert cache.is_unavailable("m5.large", "us-east-1a", "spot")
        assert not cache.is_unavailable("m5.large", "us-east-1a", "on-demand")
        assert not cache.is_unavailable("m5.large", "us-east-1b", "spot")

    def test_entries_expire(self):
        clock = FakeClock()
        cache = UnavailableOfferings(ttl=60, clock=clock)
        cache.mark_unavailable("m5.large", "us-east-1a", "spot")

        clock.now += 59
        assert cache.is_unavailable("m5.large", "us-east-1a", "spot")
        clock.now += 1
        assert not cache.is_unavailable("m5.large", "us-east-1a", "spot")
        assert len(cache) == 0

    def test_marking_again_extends_expiry(self):
        clock = FakeClock()
        cache = UnavailableOfferings(ttl=60, clock=clock)
        cache.mark_unavailable("m5.large", "us-east-1a", "spot")
        clock.now += 50
        cache.mark_unavailable("m5.large", "us-east-1a", "spot")
        clock.now += 50
        assert cache.is_unavailable("m5.large", "us-east-1a", "spot")
        assert len(cache) == 1

    def test_expired_entries_are_evicted_without_reads(self):
        clock = FakeClock()
        cache = UnavailableOfferings(ttl=1, clock=clock)
        for i in range(1000):
            cache.mark_unavailable(f"type-{i}", "us-east-1a", "spot")

        clock.now += 1000
        cache.mark_unavailable("m5.large", "us-east-1a", "spot")

        assert len(cache._offerings) == 1
        assert cache.is_unavailable("m5.large", "us-east-1a", "spot")

    def test_size_is_bounded(self):
        cache = UnavailableOfferings(ttl=60, clock=FakeClock(), maxsize=10)
        for i in range(50):
            cache.mark_unavailable(f"type-{i}", "us-east-1a", "spot")

        assert len(cache) == 10
        assert cache.is_unavailable("type-49", "us-east-1a", "spot")
        assert not cache.is_unavailable("type-0", "us-east-1a", "spot")

    def test_satisfies_protocol(self):
        assert isinstance(UnavailableOfferings(), OfferingsCache)

    def test_concurrent_writers(self):
        cache = UnavailableOfferings(ttl=60, clock=FakeClock())

        def write(zone: str) -> None:
            for i in range(100):
                cache.mark_unavailable(f"type-{i}", zone, "spot")

        threads = [threading.Thread(target=write, args=(f"zone-{n}",)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(cache) == 400
