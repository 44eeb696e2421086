"""Negative cache of offerings EC2 recently reported as out of capacity."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from typing import Protocol, runtime_checkable

from cachetools import TTLCache
from loguru import logger

from skyfleet.constants import UNAVAILABLE_OFFERINGS_MAXSIZE, UNAVAILABLE_OFFERINGS_TTL

log = logger.bind(component="unavailable-offerings")

type OfferingKey = tuple[str, str, str]


@runtime_checkable
class OfferingsCache(Protocol):
    def mark_unavailable(self, instance_type: str, zone: str, capacity_type: str) -> None: ...


class UnavailableOfferings:
    """Thread-safe TTL cache keyed by (instance type, zone, capacity type).

    The provisioner writes to it after insufficient-capacity errors; the
    instance type catalog reads it to hide those offerings for a while.
    Expired entries are evicted on every access, and the cache never holds
    more than ``maxsize`` offerings.
    """

    def __init__(
        self,
        ttl: float = UNAVAILABLE_OFFERINGS_TTL,
        clock: Callable[[], float] = time.monotonic,
        maxsize: int = UNAVAILABLE_OFFERINGS_MAXSIZE,
    ) -> None:
        self._ttl = ttl
        self._offerings: TTLCache[OfferingKey, bool] = TTLCache(maxsize=maxsize, ttl=ttl, timer=clock)
        self._lock = threading.Lock()

    def mark_unavailable(self, instance_type: str, zone: str, capacity_type: str) -> None:
        key = (instance_type, zone, str(capacity_type))
        with self._lock:
            self._offerings[key] = True
        log.debug(
            "{instance_type} in {zone} ({capacity_type}) marked unavailable for {ttl}s",
            instance_type=instance_type,
            zone=zone,
            capacity_type=capacity_type,
            ttl=self._ttl,
        )

    def is_unavailable(self, instance_type: str, zone: str, capacity_type: str) -> bool:
        with self._lock:
            return (instance_type, zone, str(capacity_type)) in self._offerings

    def __len__(self) -> int:
        with self._lock:
            self._offerings.expire()
            return len(self._offerings)
