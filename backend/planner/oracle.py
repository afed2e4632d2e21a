# planner/oracle.py
# travel-time oracle: routing provider -> haversine fallback, cached, one in-flight call per key

import asyncio
import logging
from typing import Awaitable, Callable, Hashable, Optional

from models import TravelLeg
from planner.geo import Coords, haversine_km
from utils import TTLCache

log = logging.getLogger(__name__)

# assumed average door-to-door speed when the routing provider is unavailable
FALLBACK_SPEED_KMH = 30.0

RouteFetcher = Callable[[Coords, Coords, str], Awaitable[Optional[dict]]]


def estimate_leg(origin: Optional[Coords], destination: Optional[Coords]) -> TravelLeg:
    """Deterministic straight-line estimate; never raises."""
    km = haversine_km(origin, destination)
    return TravelLeg(
        durationMinutes=round(km / FALLBACK_SPEED_KMH * 60),
        distanceKm=km,
        isEstimated=True,
    )


class TravelTimeOracle:
    """
    Resolves (origin, destination, mode) to a TravelLeg.

    `fetch` is the external routing query (see providers/routes.py). It may
    return None or raise; either way the leg falls back to estimate_leg().
    Identical concurrent requests share one lookup and results (fallbacks
    included) are cached until the TTL runs out.
    """

    def __init__(self, fetch: Optional[RouteFetcher] = None, cache: Optional[TTLCache] = None):
        self._fetch = fetch
        self._cache = cache if cache is not None else TTLCache(ttl_seconds=3600)
        self._inflight: dict[Hashable, asyncio.Task] = {}

    @staticmethod
    def cache_key(origin: Optional[Coords], destination: Optional[Coords], mode: str) -> Hashable:
        return (origin, destination, mode)

    async def resolve(self, origin: Optional[Coords], destination: Optional[Coords], mode: str = "transit") -> TravelLeg:
        key = self.cache_key(origin, destination, mode)
        hit = self._cache.get(key)
        if hit is not None:
            return hit

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.get_running_loop().create_task(self._lookup(key, origin, destination, mode))
            self._inflight[key] = task
            task.add_done_callback(lambda _t, k=key: self._inflight.pop(k, None))
        # a cancelled caller must not cancel the lookup other callers wait on
        return await asyncio.shield(task)

    async def _lookup(self, key: Hashable, origin, destination, mode: str) -> TravelLeg:
        leg = await self._query(origin, destination, mode)
        self._cache.set(key, leg)
        return leg

    async def _query(self, origin, destination, mode: str) -> TravelLeg:
        if origin is None or destination is None or self._fetch is None:
            return estimate_leg(origin, destination)
        try:
            data = await self._fetch(origin, destination, mode)
            if not data or data.get("fallback"):
                log.warning("no route %s -> %s (%s), using estimate", origin, destination, mode)
                return estimate_leg(origin, destination)
            return TravelLeg(
                durationMinutes=int(data["durationMinutes"]),
                distanceKm=float(data["distanceKm"]),
                isEstimated=False,
                trafficAware=bool(data.get("trafficAware")),
            )
        except Exception as e:
            # any provider failure degrades to the estimate, never to the caller
            log.warning("routes lookup %s -> %s (%s) failed: %s", origin, destination, mode, e)
            return estimate_leg(origin, destination)
