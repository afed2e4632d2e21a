import asyncio
import logging

import pytest

from planner import TravelTimeOracle, estimate_leg
from planner.geo import MISSING_DISTANCE_KM, haversine_km
from factories import at


class CountingFetch:
    def __init__(self, result=None, error=None):
        self.calls = 0
        self.result = result
        self.error = error

    async def __call__(self, origin, destination, mode):
        self.calls += 1
        await asyncio.sleep(0)
        if self.error:
            raise self.error
        return self.result


ROUTE = {"distanceKm": 12.3, "durationMinutes": 31, "trafficAware": False, "fallback": False}


def test_successful_lookup_is_not_estimated():
    oracle = TravelTimeOracle(fetch=CountingFetch(result=ROUTE))
    leg = asyncio.run(oracle.resolve(at(0), at(10), "transit"))
    assert leg.isEstimated is False
    assert leg.durationMinutes == 31
    assert leg.distanceKm == 12.3


@pytest.mark.parametrize("km", [0.0, 0.4, 3.0, 17.5, 80.0])
def test_fallback_matches_thirty_kmh(km):
    oracle = TravelTimeOracle(fetch=CountingFetch(error=ConnectionError("offline")))
    leg = asyncio.run(oracle.resolve(at(0), at(km), "driving"))
    assert leg.isEstimated is True
    assert leg.distanceKm == pytest.approx(haversine_km(at(0), at(km)))
    assert leg.durationMinutes == round(haversine_km(at(0), at(km)) / 30 * 60)


def test_empty_provider_answer_falls_back():
    oracle = TravelTimeOracle(fetch=CountingFetch(result=None))
    assert asyncio.run(oracle.resolve(at(0), at(5))).isEstimated


def test_provider_fallback_logs_a_warning(caplog):
    oracle = TravelTimeOracle(fetch=CountingFetch(result=None))
    with caplog.at_level(logging.WARNING, logger="planner.oracle"):
        asyncio.run(oracle.resolve(at(0), at(5)))
    assert any(r.levelno == logging.WARNING and "no route" in r.getMessage() for r in caplog.records)


def test_provider_flagged_fallback_is_estimated():
    oracle = TravelTimeOracle(fetch=CountingFetch(result={**ROUTE, "fallback": True}))
    assert asyncio.run(oracle.resolve(at(0), at(5))) == estimate_leg(at(0), at(5))


def test_malformed_provider_answer_falls_back():
    oracle = TravelTimeOracle(fetch=CountingFetch(result={"distanceKm": 1.0}))
    assert asyncio.run(oracle.resolve(at(0), at(5))).isEstimated


def test_no_fetcher_means_estimates_only():
    assert asyncio.run(TravelTimeOracle().resolve(at(0), at(6))) == estimate_leg(at(0), at(6))


def test_missing_coordinates_skip_the_provider():
    fetch = CountingFetch(result=ROUTE)
    leg = asyncio.run(TravelTimeOracle(fetch=fetch).resolve(None, at(1)))
    assert fetch.calls == 0
    assert leg.isEstimated
    assert leg.distanceKm == MISSING_DISTANCE_KM


def test_repeat_queries_hit_the_cache():
    fetch = CountingFetch(result=ROUTE)
    oracle = TravelTimeOracle(fetch=fetch)

    async def run():
        first = await oracle.resolve(at(0), at(10), "transit")
        second = await oracle.resolve(at(0), at(10), "transit")
        return first, second

    first, second = asyncio.run(run())
    assert first == second
    assert fetch.calls == 1


def test_fallbacks_are_cached_too():
    fetch = CountingFetch(error=TimeoutError())
    oracle = TravelTimeOracle(fetch=fetch)

    async def run():
        await oracle.resolve(at(0), at(10))
        await oracle.resolve(at(0), at(10))

    asyncio.run(run())
    assert fetch.calls == 1


def test_concurrent_identical_queries_share_one_call():
    fetch = CountingFetch(result=ROUTE)
    oracle = TravelTimeOracle(fetch=fetch)

    async def run():
        return await asyncio.gather(*[oracle.resolve(at(0), at(10), "transit") for _ in range(5)])

    legs = asyncio.run(run())
    assert fetch.calls == 1
    assert len({leg.durationMinutes for leg in legs}) == 1


def test_mode_is_part_of_the_key():
    fetch = CountingFetch(result=ROUTE)
    oracle = TravelTimeOracle(fetch=fetch)

    async def run():
        await oracle.resolve(at(0), at(10), "transit")
        await oracle.resolve(at(0), at(10), "driving")
        await oracle.resolve(at(10), at(0), "driving")

    asyncio.run(run())
    assert fetch.calls == 3
