import asyncio
import json
from functools import partial

import httpx

from planner import TravelTimeOracle, estimate_leg
from providers.routes import fetch_route
from factories import at


def transport(status=200, payload=None, seen=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return httpx.Response(status, json=payload if payload is not None else {})
    return httpx.MockTransport(handler)


ONE_LEG = {"routes": [{"legs": [{"distanceMeters": 12345, "duration": "1800s"}]}]}


def test_parses_first_leg():
    seen = []
    result = asyncio.run(fetch_route(at(0), at(12), "driving", "key-123", transport=transport(payload=ONE_LEG, seen=seen)))
    assert result == {"distanceKm": 12.3, "durationMinutes": 30, "trafficAware": False, "fallback": False}

    request = seen[0]
    assert request.url.host == "routes.googleapis.com"
    assert request.url.path.endswith("computeRoutes")
    assert request.headers["X-Goog-Api-Key"] == "key-123"
    body = json.loads(request.content)
    assert body["travelMode"] == "DRIVE"
    assert body["origin"]["location"]["latLng"]["latitude"] == at(0)[0]
    assert body["destination"]["location"]["latLng"]["longitude"] == at(12)[1]


def test_transit_mode_name():
    seen = []
    asyncio.run(fetch_route(at(0), at(1), "transit", "k", transport=transport(payload=ONE_LEG, seen=seen)))
    assert json.loads(seen[0].content)["travelMode"] == "TRANSIT"


def test_fractional_seconds():
    payload = {"routes": [{"legs": [{"distanceMeters": 900, "duration": "95.5s"}]}]}
    result = asyncio.run(fetch_route(at(0), at(1), "transit", "k", transport=transport(payload=payload)))
    assert result["durationMinutes"] == 2
    assert result["distanceKm"] == 0.9


def test_non_200_is_none():
    assert asyncio.run(fetch_route(at(0), at(1), "driving", "k", transport=transport(status=403))) is None


def test_no_route_is_none():
    assert asyncio.run(fetch_route(at(0), at(1), "driving", "k", transport=transport(payload={}))) is None
    assert asyncio.run(fetch_route(at(0), at(1), "driving", "k", transport=transport(payload={"routes": [{}]}))) is None


def test_no_api_key_never_calls_out():
    seen = []
    assert asyncio.run(fetch_route(at(0), at(1), "driving", "", transport=transport(seen=seen))) is None
    assert seen == []


def test_unknown_mode_is_none():
    assert asyncio.run(fetch_route(at(0), at(1), "walking", "k", transport=transport(payload=ONE_LEG))) is None


def test_oracle_over_failing_provider_estimates():
    fetch = partial(fetch_route, api_key="k", transport=transport(status=500))
    oracle = TravelTimeOracle(fetch=fetch)
    assert asyncio.run(oracle.resolve(at(0), at(4), "transit")) == estimate_leg(at(0), at(4))


def test_oracle_over_network_error_estimates():
    def handler(request):
        raise httpx.ConnectError("no route to host", request=request)

    fetch = partial(fetch_route, api_key="k", transport=httpx.MockTransport(handler))
    oracle = TravelTimeOracle(fetch=fetch)
    assert asyncio.run(oracle.resolve(at(0), at(4), "driving")).isEstimated
