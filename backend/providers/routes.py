# providers/routes.py
# Google Routes API (computeRoutes) single-leg lookup. None on any non-200 or empty route

import httpx
from typing import Optional

ROUTES_URL = "https://routes.googleapis.com/directions/v2:computeRoutes"

HEADERS = {
    "User-Agent": "TripPlanner/0.1",
    "Accept": "application/json",
    "Content-Type": "application/json",
}
# only the fields we read; "*" is fine for poking at it by hand but bills more
FIELD_MASK = "routes.legs.duration,routes.legs.distanceMeters"

TRAVEL_MODES = {
    "driving": "DRIVE",
    "transit": "TRANSIT",
}


def _parse_duration_s(value: str) -> float:
    """Routes API durations look like "123s" or "123.5s"."""
    return float(str(value).strip().rstrip("s"))


def _waypoint(lat: float, lng: float) -> dict:
    return {"location": {"latLng": {"latitude": lat, "longitude": lng}}}


async def fetch_route(
    origin: tuple[float, float],
    destination: tuple[float, float],
    mode: str,
    api_key: str,
    timeout: float = 20.0,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> dict | None:
    if not api_key:
        return None
    travel_mode = TRAVEL_MODES.get(mode)
    if not travel_mode:
        return None

    body = {
        "origin": _waypoint(*origin),
        "destination": _waypoint(*destination),
        "travelMode": travel_mode,
        # no routingPreference: TRANSIT rejects it
        "computeAlternativeRoutes": False,
        "units": "METRIC",
    }
    headers = {**HEADERS, "X-Goog-Api-Key": api_key, "X-Goog-FieldMask": FIELD_MASK}

    async with httpx.AsyncClient(timeout=timeout, headers=headers, transport=transport) as client:
        r = await client.post(ROUTES_URL, json=body)
        if r.status_code != 200:
            return None
        js = r.json() or {}

    routes = js.get("routes") or []
    legs = (routes[0] or {}).get("legs") or [] if routes else []
    if not legs:
        return None
    leg = legs[0]
    meters = float(leg.get("distanceMeters") or 0)
    seconds = _parse_duration_s(leg.get("duration") or "0s")
    return {
        "distanceKm": round(meters / 1000.0, 1),
        "durationMinutes": round(seconds / 60.0),
        "trafficAware": False,
        "fallback": False,
    }
