# planner/geo.py
# great-circle distance + centroid helpers (no I/O)

import math
from typing import Iterable, Optional, Tuple

Coords = Tuple[float, float]

EARTH_RADIUS_KM = 6371.0
# missing coordinates sort to the back of any distance ranking instead of raising
MISSING_DISTANCE_KM = 99999.0


def haversine_km(a: Optional[Coords], b: Optional[Coords]) -> float:
    """Great-circle distance in km, or MISSING_DISTANCE_KM if either side has no coordinates."""
    if a is None or b is None:
        return MISSING_DISTANCE_KM
    lat1, lng1 = a
    lat2, lng2 = b
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lam = math.radians(lng2 - lng1)
    h = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lam / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(min(1.0, h)))


def centroid(points: Iterable[Optional[Coords]]) -> Optional[Coords]:
    """Arithmetic mean of the known points; None when there are none."""
    known = [p for p in points if p is not None]
    if not known:
        return None
    return (
        sum(p[0] for p in known) / len(known),
        sum(p[1] for p in known) / len(known),
    )
