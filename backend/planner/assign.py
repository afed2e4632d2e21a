# planner/assign.py
# lodging resolution per day + whole-cluster day assignment (largest cluster first)

import logging
from typing import List, Mapping, Optional, Tuple

from models import Lodging, Place
from planner.cluster import Cluster
from planner.geo import Coords, haversine_km

log = logging.getLogger(__name__)

DISTANCE_WEIGHT = 30
LOAD_WEIGHT = 20


def resolve_day_lodgings(
    lodgings: List[Lodging],
    total_days: int,
    lookup: Optional[Mapping[str, Coords]] = None,
) -> List[Optional[Lodging]]:
    """
    One lodging (or None) per day index.

    A day with no lodging of its own carries the previous day's forward.
    Lodgings that arrive without coordinates are looked up by name in the
    optional read-only `lookup`.
    """
    by_day: dict[int, Lodging] = {}
    for lodging in lodgings:
        if not 0 <= lodging.dayIndex < total_days:
            raise ValueError(f"lodging {lodging.name!r} has day index {lodging.dayIndex} outside [0, {total_days})")
        if lodging.dayIndex in by_day:
            raise ValueError(f"more than one lodging for day {lodging.dayIndex}")
        if lodging.coords is None and lookup:
            hit = lookup.get(lodging.name)
            if hit is not None:
                lodging = lodging.model_copy(update={"lat": hit[0], "lng": hit[1]})
        by_day[lodging.dayIndex] = lodging

    resolved: List[Optional[Lodging]] = []
    carried: Optional[Lodging] = None
    for day in range(total_days):
        carried = by_day.get(day, carried)
        resolved.append(carried)
    return resolved


def assign_clusters(
    clusters: List[Cluster],
    locations: List[Optional[Coords]],
) -> Tuple[List[List[Place]], List[Place]]:
    """
    Give each cluster, biggest first, to the best scoring day:

        score(i) = -(distance(lodging_i, centroid) * 30) - (assigned_i * 20)

    Days without a location are not candidates. Returns (places per day,
    places that found no candidate day at all).
    """
    per_day: List[List[Place]] = [[] for _ in locations]
    counts = [0] * len(locations)
    orphans: List[Place] = []

    # sorted() is stable, equal sized clusters keep selection order
    for cluster in sorted(clusters, key=lambda c: -c.size):
        best_day, best_score = None, None
        for day, location in enumerate(locations):
            if location is None:
                continue
            score = -(haversine_km(location, cluster.centroid) * DISTANCE_WEIGHT) - counts[day] * LOAD_WEIGHT
            if best_score is None or score > best_score:
                best_day, best_score = day, score
        if best_day is None:
            orphans.extend(cluster.places)
            continue
        per_day[best_day].extend(cluster.places)
        counts[best_day] += cluster.size
        log.debug("cluster of %d -> day %d (score %.1f)", cluster.size, best_day, best_score)
    return per_day, orphans
