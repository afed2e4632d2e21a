# planner/overflow.py
# second chance for places that did not fit their first day

import logging
from typing import List, Optional

from models import Place
from planner.geo import Coords, haversine_km

log = logging.getLogger(__name__)

DISTANCE_PENALTY = 10
FAR_DISTANCE_KM = 20.0
FAR_PENALTY = 500


def reassign_overflow(
    overflow: List[Place],
    finalized: List[List[Place]],
    budgets: List[int],
    locations: List[Optional[Coords]],
) -> List[Place]:
    """
    Append each overflow place to the day with the best

        free(i) - distance(lodging_i, place) * 10 - (500 if distance > 20km)

    when that score is positive and the day still has room for the stay.
    `finalized` is extended in place; the places that fit nowhere are returned.
    No food adjacency check here, an overflow meal may land next to another.
    """
    unplaceable: List[Place] = []
    for place in overflow:
        best_day, best_score, best_free = None, None, 0
        for day, location in enumerate(locations):
            if location is None:
                continue
            free = budgets[day] - sum(p.stayDuration for p in finalized[day])
            dist = haversine_km(location, place.coords)
            score = free - dist * DISTANCE_PENALTY - (FAR_PENALTY if dist > FAR_DISTANCE_KM else 0)
            if best_score is None or score > best_score:
                best_day, best_score, best_free = day, score, free
        if best_day is not None and best_score > 0 and best_free >= place.stayDuration:
            finalized[best_day].append(place)
            log.debug("overflow %s -> day %d (score %.1f)", place.id, best_day, best_score)
        else:
            unplaceable.append(place)
    return unplaceable
