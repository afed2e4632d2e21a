# planner/sequence.py
# intra-day ordering: meal pins + greedy nearest neighbour, cut off at the day's budget

from typing import List, Optional, Tuple

from models import DayWindow, Place
from planner.geo import Coords, haversine_km
from utils import available_minutes

LUNCH_TARGET_MIN = 12 * 60
DINNER_TARGET_MIN = 18 * 60
FOOD_CATEGORIES = frozenset({"dining", "cafe"})


def is_food(place: Place) -> bool:
    return place.category in FOOD_CATEGORIES


def nearest(candidates: List[Place], origin: Optional[Coords]) -> Place:
    # min() keeps the first of equals, so ties fall back to input order
    return min(candidates, key=lambda p: haversine_km(origin, p.coords))


def _spans(window: DayWindow, target: int) -> bool:
    return window.startMinutesOfDay <= target < window.endMinutesOfDay


def pin_meals(places: List[Place], window: DayWindow, origin: Optional[Coords]) -> List[Tuple[int, Place]]:
    """Pick the dining stops held for lunch (12:00) and dinner (18:00), as (target, place)."""
    pool = [p for p in places if p.category == "dining"]
    pins: List[Tuple[int, Place]] = []
    for target in (LUNCH_TARGET_MIN, DINNER_TARGET_MIN):
        if pool and _spans(window, target):
            meal = nearest(pool, origin)
            pool.remove(meal)
            pins.append((target, meal))
    return pins


def sequence_day(
    places: List[Place],
    window: DayWindow,
    start: Optional[Coords],
    budget: Optional[int] = None,
) -> Tuple[List[Place], List[Place]]:
    """
    Order one day's places into a route, returns (accepted, overflow).

    Greedy nearest neighbour from `start` (the day's lodging), not a minimal
    tour. A pinned meal jumps the queue once the running clock (window start
    plus accepted stay time) reaches its target. The walk stops at the first
    place that would blow the budget and everything left over becomes
    overflow. A food stop straight after another food stop is sent to
    overflow and the walk carries on.
    """
    if budget is None:
        budget = available_minutes(window)
    pins = pin_meals(places, window, start)
    pinned = {p.id for _, p in pins}
    pool = [p for p in places if p.id not in pinned]

    accepted: List[Place] = []
    overflow: List[Place] = []
    used = 0
    here = start
    while pool or pins:
        clock = window.startMinutesOfDay + used
        if pins and (clock >= pins[0][0] or not pool):
            _, candidate = pins.pop(0)
        else:
            candidate = nearest(pool, here)
            pool.remove(candidate)

        if used + candidate.stayDuration > budget:
            overflow.append(candidate)
            overflow.extend(p for _, p in pins)
            overflow.extend(pool)
            break
        if accepted and is_food(candidate) and is_food(accepted[-1]):
            overflow.append(candidate)
            continue

        accepted.append(candidate)
        used += candidate.stayDuration
        if candidate.coords is not None:
            here = candidate.coords
    return accepted, overflow
