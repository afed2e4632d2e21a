# planner/schedule.py
# schedule assembly (cluster -> assign -> sequence -> overflow) and the editable Itinerary

import asyncio
import logging
from typing import Dict, List, Mapping, Optional, Tuple

from models import (
    DaySchedule,
    DayWindow,
    LegAnnotation,
    Lodging,
    Place,
    PlanResponse,
    TravelLeg,
    VisitLeg,
)
from planner.assign import assign_clusters, resolve_day_lodgings
from planner.cluster import cluster_places
from planner.geo import Coords
from planner.overflow import reassign_overflow
from planner.sequence import is_food, sequence_day
from utils import available_minutes, dedupe

log = logging.getLogger(__name__)

# node id used for the lodging end of a leg
LODGING_NODE = "@lodging"
# manual stay edits never go below this
MIN_STAY_MINUTES = 15

# (dayIndex, fromId, toId)
LegKey = Tuple[int, str, str]
# what a leg is computed for: (origin, destination, mode)
Route = Tuple[Optional[Coords], Optional[Coords], str]


def build_schedule(
    places: List[Place],
    lodgings: List[Lodging],
    windows: List[DayWindow],
    mode: str = "transit",
    coordinate_lookup: Optional[Mapping[str, Coords]] = None,
) -> "Itinerary":
    """
    Distribute places over the days described by `windows`.

    Pure and synchronous: no I/O, same input -> same Itinerary. Travel legs
    are only annotated once Itinerary.annotate() is called.
    """
    windows = sorted(windows, key=lambda w: w.dayIndex)
    if [w.dayIndex for w in windows] != list(range(len(windows))):
        raise ValueError("day windows must cover day indices 0..n-1 once each")

    candidates = dedupe([p for p in places if p.category != "lodging-excluded"])
    day_lodgings = resolve_day_lodgings(lodgings, len(windows), coordinate_lookup)
    locations = [l.coords if l is not None else None for l in day_lodgings]
    budgets = [available_minutes(w) for w in windows]

    clusters = cluster_places(candidates)
    per_day, orphans = assign_clusters(clusters, locations)

    finalized: List[List[Place]] = []
    overflow: List[Place] = []
    for window, day_places, start, budget in zip(windows, per_day, locations, budgets):
        accepted, rest = sequence_day(day_places, window, start, budget)
        finalized.append(accepted)
        overflow.extend(rest)
    overflow.extend(orphans)

    unplaceable = reassign_overflow(overflow, finalized, budgets, locations)

    days = [
        DaySchedule(
            dayIndex=w.dayIndex,
            date=w.date,
            availableMinutes=budgets[i],
            lodging=day_lodgings[i],
            visits=[VisitLeg(place=p, arrivalOrderIndex=k) for k, p in enumerate(finalized[i])],
        )
        for i, w in enumerate(windows)
    ]
    log.info(
        "distributed %d places over %d days in %d clusters (%d overflow, %d unplaceable)",
        len(candidates), len(days), len(clusters), len(overflow), len(unplaceable),
    )
    return Itinerary(days, [p.id for p in unplaceable], mode)


def schedule_warnings(days: List[DaySchedule]) -> List[str]:
    """Things worth a dismissible notice: back-to-back food stops, days over budget."""
    out: List[str] = []
    for day in days:
        prev: Optional[Place] = None
        for visit in day.visits:
            if prev is not None and is_food(prev) and is_food(visit.place):
                out.append(f"Day {day.dayIndex + 1}: consecutive food stops ({prev.name} -> {visit.place.name})")
            prev = visit.place
        total = sum(v.place.stayDuration for v in day.visits)
        if total > day.availableMinutes:
            out.append(f"Day {day.dayIndex + 1}: {total} min of stays exceeds the {day.availableMinutes} min available")
    return out


class Itinerary:
    """
    Owned, mutable schedule.

    Travel legs are annotated by fire-and-forget tasks, one per leg key,
    which write their result back into `legs` when they land. A leg is kept
    only while its key and its route (endpoint coordinates and mode) both
    still match the stop order; edits cancel the tasks of legs that no longer
    match and start tasks only for new ones. After discard() nothing is
    written back.
    """

    def __init__(self, days: List[DaySchedule], unplaceable: List[str], mode: str = "transit",
                 legs: Optional[Dict[LegKey, Tuple[TravelLeg, Route]]] = None):
        self.days = days
        self.unplaceable = list(unplaceable)
        self.mode = mode
        self.legs: Dict[LegKey, TravelLeg] = {k: leg for k, (leg, _) in (legs or {}).items()}
        # route of every resolved leg and in-flight task
        self._routes: Dict[LegKey, Route] = {k: route for k, (_, route) in (legs or {}).items()}
        self._tasks: Dict[LegKey, asyncio.Task] = {}
        self._oracle = None
        self._discarded = False

    @classmethod
    def from_response(cls, plan: PlanResponse) -> "Itinerary":
        """Rebuild from an exported plan, keeping the legs it already resolved."""
        if [d.dayIndex for d in plan.days] != list(range(len(plan.days))):
            raise ValueError("plan days must be indexed 0..n-1 in order")
        days = [d.model_copy(deep=True, update={"legs": []}) for d in plan.days]
        legs: Dict[LegKey, Tuple[TravelLeg, Route]] = {}
        for day in plan.days:
            for a in day.legs:
                if a.status == "resolved" and a.durationMinutes is not None and a.distanceKm is not None:
                    leg = TravelLeg(
                        durationMinutes=a.durationMinutes,
                        distanceKm=a.distanceKm,
                        isEstimated=bool(a.isEstimated),
                    )
                    legs[(day.dayIndex, a.fromId, a.toId)] = (leg, (a.fromCoords, a.toCoords, a.mode))
        it = cls(days, plan.unplaceable, plan.mode, legs)
        # drop anything that does not match the current stops, coordinates or mode
        for day in it.days:
            it._refresh_legs(day)
        return it

    # ---- lookups ----

    def day(self, day_index: int) -> DaySchedule:
        if not 0 <= day_index < len(self.days):
            raise IndexError(f"day index {day_index} outside [0, {len(self.days)})")
        return self.days[day_index]

    def scheduled_ids(self) -> List[str]:
        return [v.place.id for d in self.days for v in d.visits]

    @staticmethod
    def _check_position(day: DaySchedule, position: int) -> None:
        if not 0 <= position < len(day.visits):
            raise IndexError(f"day {day.dayIndex}: position {position} outside [0, {len(day.visits)})")

    def leg_endpoints(self, day: DaySchedule) -> List[Tuple[LegKey, Optional[Coords], Optional[Coords]]]:
        """Legs of a day in route order: lodging -> first, stop -> stop, last -> lodging."""
        if not day.visits:
            return []
        stops = [(v.place.id, v.place.coords) for v in day.visits]
        if day.lodging is not None:
            home = (LODGING_NODE, day.lodging.coords)
            stops = [home] + stops + [home]
        return [
            ((day.dayIndex, a_id, b_id), a_coords, b_coords)
            for (a_id, a_coords), (b_id, b_coords) in zip(stops, stops[1:])
        ]

    # ---- async leg annotation ----

    def annotate(self, oracle) -> None:
        """Start resolving every leg with `oracle`. Needs a running event loop."""
        if self._discarded:
            raise RuntimeError("itinerary was discarded")
        self._oracle = oracle
        for day in self.days:
            self._refresh_legs(day)

    def _refresh_legs(self, day: DaySchedule) -> None:
        wanted = {key: (origin, destination, self.mode) for key, origin, destination in self.leg_endpoints(day)}
        stale = [k for k in self._routes if k[0] == day.dayIndex and self._routes[k] != wanted.get(k)]
        for key in stale:
            del self._routes[key]
            self.legs.pop(key, None)
            task = self._tasks.pop(key, None)
            if task is not None:
                task.cancel()

        if self._oracle is None or self._discarded:
            return
        loop = asyncio.get_running_loop()
        for key, route in wanted.items():
            if key in self._routes:
                continue
            self._routes[key] = route
            self._tasks[key] = loop.create_task(self._resolve_leg(key, route[0], route[1]))

    async def _resolve_leg(self, key: LegKey, origin, destination) -> None:
        leg = await self._oracle.resolve(origin, destination, self.mode)
        if self._discarded or self._tasks.get(key) is not asyncio.current_task():
            return
        self.legs[key] = leg
        del self._tasks[key]

    @property
    def pending(self) -> int:
        return sum(1 for t in self._tasks.values() if not t.done())

    async def wait_for_legs(self) -> None:
        # edits made while waiting may add tasks, so loop until none are left
        while True:
            pending = [t for t in self._tasks.values() if not t.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    def discard(self) -> None:
        """Abandon in-flight annotation; results still landing are dropped."""
        self._discarded = True
        for key, task in self._tasks.items():
            task.cancel()
            del self._routes[key]
        self._tasks.clear()

    # ---- user edits ----

    def _reindex(self, day: DaySchedule) -> None:
        for k, visit in enumerate(day.visits):
            visit.arrivalOrderIndex = k

    def delete_visit(self, day_index: int, position: int) -> Place:
        day = self.day(day_index)
        self._check_position(day, position)
        visit = day.visits.pop(position)
        self._reindex(day)
        self._refresh_legs(day)
        return visit.place

    def swap_visits(self, day_index: int, first: int, second: int) -> None:
        day = self.day(day_index)
        self._check_position(day, first)
        self._check_position(day, second)
        day.visits[first], day.visits[second] = day.visits[second], day.visits[first]
        self._reindex(day)
        self._refresh_legs(day)

    def move_visit(self, day_index: int, position: int, direction: int) -> bool:
        """Swap with the neighbour one step up (-1) or down (+1). No-op past either end."""
        day = self.day(day_index)
        self._check_position(day, position)
        target = position + direction
        if target < 0 or target >= len(day.visits):
            return False
        self.swap_visits(day_index, position, target)
        return True

    def update_stay(self, day_index: int, position: int, minutes: int) -> Place:
        # endpoints are unchanged, so no leg needs re-resolving
        day = self.day(day_index)
        self._check_position(day, position)
        visit = day.visits[position]
        visit.place = visit.place.model_copy(update={"stayDuration": max(MIN_STAY_MINUTES, int(minutes))})
        return visit.place

    def add_visit(self, day_index: int, place: Place) -> None:
        day = self.day(day_index)
        if place.id in self.scheduled_ids():
            raise ValueError(f"place {place.id!r} is already scheduled")
        day.visits.append(VisitLeg(place=place, arrivalOrderIndex=len(day.visits)))
        if place.id in self.unplaceable:
            self.unplaceable.remove(place.id)
        self._refresh_legs(day)

    # ---- export ----

    def leg_annotations(self, day: DaySchedule) -> List[LegAnnotation]:
        out: List[LegAnnotation] = []
        for key, _, _ in self.leg_endpoints(day):
            leg = self.legs.get(key)
            if leg is None:
                out.append(LegAnnotation(fromId=key[1], toId=key[2]))
                continue
            origin, destination, mode = self._routes[key]
            out.append(LegAnnotation(
                fromId=key[1],
                toId=key[2],
                status="resolved",
                durationMinutes=leg.durationMinutes,
                distanceKm=leg.distanceKm,
                isEstimated=leg.isEstimated,
                mode=mode,
                fromCoords=origin,
                toCoords=destination,
            ))
        return out

    def snapshot(self) -> PlanResponse:
        days = [d.model_copy(deep=True, update={"legs": self.leg_annotations(d)}) for d in self.days]
        return PlanResponse(
            mode=self.mode,
            days=days,
            unplaceable=list(self.unplaceable),
            warnings=schedule_warnings(self.days),
        )
