# planner/__init__.py
# itinerary distribution engine: cluster -> assign -> sequence -> overflow -> annotate

from planner.oracle import TravelTimeOracle, estimate_leg
from planner.schedule import Itinerary, build_schedule, schedule_warnings

__all__ = [
    "Itinerary",
    "TravelTimeOracle",
    "build_schedule",
    "estimate_leg",
    "schedule_warnings",
]
