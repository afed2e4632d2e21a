# models.py
# typed request/response models and the trip domain shared by planner + providers

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import List, Literal, Optional, Tuple

# keep in sync with the frontend category chips
CATEGORIES = ("sightseeing", "cafe", "dining", "lodging-excluded", "other")
Category = Literal["sightseeing", "cafe", "dining", "lodging-excluded", "other"]
TravelMode = Literal["driving", "transit"]

# selections without an explicit stay default to 2h
DEFAULT_STAY_MINUTES = 120


class Place(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    category: Category = "other"
    lat: Optional[float] = None
    lng: Optional[float] = None
    stayDuration: int = Field(0, ge=0, description="minutes")

    @property
    def coords(self) -> tuple[float, float] | None:
        if self.lat is None or self.lng is None:
            return None
        return (self.lat, self.lng)


class PlaceSelection(BaseModel):
    """Place as the selection UI sends it (stay split into hours + minutes)."""
    id: str
    name: str
    category: str = "other"
    lat: Optional[float] = None
    lng: Optional[float] = None
    stayHours: Optional[int] = Field(None, ge=0)
    stayMinutes: Optional[int] = Field(None, ge=0)

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, v):
        return str(v) if isinstance(v, int) else v

    @field_validator("category", mode="before")
    @classmethod
    def _known_category(cls, v):
        v = str(v or "").strip().lower()
        return v if v in CATEGORIES else "other"

    def to_place(self) -> Place:
        if self.stayHours is None and self.stayMinutes is None:
            stay = DEFAULT_STAY_MINUTES
        else:
            stay = (self.stayHours or 0) * 60 + (self.stayMinutes or 0)
        return Place(
            id=self.id,
            name=self.name,
            category=self.category,
            lat=self.lat,
            lng=self.lng,
            stayDuration=stay,
        )


class Lodging(BaseModel):
    model_config = ConfigDict(frozen=True)

    dayIndex: int = Field(..., ge=0)
    name: str
    lat: Optional[float] = None
    lng: Optional[float] = None

    @property
    def coords(self) -> tuple[float, float] | None:
        if self.lat is None or self.lng is None:
            return None
        return (self.lat, self.lng)


class DayWindowIn(BaseModel):
    dayIndex: int = Field(..., ge=0)
    date: str
    startTime: str = "10:00"
    endTime: str = "22:00"


class DayWindow(BaseModel):
    model_config = ConfigDict(frozen=True)

    dayIndex: int = Field(..., ge=0)
    date: str
    startMinutesOfDay: int = Field(..., ge=0, le=24 * 60)
    endMinutesOfDay: int = Field(..., ge=0, le=24 * 60)

    @model_validator(mode="after")
    def _end_after_start(self):
        if self.endMinutesOfDay <= self.startMinutesOfDay:
            raise ValueError(
                f"day {self.dayIndex}: window must end after it starts "
                f"({self.startMinutesOfDay} >= {self.endMinutesOfDay})"
            )
        return self


class TravelLeg(BaseModel):
    model_config = ConfigDict(frozen=True)

    durationMinutes: int
    distanceKm: float
    isEstimated: bool
    trafficAware: bool = False


class LegAnnotation(BaseModel):
    fromId: str
    toId: str
    # "computing" until the routing lookup for this leg lands
    status: Literal["computing", "resolved"] = "computing"
    durationMinutes: Optional[int] = None
    distanceKm: Optional[float] = None
    isEstimated: Optional[bool] = None
    # route the resolved values belong to; a plan sent back with a different
    # mode or moved endpoints gets the leg recomputed
    mode: Optional[TravelMode] = None
    fromCoords: Optional[Tuple[float, float]] = None
    toCoords: Optional[Tuple[float, float]] = None


class VisitLeg(BaseModel):
    place: Place
    arrivalOrderIndex: int


class DaySchedule(BaseModel):
    dayIndex: int
    date: str
    availableMinutes: int
    lodging: Optional[Lodging] = None
    visits: List[VisitLeg] = []
    legs: List[LegAnnotation] = []


class PlanRequest(BaseModel):
    places: List[PlaceSelection] = []
    lodgings: List[Lodging] = []
    windows: List[DayWindowIn] = []
    mode: TravelMode = "transit"


class PlanResponse(BaseModel):
    mode: TravelMode = "transit"
    days: List[DaySchedule]
    unplaceable: List[str] = Field(default_factory=list, description="place ids that fit no day")
    warnings: List[str] = []


class EditRequest(BaseModel):
    plan: PlanResponse
    action: Literal["delete", "swap", "move", "stay", "add"]
    dayIndex: int
    position: Optional[int] = None
    otherPosition: Optional[int] = None
    direction: Optional[Literal[-1, 1]] = None
    minutes: Optional[int] = None
    place: Optional[PlaceSelection] = None
