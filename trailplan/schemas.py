from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Literal, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

TripType = Literal["bike", "trek"]
Profile = Literal["walking", "cycling"]
Coordinates = Tuple[float, float]  # (latitude, longitude)


def check_coordinates(value: Coordinates) -> Coordinates:
    lat, lon = value
    if not -90 <= lat <= 90:
        raise ValueError(f"latitude {lat} outside [-90, 90]")
    if not -180 <= lon <= 180:
        raise ValueError(f"longitude {lon} outside [-180, 180]")
    return value


# ------- Trip-type policy -------
@dataclass(frozen=True)
class TripPolicy:
    trip_type: str
    days: int
    min_meters: float
    max_meters: float
    profile: str
    min_waypoints: int = 3

    def within_envelope(self, meters: float) -> bool:
        return self.min_meters <= meters <= self.max_meters


TRIP_POLICIES: Dict[str, TripPolicy] = {
    # each bike day is checked on its own, so two days may total 120 km
    "bike": TripPolicy("bike", days=2, min_meters=10_000, max_meters=60_000, profile="cycling"),
    "trek": TripPolicy("trek", days=1, min_meters=5_000, max_meters=15_000, profile="walking"),
}


def policy_for(trip_type: str) -> TripPolicy:
    try:
        return TRIP_POLICIES[trip_type]
    except KeyError:
        raise ValueError(f"Unknown trip type {trip_type!r}; expected one of {sorted(TRIP_POLICIES)}") from None


# ------- Request models -------
class TripRequest(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    country: str
    city: str
    trip_type: TripType = Field(..., alias="tripType")
    trip_date: date = Field(..., alias="tripDate")

    @field_validator("country", "city")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class DestinationRequest(BaseModel):
    country: str
    city: str


class RouteRequest(BaseModel):
    start: Coordinates
    end: Coordinates
    profile: Profile = "walking"

    @field_validator("start", "end")
    @classmethod
    def _valid_point(cls, value: Coordinates) -> Coordinates:
        return check_coordinates(value)


# ------- Itinerary models -------
class Waypoint(BaseModel):
    name: str
    coordinates: Coordinates

    @field_validator("coordinates")
    @classmethod
    def _valid_point(cls, value: Coordinates) -> Coordinates:
        return check_coordinates(value)

    @property
    def latitude(self) -> float:
        return self.coordinates[0]

    @property
    def longitude(self) -> float:
        return self.coordinates[1]


class DayPlan(BaseModel):
    """One day of an itinerary; aliases are the names the model is asked to emit."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    day_index: int = Field(..., alias="day", ge=1)
    waypoints: List[Waypoint] = Field(..., alias="cities", min_length=2)
    per_segment_distance: List[str] = Field(default_factory=list, alias="distances")
    per_segment_duration: List[str] = Field(default_factory=list, alias="durations")
    total_distance: str = Field("", alias="totalDistance")
    estimated_time: str = Field("", alias="estimatedTime")

    @field_validator("per_segment_distance", "per_segment_duration", mode="before")
    @classmethod
    def _stringify_items(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, list):
            return [str(item) for item in value]
        return value

    @field_validator("total_distance", "estimated_time", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> Any:
        if value is None:
            return ""
        if isinstance(value, (int, float)):
            return str(value)
        return value


class CandidateItinerary(BaseModel):
    model_config = ConfigDict(extra="ignore")

    days: List[DayPlan] = Field(..., min_length=1)

    def start(self) -> Waypoint:
        return self.days[0].waypoints[0]

    def end(self) -> Waypoint:
        return self.days[-1].waypoints[-1]

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
