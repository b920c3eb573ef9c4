import json
from typing import Dict, List, Optional, Sequence, Tuple

import pytest

from trailplan.schemas import TripRequest
from trailplan.tools.routing import RouteFailure, RouteResult

# Google's reference polyline: (38.5, -120.2), (40.7, -120.95), (43.252, -126.453)
SAMPLE_GEOMETRY = "_p~iF~ps|U_ulLnnqC_mqNvxq`@"

Point = Tuple[str, Tuple[float, float]]

# Closed loop through four land points in central Paris.
PARIS_LOOP: List[Point] = [
    ("Notre-Dame", (48.8530, 2.3499)),
    ("Jardin du Luxembourg", (48.8462, 2.3372)),
    ("Tour Eiffel", (48.8584, 2.2945)),
    ("Musée du Louvre", (48.8606, 2.3376)),
    ("Notre-Dame", (48.8530, 2.3499)),
]

# A second, wider loop so tests can tell two candidates apart by coordinates.
EAST_PARIS_LOOP: List[Point] = [
    ("Place de la Bastille", (48.8532, 2.3692)),
    ("Parc des Buttes-Chaumont", (48.8809, 2.3828)),
    ("Père Lachaise", (48.8614, 2.3933)),
    ("Bois de Vincennes", (48.8283, 2.4330)),
    ("Place de la Bastille", (48.8532, 2.3692)),
]

BIKE_DAY_ONE: List[Point] = [
    ("Paris", (48.8566, 2.3522)),
    ("Saint-Denis", (48.9362, 2.3574)),
    ("Chantilly", (49.1940, 2.4710)),
    ("Senlis", (49.2069, 2.5865)),
]

BIKE_DAY_TWO: List[Point] = [
    ("Senlis", (49.2069, 2.5865)),
    ("Ermenonville", (49.1261, 2.6949)),
    ("Roissy-en-France", (49.0036, 2.5164)),
    ("Paris", (48.8566, 2.3522)),
]


def day_payload(day: int, points: Sequence[Point], total: str = "7 km") -> Dict:
    return {
        "day": day,
        "cities": [{"name": name, "coordinates": [lat, lon]} for name, (lat, lon) in points],
        "distances": ["0 km"] + ["2 km"] * (len(points) - 1),
        "totalDistance": total,
        "estimatedTime": "2 hours",
    }


def itinerary_text(*days: Sequence[Point], prose: bool = False) -> str:
    body = json.dumps({"days": [day_payload(idx, pts) for idx, pts in enumerate(days, 1)]})
    if prose:
        return f"Sure! Here is your trip:\n```json\n{body}\n```\nEnjoy the ride."
    return body


class FakeRoutingClient:
    """Stands in for RoutingClient; distances are looked up by segment start."""

    def __init__(
        self,
        meters: float = 2000.0,
        seconds: float = 1500.0,
        per_start: Optional[Dict[Tuple[float, float], float]] = None,
        fail_on_call: Optional[int] = None,
    ):
        self.meters = meters
        self.seconds = seconds
        self.per_start = per_start or {}
        self.fail_on_call = fail_on_call
        self.calls: List[tuple] = []

    async def fetch_route(self, start, end, profile):
        self.calls.append((tuple(start), tuple(end), profile))
        if self.fail_on_call is not None and len(self.calls) == self.fail_on_call:
            return RouteFailure("no route found")
        meters = self.per_start.get(tuple(start), self.meters)
        return RouteResult(geometry=SAMPLE_GEOMETRY, distance_meters=meters, duration_seconds=self.seconds)


def starts_of(points: Sequence[Point], meters: float) -> Dict[Tuple[float, float], float]:
    return {coords: meters for _, coords in points[:-1]}


@pytest.fixture
def trek_request():
    return TripRequest(country="France", city="Paris", trip_type="trek", trip_date="2025-06-01")


@pytest.fixture
def bike_request():
    return TripRequest(country="France", city="Paris", trip_type="bike", trip_date="2025-06-01")
