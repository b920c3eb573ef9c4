"""Check a candidate itinerary against the routing oracle."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union
import logging
import os

from trailplan.schemas import CandidateItinerary, DayPlan, TripPolicy, Waypoint, policy_for
from trailplan.tools.routing import RouteFailure, RoutingClient

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    logger.addHandler(handler)
_level = os.getenv("TRAILPLAN_LOG_LEVEL", "INFO").upper()
logger.setLevel(getattr(logging, _level, logging.INFO))
logger.propagate = False

# Degrees; about 11 m at the equator.
LOOP_TOLERANCE_DEG = 1e-4


@dataclass(frozen=True)
class SegmentMeasurement:
    distance_meters: float
    duration_seconds: float
    geometry: str = ""


@dataclass(frozen=True)
class DayMeasurement:
    day_index: int
    segments: Tuple[SegmentMeasurement, ...]

    @property
    def distance_meters(self) -> float:
        return sum(seg.distance_meters for seg in self.segments)

    @property
    def duration_seconds(self) -> float:
        return sum(seg.duration_seconds for seg in self.segments)


@dataclass(frozen=True)
class ValidationAccepted:
    days: Tuple[DayMeasurement, ...]
    accepted: bool = field(default=True, init=False)


@dataclass(frozen=True)
class ValidationRejected:
    reason: str
    day_index: Optional[int] = None
    accepted: bool = field(default=False, init=False)


ValidationOutcome = Union[ValidationAccepted, ValidationRejected]
DayOutcome = Union[DayMeasurement, ValidationRejected]


def _same_point(a: Waypoint, b: Waypoint) -> bool:
    return (
        abs(a.latitude - b.latitude) <= LOOP_TOLERANCE_DEG
        and abs(a.longitude - b.longitude) <= LOOP_TOLERANCE_DEG
    )


def structural_issues(candidate: CandidateItinerary, policy: TripPolicy) -> List[str]:
    """Problems that can be seen without asking the oracle anything."""
    issues: List[str] = []
    if len(candidate.days) != policy.days:
        issues.append(f"expected {policy.days} day(s), got {len(candidate.days)}")
    for day in candidate.days:
        if len(day.waypoints) < policy.min_waypoints:
            issues.append(
                f"day {day.day_index} has {len(day.waypoints)} waypoint(s), needs at least {policy.min_waypoints}"
            )
    for prev, nxt in zip(candidate.days, candidate.days[1:]):
        if not _same_point(prev.waypoints[-1], nxt.waypoints[0]):
            issues.append(
                f"day {nxt.day_index} starts at {nxt.waypoints[0].name}, "
                f"not where day {prev.day_index} ended ({prev.waypoints[-1].name})"
            )
    start, end = candidate.start(), candidate.end()
    if not _same_point(start, end):
        issues.append(f"route does not return to its start ({start.name} vs {end.name})")
    return issues


async def measure_day(day: DayPlan, policy: TripPolicy, client: RoutingClient) -> DayOutcome:
    """Route every consecutive waypoint pair of ``day`` and check its total.

    Stops at the first segment the oracle cannot route.
    """
    segments: List[SegmentMeasurement] = []
    for idx, (frm, to) in enumerate(zip(day.waypoints[:-1], day.waypoints[1:]), 1):
        result = await client.fetch_route(frm.coordinates, to.coordinates, policy.profile)
        if isinstance(result, RouteFailure):
            logger.info(
                "Day %d segment %d (%s -> %s) unroutable: %s",
                day.day_index,
                idx,
                frm.name,
                to.name,
                result.reason,
            )
            return ValidationRejected(
                f"day {day.day_index} segment {idx} ({frm.name} -> {to.name}): {result.reason}",
                day_index=day.day_index,
            )
        segments.append(
            SegmentMeasurement(
                distance_meters=result.distance_meters,
                duration_seconds=result.duration_seconds,
                geometry=result.geometry,
            )
        )

    measurement = DayMeasurement(day_index=day.day_index, segments=tuple(segments))
    total = measurement.distance_meters
    if not policy.within_envelope(total):
        logger.info(
            "Day %d measured %.0f m, outside [%.0f, %.0f]",
            day.day_index,
            total,
            policy.min_meters,
            policy.max_meters,
        )
        return ValidationRejected(
            f"day {day.day_index} is {total / 1000:.2f} km, allowed "
            f"{policy.min_meters / 1000:g}-{policy.max_meters / 1000:g} km",
            day_index=day.day_index,
        )
    return measurement


async def validate_itinerary(
    candidate: CandidateItinerary,
    trip_type: str,
    client: RoutingClient,
) -> ValidationOutcome:
    """Accept or reject ``candidate`` as a whole; waypoints are never edited."""
    policy = policy_for(trip_type)

    issues = structural_issues(candidate, policy)
    if issues:
        logger.info("Candidate rejected before routing: %s", "; ".join(issues))
        return ValidationRejected("; ".join(issues))

    measured: List[DayMeasurement] = []
    for day in candidate.days:
        outcome = await measure_day(day, policy, client)
        if isinstance(outcome, ValidationRejected):
            return outcome
        measured.append(outcome)

    logger.info(
        "Candidate accepted: %s",
        ", ".join(f"day {m.day_index} {m.distance_meters / 1000:.2f} km" for m in measured),
    )
    return ValidationAccepted(days=tuple(measured))
