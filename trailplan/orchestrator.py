# trailplan/orchestrator.py
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union
import logging

from pydantic import ValidationError

from trailplan.agents.itinerary_validator import (
    ValidationAccepted,
    ValidationRejected,
    validate_itinerary,
)
from trailplan.config import get_max_retries
from trailplan.llm import GenerationFailure, request_itinerary  # module level so tests can patch
from trailplan.schemas import CandidateItinerary, TripRequest
from trailplan.tools.json_extract import ParseFailure, extract_json_payload
from trailplan.tools.routing import RoutingClient

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    logger.addHandler(handler)
_level = os.getenv("TRAILPLAN_LOG_LEVEL", "INFO").upper()
logger.setLevel(getattr(logging, _level, logging.INFO))
logger.propagate = False


@dataclass(frozen=True)
class PlanSuccess:
    itinerary: CandidateItinerary
    attempts: int
    success: bool = field(default=True, init=False)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "success": True,
            "tripData": self.itinerary.to_wire(),
            "attempts": self.attempts,
        }


@dataclass(frozen=True)
class PlanFailure:
    reason: str
    attempts: int
    last_raw_model_response: Optional[str] = None
    success: bool = field(default=False, init=False)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "success": False,
            "reason": self.reason,
            "attempts": self.attempts,
            "lastRawModelResponse": self.last_raw_model_response,
        }


PlanResult = Union[PlanSuccess, PlanFailure]


@dataclass(frozen=True)
class _AttemptOutcome:
    raw: Optional[str]
    itinerary: Optional[CandidateItinerary] = None
    failure: Optional[str] = None


def format_distance(meters: float) -> str:
    return f"{meters / 1000:.2f} km"


def format_duration(seconds: float) -> str:
    minutes = int(round(seconds / 60))
    hours, minutes = divmod(minutes, 60)
    if not hours:
        return f"{minutes} min"
    return f"{hours} h {minutes} min"


def parse_candidate(raw: str) -> Union[CandidateItinerary, ParseFailure]:
    """Turn model text into a CandidateItinerary without raising."""
    payload = extract_json_payload(raw)
    if isinstance(payload, ParseFailure):
        return payload
    try:
        return CandidateItinerary.model_validate(payload)
    except ValidationError as exc:
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first.get("loc", ()))
        return ParseFailure(
            f"itinerary does not match the expected shape ({exc.error_count()} error(s); "
            f"first at {location or '<root>'}: {first.get('msg')})"
        )


def finalize_itinerary(candidate: CandidateItinerary, measured: ValidationAccepted) -> CandidateItinerary:
    """Replace the model's own distance/time estimates with oracle values."""
    days = []
    for day, measurement in zip(candidate.days, measured.days):
        days.append(
            day.model_copy(
                update={
                    "per_segment_distance": [format_distance(s.distance_meters) for s in measurement.segments],
                    "per_segment_duration": [format_duration(s.duration_seconds) for s in measurement.segments],
                    "total_distance": format_distance(measurement.distance_meters),
                    "estimated_time": format_duration(measurement.duration_seconds),
                }
            )
        )
    return candidate.model_copy(update={"days": days})


async def _attempt_once(request: TripRequest, client: RoutingClient) -> _AttemptOutcome:
    # Requesting
    raw = await request_itinerary(request)
    if isinstance(raw, GenerationFailure):
        return _AttemptOutcome(raw=None, failure=raw.reason)

    # Parsing
    candidate = parse_candidate(raw)
    if isinstance(candidate, ParseFailure):
        return _AttemptOutcome(raw=raw, failure=f"unparsable model reply: {candidate.reason}")

    # Validating
    verdict = await validate_itinerary(candidate, request.trip_type, client)
    if isinstance(verdict, ValidationRejected):
        return _AttemptOutcome(raw=raw, failure=f"rejected: {verdict.reason}")

    return _AttemptOutcome(raw=raw, itinerary=finalize_itinerary(candidate, verdict))


async def plan_trip(
    request: TripRequest,
    *,
    routing_client: RoutingClient | None = None,
    max_retries: int | None = None,
) -> PlanResult:
    """Generate candidates until one passes validation or the retry bound is hit."""
    max_retries = max_retries if max_retries is not None else get_max_retries()
    if max_retries < 1:
        raise ValueError("max_retries must be at least 1")
    client = routing_client or RoutingClient()

    logger.info(
        "Planning %s trip in %s, %s on %s (up to %d attempts)",
        request.trip_type,
        request.city,
        request.country,
        request.trip_date.isoformat(),
        max_retries,
    )

    last_raw: Optional[str] = None
    last_failure = "no attempt was made"
    for attempt in range(1, max_retries + 1):
        outcome = await _attempt_once(request, client)
        if outcome.raw is not None:
            last_raw = outcome.raw
        if outcome.itinerary is not None:
            logger.info("Attempt %d/%d accepted", attempt, max_retries)
            return PlanSuccess(itinerary=outcome.itinerary, attempts=attempt)
        last_failure = outcome.failure or "unknown failure"
        logger.warning("Attempt %d/%d failed: %s", attempt, max_retries, last_failure)

    logger.error("Giving up after %d attempts; last failure: %s", max_retries, last_failure)
    return PlanFailure(
        reason=f"No valid itinerary after {max_retries} attempts (last failure: {last_failure})",
        attempts=max_retries,
        last_raw_model_response=last_raw,
    )
