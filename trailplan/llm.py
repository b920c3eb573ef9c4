# trailplan/llm.py
import os
import logging
from dataclasses import dataclass
from typing import Optional, Union

from openai import AsyncOpenAI, OpenAIError

from trailplan.config import get_llm_config
from trailplan.schemas import TripPolicy, TripRequest, policy_for

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    logger.addHandler(handler)
_level = os.getenv("TRAILPLAN_LOG_LEVEL", "INFO").upper()
logger.setLevel(getattr(logging, _level, logging.INFO))
logger.propagate = False

SYSTEM_PROMPT = """You are a route-planning assistant for cyclists and hikers.
You only propose points that exist and lie on land.
Return ONLY valid JSON, with no commentary before or after it.
"""

TRIP_TEMPLATE = """Plan a {day_label} {activity} trip starting and ending in {city}, {country}, on {trip_date}.
Requirements:
{day_rules}
- Every day must pass through at least {min_waypoints} different points (towns, streets, parks, viewpoints, landmarks or trails).
- {envelope_rule}
- No point may be in water: never place a waypoint in a sea, lake, river or reservoir. Every point must be reachable {mode_phrase}.
- The route is a closed loop: the very first point of day 1 and the very last point of day {last_day} must have exactly the same name and coordinates, in {city}.
{continuity_rule}- Give the distance from each point to the next one, the total distance of each day and the estimated time of each day.

Return a JSON object with exactly this structure:
{{
  "days": [
{day_examples}
  ]
}}
Coordinates are [latitude, longitude] in decimal degrees.
"""

DAY_EXAMPLE = """    {{
      "day": {day},
      "cities": [
        {{"name": "Point name", "coordinates": [lat, lng]}},
        {{"name": "Point name", "coordinates": [lat, lng]}},
        {{"name": "Point name", "coordinates": [lat, lng]}},
        {{"name": "Point name", "coordinates": [lat, lng]}}
      ],
      "distances": ["0 km", "X km", "X km", "X km"],
      "totalDistance": "XX km",
      "estimatedTime": "X hours"
    }}"""


@dataclass(frozen=True)
class GenerationFailure:
    reason: str


def _get_client() -> AsyncOpenAI | None:
    """Build an AsyncOpenAI client, or return None when no key is configured.

    A fresh client per request: its connection pool belongs to the event loop
    that opened it, and scripts call plan_trip under separate asyncio.run calls.
    """
    cfg = get_llm_config()
    if not cfg["api_key"]:
        logger.warning("OPENAI_API_KEY not set; itinerary requests will fail")
        return None
    return AsyncOpenAI(
        api_key=cfg["api_key"],
        base_url=cfg["base_url"],
        timeout=cfg["timeout"],
    )


def _km(meters: float) -> str:
    return f"{meters / 1000:g}"


def build_prompt(request: TripRequest, policy: Optional[TripPolicy] = None) -> str:
    """Compose the itinerary instructions for a trip request."""
    policy = policy or policy_for(request.trip_type)
    low, high = _km(policy.min_meters), _km(policy.max_meters)

    if policy.days == 1:
        day_label = "1-day"
        day_rules = f"- A single circular route of {low}-{high} km."
        envelope_rule = f"STRICT DISTANCE LIMIT: the total route must be between {low} and {high} km."
        continuity_rule = ""
    else:
        day_label = f"{policy.days}-day"
        day_rules = "\n".join(
            f"- Day {day}: a {low}-{high} km route." for day in range(1, policy.days + 1)
        )
        envelope_rule = (
            f"DISTANCE LIMITS: EACH DAY is checked on its own and must be between {low} and {high} km "
            f"(up to {_km(policy.max_meters * policy.days)} km over {policy.days} days)."
        )
        continuity_rule = "- Each day starts where the previous day ended.\n"

    activity = "bike" if policy.profile == "cycling" else "trek"
    mode_phrase = "by bicycle" if policy.profile == "cycling" else "on foot"
    day_examples = ",\n".join(DAY_EXAMPLE.format(day=day) for day in range(1, policy.days + 1))

    return TRIP_TEMPLATE.format(
        day_label=day_label,
        activity=activity,
        city=request.city,
        country=request.country,
        trip_date=request.trip_date.isoformat(),
        day_rules=day_rules,
        min_waypoints=policy.min_waypoints,
        envelope_rule=envelope_rule,
        mode_phrase=mode_phrase,
        last_day=policy.days,
        continuity_rule=continuity_rule,
        day_examples=day_examples,
    )


async def request_itinerary(request: TripRequest) -> Union[str, GenerationFailure]:
    """Ask the model for a candidate itinerary and return its raw reply text."""
    client = _get_client()
    if client is None:
        return GenerationFailure("language model is not configured (missing OPENAI_API_KEY)")

    cfg = get_llm_config()
    logger.info(
        "Requesting %s itinerary for %s, %s from model %s",
        request.trip_type,
        request.city,
        request.country,
        cfg["model"],
    )
    try:
        resp = await client.chat.completions.create(
            model=cfg["model"],
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_prompt(request)},
            ],
            temperature=cfg["temperature"],
        )
    except OpenAIError as exc:
        logger.warning("Itinerary request failed: %s", exc, exc_info=True)
        return GenerationFailure(f"language model call failed: {exc.__class__.__name__}")

    raw = resp.choices[0].message.content if resp.choices else None
    if not raw:
        logger.warning("Language model returned an empty reply")
        return GenerationFailure("language model returned an empty reply")
    return raw
