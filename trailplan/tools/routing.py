from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union
import os

import httpx

from trailplan.config import get_http_timeout, get_ors_config
from trailplan.schemas import Coordinates, check_coordinates

import logging

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    logger.addHandler(handler)
_level = os.getenv("TRAILPLAN_LOG_LEVEL", "INFO").upper()
logger.setLevel(getattr(logging, _level, logging.INFO))
logger.propagate = False

# Travel mode -> OpenRouteService profile
ORS_PROFILES: Dict[str, str] = {
    "cycling": "cycling-regular",
    "walking": "foot-walking",
}


@dataclass(frozen=True)
class RouteResult:
    geometry: str
    distance_meters: float
    duration_seconds: float


@dataclass(frozen=True)
class RouteFailure:
    reason: str
    status_code: Optional[int] = None


RouteOutcome = Union[RouteResult, RouteFailure]


class RoutingClient:
    """
    Point-to-point routing against the OpenRouteService directions API.

    Every failure (transport, HTTP status, malformed body) comes back as a
    ``RouteFailure`` value so validation can reject the candidate instead of
    aborting the request. There are no retries here.
    """

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        cfg = get_ors_config()
        self.api_key = api_key if api_key is not None else cfg["api_key"]
        self.base_url = (base_url or cfg["base_url"]).rstrip("/")
        self.timeout = timeout if timeout is not None else get_http_timeout()

    async def fetch_route(self, start: Coordinates, end: Coordinates, profile: str) -> RouteOutcome:
        url = self._endpoint(profile)
        payload = self._build_payload(start, end)

        if not self.api_key:
            logger.warning("ORS_API_KEY not set; cannot route %s -> %s", start, end)
            return RouteFailure("routing service is not configured")

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    url,
                    json=payload,
                    headers={"Authorization": self.api_key, "Accept": "application/json"},
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            logger.warning("Routing %s -> %s (%s) returned HTTP %d", start, end, profile, status)
            return RouteFailure(f"routing service returned HTTP {status}", status_code=status)
        except httpx.HTTPError as exc:
            logger.warning("Routing request %s -> %s failed: %s", start, end, exc, exc_info=True)
            return RouteFailure(f"routing request failed: {exc.__class__.__name__}")
        except ValueError:
            logger.warning("Routing response for %s -> %s was not JSON", start, end)
            return RouteFailure("routing response was not JSON")

        return self._parse_route(data)

    def _endpoint(self, profile: str) -> str:
        try:
            ors_profile = ORS_PROFILES[profile]
        except KeyError:
            raise ValueError(f"Unsupported travel profile {profile!r}") from None
        return f"{self.base_url}/v2/directions/{ors_profile}"

    @staticmethod
    def _build_payload(start: Coordinates, end: Coordinates) -> Dict[str, List[List[float]]]:
        # The only place where (lat, lon) becomes the oracle's (lon, lat).
        check_coordinates(start)
        check_coordinates(end)
        return {
            "coordinates": [
                [float(start[1]), float(start[0])],
                [float(end[1]), float(end[0])],
            ]
        }

    @staticmethod
    def _parse_route(data: Any) -> RouteOutcome:
        routes = data.get("routes") if isinstance(data, dict) else None
        if not isinstance(routes, list) or not routes or not isinstance(routes[0], dict):
            return RouteFailure("routing response has no routes")

        route = routes[0]
        geometry = route.get("geometry")
        if not isinstance(geometry, str) or not geometry:
            return RouteFailure("routing response has no geometry")

        summary = route.get("summary")
        if not isinstance(summary, dict):
            return RouteFailure("routing response has no summary")

        # ORS leaves out zero-valued summary keys.
        distance = summary.get("distance", 0)
        duration = summary.get("duration", 0)
        if isinstance(distance, bool) or not isinstance(distance, (int, float)):
            return RouteFailure("routing summary distance is not numeric")
        if isinstance(duration, bool) or not isinstance(duration, (int, float)):
            return RouteFailure("routing summary duration is not numeric")

        return RouteResult(
            geometry=geometry,
            distance_meters=float(distance),
            duration_seconds=float(duration),
        )
