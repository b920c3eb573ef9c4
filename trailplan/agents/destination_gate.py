"""Pre-flight check that a requested destination exists before planning."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from trailplan.schemas import Coordinates
from trailplan.tools.geocoding import Geocoder


@dataclass(frozen=True)
class DestinationCheck:
    valid: bool
    stage: str  # "country", "city" or "done"
    country_code: Optional[str] = None
    coordinates: Optional[Coordinates] = None
    reason: Optional[str] = None


async def check_destination(country: str, city: str, geocoder: Geocoder | None = None) -> DestinationCheck:
    """Resolve the country, then the city inside that country.

    The city lookup is constrained to the country's code so that a Paris in the
    wrong country is rejected. A failure at either stage stops here, so the
    orchestrator never spends generation or routing calls on it.
    """
    geocoder = geocoder or Geocoder()

    country_check = await geocoder.validate_country(country)
    if not country_check.valid or not country_check.code:
        return DestinationCheck(
            valid=False,
            stage="country",
            reason=country_check.reason or f"Could not verify country '{country}'",
        )

    city_check = await geocoder.validate_city(city, country_check.code)
    if not city_check.valid:
        return DestinationCheck(
            valid=False,
            stage="city",
            country_code=country_check.code,
            reason=city_check.reason or f"Could not verify city '{city}'",
        )

    return DestinationCheck(
        valid=True,
        stage="done",
        country_code=country_check.code,
        coordinates=city_check.coordinates,
    )
