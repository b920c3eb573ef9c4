from dataclasses import dataclass
from typing import Any, Dict, List, Optional
import os
import unicodedata

import httpx

from trailplan.config import get_http_timeout, get_nominatim_url
from trailplan.schemas import Coordinates

import logging

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    logger.addHandler(handler)
_level = os.getenv("TRAILPLAN_LOG_LEVEL", "INFO").upper()
logger.setLevel(getattr(logging, _level, logging.INFO))
logger.propagate = False


def normalize_place_name(name: Optional[str]) -> str:
    """Casefold, strip accents and drop everything that is not a letter.

    Letters from any script survive, so "Россия" and "Straße" stay comparable.
    """
    if not name:
        return ""
    decomposed = unicodedata.normalize("NFD", str(name))
    stripped = "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")
    return "".join(ch for ch in stripped.casefold() if ch.isalpha())


@dataclass(frozen=True)
class CountryCheck:
    valid: bool
    code: Optional[str] = None
    reason: Optional[str] = None


@dataclass(frozen=True)
class CityCheck:
    valid: bool
    coordinates: Optional[Coordinates] = None
    reason: Optional[str] = None


class Geocoder:
    """Nominatim lookups used to vet a destination before planning."""

    USER_AGENT = "trailplan/1.0"

    def __init__(self, *, base_url: Optional[str] = None, timeout: Optional[float] = None):
        self.base_url = (base_url or get_nominatim_url()).rstrip("/")
        self.timeout = timeout if timeout is not None else get_http_timeout()

    async def validate_country(self, name: str) -> CountryCheck:
        target = normalize_place_name(name)
        if not target:
            return CountryCheck(False, reason="Country name is empty")

        try:
            results = await self._search({"q": name, "featureType": "country", "limit": 5})
        except (httpx.HTTPError, ValueError):
            logger.warning("Country lookup failed for %r", name, exc_info=True)
            return CountryCheck(False, reason="Country lookup failed; try again later")

        for result in results:
            if not self._is_country_boundary(result):
                continue
            address = result.get("address") or {}
            country_name = address.get("country") or result.get("name")
            code = (address.get("country_code") or "").lower()
            if code and normalize_place_name(country_name) == target:
                logger.info("Country %r resolved to %s", name, code)
                return CountryCheck(True, code=code)

        logger.info("Country %r did not resolve to a known country", name)
        return CountryCheck(False, reason=f"'{name}' is not a recognised country")

    async def validate_city(self, name: str, code: str) -> CityCheck:
        if not code:
            raise ValueError("validate_city needs the country code from validate_country")
        code = code.lower()
        if not normalize_place_name(name):
            return CityCheck(False, reason="City name is empty")

        try:
            results = await self._search(
                {"q": name, "countrycodes": code, "featureType": "settlement", "limit": 5}
            )
        except (httpx.HTTPError, ValueError):
            logger.warning("City lookup failed for %r in %s", name, code, exc_info=True)
            return CityCheck(False, reason="City lookup failed; try again later")

        for result in results:
            address = result.get("address") or {}
            if (address.get("country_code") or "").lower() != code:
                continue
            try:
                coordinates = (float(result["lat"]), float(result["lon"]))
            except (KeyError, TypeError, ValueError):
                continue
            logger.info("City %r resolved to %s in %s", name, coordinates, code)
            return CityCheck(True, coordinates=coordinates)

        logger.info("City %r not found in country %s", name, code)
        return CityCheck(False, reason=f"'{name}' was not found in the selected country")

    async def _search(self, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        query = {"format": "jsonv2", "addressdetails": 1, **params}
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.get(
                f"{self.base_url}/search",
                params=query,
                headers={"User-Agent": self.USER_AGENT, "Accept-Language": "en"},
            )
            response.raise_for_status()
            data = response.json()
        if not isinstance(data, list):
            raise ValueError("unexpected geocoder payload")
        return [item for item in data if isinstance(item, dict)]

    @staticmethod
    def _is_country_boundary(result: Dict[str, Any]) -> bool:
        if result.get("addresstype") == "country":
            return True
        category = result.get("category") or result.get("class")
        return category == "boundary" and result.get("type") == "administrative"
