"""Helpers for forward and reverse geocoding against a Nominatim API."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

import requests
import requests_cache
from retry_requests import retry

from safety_beacon.config import settings
from safety_beacon.domain import Coordinate
from safety_beacon.errors import GeocodingError
from safety_beacon.geocoding.base import GeocodeCandidate
from utils.logging_utils import get_tagged_logger
logger = get_tagged_logger(__name__, tag='nominatim_client')

cache_session = requests_cache.CachedSession(
    'geocode_cache', backend='memory', expire_after=settings.geocode_cache_ttl_seconds
)
session = retry(cache_session, retries=5, backoff_factor=0.2)

# Nominatim spreads locality and region over several keys depending on the place type.
CITY_KEYS = ("city", "town", "village", "hamlet", "municipality")
REGION_KEYS = ("state", "province", "region", "state_district")


def _first(address: Dict[str, Any], keys) -> Optional[str]:
    for key in keys:
        value = address.get(key)
        if value:
            return value
    return None


def _candidate_from_place(place: Dict[str, Any]) -> GeocodeCandidate:
    """Normalize one Nominatim place into a candidate."""
    coordinate = None
    lat, lon = place.get("lat"), place.get("lon")
    if lat is not None and lon is not None:
        coordinate = Coordinate(latitude=float(lat), longitude=float(lon))

    address = place.get("address") or {}
    road = address.get("road")
    house_number = address.get("house_number")
    street = f"{house_number} {road}" if house_number and road else road

    return GeocodeCandidate(
        coordinate=coordinate,
        street=street,
        city=_first(address, CITY_KEYS),
        region=_first(address, REGION_KEYS),
        postal_code=address.get("postcode"),
        display_name=place.get("display_name"),
    )


def _get(path: str, params: Dict[str, Any], *, base_url: str, user_agent: str, timeout: float) -> Any:
    """GET a Nominatim endpoint and return decoded JSON; raises GeocodingError."""
    try:
        resp = session.get(
            f"{base_url}{path}",
            params={**params, "format": "jsonv2", "addressdetails": 1},
            headers={"User-Agent": user_agent},
            timeout=timeout,
        )
        resp.raise_for_status()
        return resp.json()
    except (requests.RequestException, ValueError) as exc:
        raise GeocodingError(f"Geocoding request to {path} failed: {exc}") from exc


def forward_geocode(
    address: str,
    *,
    base_url: str = settings.geocoder_base_url,
    user_agent: str = settings.geocoder_user_agent,
    timeout: float = settings.request_timeout_seconds,
    limit: int = 5,
) -> List[GeocodeCandidate]:
    """Resolve a free-form address into candidates, best match first."""
    data = _get("/search", {"q": address, "limit": limit}, base_url=base_url, user_agent=user_agent, timeout=timeout)
    if not isinstance(data, list):
        raise GeocodingError("Unexpected forward geocode payload")
    out: List[GeocodeCandidate] = []
    for place in data:
        try:
            out.append(_candidate_from_place(place))
        except (TypeError, ValueError) as exc:
            logger.warning("Skipping unreadable geocode candidate", extra={"error": str(exc)})
    return out


def reverse_geocode(
    latitude: float,
    longitude: float,
    *,
    base_url: str = settings.geocoder_base_url,
    user_agent: str = settings.geocoder_user_agent,
    timeout: float = settings.request_timeout_seconds,
) -> List[GeocodeCandidate]:
    """Resolve a coordinate into at most one candidate."""
    data = _get("/reverse", {"lat": latitude, "lon": longitude}, base_url=base_url, user_agent=user_agent, timeout=timeout)
    if not isinstance(data, dict):
        raise GeocodingError("Unexpected reverse geocode payload")
    if data.get("error"):
        # "Unable to geocode" means no match, not a provider failure
        logger.debug("No reverse geocode match", extra={"error": data["error"]})
        return []
    try:
        return [_candidate_from_place(data)]
    except (TypeError, ValueError) as exc:
        raise GeocodingError(f"Unreadable reverse geocode payload: {exc}") from exc
