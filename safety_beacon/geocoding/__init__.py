"""Geocoding providers for address <-> coordinate translation."""

from .base import CallableGeocodingService, GeocodeCandidate, GeocodingService
from .factory import build_geocoder
from .nominatim_client import forward_geocode, reverse_geocode

__all__ = [
    "build_geocoder",
    "CallableGeocodingService",
    "GeocodeCandidate",
    "GeocodingService",
    "forward_geocode",
    "reverse_geocode",
]
