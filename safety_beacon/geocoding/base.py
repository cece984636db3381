"""Interfaces and helpers for geocoding providers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional, Protocol

from safety_beacon.domain import Coordinate, PostalAddress


@dataclass
class GeocodeCandidate:
    """One provider match, optionally carrying a structured postal address."""
    coordinate: Optional[Coordinate]
    street: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    postal_code: Optional[str] = None
    display_name: Optional[str] = None

    def postal_address(self) -> Optional[PostalAddress]:
        """Return the structured address only when all four fields are present."""
        fields = (self.street, self.city, self.region, self.postal_code)
        if not all(f and f.strip() for f in fields):
            return None
        return PostalAddress(street=self.street, city=self.city, region=self.region, postal_code=self.postal_code)


class GeocodingService(Protocol):
    """Interface for anything that translates addresses and coordinates."""

    def forward_geocode(self, address: str) -> List[GeocodeCandidate]:
        """Return candidates for a free-form address; raises GeocodingError."""
        ...

    def reverse_geocode(self, latitude: float, longitude: float) -> List[GeocodeCandidate]:
        """Return candidates for a coordinate; raises GeocodingError."""
        ...


@dataclass
class CallableGeocodingService(GeocodingService):
    """Wrap two callables so they can be swapped for different providers."""

    forward: Callable[[str], List[GeocodeCandidate]]
    reverse: Callable[[float, float], List[GeocodeCandidate]]

    def forward_geocode(self, address: str) -> List[GeocodeCandidate]:
        """Delegate to the configured forward-geocode callable."""
        return self.forward(address)

    def reverse_geocode(self, latitude: float, longitude: float) -> List[GeocodeCandidate]:
        """Delegate to the configured reverse-geocode callable."""
        return self.reverse(latitude, longitude)
