"""Domain vocabulary and strict schemas for accounts, bookmarks and map markers.

These models are the contract between the session/bookmark managers and the
remote adapters. Wire helpers (`from_wire`/`to_wire`) translate to and from the
Parse-style JSON the record store speaks; no network logic lives here.
"""

from __future__ import annotations

import math
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from safety_beacon.errors import InvalidBookmarkError

USER_CLASS = "_User"
ADDRESS_DELIMITER = ", "
EARTH_RADIUS_KM = 6371.0088


class _StrictBaseModel(BaseModel):
    """Base model with strict extra handling."""

    model_config = ConfigDict(extra="forbid")


class AccountPointer(_StrictBaseModel):
    """Typed foreign key to a record in the remote store (lookup key only)."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    class_name: str = USER_CLASS
    object_id: str

    def to_wire(self) -> Dict[str, str]:
        """Encode as a Parse pointer."""
        return {"__type": "Pointer", "className": self.class_name, "objectId": self.object_id}

    @classmethod
    def from_wire(cls, data: Any) -> Optional["AccountPointer"]:
        """Decode a Parse pointer (or embedded object); None when absent."""
        if not data or not isinstance(data, dict):
            return None
        object_id = data.get("objectId")
        if not object_id:
            return None
        return cls(class_name=data.get("className") or USER_CLASS, object_id=object_id)


class AccountRecord(_StrictBaseModel):
    """Authenticated account record as returned by the record store."""

    object_id: str
    username: Optional[str] = None
    email: Optional[str] = None
    session_token: Optional[str] = Field(default=None, repr=False)
    caretaker: Optional[AccountPointer] = None
    patient: Optional[AccountPointer] = None

    def pointer(self) -> AccountPointer:
        """Return the raw pointer used in equality filters."""
        return AccountPointer(class_name=USER_CLASS, object_id=self.object_id)

    @classmethod
    def from_wire(cls, data: Dict[str, Any], *, session_token: Optional[str] = None) -> "AccountRecord":
        """Build a record from a Parse user payload."""
        return cls(
            object_id=data["objectId"],
            username=data.get("username"),
            email=data.get("email"),
            session_token=data.get("sessionToken") or session_token,
            caretaker=AccountPointer.from_wire(data.get("caretaker")),
            patient=AccountPointer.from_wire(data.get("patient")),
        )


class Credentials(_StrictBaseModel):
    """Email/password pair used to log in or register."""

    email: str
    password: str = Field(repr=False)

    @field_validator("email", mode="after")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Trim and lowercase emails; they double as usernames."""
        v = v.strip().lower()
        if not v:
            raise ValueError("email must not be empty")
        return v


class Coordinate(_StrictBaseModel):
    """WGS84 latitude/longitude pair."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)

    def distance_km(self, other: "Coordinate") -> float:
        """Great-circle (haversine) distance to another coordinate in kilometers."""
        lat1, lon1 = math.radians(self.latitude), math.radians(self.longitude)
        lat2, lon2 = math.radians(other.latitude), math.radians(other.longitude)
        dlat = lat2 - lat1
        dlon = lon2 - lon1
        a = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
        return 2 * EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(a)))


class PostalAddress(_StrictBaseModel):
    """Structured address; all four fields are required."""

    street: str
    city: str
    region: str
    postal_code: str

    @field_validator("street", "city", "region", "postal_code", mode="after")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("address fields must not be empty")
        return v

    def concatenated(self) -> str:
        """Return the stored form, e.g. '221B Baker St, London, ON, N6A1A1'."""
        return ADDRESS_DELIMITER.join([self.street, self.city, self.region, self.postal_code])

    @classmethod
    def parse(cls, text: str) -> "PostalAddress":
        """Split a stored address back into its four fields."""
        parts = [p.strip() for p in (text or "").split(ADDRESS_DELIMITER)]
        if len(parts) != 4 or not all(parts):
            raise InvalidBookmarkError("All fields must be entered.")
        street, city, region, postal_code = parts
        return cls(street=street, city=city, region=region, postal_code=postal_code)


class Bookmark(_StrictBaseModel):
    """Named, addressed location saved for a patient."""

    name: str
    address: str
    coordinate: Optional[Coordinate] = None
    patient: Optional[AccountPointer] = None
    object_id: Optional[str] = None

    @property
    def title(self) -> str:
        """Street component of the address, used as the marker title."""
        return self.address.split(ADDRESS_DELIMITER)[0]

    @classmethod
    def from_wire(cls, data: Dict[str, Any]) -> "Bookmark":
        """Build a bookmark from a `Bookmarks` record."""
        lat, lon = data.get("lat"), data.get("long")
        coordinate = None
        if lat is not None and lon is not None:
            coordinate = Coordinate(latitude=lat, longitude=lon)
        return cls(
            name=data.get("name") or "",
            address=data.get("address") or "",
            coordinate=coordinate,
            patient=AccountPointer.from_wire(data.get("patient")),
            object_id=data.get("objectId"),
        )

    def to_wire(self) -> Dict[str, Any]:
        """Encode the writable fields of a `Bookmarks` record."""
        fields: Dict[str, Any] = {"name": self.name, "address": self.address}
        if self.coordinate is not None:
            fields["lat"] = self.coordinate.latitude
            fields["long"] = self.coordinate.longitude
        if self.patient is not None:
            fields["patient"] = self.patient.to_wire()
        return fields


class Annotation(_StrictBaseModel):
    """Map marker presented for a navigation destination."""

    title: str
    subtitle: Optional[str] = None
    coordinate: Coordinate
    zoom_level: int = 12
