"""Interfaces and helpers for remote record stores."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Protocol

from safety_beacon.domain import USER_CLASS, AccountPointer, AccountRecord
from safety_beacon.errors import QueryTypeMismatch

_SCALARS = (str, int, float, bool, type(None))


def default_relationship_fields(bookmarks_collection: str = "Bookmarks") -> Dict[str, Dict[str, str]]:
    """Relationship columns per collection and the record class they point to."""
    return {
        bookmarks_collection: {"patient": USER_CLASS},
        USER_CLASS: {"caretaker": USER_CLASS, "patient": USER_CLASS},
    }


def validate_filters(
    collection: str,
    filters: Mapping[str, Any],
    relationship_fields: Mapping[str, Mapping[str, str]],
) -> Dict[str, Any]:
    """Type-check equality filters and encode them for the wire.

    Relationship columns only accept a raw `AccountPointer` of the expected
    class; anything else (a session wrapper, a bare id, a pointer to another
    class) raises `QueryTypeMismatch` before the query is dispatched.
    """
    expected_by_field = relationship_fields.get(collection, {})
    encoded: Dict[str, Any] = {}
    for field, value in filters.items():
        expected = expected_by_field.get(field)
        if expected is not None:
            if not isinstance(value, AccountPointer):
                raise QueryTypeMismatch(collection, field, expected, type(value).__name__)
            if value.class_name != expected:
                raise QueryTypeMismatch(collection, field, expected, f"pointer to {value.class_name}")
            encoded[field] = value.to_wire()
        elif isinstance(value, AccountPointer):
            encoded[field] = value.to_wire()
        elif isinstance(value, _SCALARS):
            encoded[field] = value
        else:
            raise QueryTypeMismatch(collection, field, "scalar", type(value).__name__)
    return encoded


class RecordStore(Protocol):
    """Interface for the hosted backend holding accounts and bookmarks."""

    def authenticate(self, username: str, password: str) -> AccountRecord:
        """Log in and return the account handle; raises AuthFailure."""
        ...

    def sign_up(self, username: str, email: str, password: str) -> AccountRecord:
        """Create an account and return its handle; raises AuthFailure."""
        ...

    def sign_out(self) -> None:
        """Invalidate the current handle remotely and drop it locally."""
        ...

    def current_cached_handle(self) -> Optional[AccountRecord]:
        """Return the locally cached handle without a network call."""
        ...

    def query(self, collection: str, filters: Mapping[str, Any]) -> List[Dict[str, Any]]:
        """Return records whose fields equal the given filters."""
        ...

    def fetch(self, pointer: AccountPointer) -> Dict[str, Any]:
        """Return the record a pointer refers to."""
        ...

    def create_record(self, collection: str, fields: Mapping[str, Any]) -> str:
        """Create a record and return its object id."""
        ...

    def update_record(self, collection: str, object_id: str, fields: Mapping[str, Any]) -> None:
        """Overwrite the given fields on an existing record."""
        ...

    def delete_record(self, collection: str, object_id: str) -> None:
        """Delete a record."""
        ...
