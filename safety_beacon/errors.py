"""Exception types raised by the record store and session model."""


class BeaconError(Exception):
    """Base class for Safety Beacon errors."""


class RecordStoreError(BeaconError):
    """A call to the remote record store failed."""

    def __init__(self, message: str, *, code: int | None = None) -> None:
        super().__init__(message)
        self.code = code


class AuthFailure(RecordStoreError):
    """Bad credentials or a failed login/register/logout round trip."""


class QueryTypeMismatch(RecordStoreError):
    """A relationship filter value does not match the field's record type.

    Raised before the query is dispatched, so the backend never sees it.
    """

    def __init__(self, collection: str, field: str, expected: str, actual: str) -> None:
        super().__init__(
            f"Cannot filter {collection}.{field} by {actual}; expected a pointer to {expected}"
        )
        self.collection = collection
        self.field = field
        self.expected = expected
        self.actual = actual


class RelationshipConflictError(BeaconError):
    """An account carries both a caretaker and a patient link."""


class InvalidBookmarkError(BeaconError, ValueError):
    """Bookmark fields are missing or malformed."""


class GeocodingError(BeaconError):
    """The geocoding provider failed or returned an unreadable response."""
