"""Shared protocol for handle cache backends."""

from typing import Optional, Protocol

from safety_beacon.domain import AccountRecord


class HandleCache(Protocol):
    """Protocol for caching the current authenticated account handle."""

    def load(self) -> Optional[AccountRecord]:
        """Return the cached handle, or None if missing or expired."""

    def save(self, record: AccountRecord) -> None:
        """Replace the cached handle."""

    def clear(self) -> None:
        """Forget the cached handle without raising if it is absent."""
