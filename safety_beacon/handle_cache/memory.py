"""In-memory handle cache with TTL, intended for development and tests."""

import threading
import time
from typing import Optional

from safety_beacon.domain import AccountRecord
from safety_beacon.handle_cache.base import HandleCache

from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="handle_cache/in_memory_handle_cache")


class InMemoryHandleCache(HandleCache):
    """Thread-safe, TTL-aware single-slot cache (dev/test)."""

    def __init__(self, ttl_seconds: int | None = None) -> None:
        """Initialize the cache; a TTL of None keeps the handle until cleared."""
        logger.debug("Initializing InMemoryHandleCache")
        self.ttl = ttl_seconds
        self._record: Optional[AccountRecord] = None
        self._exp: float | None = None
        self._lock = threading.Lock()

    def _expired(self) -> bool:
        """Return True if the cached handle is beyond its TTL."""
        return self._exp is not None and self._exp < time.monotonic()

    def load(self) -> Optional[AccountRecord]:
        """Return the cached handle, refreshing TTL, or None if missing/expired."""
        with self._lock:
            if self._record is None:
                return None
            if self._expired():
                self._record = None
                self._exp = None
                return None
            # refresh TTL on access
            if self.ttl is not None:
                self._exp = time.monotonic() + self.ttl
            return self._record

    def save(self, record: AccountRecord) -> None:
        """Store a handle, replacing any previous one."""
        with self._lock:
            self._record = record
            self._exp = time.monotonic() + self.ttl if self.ttl is not None else None

    def clear(self) -> None:
        """Drop the cached handle."""
        with self._lock:
            self._record = None
            self._exp = None
