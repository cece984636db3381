"""Redis-backed handle cache with TTL."""

from typing import Optional

from pydantic import ValidationError

from safety_beacon.domain import AccountRecord
from safety_beacon.handle_cache.base import HandleCache
from utils.logging_utils import get_tagged_logger, mask_email

logger = get_tagged_logger(__name__, tag="handle_cache/redis_handle_cache")


class RedisHandleCache(HandleCache):
    """Cache the account handle in Redis as JSON under a single key."""

    def __init__(self, client, ttl_seconds: int = 3600, key: str = "beacon:current_handle") -> None:
        """Initialize with a Redis client, TTL and cache key."""
        logger.debug("Initializing RedisHandleCache")
        self.client = client
        self.ttl = ttl_seconds
        self.key = key

    @staticmethod
    def _safe_dump(record: AccountRecord) -> bytes:
        """Serialize a handle to JSON bytes, including its session token."""
        return record.model_dump_json().encode("utf-8")

    @staticmethod
    def _safe_load(raw: bytes) -> Optional[AccountRecord]:
        """Deserialize JSON bytes into a handle."""
        try:
            return AccountRecord.model_validate_json(raw)
        except (ValidationError, ValueError) as exc:
            logger.error("Failed to deserialize cached handle: %s", exc)
            return None

    def load(self) -> Optional[AccountRecord]:
        """Fetch the handle, refreshing TTL, or None if missing/invalid."""
        try:
            raw = self.client.get(self.key)
        except Exception as exc:  # pragma: no cover - defensive
            logger.error("Failed to read cached handle from Redis: %s", exc)
            return None
        if not raw:
            return None
        record = self._safe_load(raw)
        if record is None:
            self.clear()
            return None
        try:
            self.client.expire(self.key, self.ttl)
        except Exception as exc:  # pragma: no cover - defensive
            logger.warning("Failed to refresh cached handle TTL: %s", exc)
        return record

    def save(self, record: AccountRecord) -> None:
        """Persist the handle with the configured TTL."""
        try:
            self.client.setex(self.key, self.ttl, self._safe_dump(record))
            logger.debug("Cached handle", extra={"user": mask_email(record.email)})
        except Exception as exc:  # pragma: no cover - defensive
            logger.error("Failed to write cached handle to Redis: %s", exc)

    def clear(self) -> None:
        """Delete the cached handle if present."""
        try:
            self.client.delete(self.key)
        except Exception as exc:  # pragma: no cover - defensive
            logger.error("Failed to delete cached handle from Redis: %s", exc)
