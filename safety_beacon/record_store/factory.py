"""Factory helpers for choosing the record store and handle cache at startup."""

from __future__ import annotations

import redis

from safety_beacon import config
from safety_beacon.handle_cache import HandleCache, InMemoryHandleCache, RedisHandleCache
from safety_beacon.record_store.base import RecordStore, default_relationship_fields
from safety_beacon.record_store.memory import InMemoryRecordStore
from safety_beacon.record_store.parse_client import ParseRecordStore
from utils.logging_utils import get_tagged_logger, mask_url

logger = get_tagged_logger(__name__, tag="record_store/factory")


DEFAULT_STORE_NAME = "parse"


def build_handle_cache(settings: config.Settings | None = None) -> HandleCache:
    """Initialize the handle cache based on configuration."""
    settings = settings or config.settings
    url = settings.handle_cache_redis_url
    if url:
        try:
            client = redis.Redis.from_url(url)
            client.ping()
            logger.info("Using RedisHandleCache", extra={"redis_url": mask_url(url)})
            return RedisHandleCache(client, ttl_seconds=settings.handle_cache_ttl_seconds)
        except redis.RedisError as exc:
            logger.warning("Falling back to InMemoryHandleCache (Redis unavailable)", extra={"error": str(exc)})
    return InMemoryHandleCache(ttl_seconds=settings.handle_cache_ttl_seconds)


def build_record_store(
    settings: config.Settings | None = None,
    handle_cache: HandleCache | None = None,
) -> RecordStore:
    """Instantiate the configured record store."""
    settings = settings or config.settings
    handle_cache = handle_cache if handle_cache is not None else build_handle_cache(settings)
    source = (settings.record_store or DEFAULT_STORE_NAME).lower()
    relationship_fields = default_relationship_fields(settings.bookmarks_collection)

    if source == "parse":
        if not settings.parse_server_url:
            raise ValueError("parse_server_url must be set for the Parse record store")
        logger.info("Using Parse record store", extra={"base_url": mask_url(settings.parse_server_url)})
        return ParseRecordStore(
            settings.parse_server_url,
            settings.parse_application_id,
            settings.parse_rest_api_key,
            handle_cache=handle_cache,
            timeout=settings.request_timeout_seconds,
            relationship_fields=relationship_fields,
        )

    if source == "memory":
        logger.info("Using in-memory record store")
        return InMemoryRecordStore(handle_cache=handle_cache, relationship_fields=relationship_fields)

    raise ValueError(f"Unknown record store '{source}'")
