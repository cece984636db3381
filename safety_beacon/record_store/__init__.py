"""Record store adapters for the hosted account/bookmark backend."""

from .base import RecordStore, default_relationship_fields, validate_filters
from .factory import build_handle_cache, build_record_store
from .memory import InMemoryRecordStore
from .parse_client import ParseRecordStore

__all__ = [
    "build_handle_cache",
    "build_record_store",
    "default_relationship_fields",
    "validate_filters",
    "RecordStore",
    "InMemoryRecordStore",
    "ParseRecordStore",
]
