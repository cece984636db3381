"""Local cache backends for the authenticated account handle."""

from .base import HandleCache
from .memory import InMemoryHandleCache
from .redis import RedisHandleCache

__all__ = [
    "HandleCache",
    "InMemoryHandleCache",
    "RedisHandleCache",
]
