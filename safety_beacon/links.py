"""Lookup cache resolving caretaker/patient references to account records."""
from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from safety_beacon.domain import AccountPointer, AccountRecord
from safety_beacon.errors import RecordStoreError
from safety_beacon.record_store import RecordStore
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="links")


class LinkState(str, Enum):
    """Resolution state of a linked account."""
    ABSENT = "absent"  # no relationship
    UNRESOLVED = "unresolved"  # reference known, payload not loaded yet
    RESOLVED = "resolved"
    FAILED = "failed"  # last fetch failed; reference still valid


@dataclass(frozen=True)
class LinkedAccount:
    """A reference plus whatever is known about its target."""
    state: LinkState
    pointer: Optional[AccountPointer] = None
    record: Optional[AccountRecord] = None


class LinkedAccountResolver:
    """Resolve account pointers through the record store and cache the results."""

    def __init__(self, store: RecordStore) -> None:
        self._store = store
        self._records: Dict[str, AccountRecord] = {}
        self._failed: set[str] = set()
        self._generation = 0
        self._lock = threading.Lock()

    def lookup(self, pointer: Optional[AccountPointer]) -> LinkedAccount:
        """Return the cached state for a pointer; never touches the network."""
        if pointer is None:
            return LinkedAccount(LinkState.ABSENT)
        with self._lock:
            record = self._records.get(pointer.object_id)
            if record is not None:
                return LinkedAccount(LinkState.RESOLVED, pointer, record)
            if pointer.object_id in self._failed:
                return LinkedAccount(LinkState.FAILED, pointer)
        return LinkedAccount(LinkState.UNRESOLVED, pointer)

    def resolve(self, pointer: AccountPointer) -> LinkedAccount:
        """Fetch the pointer's target; failures are logged and recorded, not raised."""
        with self._lock:
            generation = self._generation
        try:
            record = AccountRecord.from_wire(self._store.fetch(pointer))
        except (RecordStoreError, KeyError, ValueError) as exc:
            logger.warning("Failed to resolve linked account", extra={"object_id": pointer.object_id, "error": str(exc)})
            with self._lock:
                if generation == self._generation:
                    self._failed.add(pointer.object_id)
            return LinkedAccount(LinkState.FAILED, pointer)

        with self._lock:
            if generation != self._generation:
                # cleared (logout) while the fetch was in flight
                return LinkedAccount(LinkState.UNRESOLVED, pointer)
            self._records[pointer.object_id] = record
            self._failed.discard(pointer.object_id)
        return LinkedAccount(LinkState.RESOLVED, pointer, record)

    def clear(self) -> None:
        """Forget everything, discarding results of fetches still in flight."""
        with self._lock:
            self._generation += 1
            self._records.clear()
            self._failed.clear()
