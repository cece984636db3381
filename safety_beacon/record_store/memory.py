"""In-memory record store, intended for development and tests."""

from __future__ import annotations

import copy
import threading
import uuid
from typing import Any, Dict, List, Mapping, Optional

from safety_beacon.domain import USER_CLASS, AccountPointer, AccountRecord
from safety_beacon.errors import AuthFailure, RecordStoreError
from safety_beacon.handle_cache import HandleCache, InMemoryHandleCache
from safety_beacon.record_store.base import RecordStore, default_relationship_fields, validate_filters
from utils.logging_utils import get_tagged_logger, mask_email

logger = get_tagged_logger(__name__, tag="record_store/in_memory_record_store")

# Parse error codes, kept so callers see the same messages as against a real server.
OBJECT_NOT_FOUND = 101
USERNAME_TAKEN = 202


class InMemoryRecordStore(RecordStore):
    """Thread-safe record store holding users and collections in dicts."""

    def __init__(
        self,
        *,
        handle_cache: HandleCache | None = None,
        relationship_fields: Mapping[str, Mapping[str, str]] | None = None,
    ) -> None:
        logger.debug("Initializing InMemoryRecordStore")
        self.handle_cache = handle_cache if handle_cache is not None else InMemoryHandleCache()
        self.relationship_fields = relationship_fields or default_relationship_fields()
        self._users: Dict[str, Dict[str, Any]] = {}
        self._passwords: Dict[str, str] = {}
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._lock = threading.Lock()

    def _generate_id(self) -> str:
        """Generate a Parse-looking object id."""
        return uuid.uuid4().hex[:10]

    def _user_by_name(self, username: str) -> Optional[Dict[str, Any]]:
        for user in self._users.values():
            if user.get("username") == username:
                return user
        return None

    def _issue_handle(self, user: Dict[str, Any]) -> AccountRecord:
        record = AccountRecord.from_wire(user, session_token=f"r:{uuid.uuid4().hex}")
        self.handle_cache.save(record)
        return record

    def authenticate(self, username: str, password: str) -> AccountRecord:
        with self._lock:
            user = self._user_by_name(username)
            if user is None or self._passwords.get(user["objectId"]) != password:
                raise AuthFailure("Invalid username/password.", code=OBJECT_NOT_FOUND)
            user = copy.deepcopy(user)
        logger.info("Logged in", extra={"user": mask_email(username)})
        return self._issue_handle(user)

    def sign_up(self, username: str, email: str, password: str) -> AccountRecord:
        with self._lock:
            if self._user_by_name(username) is not None:
                raise AuthFailure("Account already exists for this username.", code=USERNAME_TAKEN)
            object_id = self._generate_id()
            user = {"objectId": object_id, "username": username, "email": email}
            self._users[object_id] = user
            self._passwords[object_id] = password
            user = copy.deepcopy(user)
        logger.info("Registered", extra={"user": mask_email(username)})
        return self._issue_handle(user)

    def sign_out(self) -> None:
        self.handle_cache.clear()

    def current_cached_handle(self) -> Optional[AccountRecord]:
        return self.handle_cache.load()

    def link_accounts(self, caretaker_id: str, patient_id: str) -> None:
        """Link a caretaker and a patient account to each other (dev seeding)."""
        with self._lock:
            if caretaker_id not in self._users or patient_id not in self._users:
                raise RecordStoreError("Object not found.", code=OBJECT_NOT_FOUND)
            self._users[caretaker_id]["patient"] = AccountPointer(object_id=patient_id).to_wire()
            self._users[patient_id]["caretaker"] = AccountPointer(object_id=caretaker_id).to_wire()

    @staticmethod
    def _matches(record: Mapping[str, Any], where: Mapping[str, Any]) -> bool:
        for field, expected in where.items():
            actual = record.get(field)
            if isinstance(expected, dict) and expected.get("__type") == "Pointer":
                if not isinstance(actual, dict) or actual.get("objectId") != expected["objectId"]:
                    return False
            elif actual != expected:
                return False
        return True

    def query(self, collection: str, filters: Mapping[str, Any]) -> List[Dict[str, Any]]:
        where = validate_filters(collection, filters, self.relationship_fields)
        with self._lock:
            rows = self._users if collection == USER_CLASS else self._collections.get(collection, {})
            return [copy.deepcopy(r) for r in rows.values() if self._matches(r, where)]

    def fetch(self, pointer: AccountPointer) -> Dict[str, Any]:
        with self._lock:
            rows = self._users if pointer.class_name == USER_CLASS else self._collections.get(pointer.class_name, {})
            record = rows.get(pointer.object_id)
            if record is None:
                raise RecordStoreError("Object not found.", code=OBJECT_NOT_FOUND)
            return copy.deepcopy(record)

    def create_record(self, collection: str, fields: Mapping[str, Any]) -> str:
        with self._lock:
            object_id = self._generate_id()
            self._collections.setdefault(collection, {})[object_id] = {**copy.deepcopy(dict(fields)), "objectId": object_id}
            return object_id

    def update_record(self, collection: str, object_id: str, fields: Mapping[str, Any]) -> None:
        with self._lock:
            record = self._collections.get(collection, {}).get(object_id)
            if record is None:
                raise RecordStoreError("Object not found.", code=OBJECT_NOT_FOUND)
            record.update(copy.deepcopy(dict(fields)))

    def delete_record(self, collection: str, object_id: str) -> None:
        with self._lock:
            if self._collections.get(collection, {}).pop(object_id, None) is None:
                raise RecordStoreError("Object not found.", code=OBJECT_NOT_FOUND)
