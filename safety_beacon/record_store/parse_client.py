"""REST client for a Parse-Server style backend."""
from __future__ import annotations

import json
from typing import Any, Dict, List, Mapping, Optional

import requests

from safety_beacon.domain import USER_CLASS, AccountPointer, AccountRecord
from safety_beacon.errors import AuthFailure, RecordStoreError
from safety_beacon.handle_cache import HandleCache, InMemoryHandleCache
from safety_beacon.record_store.base import RecordStore, default_relationship_fields, validate_filters
from utils.logging_utils import get_tagged_logger, mask_email, mask_url

logger = get_tagged_logger(__name__, tag="record_store/parse_client")


class ParseRecordStore(RecordStore):
    """Accounts and records over the Parse REST API."""

    def __init__(
        self,
        base_url: str,
        application_id: str,
        rest_api_key: str | None = None,
        *,
        handle_cache: HandleCache | None = None,
        session: Any = None,
        timeout: float = 10.0,
        relationship_fields: Mapping[str, Mapping[str, str]] | None = None,
    ) -> None:
        logger.debug("Initializing ParseRecordStore", extra={"base_url": mask_url(base_url)})
        self.base_url = base_url.rstrip("/")
        self.application_id = application_id
        self.rest_api_key = rest_api_key
        self.handle_cache = handle_cache if handle_cache is not None else InMemoryHandleCache()
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout
        self.relationship_fields = relationship_fields or default_relationship_fields()

    def _headers(self, *, with_token: bool = True) -> Dict[str, str]:
        """Build Parse headers, attaching the cached session token when present."""
        headers = {
            "X-Parse-Application-Id": self.application_id,
            "Content-Type": "application/json",
        }
        if self.rest_api_key:
            headers["X-Parse-REST-API-Key"] = self.rest_api_key
        if with_token:
            handle = self.handle_cache.load()
            if handle is not None and handle.session_token:
                headers["X-Parse-Session-Token"] = handle.session_token
        return headers

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        payload: Optional[Mapping[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        error_cls: type[RecordStoreError] = RecordStoreError,
    ) -> Dict[str, Any]:
        """Issue a request and return the decoded JSON body; raises error_cls on failure."""
        url = f"{self.base_url}{path}"
        try:
            resp = self.session.request(
                method,
                url,
                params=params,
                json=dict(payload) if payload is not None else None,
                headers=headers if headers is not None else self._headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            # the exception text embeds the full URL, query string included
            logger.error("Parse request failed", extra={"method": method, "path": path, "error": type(exc).__name__})
            raise error_cls("Network error") from exc

        try:
            data = resp.json()
        except ValueError:
            data = {}
        if resp.status_code >= 400:
            message = data.get("error") if isinstance(data, dict) else None
            code = data.get("code") if isinstance(data, dict) else None
            raise error_cls(message or f"HTTP {resp.status_code}", code=code)
        return data if isinstance(data, dict) else {}

    def authenticate(self, username: str, password: str) -> AccountRecord:
        """Log in and cache the returned handle."""
        headers = self._headers(with_token=False)
        headers["X-Parse-Revocable-Session"] = "1"
        data = self._request(
            "GET",
            "/login",
            params={"username": username, "password": password},
            headers=headers,
            error_cls=AuthFailure,
        )
        record = AccountRecord.from_wire(data)
        self.handle_cache.save(record)
        logger.info("Logged in", extra={"user": mask_email(record.username)})
        return record

    def sign_up(self, username: str, email: str, password: str) -> AccountRecord:
        """Create a user and cache the returned handle."""
        headers = self._headers(with_token=False)
        headers["X-Parse-Revocable-Session"] = "1"
        data = self._request(
            "POST",
            "/users",
            payload={"username": username, "email": email, "password": password},
            headers=headers,
            error_cls=AuthFailure,
        )
        if not data.get("objectId"):
            raise AuthFailure("Sign up response carried no objectId")
        record = AccountRecord(
            object_id=data["objectId"],
            username=username,
            email=email,
            session_token=data.get("sessionToken"),
        )
        self.handle_cache.save(record)
        logger.info("Registered", extra={"user": mask_email(username)})
        return record

    def sign_out(self) -> None:
        """Revoke the session token remotely, then drop the cached handle."""
        if self.handle_cache.load() is not None:
            self._request("POST", "/logout", payload={}, error_cls=AuthFailure)
        self.handle_cache.clear()

    def current_cached_handle(self) -> Optional[AccountRecord]:
        return self.handle_cache.load()

    def query(self, collection: str, filters: Mapping[str, Any]) -> List[Dict[str, Any]]:
        where = validate_filters(collection, filters, self.relationship_fields)
        data = self._request("GET", f"/classes/{collection}", params={"where": json.dumps(where)})
        return list(data.get("results") or [])

    def fetch(self, pointer: AccountPointer) -> Dict[str, Any]:
        if pointer.class_name == USER_CLASS:
            return self._request("GET", f"/users/{pointer.object_id}")
        return self._request("GET", f"/classes/{pointer.class_name}/{pointer.object_id}")

    def create_record(self, collection: str, fields: Mapping[str, Any]) -> str:
        data = self._request("POST", f"/classes/{collection}", payload=fields)
        object_id = data.get("objectId")
        if not object_id:
            raise RecordStoreError(f"Create in {collection} returned no objectId")
        return object_id

    def update_record(self, collection: str, object_id: str, fields: Mapping[str, Any]) -> None:
        self._request("PUT", f"/classes/{collection}/{object_id}", payload=fields)

    def delete_record(self, collection: str, object_id: str) -> None:
        self._request("DELETE", f"/classes/{collection}/{object_id}")
