"""Bookmark snapshots and the address-resolution pipeline used to navigate to them."""
from __future__ import annotations

import threading
from concurrent.futures import Future
from typing import Callable, List, Optional, Protocol, Union

from pydantic import ValidationError

from safety_beacon.background import BackgroundRunner
from safety_beacon.domain import Annotation, Bookmark, Coordinate, PostalAddress
from safety_beacon.errors import GeocodingError, InvalidBookmarkError, QueryTypeMismatch, RecordStoreError
from safety_beacon.geocoding import GeocodingService
from safety_beacon.notices import INVALID_ADDRESS, LoggingNotifier, Notice, Notifier, danger, failure, success
from safety_beacon.record_store import RecordStore
from safety_beacon.session import Session
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="bookmarks")

INVALID_ADDRESS_DURATION = 5.0

AddressInput = Union[PostalAddress, str]


class MapSurface(Protocol):
    """Where navigation destinations are shown."""

    def present(self, annotation: Annotation) -> None:
        """Center on the annotation and add it as a marker."""


class LoggingMapSurface:
    """Map surface for headless use: presented markers are logged."""

    def present(self, annotation: Annotation) -> None:
        logger.info(
            "Presenting destination",
            extra={"title": annotation.title, "subtitle": annotation.subtitle, "zoom": annotation.zoom_level},
        )


class BookmarkNavigator:
    """Load a patient's bookmarks and resolve their addresses for navigation.

    Refreshes are numbered as they are issued. A response is applied only if no
    newer refresh has been applied already, so `bookmarks` always holds one
    complete snapshot from the newest applied refresh.
    """

    def __init__(
        self,
        store: RecordStore,
        geocoder: GeocodingService,
        *,
        runner: BackgroundRunner | None = None,
        notifier: Notifier | None = None,
        map_surface: MapSurface | None = None,
        collection: str = "Bookmarks",
    ) -> None:
        self._store = store
        self._geocoder = geocoder
        self._runner = runner or BackgroundRunner()
        self._notifier = notifier or LoggingNotifier()
        self._map = map_surface or LoggingMapSurface()
        self.collection = collection
        self._bookmarks: List[Bookmark] = []
        self._issued = 0
        self._applied = 0
        self._lock = threading.Lock()

    @property
    def bookmarks(self) -> List[Bookmark]:
        """Copy of the current snapshot."""
        with self._lock:
            return list(self._bookmarks)

    # ------------------------------------------------------------------
    # Snapshot refresh
    # ------------------------------------------------------------------

    def refresh(
        self,
        session: Optional[Session],
        completion: Optional[Callable[[Optional[List[Bookmark]]], None]] = None,
    ) -> "Future[Optional[List[Bookmark]]]":
        """Reload the bookmarks owned by `session`.

        Resolves to the new snapshot, or None when the refresh was not applied
        (no patient session, backend failure, or superseded by a newer refresh).
        """
        with self._lock:
            self._issued += 1
            seq = self._issued
        return self._runner.submit(self._refresh, session, seq, on_result=completion)

    def _refresh(self, session: Optional[Session], seq: int) -> Optional[List[Bookmark]]:
        if session is None or not session.is_patient:
            logger.info("Skipping bookmark refresh; no patient session")
            return None
        try:
            rows = self._store.query(self.collection, {"patient": session.pointer()})
        except QueryTypeMismatch as exc:
            logger.error("Bookmark query rejected before dispatch: %s", exc)
            return None
        except RecordStoreError as exc:
            logger.error("Failed to load bookmarks: %s", exc)
            return None

        snapshot: List[Bookmark] = []
        for row in rows:
            try:
                snapshot.append(Bookmark.from_wire(row))
            except ValidationError as exc:
                logger.warning("Skipping malformed bookmark", extra={"object_id": row.get("objectId"), "error": str(exc)})

        with self._lock:
            if seq < self._applied:
                logger.debug("Discarding stale bookmark refresh", extra={"seq": seq, "applied": self._applied})
                return None
            self._applied = seq
            self._bookmarks = snapshot
        return list(snapshot)

    # ------------------------------------------------------------------
    # Geocoding
    # ------------------------------------------------------------------

    def forward_geocode(
        self,
        address: str,
        completion: Optional[Callable[[Optional[Coordinate]], None]] = None,
    ) -> "Future[Optional[Coordinate]]":
        """Resolve an address to the first candidate's coordinate, or None."""
        return self._runner.submit(self._forward, address, on_result=completion)

    def reverse_geocode(
        self,
        coordinate: Coordinate,
        completion: Optional[Callable[[Optional[PostalAddress]], None]] = None,
    ) -> "Future[Optional[PostalAddress]]":
        """Resolve a coordinate to a complete structured address, or None."""
        return self._runner.submit(self._reverse, coordinate, on_result=completion)

    def _forward(self, address: str) -> Optional[Coordinate]:
        try:
            candidates = self._geocoder.forward_geocode(address)
        except GeocodingError as exc:
            logger.error("Forward geocode failed: %s", exc)
            return None
        if not candidates:
            logger.debug("No forward geocode candidates")
            return None
        return candidates[0].coordinate

    def _reverse(self, coordinate: Coordinate) -> Optional[PostalAddress]:
        try:
            candidates = self._geocoder.reverse_geocode(coordinate.latitude, coordinate.longitude)
        except GeocodingError as exc:
            logger.error("Reverse geocode failed: %s", exc)
            return None
        if not candidates:
            return None
        address = candidates[0].postal_address()
        if address is None:
            logger.debug("Discarding incomplete structured address")
        return address

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def navigate_to(
        self,
        bookmark: Bookmark,
        reference: Optional[Coordinate] = None,
        completion: Optional[Callable[[Optional[Annotation]], None]] = None,
    ) -> "Future[Optional[Annotation]]":
        """Geocode the bookmark and present it, or report an invalid address.

        When `reference` (the caller's last known location) is given, the marker
        subtitle carries the straight-line distance in whole kilometers.
        """
        return self._runner.submit(self._navigate, bookmark, reference, on_result=completion)

    def _navigate(self, bookmark: Bookmark, reference: Optional[Coordinate]) -> Optional[Annotation]:
        title = bookmark.title
        coordinate = self._forward(bookmark.address)
        if coordinate is None:
            self._show(danger(INVALID_ADDRESS, INVALID_ADDRESS_DURATION))
            return None
        subtitle = None
        if reference is not None:
            subtitle = f"{int(reference.distance_km(coordinate))} Km"
        annotation = Annotation(title=title, subtitle=subtitle, coordinate=coordinate)
        self._runner.dispatch(self._map.present, annotation)
        return annotation

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def add_bookmark(
        self,
        session: Optional[Session],
        name: str,
        address: AddressInput,
        completion: Optional[Callable[[Optional[Bookmark]], None]] = None,
    ) -> "Future[Optional[Bookmark]]":
        """Geocode and save a new bookmark owned by `session`.

        `address` is either structured or in its stored "street, city, region,
        postal code" form.
        """
        return self._runner.submit(self._add, session, name, address, on_result=completion)

    def update_bookmark(
        self,
        bookmark: Bookmark,
        name: Optional[str] = None,
        address: Optional[AddressInput] = None,
        completion: Optional[Callable[[Optional[Bookmark]], None]] = None,
    ) -> "Future[Optional[Bookmark]]":
        """Save a changed name and/or address; a new address is geocoded first."""
        return self._runner.submit(self._update, bookmark, name, address, on_result=completion)

    def delete_bookmark(
        self,
        bookmark: Bookmark,
        completion: Optional[Callable[[bool], None]] = None,
    ) -> "Future[bool]":
        """Delete a saved bookmark and drop it from the snapshot."""
        return self._runner.submit(self._delete, bookmark, on_result=completion)

    def _add(self, session: Optional[Session], name: str, address: AddressInput) -> Optional[Bookmark]:
        if session is None or not session.is_patient:
            logger.info("Skipping bookmark save; no patient session")
            return None
        if not name or not name.strip():
            self._show(danger("All fields must be entered."))
            return None
        address = self._postal(address)
        if address is None:
            return None
        concatenated = address.concatenated()
        coordinate = self._forward(concatenated)
        if coordinate is None:
            self._show(danger(INVALID_ADDRESS, INVALID_ADDRESS_DURATION))
            return None
        bookmark = Bookmark(name=name.strip(), address=concatenated, coordinate=coordinate, patient=session.pointer())
        try:
            object_id = self._store.create_record(self.collection, bookmark.to_wire())
        except RecordStoreError as exc:
            logger.error("Failed to save bookmark: %s", exc)
            self._show(failure("Could not save bookmark", exc))
            return None
        saved = bookmark.model_copy(update={"object_id": object_id})
        with self._lock:
            self._bookmarks.append(saved)
        self._show(success("Bookmark successfully saved"))
        return saved

    def _update(self, bookmark: Bookmark, name: Optional[str], address: Optional[AddressInput]) -> Optional[Bookmark]:
        if not bookmark.object_id:
            logger.error("Cannot update a bookmark that was never saved")
            return None
        if name is not None and not name.strip():
            self._show(danger("All fields must be entered."))
            return None
        if address is not None:
            address = self._postal(address)
            if address is None:
                return None

        changes = {}
        if name is not None and name.strip() != bookmark.name:
            changes["name"] = name.strip()
        if address is not None and address.concatenated() != bookmark.address:
            coordinate = self._forward(address.concatenated())
            if coordinate is None:
                self._show(danger(INVALID_ADDRESS, INVALID_ADDRESS_DURATION))
                return None
            changes["address"] = address.concatenated()
            changes["coordinate"] = coordinate
        if not changes:
            return bookmark

        updated = bookmark.model_copy(update=changes)
        fields = {k: v for k, v in updated.to_wire().items() if k != "patient"}
        try:
            self._store.update_record(self.collection, bookmark.object_id, fields)
        except RecordStoreError as exc:
            logger.error("Failed to update bookmark: %s", exc)
            self._show(failure("Could not update bookmark", exc))
            return None
        with self._lock:
            self._bookmarks = [updated if b.object_id == updated.object_id else b for b in self._bookmarks]
        self._show(success("Bookmark successfully updated"))
        return updated

    def _delete(self, bookmark: Bookmark) -> bool:
        if not bookmark.object_id:
            logger.error("Cannot delete a bookmark that was never saved")
            return False
        try:
            self._store.delete_record(self.collection, bookmark.object_id)
        except RecordStoreError as exc:
            logger.error("Failed to delete bookmark: %s", exc)
            self._show(failure("Could not delete bookmark", exc))
            return False
        with self._lock:
            self._bookmarks = [b for b in self._bookmarks if b.object_id != bookmark.object_id]
        self._show(success("Bookmark successfully deleted"))
        return True

    def _postal(self, address: AddressInput) -> Optional[PostalAddress]:
        if isinstance(address, PostalAddress):
            return address
        try:
            return PostalAddress.parse(address)
        except InvalidBookmarkError as exc:
            self._show(danger(str(exc)))
            return None

    def _show(self, notice: Notice) -> None:
        self._runner.dispatch(self._notifier.show, notice)
