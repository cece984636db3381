"""Composition root wiring the session manager and bookmark navigator."""
from __future__ import annotations

from typing import Callable, List, Optional

from safety_beacon import config
from safety_beacon.background import BackgroundRunner, Dispatch
from safety_beacon.bookmarks import BookmarkNavigator, MapSurface
from safety_beacon.domain import Bookmark
from safety_beacon.geocoding import GeocodingService, build_geocoder
from safety_beacon.notices import LoggingNotifier, Notifier
from safety_beacon.record_store import RecordStore, build_record_store
from safety_beacon.session_manager import SessionManager
from utils.logging_utils import get_tagged_logger, setup_logging

logger = get_tagged_logger(__name__, tag="context")


class BeaconContext:
    """Owns exactly one SessionManager and BookmarkNavigator.

    Pass the context down to whatever needs the current session instead of
    reaching for a global.
    """

    def __init__(
        self,
        store: RecordStore,
        geocoder: GeocodingService,
        *,
        runner: BackgroundRunner | None = None,
        notifier: Notifier | None = None,
        map_surface: MapSurface | None = None,
        bookmarks_collection: str = "Bookmarks",
    ) -> None:
        self.runner = runner or BackgroundRunner()
        notifier = notifier or LoggingNotifier()
        self.sessions = SessionManager(store, runner=self.runner, notifier=notifier)
        self.navigator = BookmarkNavigator(
            store,
            geocoder,
            runner=self.runner,
            notifier=notifier,
            map_surface=map_surface,
            collection=bookmarks_collection,
        )

    @classmethod
    def build(
        cls,
        settings: config.Settings | None = None,
        *,
        dispatch: Dispatch | None = None,
        notifier: Notifier | None = None,
        map_surface: MapSurface | None = None,
        log_level: str | None = None,
    ) -> "BeaconContext":
        """Build a context from configuration, choosing backends the way settings say."""
        settings = settings or config.settings
        if log_level:
            setup_logging(level=log_level, job_name="safety_beacon")
        runner = BackgroundRunner(settings.background_workers, dispatch=dispatch)
        logger.info("Building Safety Beacon context", extra={"workers": settings.background_workers})
        return cls(
            build_record_store(settings),
            build_geocoder(settings),
            runner=runner,
            notifier=notifier,
            map_surface=map_surface,
            bookmarks_collection=settings.bookmarks_collection,
        )

    def refresh_bookmarks(self, completion: Optional[Callable[[Optional[List[Bookmark]]], None]] = None):
        """Refresh bookmarks for whoever is currently signed in."""
        return self.navigator.refresh(self.sessions.current(), completion)

    def close(self) -> None:
        """Wait for in-flight work and release the worker pool."""
        self.runner.shutdown(wait=True)

    def __enter__(self) -> "BeaconContext":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
