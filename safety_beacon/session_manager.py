"""Session manager owning the current session, its cache and its links."""
from __future__ import annotations

import threading
from concurrent.futures import Future
from typing import Callable, Optional

from safety_beacon.background import BackgroundRunner
from safety_beacon.domain import AccountRecord, Credentials
from safety_beacon.errors import RecordStoreError, RelationshipConflictError
from safety_beacon.links import LinkedAccount, LinkedAccountResolver
from safety_beacon.notices import LoggingNotifier, Notifier, failure
from safety_beacon.record_store import RecordStore
from safety_beacon.session import Role, Session
from utils.logging_utils import get_tagged_logger, mask_email

logger = get_tagged_logger(__name__, tag="session_manager")

Completion = Optional[Callable[[bool], None]]


class SessionManager:
    """Holds at most one active session.

    State transitions: unauthenticated -> authenticated on a successful login,
    registration or rehydration from the cached handle; authenticated ->
    unauthenticated only on a successful logout. Failed attempts leave the
    current state untouched.
    """

    def __init__(
        self,
        store: RecordStore,
        *,
        runner: BackgroundRunner | None = None,
        notifier: Notifier | None = None,
        resolver: LinkedAccountResolver | None = None,
    ) -> None:
        self._store = store
        self._runner = runner or BackgroundRunner()
        self._notifier = notifier or LoggingNotifier()
        self._resolver = resolver or LinkedAccountResolver(store)
        self._session: Optional[Session] = None
        # bumped whenever a login or logout replaces the session
        self._generation = 0
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Current session
    # ------------------------------------------------------------------

    def current(self) -> Optional[Session]:
        """Return the active session, rehydrating it from the cached handle if needed.

        Never makes a network call.
        """
        with self._lock:
            if self._session is not None:
                return self._session
            generation = self._generation

        handle = self._store.current_cached_handle()
        if handle is None:
            return None
        try:
            session = Session(handle)
        except RelationshipConflictError as exc:
            self._surface_failure("Cached account has corrupt relationship data", exc)
            return None

        with self._lock:
            if self._generation != generation:
                logger.debug("Discarding rehydrated session; a login or logout finished first")
                return self._session
            if self._session is not None:
                # another thread installed a session first
                return self._session
            self._session = session
        logger.debug("Rehydrated session from cache", extra={"user": mask_email(session.username)})
        self._prefetch_links(session)
        return session

    def linked_account(self, role: Role) -> Optional[LinkedAccount]:
        """Return what is known about the linked account playing `role`.

        Reads only cached data; right after login the state is usually UNRESOLVED.
        """
        with self._lock:
            session = self._session
        if session is None:
            return None
        return self._resolver.lookup(session.ref_for(role))

    def refresh_links(self) -> "Future[None] | None":
        """Re-run the best-effort prefetch for the current session."""
        with self._lock:
            session = self._session
        if session is None:
            return None
        return self._prefetch_links(session)

    # ------------------------------------------------------------------
    # Background operations
    # ------------------------------------------------------------------

    def login_in_background(self, credentials: Credentials, completion: Completion = None) -> "Future[bool]":
        """Authenticate and replace the current session on success."""
        return self._runner.submit(self._login, credentials, on_result=completion)

    def register_in_background(self, credentials: Credentials, completion: Completion = None) -> "Future[bool]":
        """Create an account (username = email), then behave like login."""
        return self._runner.submit(self._register, credentials, on_result=completion)

    def logout_in_background(self, completion: Completion = None) -> "Future[bool]":
        """Sign out remotely and clear the current session on success."""
        return self._runner.submit(self._logout, on_result=completion)

    def _login(self, credentials: Credentials) -> bool:
        try:
            handle = self._store.authenticate(credentials.email, credentials.password)
        except RecordStoreError as exc:
            return self._surface_failure("Login failed", exc)
        return self._adopt(handle)

    def _register(self, credentials: Credentials) -> bool:
        try:
            handle = self._store.sign_up(credentials.email, credentials.email, credentials.password)
        except RecordStoreError as exc:
            return self._surface_failure("Registration failed", exc)
        return self._adopt(handle)

    def _logout(self) -> bool:
        try:
            self._store.sign_out()
        except RecordStoreError as exc:
            return self._surface_failure("Logout failed", exc)
        with self._lock:
            self._session = None
            self._generation += 1
        self._resolver.clear()
        logger.info("Logged out")
        return True

    def _adopt(self, handle: AccountRecord) -> bool:
        """Install a session built from a fresh handle."""
        try:
            session = Session(handle)
        except RelationshipConflictError as exc:
            return self._surface_failure("Account has corrupt relationship data", exc)
        with self._lock:
            self._session = session
            self._generation += 1
        logger.info("Session started", extra={"user": mask_email(session.username)})
        self._prefetch_links(session)
        return True

    def _prefetch_links(self, session: Session) -> "Future[None]":
        """Load both linked accounts in the background; failures only leave them stale."""
        def _work() -> None:
            for pointer in (session.caretaker_ref, session.patient_ref):
                if pointer is not None:
                    self._resolver.resolve(pointer)

        return self._runner.submit(_work)

    def _surface_failure(self, action: str, exc: Exception) -> bool:
        """Log a failure and show it to the user; returns False for the caller."""
        logger.error("%s: %s", action, exc)
        self._runner.dispatch(self._notifier.show, failure(action, exc))
        return False
