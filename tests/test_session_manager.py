import threading
import unittest
from concurrent.futures import Executor, Future

from safety_beacon.background import BackgroundRunner, ImmediateExecutor, MainQueue
from safety_beacon.domain import AccountPointer, AccountRecord, Credentials
from safety_beacon.errors import AuthFailure
from safety_beacon.links import LinkState
from safety_beacon.notices import NoticeLevel
from safety_beacon.record_store.memory import InMemoryRecordStore
from safety_beacon.session import Role
from safety_beacon.session_manager import SessionManager


class ManualExecutor(Executor):
    """Queue work until run_all() is called, to observe in-flight states."""

    def __init__(self):
        self.pending = []

    def submit(self, fn, /, *args, **kwargs):
        future = Future()
        self.pending.append((future, fn, args, kwargs))
        return future

    def run_all(self):
        while self.pending:
            future, fn, args, kwargs = self.pending.pop(0)
            future.set_result(fn(*args, **kwargs))


class RecordingNotifier:
    def __init__(self):
        self.notices = []

    def show(self, notice):
        self.notices.append(notice)


class TestSessionManager(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryRecordStore()
        self.notifier = RecordingNotifier()
        self.runner = BackgroundRunner(executor=ImmediateExecutor())
        self.manager = SessionManager(self.store, runner=self.runner, notifier=self.notifier)
        self.creds = Credentials(email="patient@safetybeacon.ca", password="hunter2")

    def _seed_linked_pair(self):
        patient = self.store.sign_up("patient@safetybeacon.ca", "patient@safetybeacon.ca", "hunter2")
        caretaker = self.store.sign_up("caretaker@safetybeacon.ca", "caretaker@safetybeacon.ca", "pw")
        self.store.link_accounts(caretaker.object_id, patient.object_id)
        self.store.handle_cache.clear()
        return patient, caretaker

    def test_current_is_none_without_cached_handle(self):
        self.assertIsNone(self.manager.current())

    def test_register_then_current_matches_credentials(self):
        done = []
        ok = self.manager.register_in_background(self.creds, completion=done.append).result()
        self.assertTrue(ok)
        self.assertEqual(done, [True])
        session = self.manager.current()
        self.assertEqual(session.username, "patient@safetybeacon.ca")
        self.assertEqual(session.email, "patient@safetybeacon.ca")
        self.assertTrue(session.requires_setup)

    def test_login_current_before_prefetch_completes(self):
        self._seed_linked_pair()
        executor = ManualExecutor()
        manager = SessionManager(self.store, runner=BackgroundRunner(executor=executor))

        future = manager.login_in_background(self.creds)
        # run only the login; the prefetch it schedules stays queued
        pending_future, fn, args, kwargs = executor.pending.pop(0)
        pending_future.set_result(fn(*args, **kwargs))
        self.assertTrue(future.result())

        session = manager.current()
        self.assertEqual(session.username, self.creds.email)
        self.assertEqual(session.email, self.creds.email)
        self.assertFalse(session.is_caretaker)
        self.assertEqual(manager.linked_account(Role.CARETAKER).state, LinkState.UNRESOLVED)

        executor.run_all()
        linked = manager.linked_account(Role.CARETAKER)
        self.assertEqual(linked.state, LinkState.RESOLVED)
        self.assertEqual(linked.record.username, "caretaker@safetybeacon.ca")
        self.assertEqual(manager.linked_account(Role.PATIENT).state, LinkState.ABSENT)

    def test_failed_login_keeps_state_and_surfaces_notice(self):
        self.manager.register_in_background(self.creds).result()
        before = self.manager.current()

        bad = Credentials(email="patient@safetybeacon.ca", password="wrong")
        self.assertFalse(self.manager.login_in_background(bad).result())

        self.assertEqual(self.manager.current(), before)
        self.assertEqual(len(self.notifier.notices), 1)
        self.assertEqual(self.notifier.notices[0].level, NoticeLevel.DANGER)
        self.assertEqual(self.notifier.notices[0].title, "Invalid username/password.")

    def test_failed_login_from_unauthenticated_stays_unauthenticated(self):
        self.assertFalse(self.manager.login_in_background(self.creds).result())
        self.assertIsNone(self.manager.current())

    def test_register_duplicate_fails(self):
        self.assertTrue(self.manager.register_in_background(self.creds).result())
        self.assertFalse(self.manager.register_in_background(self.creds).result())
        self.assertIn("already exists", self.notifier.notices[-1].title)

    def test_logout_clears_session_even_with_prefetch_in_flight(self):
        self._seed_linked_pair()
        executor = ManualExecutor()
        manager = SessionManager(self.store, runner=BackgroundRunner(executor=executor))
        login = manager.login_in_background(self.creds)
        pending_future, fn, args, kwargs = executor.pending.pop(0)
        pending_future.set_result(fn(*args, **kwargs))
        self.assertTrue(login.result())
        self.assertEqual(len(executor.pending), 1)  # prefetch still queued

        logout = manager.logout_in_background()
        executor.pending.append(executor.pending.pop(0))  # logout first, prefetch last
        executor.run_all()

        self.assertTrue(logout.result())
        self.assertIsNone(manager.current())
        self.assertIsNone(manager.linked_account(Role.CARETAKER))

    def test_failed_logout_keeps_session(self):
        self.manager.register_in_background(self.creds).result()

        def _boom():
            raise AuthFailure("Network error")

        self.store.sign_out = _boom
        self.assertFalse(self.manager.logout_in_background().result())
        self.assertIsNotNone(self.manager.current())
        self.assertEqual(self.notifier.notices[-1].title, "Logout failed")

    def test_logout_during_rehydration_wins(self):
        self.store.sign_up("patient@safetybeacon.ca", "patient@safetybeacon.ca", "hunter2")
        read_handle = threading.Event()
        release = threading.Event()
        load_cached = self.store.current_cached_handle

        def _slow_load():
            handle = load_cached()
            read_handle.set()
            release.wait(5)
            return handle

        self.store.current_cached_handle = _slow_load
        rehydrated = []
        worker = threading.Thread(target=lambda: rehydrated.append(self.manager.current()))
        worker.start()
        self.assertTrue(read_handle.wait(5))

        self.assertTrue(self.manager.logout_in_background().result())
        release.set()
        worker.join(5)

        self.assertEqual(rehydrated, [None])
        self.assertIsNone(self.manager.current())

    def test_rehydration_is_idempotent(self):
        self.store.sign_up("patient@safetybeacon.ca", "patient@safetybeacon.ca", "hunter2")
        first = SessionManager(self.store, runner=self.runner).current()
        second = SessionManager(self.store, runner=self.runner).current()
        self.assertIsNotNone(first)
        self.assertEqual(first, second)
        self.assertEqual(first.identifier, second.identifier)

    def test_corrupt_cached_handle_is_rejected(self):
        handle = AccountRecord(
            object_id="x1",
            username="a@b.c",
            caretaker=AccountPointer(object_id="c1"),
            patient=AccountPointer(object_id="p1"),
        )
        self.store.handle_cache.save(handle)
        self.assertIsNone(self.manager.current())
        self.assertEqual(self.notifier.notices[-1].level, NoticeLevel.DANGER)

    def test_prefetch_failure_leaves_session_valid(self):
        patient, _caretaker = self._seed_linked_pair()

        def _fail(pointer):
            raise AuthFailure("offline")

        self.store.fetch = _fail
        self.assertTrue(self.manager.login_in_background(self.creds).result())
        self.assertIsNotNone(self.manager.current())
        self.assertEqual(self.manager.linked_account(Role.CARETAKER).state, LinkState.FAILED)

    def test_notices_are_marshaled_through_dispatcher(self):
        queue = MainQueue()
        manager = SessionManager(
            self.store,
            runner=BackgroundRunner(executor=ImmediateExecutor(), dispatch=queue),
            notifier=self.notifier,
        )
        results = []
        manager.login_in_background(self.creds, completion=results.append).result()
        self.assertEqual(results, [])
        self.assertEqual(self.notifier.notices, [])
        self.assertEqual(queue.drain(), 2)
        self.assertEqual(results, [False])
        self.assertEqual(len(self.notifier.notices), 1)

    def test_login_on_worker_pool(self):
        self.store.sign_up("patient@safetybeacon.ca", "patient@safetybeacon.ca", "hunter2")
        self.store.handle_cache.clear()
        runner = BackgroundRunner(max_workers=2)
        try:
            manager = SessionManager(self.store, runner=runner)
            called = threading.Event()
            future = manager.login_in_background(self.creds, completion=lambda ok: called.set())
            self.assertTrue(future.result(timeout=5))
            self.assertTrue(called.is_set())
            self.assertEqual(manager.current().email, self.creds.email)
        finally:
            runner.shutdown()


if __name__ == "__main__":
    unittest.main()
