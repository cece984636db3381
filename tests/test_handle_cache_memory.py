import time
import unittest

from safety_beacon.domain import AccountRecord
from safety_beacon.handle_cache.memory import InMemoryHandleCache


def _record(object_id="u1"):
    return AccountRecord(object_id=object_id, username="a@b.ca", email="a@b.ca", session_token="r:1")


class TestInMemoryHandleCache(unittest.TestCase):
    def test_save_load_clear(self):
        cache = InMemoryHandleCache()
        self.assertIsNone(cache.load())
        cache.save(_record())
        self.assertEqual(cache.load().object_id, "u1")
        cache.save(_record("u2"))
        self.assertEqual(cache.load().object_id, "u2")
        cache.clear()
        self.assertIsNone(cache.load())

    def test_load_refreshes_ttl(self):
        cache = InMemoryHandleCache(ttl_seconds=1)
        cache.save(_record())
        time.sleep(0.6)
        # Access should refresh TTL; should still exist
        self.assertIsNotNone(cache.load())
        time.sleep(0.6)
        self.assertIsNotNone(cache.load())
        time.sleep(1.4)
        # After another sleep without access, it should expire
        self.assertIsNone(cache.load())


if __name__ == "__main__":
    unittest.main()
