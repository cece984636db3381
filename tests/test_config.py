import os
import unittest

from safety_beacon.config import Settings


class TestConfig(unittest.TestCase):
    def test_settings_defaults(self):
        previous = os.environ.pop("BEACON_PARSE_SERVER_URL", None)
        try:
            s = Settings()
            self.assertEqual(s.parse_server_url, "http://localhost:1337/parse")
            self.assertEqual(s.bookmarks_collection, "Bookmarks")
            self.assertEqual(s.record_store, "parse")
        finally:
            if previous is not None:
                os.environ["BEACON_PARSE_SERVER_URL"] = previous

    def test_settings_env_override_strips_slash(self):
        previous = os.environ.get("BEACON_GEOCODER_BASE_URL")
        try:
            os.environ["BEACON_GEOCODER_BASE_URL"] = "https://geo.example.com/"
            s = Settings()
            self.assertEqual(s.geocoder_base_url, "https://geo.example.com")
        finally:
            if previous is None:
                os.environ.pop("BEACON_GEOCODER_BASE_URL", None)
            else:
                os.environ["BEACON_GEOCODER_BASE_URL"] = previous

    def test_worker_override(self):
        previous = os.environ.get("BEACON_BACKGROUND_WORKERS")
        try:
            os.environ["BEACON_BACKGROUND_WORKERS"] = "0"
            s = Settings()
            self.assertEqual(s.background_workers, 0)
        finally:
            if previous is None:
                os.environ.pop("BEACON_BACKGROUND_WORKERS", None)
            else:
                os.environ["BEACON_BACKGROUND_WORKERS"] = previous


if __name__ == "__main__":
    unittest.main()
