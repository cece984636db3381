import unittest

from pydantic import ValidationError

from safety_beacon.domain import AccountPointer, AccountRecord, Bookmark, Coordinate, Credentials, PostalAddress
from safety_beacon.errors import InvalidBookmarkError


class TestDomain(unittest.TestCase):
    def test_pointer_wire_round_trip(self):
        ptr = AccountPointer(object_id="abc")
        self.assertEqual(ptr.to_wire(), {"__type": "Pointer", "className": "_User", "objectId": "abc"})
        self.assertEqual(AccountPointer.from_wire(ptr.to_wire()), ptr)
        self.assertIsNone(AccountPointer.from_wire(None))
        self.assertIsNone(AccountPointer.from_wire({"__type": "Pointer"}))

    def test_account_record_from_parse_user(self):
        record = AccountRecord.from_wire(
            {
                "objectId": "pRGYHaleS6",
                "username": "patient@safetybeacon.ca",
                "email": "patient@safetybeacon.ca",
                "sessionToken": "r:123",
                "caretaker": {"__type": "Pointer", "className": "_User", "objectId": "iMZAoyqRS0"},
            }
        )
        self.assertEqual(record.caretaker.object_id, "iMZAoyqRS0")
        self.assertIsNone(record.patient)
        self.assertEqual(record.session_token, "r:123")
        self.assertNotIn("r:123", repr(record))

    def test_credentials_normalize_email(self):
        creds = Credentials(email="  Patient@SafetyBeacon.ca ", password="x")
        self.assertEqual(creds.email, "patient@safetybeacon.ca")
        with self.assertRaises(ValidationError):
            Credentials(email="   ", password="x")

    def test_coordinate_bounds(self):
        with self.assertRaises(ValidationError):
            Coordinate(latitude=91, longitude=0)
        with self.assertRaises(ValidationError):
            Coordinate(latitude=0, longitude=-181)

    def test_distance_km(self):
        london_on = Coordinate(latitude=42.9849, longitude=-81.2453)
        toronto = Coordinate(latitude=43.6532, longitude=-79.3832)
        self.assertAlmostEqual(london_on.distance_km(toronto), 168.0, delta=3.0)
        self.assertEqual(london_on.distance_km(london_on), 0.0)

    def test_postal_address_concatenate_and_parse(self):
        address = PostalAddress(street="221B Baker St", city="London", region="ON", postal_code="N6A1A1")
        self.assertEqual(address.concatenated(), "221B Baker St, London, ON, N6A1A1")
        self.assertEqual(PostalAddress.parse(address.concatenated()), address)
        with self.assertRaises(InvalidBookmarkError):
            PostalAddress.parse("221B Baker St, London")
        with self.assertRaises(ValidationError):
            PostalAddress(street=" ", city="London", region="ON", postal_code="N6A1A1")

    def test_bookmark_wire_and_title(self):
        bookmark = Bookmark.from_wire(
            {
                "objectId": "b1",
                "name": "Home",
                "address": "221B Baker St, London, ON, N6A1A1",
                "lat": 42.98,
                "long": -81.24,
                "patient": {"__type": "Pointer", "className": "_User", "objectId": "p1"},
            }
        )
        self.assertEqual(bookmark.title, "221B Baker St")
        self.assertEqual(bookmark.coordinate, Coordinate(latitude=42.98, longitude=-81.24))
        wire = bookmark.to_wire()
        self.assertEqual(wire["lat"], 42.98)
        self.assertEqual(wire["patient"]["objectId"], "p1")
        self.assertNotIn("objectId", wire)

    def test_bookmark_without_coordinate(self):
        bookmark = Bookmark.from_wire({"name": "Park", "address": "1 Main St, Town, ON, A1A1A1"})
        self.assertIsNone(bookmark.coordinate)
        self.assertNotIn("lat", bookmark.to_wire())


if __name__ == "__main__":
    unittest.main()
