import os
import tempfile
import unittest

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from tetlixi.db.engine import get_sessionmaker, make_engine
from tetlixi.models import Base, DevicePlayAllowance
from tetlixi.play_guard import (
    consume_extra_play,
    grant_extra_plays,
    normalize_device_id,
    normalize_extra_plays,
    refund_extra_play,
)

DEVICE_ID = "device-0001-abcd"


class NormalizationTestCase(unittest.TestCase):
    def test_device_id(self):
        self.assertEqual(normalize_device_id(f"  {DEVICE_ID} "), DEVICE_ID)
        self.assertIsNone(normalize_device_id("short"))
        self.assertIsNone(normalize_device_id("x" * 129))
        self.assertIsNone(normalize_device_id("device_0001_abcd"))
        self.assertIsNone(normalize_device_id(12345678))

    def test_extra_plays(self):
        self.assertEqual(normalize_extra_plays(3), 3)
        self.assertEqual(normalize_extra_plays(2.9), 2)
        self.assertEqual(normalize_extra_plays(100), 100)
        for value in (0, 101, -1, True, "3", float("inf"), float("nan"), None):
            with self.subTest(value=value):
                self.assertIsNone(normalize_extra_plays(value))


class AllowanceTestCase(unittest.TestCase):
    def setUp(self):
        self.engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
        Base.metadata.create_all(self.engine)
        self.Session = sessionmaker(
            bind=self.engine, future=True, expire_on_commit=False
        )

    def tearDown(self):
        self.engine.dispose()

    def _remaining(self):
        with self.Session() as session:
            allowance = DevicePlayAllowance.get_by_device_id(session, DEVICE_ID)
            return None if allowance is None else allowance.extra_plays_remaining

    def test_grant_creates_then_increments(self):
        with self.Session.begin() as session:
            grant_extra_plays(session, DEVICE_ID, 2)
        with self.Session.begin() as session:
            allowance = grant_extra_plays(session, f" {DEVICE_ID} ", 3)
            self.assertEqual(allowance.extra_plays_remaining, 5)
        self.assertEqual(self._remaining(), 5)

    def test_grant_rejects_invalid_input(self):
        with self.Session.begin() as session:
            with self.assertRaises(ValueError):
                grant_extra_plays(session, "bad id!", 1)
            with self.assertRaises(ValueError):
                grant_extra_plays(session, DEVICE_ID, 0)
        self.assertIsNone(self._remaining())

    def test_consume_until_empty(self):
        with self.Session.begin() as session:
            grant_extra_plays(session, DEVICE_ID, 2)

        results = []
        for _ in range(3):
            with self.Session.begin() as session:
                results.append(consume_extra_play(session, DEVICE_ID))

        self.assertEqual(results, [True, True, False])
        self.assertEqual(self._remaining(), 0)

    def test_consume_unknown_device(self):
        with self.Session.begin() as session:
            self.assertFalse(consume_extra_play(session, DEVICE_ID))

    def test_refund(self):
        with self.Session.begin() as session:
            grant_extra_plays(session, DEVICE_ID, 1)
        with self.Session.begin() as session:
            consume_extra_play(session, DEVICE_ID)
        with self.Session.begin() as session:
            refund_extra_play(session, DEVICE_ID)
        self.assertEqual(self._remaining(), 1)



class OverlappingGrantTestCase(unittest.TestCase):
    def setUp(self):
        handle, self.db_path = tempfile.mkstemp(suffix=".db")
        os.close(handle)
        self.engine = make_engine(f"sqlite:///{self.db_path}")
        Base.metadata.create_all(self.engine)
        self.Session = get_sessionmaker(self.engine)
        with self.Session.begin() as session:
            grant_extra_plays(session, DEVICE_ID, 1)

    def tearDown(self):
        self.engine.dispose()
        os.remove(self.db_path)

    def test_grants_from_stale_reads_add_up(self):
        first = self.Session()
        try:
            stale = DevicePlayAllowance.get_by_device_id(first, DEVICE_ID)
            self.assertEqual(stale.extra_plays_remaining, 1)

            with self.Session.begin() as session:
                grant_extra_plays(session, DEVICE_ID, 3)

            allowance = grant_extra_plays(first, DEVICE_ID, 2)
            first.commit()
            self.assertEqual(allowance.extra_plays_remaining, 6)
        finally:
            first.close()

        with self.Session() as session:
            allowance = DevicePlayAllowance.get_by_device_id(session, DEVICE_ID)
            self.assertEqual(allowance.extra_plays_remaining, 6)


if __name__ == "__main__":
    unittest.main()
