import tempfile
import unittest
from pathlib import Path

from fentanalytics.utils import SingleInstanceLock


class TestSingleInstanceLock(unittest.TestCase):

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.db_path = str(Path(self._tmp.name) / "analytics.db")

    def tearDown(self):
        self._tmp.cleanup()

    def test_second_writer_is_refused(self):
        first = SingleInstanceLock.for_database(self.db_path)
        second = SingleInstanceLock.for_database(self.db_path)

        self.assertTrue(first.acquire())
        try:
            self.assertFalse(second.acquire())
        finally:
            first.release()

        self.assertTrue(second.acquire())
        second.release()
        self.assertFalse(second.lock_file_path.exists())

    def test_lock_file_sits_beside_database(self):
        lock = SingleInstanceLock.for_database(self.db_path)
        self.assertEqual(lock.lock_file_path.name, "analytics.db.lock")


if __name__ == "__main__":
    unittest.main()
