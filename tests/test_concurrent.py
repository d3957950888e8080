import unittest

from spot_tracker.core import concurrent
from spot_tracker.core.concurrent import Cancellation, TrackingCancelled


class TestConcurrent(unittest.TestCase):

    def test_split_in_chunks(self):
        self.assertEqual([range(0, 4), range(4, 8), range(8, 10)], concurrent.split_in_chunks(10, 3))
        self.assertEqual([range(0, 1), range(1, 2)], concurrent.split_in_chunks(2, 5))
        self.assertEqual([], concurrent.split_in_chunks(0, 5))

    def test_map_in_parallel_keeps_order(self):
        self.assertEqual([i * 2 for i in range(50)],
                         concurrent.map_in_parallel(lambda i: i * 2, range(50), max_workers=4))

    def test_map_in_parallel_raises(self):
        def fail_on_three(i: int) -> int:
            if i == 3:
                raise ValueError("three")
            return i

        with self.assertRaises(ValueError):
            concurrent.map_in_parallel(fail_on_three, range(10), max_workers=4)

    def test_cancellation(self):
        cancellation = Cancellation()
        cancellation.check()  # Doesn't raise yet

        cancellation.cancel()
        self.assertTrue(cancellation.is_cancelled())
        with self.assertRaises(TrackingCancelled):
            cancellation.check()
