import unittest

from spot_tracker.core.concurrent import Cancellation, TrackingCancelled
from spot_tracker.core.link import LinkType
from spot_tracker.core.spot import Spot
from spot_tracker.core.spot_collection import SpotCollection
from spot_tracker.linking import frame_to_frame_linker
from spot_tracker.linking.settings import TrackingSettings


class TestFrameToFrameLinker(unittest.TestCase):

    def test_two_pairs(self):
        spots = SpotCollection([Spot(1, 0, 0, 0), Spot(2, 0, 10, 10),
                                Spot(3, 1, 1, 1), Spot(4, 1, 11, 11), Spot(5, 1, 50, 50)])

        links = frame_to_frame_linker.link_frame_to_frame(spots, TrackingSettings(max_linking_distance=5))

        self.assertEqual([(1, 3), (2, 4)], [link.ids() for link in links])
        self.assertTrue(all(link.link_type == LinkType.FRAME_TO_FRAME for link in links))
        self.assertAlmostEqual(2, links[0].cost)

    def test_empty_frame_breaks_the_chain(self):
        spots = SpotCollection([Spot(1, 0, 0, 0), Spot(2, 2, 0, 0), Spot(3, 3, 0, 0)])

        links = frame_to_frame_linker.link_frame_to_frame(spots, TrackingSettings())

        self.assertEqual([(2, 3)], [link.ids() for link in links])

    def test_at_most_one_link_per_spot(self):
        # Two spots competing for the same spot in the next frame
        spots = SpotCollection([Spot(1, 0, 0, 0), Spot(2, 0, 2, 0), Spot(3, 1, 1, 0)])

        links = frame_to_frame_linker.link_frame_to_frame(spots, TrackingSettings())

        self.assertEqual(1, len(links))
        self.assertEqual(3, links[0].target_id)

    def test_multiple_threads_give_same_result(self):
        spots = SpotCollection()
        for frame in range(10):
            for i in range(10):
                spots.add(Spot(frame * 100 + i, frame, i * 10 + frame, (i * 7) % 5))

        single = frame_to_frame_linker.link_frame_to_frame(spots, TrackingSettings(max_workers=1))
        multi = frame_to_frame_linker.link_frame_to_frame(spots, TrackingSettings(max_workers=4))

        self.assertEqual(single, multi)
        self.assertEqual(90, len(single))

    def test_cancelled(self):
        spots = SpotCollection([Spot(1, 0, 0, 0), Spot(2, 1, 0, 0)])
        cancellation = Cancellation()
        cancellation.cancel()

        with self.assertRaises(TrackingCancelled):
            frame_to_frame_linker.link_frame_to_frame(spots, TrackingSettings(), cancellation=cancellation)
