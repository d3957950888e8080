import unittest

from spot_tracker.core.link import Link, LinkType
from spot_tracker.core.spot import Spot
from spot_tracker.core.spot_collection import SpotCollection
from spot_tracker.core.track_graph import TrackGraph
from spot_tracker.linking_analysis import track_statistics


class TestTrackStatistics(unittest.TestCase):

    def setUp(self):
        # A track that moves 3 to the right, skips a frame, and then splits
        spots = SpotCollection([Spot(1, 0, 0, 0), Spot(2, 1, 3, 0), Spot(3, 3, 3, 4),
                                Spot(4, 4, 3, 4), Spot(5, 4, 6, 4),
                                Spot(6, 0, 100, 100), Spot(7, 1, 100, 100)])
        self.graph = TrackGraph(spots, [
            Link(1, 2, 9, LinkType.FRAME_TO_FRAME),
            Link(2, 3, 16, LinkType.GAP_CLOSING),
            Link(3, 4, 0, LinkType.FRAME_TO_FRAME),
            Link(3, 5, 9, LinkType.SPLITTING),
            Link(6, 7, 0, LinkType.FRAME_TO_FRAME)])

    def test_statistics(self):
        statistics = track_statistics.get_track_statistics(self.graph, 0)

        self.assertEqual(5, statistics.spot_count)
        self.assertEqual(4, statistics.link_count)
        self.assertEqual(0, statistics.first_frame)
        self.assertEqual(4, statistics.last_frame)
        self.assertEqual(4, statistics.duration)
        self.assertEqual(1, statistics.gap_count)
        self.assertEqual(1, statistics.split_count)
        self.assertEqual(0, statistics.merge_count)
        self.assertAlmostEqual(3 + 4 + 0 + 3, statistics.total_distance)
        self.assertAlmostEqual(10 / 4, statistics.mean_link_length)
        self.assertAlmostEqual((6 ** 2 + 4 ** 2) ** 0.5, statistics.max_displacement)

    def test_cached(self):
        statistics = track_statistics.get_track_statistics(self.graph, 0)
        self.assertIs(statistics, track_statistics.get_track_statistics(self.graph, 0))

        self.graph.replace_links([Link(1, 2, 9, LinkType.FRAME_TO_FRAME)])
        self.assertEqual(2, track_statistics.get_track_statistics(self.graph, 0).spot_count)

    def test_min_duration(self):
        self.assertEqual([0], track_statistics.find_track_ids_with_min_duration(self.graph, 2))
        self.assertEqual([0, 1], track_statistics.find_track_ids_with_min_duration(self.graph, 1))
        self.assertEqual(2, len(track_statistics.get_all_track_statistics(self.graph)))

    def test_frames_of_second_track(self):
        statistics = track_statistics.get_track_statistics(self.graph, 1)

        self.assertEqual(0, statistics.first_frame)
        self.assertEqual(1, statistics.last_frame)
        self.assertEqual(1, statistics.duration)
